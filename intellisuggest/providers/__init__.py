"""Completion providers for IntelliSuggest."""

from intellisuggest.providers.base import CompletionProvider
from intellisuggest.providers.registry import ProviderRegistry, create_provider

__all__ = ["CompletionProvider", "ProviderRegistry", "create_provider"]
