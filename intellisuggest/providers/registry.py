"""Provider registry for backend selection."""

from typing import Dict, List, Optional, Type
import logging

import requests

from intellisuggest.config import SuggestConfig
from intellisuggest.providers.base import CompletionProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Central registry mapping provider names to implementations.

    The session asks the registry for the configured backend and never
    touches the concrete classes itself.
    """

    def __init__(self):
        self._providers: Dict[str, Type[CompletionProvider]] = {}

    def register(self, name: str, provider_class: Type[CompletionProvider]) -> None:
        """
        Register a provider class.

        Args:
            name: Name used in configuration
            provider_class: CompletionProvider subclass
        """
        if name in self._providers:
            logger.warning(f"Provider {name} already registered, overwriting")
        self._providers[name] = provider_class
        logger.debug(f"Registered provider: {name}")

    def get_provider_class(self, name: str) -> Optional[Type[CompletionProvider]]:
        """Get a provider class by name."""
        return self._providers.get(name)

    def names(self) -> List[str]:
        return sorted(self._providers)

    def auto_discover(self) -> None:
        """Register the built-in providers."""
        from intellisuggest.providers.chat import ChatCompletionProvider
        from intellisuggest.providers.generate import GenerateProvider

        self.register("chat", ChatCompletionProvider)
        self.register("generate", GenerateProvider)

    def create(
        self,
        config: SuggestConfig,
        session: Optional[requests.Session] = None
    ) -> CompletionProvider:
        """
        Instantiate the provider named by `config.provider`.

        Raises:
            ValueError: If no such provider is registered
        """
        provider_class = self.get_provider_class(config.provider)
        if provider_class is None:
            raise ValueError(
                f"Unknown provider '{config.provider}' "
                f"(available: {', '.join(self.names()) or 'none'})"
            )
        provider = provider_class(config, session=session)
        logger.info(f"Using {provider.name} provider: {provider.description}")
        return provider


def create_provider(config: SuggestConfig) -> CompletionProvider:
    """Create the configured provider from the built-in set."""
    registry = ProviderRegistry()
    registry.auto_discover()
    return registry.create(config)
