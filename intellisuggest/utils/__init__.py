"""Utility modules for IntelliSuggest."""

from intellisuggest.utils.logging import setup_logging

__all__ = ["setup_logging"]
