"""IntelliSuggest: LLM-powered command-line suggestions for an interactive shell."""

__version__ = "0.1.0"
