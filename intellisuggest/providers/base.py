"""Completion provider protocol and shared HTTP handling."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

import requests

from intellisuggest.config import SuggestConfig, TriggerMode
from intellisuggest.context import ProviderPrompt, encode_payload
from intellisuggest.errors import (
    AuthMissingError,
    InvalidResponseError,
    NetworkError,
)

logger = logging.getLogger(__name__)


class CompletionProvider(ABC):
    """
    Abstract base class for suggestion backends.

    A provider turns a ProviderPrompt into an ordered list of candidate
    command lines. Failures are raised as ProviderError subclasses; the
    caller never needs to know which backend is active.
    """

    requires_credential: bool = False
    default_trigger_mode: TriggerMode = TriggerMode.MANUAL

    def __init__(self, config: SuggestConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique provider name."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable provider description."""
        pass

    @abstractmethod
    def build_payload(self, prompt: ProviderPrompt) -> Dict[str, Any]:
        """Build the wire payload for `prompt`."""
        pass

    @abstractmethod
    def complete(self, prompt: ProviderPrompt) -> List[str]:
        """
        Fetch candidate commands for a prompt.

        Blocks on network I/O; call from a worker thread.

        Args:
            prompt: Prompt built by the ContextBuilder

        Returns:
            Candidate command lines in backend order

        Raises:
            ProviderError: On any backend failure
            BuildError: If the payload cannot be encoded
        """
        pass

    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def check_credential(self) -> None:
        if self.requires_credential and not self.config.has_credential:
            raise AuthMissingError(
                f"{self.name} provider needs an API key "
                "(set INTELLISUGGEST_API_KEY or OPENROUTER_API_KEY)"
            )

    def post_json(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        POST a JSON payload and decode the JSON object answer.

        Error bodies are returned as-is so that callers can inspect their
        `error` field; only undecodable answers raise here.
        """
        body = encode_payload(payload)
        logger.debug(f"POST {url} ({len(body)} bytes)")
        try:
            response = self.session.post(
                url,
                headers=self.headers(),
                data=body,
                timeout=self.config.request_timeout
            )
        except requests.RequestException as e:
            raise NetworkError(f"Request to {url} failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise InvalidResponseError(
                f"Non-JSON response from {url} (HTTP {response.status_code})"
            ) from e

        if not isinstance(data, dict):
            raise InvalidResponseError(f"Unexpected response from {url}: {data!r}")

        if not response.ok and "error" not in data:
            raise InvalidResponseError(f"HTTP {response.status_code} from {url}")

        return data


def error_message(data: Dict[str, Any]) -> Optional[str]:
    """Extract the error text from a backend response, if any."""
    error = data.get("error")
    if not error:
        return None
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error)
