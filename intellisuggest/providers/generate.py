"""Local generate-style backend (Ollama API)."""

import re
import time
import logging
from typing import Any, Dict, List

from intellisuggest.config import TriggerMode
from intellisuggest.context import ProviderPrompt
from intellisuggest.errors import (
    InvalidResponseError,
    ModelMissingError,
    ProviderError,
    UnavailableError,
)
from intellisuggest.providers.base import CompletionProvider, error_message

logger = logging.getLogger(__name__)


LOADING_PATTERN = re.compile(r"loading model", re.IGNORECASE)
NOT_FOUND_PATTERN = re.compile(r"model .*not found", re.IGNORECASE)

# Leading list markers models like to add: "1. ", "2) ", "- ", "* "
LIST_MARKER = re.compile(r"^(?:\d+[.)]|[-*])\s+")


class GenerateProvider(CompletionProvider):
    """
    Local model server exposing /api/generate.

    Recovers from two backend states:
    - model still loading: retried with a fixed delay, MAX_LOADING_ATTEMPTS in total
    - model not installed: pulled once, then one more attempt
    """

    default_trigger_mode = TriggerMode.REALTIME

    MAX_LOADING_ATTEMPTS = 3
    RETRY_DELAY = 1.0

    def __init__(self, config, session=None, retry_delay: float = RETRY_DELAY):
        super().__init__(config, session)
        self.retry_delay = retry_delay

    @property
    def name(self) -> str:
        return "generate"

    @property
    def description(self) -> str:
        return "Local generate endpoint, one suggestion per line"

    @property
    def base_url(self) -> str:
        return self.config.endpoint.rstrip("/")

    def build_payload(self, prompt: ProviderPrompt) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "system": prompt.system,
            "prompt": prompt.user,
            "temperature": self.config.temperature,
            "stream": False,
        }

    def complete(self, prompt: ProviderPrompt) -> List[str]:
        self.check_credential()
        payload = self.build_payload(prompt)
        url = f"{self.base_url}/api/generate"

        loading_attempts = 0
        pulled = False
        while True:
            data = self.post_json(url, payload)
            error = error_message(data)

            if not error:
                lines = parse_lines(data)
                logger.debug(f"Generate response: {len(lines)} lines")
                return lines

            if LOADING_PATTERN.search(error):
                loading_attempts += 1
                if loading_attempts >= self.MAX_LOADING_ATTEMPTS:
                    raise UnavailableError(
                        f"Model {self.config.model} still loading after "
                        f"{loading_attempts} attempts"
                    )
                logger.info(
                    f"Model loading, retrying in {self.retry_delay}s "
                    f"({loading_attempts}/{self.MAX_LOADING_ATTEMPTS})"
                )
                time.sleep(self.retry_delay)
                continue

            if NOT_FOUND_PATTERN.search(error):
                if pulled:
                    raise ModelMissingError(f"Model {self.config.model} not found after pull")
                self.pull_model()
                pulled = True
                continue

            raise InvalidResponseError(f"Generate request failed: {error}")

    def pull_model(self) -> None:
        """
        Ask the server to download the configured model.

        Raises:
            ModelMissingError: If the pull fails
        """
        logger.info(f"Model {self.config.model} not found, pulling")
        try:
            data = self.post_json(
                f"{self.base_url}/api/pull",
                {"name": self.config.model, "stream": False}
            )
        except ProviderError as e:
            raise ModelMissingError(f"Could not pull model {self.config.model}: {e}") from e

        error = error_message(data)
        if error:
            raise ModelMissingError(f"Could not pull model {self.config.model}: {error}")
        logger.info(f"Pulled model {self.config.model}")


def parse_lines(data: Dict[str, Any]) -> List[str]:
    """Split a generate response into candidate lines."""
    text = data.get("response")
    if not isinstance(text, str):
        raise InvalidResponseError("Response has no 'response' text")

    lines = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("```"):
            continue
        line = LIST_MARKER.sub("", line).strip("`").strip()
        if line:
            lines.append(line)
    return lines
