"""Chat-completions backend with schema-validated JSON output."""

import json
import logging
from typing import Any, Dict, List

from intellisuggest.config import TriggerMode
from intellisuggest.context import ProviderPrompt
from intellisuggest.errors import InvalidResponseError
from intellisuggest.providers.base import CompletionProvider, error_message

logger = logging.getLogger(__name__)


COMMANDS_SCHEMA: Dict[str, Any] = {
    "name": "commands",
    "strict": True,
    "schema": {
        "type": "object",
        "properties": {
            "commands": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "command": {
                            "type": "string",
                            "description": "The command string. Linux compatible."
                        },
                        "description": {
                            "type": "string",
                            "description": "Description of what the command does"
                        },
                    },
                    "required": ["command", "description"],
                    "additionalProperties": False,
                },
                "description": "Array of command objects",
            }
        },
        "required": ["commands"],
        "additionalProperties": False,
    },
}


class ChatCompletionProvider(CompletionProvider):
    """OpenAI-compatible chat completions endpoint (OpenRouter by default)."""

    requires_credential = True
    default_trigger_mode = TriggerMode.MANUAL

    @property
    def name(self) -> str:
        return "chat"

    @property
    def description(self) -> str:
        return "Hosted chat-completions endpoint with JSON schema output"

    def build_payload(self, prompt: ProviderPrompt) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": prompt.system},
                {"role": "user", "content": prompt.user},
            ],
            "response_format": {
                "type": "json_schema",
                "json_schema": COMMANDS_SCHEMA,
            },
            "temperature": self.config.temperature,
        }

    def complete(self, prompt: ProviderPrompt) -> List[str]:
        self.check_credential()

        logger.debug(
            f"Chat request: model={self.config.model} "
            f"temperature={self.config.temperature}"
        )
        data = self.post_json(self.config.endpoint, self.build_payload(prompt))

        error = error_message(data)
        if error:
            raise InvalidResponseError(f"Chat completion failed: {error}")

        commands = parse_commands(data)
        logger.debug(f"Chat response: {len(commands)} commands")
        return commands


def parse_commands(data: Dict[str, Any]) -> List[str]:
    """
    Extract command strings from a chat-completions response.

    Raises:
        InvalidResponseError: If the response does not match the schema
    """
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise InvalidResponseError("Response has no message content") from e

    if isinstance(content, str):
        try:
            content = json.loads(content)
        except ValueError as e:
            raise InvalidResponseError("Message content is not valid JSON") from e

    if not isinstance(content, dict) or not isinstance(content.get("commands"), list):
        raise InvalidResponseError("Message content has no 'commands' array")

    commands = []
    for item in content["commands"]:
        if not isinstance(item, dict) or not isinstance(item.get("command"), str):
            raise InvalidResponseError(f"Malformed command entry: {item!r}")
        commands.append(item["command"])
    return commands
