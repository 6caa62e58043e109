"""Session configuration loaded from defaults, a JSON file and the environment."""

import json
import os
import logging
from dataclasses import dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Optional, Dict, Any, Mapping

logger = logging.getLogger(__name__)


ENV_PREFIX = "INTELLISUGGEST_"
DEFAULT_CONFIG_PATH = Path.home() / ".intellisuggest" / "config.json"


class TriggerMode(Enum):
    """When suggestion requests fire."""
    REALTIME = "realtime"  # after every buffer-mutating keystroke
    MANUAL = "manual"      # only on the explicit trigger key

    @classmethod
    def parse(cls, value: str) -> "TriggerMode":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(
                f"Unknown trigger mode '{value}' (expected 'realtime' or 'manual')"
            ) from None


# Per-provider defaults for options the user did not set
PROVIDER_DEFAULTS: Dict[str, Dict[str, Any]] = {
    "chat": {
        "endpoint": "https://openrouter.ai/api/v1/chat/completions",
        "model": "mistralai/ministral-3b",
        "trigger_mode": TriggerMode.MANUAL,
    },
    "generate": {
        "endpoint": "http://localhost:11434",
        "model": "llama3.2",
        "trigger_mode": TriggerMode.REALTIME,
    },
}

# Environment variable suffix -> config field
ENV_FIELDS = {
    "PROVIDER": "provider",
    "URL": "endpoint",
    "MODEL": "model",
    "API_KEY": "api_key",
    "MAX_SUGGESTIONS": "max_suggestions",
    "HISTORY_SIZE": "history_window",
    "TEMPERATURE": "temperature",
    "DIR_LIST_SIZE": "directory_listing_size",
    "MODE": "trigger_mode",
    "TIMEOUT": "request_timeout",
    "DEBUG": "debug",
}


@dataclass(frozen=True)
class SuggestConfig:
    """
    Immutable per-session configuration.

    `trigger_mode` here is only the initial mode; toggling at runtime
    changes the session state, not this record.
    """
    provider: str = "chat"
    endpoint: str = PROVIDER_DEFAULTS["chat"]["endpoint"]
    model: str = PROVIDER_DEFAULTS["chat"]["model"]
    api_key: Optional[str] = None
    max_suggestions: int = 5
    history_window: int = 1000
    temperature: float = 0.1
    directory_listing_size: int = 25
    trigger_mode: TriggerMode = TriggerMode.MANUAL
    request_timeout: float = 30.0
    debug: bool = False
    log_file: Optional[Path] = None

    def __post_init__(self):
        if self.provider not in PROVIDER_DEFAULTS:
            raise ValueError(
                f"Unknown provider '{self.provider}' "
                f"(expected one of: {', '.join(sorted(PROVIDER_DEFAULTS))})"
            )
        for name in ("max_suggestions", "history_window", "directory_listing_size"):
            if getattr(self, name) < 1:
                raise ValueError(f"{name} must be a positive integer")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("temperature must be between 0.0 and 2.0")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw file/env value to the type of config field `name`."""
    if value is None:
        return None
    try:
        if name in ("max_suggestions", "history_window", "directory_listing_size"):
            return int(value)
        if name in ("temperature", "request_timeout"):
            return float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for {name}: {value!r}") from None
    if name == "trigger_mode":
        return value if isinstance(value, TriggerMode) else TriggerMode.parse(value)
    if name == "debug":
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if name == "log_file":
        return Path(value).expanduser()
    if name == "provider":
        return str(value).strip().lower()
    return str(value)


def _read_config_file(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Invalid config file {path}: expected a JSON object")

    known = {f.name for f in fields(SuggestConfig)}
    unknown = set(data) - known
    if unknown:
        logger.warning(f"Ignoring unknown config keys in {path}: {', '.join(sorted(unknown))}")
    return {k: v for k, v in data.items() if k in known}


def load_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any
) -> SuggestConfig:
    """
    Load configuration.

    Precedence (lowest first): built-in defaults, provider defaults,
    JSON config file, environment variables, explicit overrides.

    Args:
        path: Config file (defaults to ~/.intellisuggest/config.json if present)
        environ: Environment mapping (defaults to os.environ)
        **overrides: Explicit values, e.g. from command-line flags; None is ignored

    Returns:
        SuggestConfig

    Raises:
        ValueError: On invalid values
    """
    if environ is None:
        environ = os.environ

    raw: Dict[str, Any] = {}

    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if config_path.is_file():
        raw.update(_read_config_file(config_path))
        logger.debug(f"Loaded config file: {config_path}")
    elif path is not None:
        raise ValueError(f"Config file not found: {config_path}")

    for suffix, name in ENV_FIELDS.items():
        value = environ.get(ENV_PREFIX + suffix)
        if value not in (None, ""):
            raw[name] = value

    raw.update({k: v for k, v in overrides.items() if v is not None})

    # Credential falls back to the conventional OpenRouter variable
    if not raw.get("api_key") and environ.get("OPENROUTER_API_KEY"):
        raw["api_key"] = environ["OPENROUTER_API_KEY"]

    values = {name: _coerce(name, value) for name, value in raw.items()}
    provider = values.get("provider", SuggestConfig.provider)
    for name, default in PROVIDER_DEFAULTS.get(provider, {}).items():
        values.setdefault(name, default)

    config = SuggestConfig(**values)
    logger.debug(
        f"Config: provider={config.provider} model={config.model} "
        f"mode={config.trigger_mode.value} endpoint={config.endpoint}"
    )
    return config

