"""Shared fixtures: an in-memory line buffer and scripted providers."""

import threading
from typing import Callable, Dict, List, Optional

import pytest

from intellisuggest.buffer import LineBuffer
from intellisuggest.config import SuggestConfig, TriggerMode
from intellisuggest.history import HistoryStore
from intellisuggest.providers.base import CompletionProvider


class FakeLineBuffer(LineBuffer):
    """LineBuffer that records what the suggestion code did to it."""

    def __init__(self, text: str = ""):
        self.text = text
        self.cursor = len(text)
        self.overlay: Optional[str] = None
        self.overlays: List[str] = []
        self.accepted: List[str] = []
        self.interrupts = 0

    def get_text(self) -> str:
        return self.text

    def set_text(self, text: str) -> None:
        self.text = text
        self.cursor = min(self.cursor, len(text))

    def get_cursor(self) -> int:
        return self.cursor

    def set_cursor(self, position: int) -> None:
        self.cursor = position

    def render_overlay(self, text: str) -> None:
        self.overlay = text
        self.overlays.append(text)

    def clear_overlay(self) -> None:
        self.overlay = None

    def accept_line(self) -> None:
        self.accepted.append(self.text)

    def send_interrupt(self) -> None:
        self.interrupts += 1


class StubProvider(CompletionProvider):
    """
    Provider answering from a script.

    `responses` maps input text to candidates, or to an exception to raise.
    Inputs listed in `gates` block until their event is set.
    """

    def __init__(self, config, responses=None, default=None):
        super().__init__(config)
        self.responses: Dict[str, object] = dict(responses or {})
        self.default = default if default is not None else []
        self.gates: Dict[str, threading.Event] = {}
        self.prompts = []
        self._lock = threading.Lock()

    @property
    def name(self) -> str:
        return "stub"

    @property
    def description(self) -> str:
        return "Scripted test provider"

    @property
    def calls(self) -> List[str]:
        with self._lock:
            return [p.input_text for p in self.prompts]

    def gate(self, input_text: str) -> threading.Event:
        event = threading.Event()
        self.gates[input_text] = event
        return event

    def build_payload(self, prompt):
        return {"prompt": prompt.user}

    def complete(self, prompt) -> List[str]:
        with self._lock:
            self.prompts.append(prompt)
        gate = self.gates.get(prompt.input_text)
        if gate is not None:
            gate.wait(timeout=5)
        result = self.responses.get(prompt.input_text, self.default)
        if isinstance(result, BaseException):
            raise result
        return list(result)


@pytest.fixture
def config():
    return SuggestConfig(provider="chat", api_key="test-key", trigger_mode=TriggerMode.MANUAL)


@pytest.fixture
def realtime_config():
    return SuggestConfig(provider="generate", trigger_mode=TriggerMode.REALTIME)


@pytest.fixture
def buffer():
    return FakeLineBuffer()


@pytest.fixture
def history_lines():
    # Oldest first, as shells store it
    return ["ls -la", "git commit -m wip", "docker ps", "git status"]


@pytest.fixture
def history(history_lines):
    return HistoryStore(lambda: list(history_lines), window=1000)


@pytest.fixture
def make_provider(config) -> Callable[..., StubProvider]:
    def _make(responses=None, default=None, cfg=None):
        return StubProvider(cfg or config, responses=responses, default=default)
    return _make
