"""Session state shared by the engine, menu and key handlers."""

from dataclasses import dataclass, field
from typing import List

from intellisuggest.config import SuggestConfig, TriggerMode


@dataclass
class MenuState:
    """Suggestion menu state; index 0 means nothing substituted yet."""
    candidates: List[str] = field(default_factory=list)
    selected_index: int = 0
    active: bool = False
    original_buffer: str = ""


@dataclass
class SessionState:
    """
    Mutable state of one interactive editing session.

    Maintains:
    - Whether suggestions are enabled
    - Current trigger mode (initialised from config, toggled at runtime)
    - Input of the last request issued
    - Menu state
    """

    enabled: bool = True
    trigger_mode: TriggerMode = TriggerMode.MANUAL
    last_input: str = ""
    menu: MenuState = field(default_factory=MenuState)

    @classmethod
    def from_config(cls, config: SuggestConfig) -> "SessionState":
        return cls(trigger_mode=config.trigger_mode)

    @property
    def realtime(self) -> bool:
        return self.trigger_mode is TriggerMode.REALTIME

    def reset_menu(self) -> None:
        self.menu = MenuState()

    def reset(self) -> None:
        """Forget the last request and menu; flags are kept."""
        self.last_input = ""
        self.reset_menu()
