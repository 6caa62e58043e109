"""Suggestion session: the actions bound to keys."""

import logging
from typing import Optional

from intellisuggest.buffer import LineBuffer
from intellisuggest.config import SuggestConfig, TriggerMode
from intellisuggest.engine import SuggestionEngine
from intellisuggest.history import HistoryStore
from intellisuggest.menu import MenuController
from intellisuggest.providers import CompletionProvider, create_provider
from intellisuggest.state import SessionState

logger = logging.getLogger(__name__)


class SuggestSession:
    """
    Wires state, engine and menu together for one line editor.

    Every public method is a key action: synchronous, no return value
    the caller has to check, and it never raises into the editor.
    Methods that can start a request must run on the event loop thread.
    """

    def __init__(
        self,
        config: SuggestConfig,
        buffer: LineBuffer,
        history: HistoryStore,
        provider: Optional[CompletionProvider] = None
    ):
        self.config = config
        self.buffer = buffer
        self.state = SessionState.from_config(config)
        self.menu = MenuController(self.state, buffer)
        self.engine = SuggestionEngine(
            config=config,
            state=self.state,
            buffer=buffer,
            display=self.menu,
            provider=provider or create_provider(config),
            history=history
        )

    def trigger(self) -> None:
        """Request suggestions for the current buffer (explicit trigger key)."""
        self.engine.on_input_changed(self.buffer.get_text())

    def on_buffer_edited(self) -> None:
        """Hook run after an insert or delete keystroke."""
        if self.state.realtime:
            self.trigger()
        elif self.state.menu.candidates:
            # Candidates were for the previous input
            self.menu.clear()

    def navigate_down(self) -> bool:
        return self.menu.navigate_down()

    def navigate_up(self) -> bool:
        return self.menu.navigate_up()

    def accept(self) -> None:
        """Submit the current buffer, dropping all suggestion state first."""
        logger.debug(f"Menu accept called with index: {self.state.menu.selected_index}")
        self._reset()
        self.buffer.accept_line()

    def cancel_all(self) -> None:
        """Interrupt: drop suggestion state, empty the line, pass the interrupt on."""
        logger.debug("Cleaning up after interrupt")
        self._reset()
        self.buffer.set_text("")
        self.buffer.set_cursor(0)
        self.buffer.send_interrupt()

    def toggle_enabled(self) -> None:
        if self.state.enabled:
            self.state.enabled = False
            self._reset()
            logger.info("Suggestions disabled")
            self.menu.notify("Suggestions disabled")
        else:
            self.state.enabled = True
            logger.info("Suggestions enabled")
            self.menu.notify("Suggestions enabled")

    def toggle_mode(self) -> None:
        if self.state.realtime:
            self.state.trigger_mode = TriggerMode.MANUAL
            self._reset()
            logger.info("Switched to manual mode")
            self.menu.notify("Switched to manual suggestion mode")
        else:
            self.state.trigger_mode = TriggerMode.REALTIME
            logger.info("Switched to realtime mode")
            self.menu.notify("Switched to realtime suggestion mode")
            self.trigger()

    def close(self) -> None:
        self.engine.close()

    def _reset(self) -> None:
        self.menu.clear()
        self.engine.reset()
        self.state.reset()
