"""Editable line buffer interface and its prompt_toolkit implementation."""

from abc import ABC, abstractmethod
from typing import Optional
import logging

from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import FormattedText

logger = logging.getLogger(__name__)


class LineBuffer(ABC):
    """
    The line editor as seen by the suggestion code.

    All methods are called from the foreground (editor) thread only.
    """

    @abstractmethod
    def get_text(self) -> str:
        pass

    @abstractmethod
    def set_text(self, text: str) -> None:
        pass

    @abstractmethod
    def get_cursor(self) -> int:
        pass

    @abstractmethod
    def set_cursor(self, position: int) -> None:
        pass

    @abstractmethod
    def render_overlay(self, text: str) -> None:
        """Show a transient message below the prompt."""
        pass

    @abstractmethod
    def clear_overlay(self) -> None:
        pass

    @abstractmethod
    def accept_line(self) -> None:
        """Submit the current buffer as the command to run."""
        pass

    @abstractmethod
    def send_interrupt(self) -> None:
        """Abort the current line the way Ctrl-C normally does."""
        pass


class PromptToolkitLineBuffer(LineBuffer):
    """LineBuffer over a prompt_toolkit PromptSession; overlay goes to the bottom toolbar."""

    def __init__(self, session: Optional[PromptSession] = None):
        self.session = session
        self._overlay: Optional[str] = None

    def attach(self, session: PromptSession) -> None:
        self.session = session

    @property
    def _buffer(self):
        return self.session.default_buffer

    def get_text(self) -> str:
        return self._buffer.text

    def set_text(self, text: str) -> None:
        self._buffer.text = text

    def get_cursor(self) -> int:
        return self._buffer.cursor_position

    def set_cursor(self, position: int) -> None:
        self._buffer.cursor_position = max(0, min(position, len(self._buffer.text)))

    def render_overlay(self, text: str) -> None:
        self._overlay = text
        self._invalidate()

    def clear_overlay(self) -> None:
        if self._overlay is not None:
            self._overlay = None
            self._invalidate()

    def accept_line(self) -> None:
        self._buffer.validate_and_handle()

    def send_interrupt(self) -> None:
        self.session.app.exit(exception=KeyboardInterrupt, style="class:aborting")

    def toolbar(self):
        """bottom_toolbar callable for the PromptSession."""
        if not self._overlay:
            return None
        return FormattedText([("class:suggestions", self._overlay)])

    def _invalidate(self) -> None:
        if self.session is not None and self.session.app.is_running:
            self.session.app.invalidate()
