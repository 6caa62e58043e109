"""Suggestion menu: selection state and buffer substitution."""

from typing import List, Sequence
import logging

from intellisuggest.buffer import LineBuffer
from intellisuggest.state import MenuState, SessionState

logger = logging.getLogger(__name__)


class MenuController:
    """
    Owns the candidate menu shown below the prompt.

    Navigating down from the unselected state saves the buffer and
    substitutes candidate 1; navigating up from candidate 1 puts the saved
    buffer back. Navigation stops at the last candidate instead of wrapping.
    """

    MARKER = "→ "
    INDENT = "  "

    def __init__(self, state: SessionState, buffer: LineBuffer):
        self.state = state
        self.buffer = buffer

    @property
    def menu(self) -> MenuState:
        return self.state.menu

    @property
    def candidates(self) -> List[str]:
        return list(self.menu.candidates)

    def show(self, candidates: Sequence[str]) -> None:
        """Display candidates without touching the buffer."""
        self.state.menu = MenuState(candidates=list(candidates))
        logger.debug(f"Showing {len(candidates)} suggestions")
        self.render()

    def clear(self) -> None:
        """Drop candidates and remove the overlay."""
        self.state.reset_menu()
        self.buffer.clear_overlay()

    def notify(self, message: str) -> None:
        self.buffer.render_overlay(message)

    def navigate_down(self) -> bool:
        """
        Select the next candidate.

        Returns:
            False if there is no menu to navigate (caller falls back to history)
        """
        menu = self.menu
        if not menu.candidates:
            return False

        if not menu.active:
            menu.active = True
            menu.original_buffer = self.buffer.get_text()
            menu.selected_index = 1
        elif menu.selected_index < len(menu.candidates):
            menu.selected_index += 1

        self._substitute(menu.candidates[menu.selected_index - 1])
        logger.debug(f"Selected index now: {menu.selected_index}")
        self.render()
        return True

    def navigate_up(self) -> bool:
        """
        Select the previous candidate, or restore the original input.

        Returns:
            False if there is no menu to navigate (caller falls back to history)
        """
        menu = self.menu
        if not menu.candidates:
            return False
        if not menu.active:
            return True

        if menu.selected_index > 1:
            menu.selected_index -= 1
            self._substitute(menu.candidates[menu.selected_index - 1])
        else:
            menu.selected_index = 0
            menu.active = False
            self._substitute(menu.original_buffer)

        logger.debug(f"Selected index now: {menu.selected_index}")
        self.render()
        return True

    def format_overlay(self) -> str:
        lines = []
        for i, candidate in enumerate(self.menu.candidates, start=1):
            prefix = self.MARKER if i == self.menu.selected_index else self.INDENT
            lines.append(prefix + candidate)
        return "\n".join(lines)

    def render(self) -> None:
        if self.menu.candidates:
            self.buffer.render_overlay(self.format_overlay())
        else:
            self.buffer.clear_overlay()

    def _substitute(self, text: str) -> None:
        self.buffer.set_text(text)
        self.buffer.set_cursor(len(text))
