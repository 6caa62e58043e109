"""prompt_toolkit key bindings for the suggestion actions."""

import logging

from prompt_toolkit.filters import emacs_insert_mode, vi_insert_mode
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys

from intellisuggest.session import SuggestSession

logger = logging.getLogger(__name__)


# Action -> key sequence
DEFAULT_KEYS = {
    "navigate_up": ("up",),
    "navigate_down": ("down",),
    "accept": ("enter",),
    "cancel_all": ("c-c",),
    "trigger": ("c-g",),
    "toggle_mode": ("c-x", "t"),
    "toggle_enabled": ("c-x", "s"),
}


def create_key_bindings(session: SuggestSession) -> KeyBindings:
    """
    Build key bindings that route editor keys through the suggestion session.

    Printable keys and Backspace keep their normal editing behaviour and
    then run the realtime hook. Up/Down fall back to history navigation
    when no suggestions are shown.
    """
    kb = KeyBindings()

    @kb.add(Keys.Any, filter=emacs_insert_mode | vi_insert_mode)
    def _self_insert(event):
        event.current_buffer.insert_text(event.data * event.arg)
        session.on_buffer_edited()

    @kb.add("backspace")
    def _backward_delete_char(event):
        buf = event.current_buffer
        if buf.delete_before_cursor(count=event.arg):
            session.on_buffer_edited()

    @kb.add(*DEFAULT_KEYS["navigate_up"])
    def _menu_up(event):
        if not session.navigate_up():
            event.current_buffer.auto_up(count=event.arg)

    @kb.add(*DEFAULT_KEYS["navigate_down"])
    def _menu_down(event):
        if not session.navigate_down():
            event.current_buffer.auto_down(count=event.arg)

    @kb.add(*DEFAULT_KEYS["accept"])
    def _menu_accept(event):
        session.accept()

    @kb.add(*DEFAULT_KEYS["cancel_all"])
    def _cleanup(event):
        session.cancel_all()

    @kb.add(*DEFAULT_KEYS["trigger"])
    def _suggest(event):
        logger.debug("Manual trigger")
        session.trigger()

    @kb.add(*DEFAULT_KEYS["toggle_mode"])
    def _toggle_mode(event):
        session.toggle_mode()

    @kb.add(*DEFAULT_KEYS["toggle_enabled"])
    def _toggle_suggestions(event):
        session.toggle_enabled()

    return kb
