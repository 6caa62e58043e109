"""Interactive shell with LLM command suggestions."""

import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from prompt_toolkit.patch_stdout import patch_stdout
from prompt_toolkit.styles import Style

from intellisuggest import __version__
from intellisuggest.buffer import PromptToolkitLineBuffer
from intellisuggest.config import PROVIDER_DEFAULTS, SuggestConfig, TriggerMode, load_config
from intellisuggest.history import HistoryStore
from intellisuggest.keybindings import create_key_bindings
from intellisuggest.session import SuggestSession
from intellisuggest.utils.logging import setup_logging

logger = logging.getLogger(__name__)


HISTORY_PATH = Path.home() / ".intellisuggest" / "history"
EXIT_COMMANDS = {"exit", "quit"}

STYLE = Style.from_dict({
    "prompt": "ansicyan bold",
    "bottom-toolbar": "noreverse",
    "suggestions": "ansibrightblack",
})


class SuggestShell:
    """Read-eval loop around a PromptSession with suggestion key bindings."""

    def __init__(self, config: SuggestConfig, history_path: Path = HISTORY_PATH):
        self.config = config
        history_path.parent.mkdir(parents=True, exist_ok=True)
        self.history = FileHistory(str(history_path))
        self.buffer = PromptToolkitLineBuffer()
        self.suggest = SuggestSession(
            config,
            self.buffer,
            HistoryStore(self.history.get_strings, window=config.history_window)
        )
        self.prompt_session = PromptSession(
            history=self.history,
            key_bindings=create_key_bindings(self.suggest),
            bottom_toolbar=self.buffer.toolbar,
            style=STYLE,
        )
        self.buffer.attach(self.prompt_session)

    def prompt_text(self):
        cwd = os.getcwd()
        home = str(Path.home())
        if cwd.startswith(home):
            cwd = "~" + cwd[len(home):]
        return [("class:prompt", f"{cwd} ❯ ")]

    def run(self) -> int:
        logger.info(
            f"Shell started (provider={self.config.provider}, "
            f"mode={self.suggest.state.trigger_mode.value})"
        )
        status = 0
        try:
            with patch_stdout():
                while True:
                    try:
                        line = self.prompt_session.prompt(self.prompt_text)
                    except KeyboardInterrupt:
                        continue
                    except EOFError:
                        break

                    command = line.strip()
                    if not command:
                        continue
                    if command in EXIT_COMMANDS:
                        break
                    status = self.execute(command)
        finally:
            self.suggest.close()
        return status

    def execute(self, command: str) -> int:
        """Run one command line; `cd` is handled in-process."""
        if command == "cd" or command.startswith("cd "):
            return self.change_directory(command[2:].strip())

        logger.debug(f"Executing: {command}")
        try:
            result = subprocess.run(command, shell=True, executable=os.environ.get("SHELL"))
        except OSError as e:
            print(f"intellisuggest: {e}", file=sys.stderr)
            return 127
        return result.returncode

    def change_directory(self, target: str) -> int:
        path = Path(os.path.expandvars(target or "~")).expanduser()
        try:
            os.chdir(path)
        except OSError as e:
            print(f"cd: {e.strerror}: {target}", file=sys.stderr)
            return 1
        return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="intellisuggest",
        description="Interactive shell with LLM-powered command suggestions.",
        epilog=(
            "Keys: Ctrl-G suggest, Up/Down select, Enter run, Ctrl-C clear line, "
            "Ctrl-X t toggle realtime/manual, Ctrl-X s toggle suggestions."
        ),
    )
    parser.add_argument("--provider", choices=sorted(PROVIDER_DEFAULTS), help="Suggestion backend")
    parser.add_argument("--model", help="Model identifier")
    parser.add_argument("--url", dest="endpoint", help="Backend endpoint URL")
    parser.add_argument(
        "--mode",
        dest="trigger_mode",
        choices=[m.value for m in TriggerMode],
        help="Trigger mode"
    )
    parser.add_argument("--config", type=Path, help="JSON config file")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(
            path=args.config,
            provider=args.provider,
            model=args.model,
            endpoint=args.endpoint,
            trigger_mode=args.trigger_mode,
            debug=args.debug,
        )
    except ValueError as e:
        print(f"intellisuggest: {e}", file=sys.stderr)
        return 2

    setup_logging(debug=config.debug, log_file=config.log_file)
    return SuggestShell(config).run()
