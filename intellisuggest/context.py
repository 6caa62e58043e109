"""Request context gathering and prompt construction."""

import json
import os
import stat
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from intellisuggest.errors import EncodingFailure
from intellisuggest.history import RequestHistory, filter_by_prefix_or_first_word

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are an expert system helping users to use a linux terminal. "
    "You will only reply with suggestions of commands. "
    "You will not interact and reply with the user in any other way. "
    "You must provide only suggested commands based on the user request."
)

# Recent commands included regardless of whether they match the input
RECENT_COMMANDS_LIMIT = 20


class EntryKind(Enum):
    """File type of a directory entry, as shown to the model."""
    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    PIPE = "pipe"
    SOCKET = "socket"
    BLOCK = "block"
    CHARACTER = "character"

    @classmethod
    def from_mode(cls, mode: int) -> "EntryKind":
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISFIFO(mode):
            return cls.PIPE
        if stat.S_ISSOCK(mode):
            return cls.SOCKET
        if stat.S_ISBLK(mode):
            return cls.BLOCK
        if stat.S_ISCHR(mode):
            return cls.CHARACTER
        return cls.FILE


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    kind: EntryKind

    def describe(self) -> str:
        return f"- {self.name} ({self.kind.value})"


@dataclass(frozen=True)
class RequestContext:
    """Everything gathered locally for one suggestion request."""
    input_text: str
    history_snapshot: Tuple[str, ...] = ()
    directory_entries: Tuple[DirectoryEntry, ...] = ()
    cwd: Optional[str] = None


@dataclass(frozen=True)
class ProviderPrompt:
    """Backend-agnostic prompt; providers turn it into their wire payload."""
    system: str
    user: str
    input_text: str
    history_matches: Tuple[str, ...] = field(default=())
    directory_entries: Tuple[DirectoryEntry, ...] = field(default=())


def _printable_name(name: str) -> str:
    # Undecodable bytes in file names surface as lone surrogates
    return name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def list_directory(path: Optional[Path] = None, limit: int = 25) -> List[DirectoryEntry]:
    """
    List a directory for the prompt context.

    Args:
        path: Directory to list (defaults to the current directory)
        limit: Maximum number of entries

    Returns:
        Entries sorted by name, hidden files included
    """
    directory = Path(path) if path is not None else Path.cwd()
    entries: List[DirectoryEntry] = []
    try:
        with os.scandir(directory) as it:
            items = sorted(it, key=lambda e: e.name)
    except OSError as e:
        logger.warning(f"Could not list {directory}: {e}")
        return entries

    for item in items[:limit]:
        try:
            mode = item.stat(follow_symlinks=False).st_mode
        except OSError:
            # Vanished between scandir and stat
            continue
        entries.append(DirectoryEntry(_printable_name(item.name), EntryKind.from_mode(mode)))
    return entries


def encode_payload(payload: Dict[str, Any]) -> bytes:
    """
    Encode a provider wire payload as JSON.

    Raises:
        EncodingFailure: If any value cannot be represented on the wire
    """
    try:
        return json.dumps(payload, ensure_ascii=False, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, UnicodeEncodeError) as e:
        raise EncodingFailure(f"Could not encode request payload: {e}") from e


class ContextBuilder:
    """Builds request contexts and prompts from local state."""

    def __init__(self, max_suggestions: int = 5, directory_listing_size: int = 25):
        self.max_suggestions = max_suggestions
        self.directory_listing_size = directory_listing_size

    def gather(
        self,
        input_text: str,
        history: RequestHistory,
        cwd: Optional[str] = None
    ) -> RequestContext:
        """Collect history and directory listing for `input_text`."""
        cwd = cwd or os.getcwd()
        return RequestContext(
            input_text=input_text,
            history_snapshot=tuple(history.recent_lines()),
            directory_entries=tuple(list_directory(Path(cwd), self.directory_listing_size)),
            cwd=cwd,
        )

    def build(self, context: RequestContext) -> ProviderPrompt:
        """Turn a request context into a provider prompt."""
        matches = filter_by_prefix_or_first_word(
            context.history_snapshot,
            context.input_text,
            self.max_suggestions
        )
        entries = context.directory_entries[:self.directory_listing_size]

        sections = [
            "Suggest 3 to 5 shell commands for the user typing this in a linux terminal: "
            f"{context.input_text}",
            f"Every suggested command must start exactly with: {context.input_text}",
        ]
        if matches:
            sections.append(
                "Matching commands from the user's history:\n"
                + "\n".join(f"- {line}" for line in matches)
            )
        recent = context.history_snapshot[:RECENT_COMMANDS_LIMIT]
        if recent:
            sections.append(
                "Recent commands:\n" + "\n".join(f"- {line}" for line in recent)
            )
        if context.cwd:
            listing = "\n".join(entry.describe() for entry in entries) or "(empty)"
            sections.append(
                f"Current directory: {context.cwd}\n"
                f"Contents of current directory:\n{listing}"
            )

        return ProviderPrompt(
            system=SYSTEM_PROMPT,
            user="\n\n".join(sections),
            input_text=context.input_text,
            history_matches=tuple(matches),
            directory_entries=tuple(entries),
        )
