"""Shell history access for suggestion requests."""

import logging
from typing import Callable, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)


HistorySource = Callable[[], Iterable[str]]


class RequestHistory:
    """
    History view for a single suggestion request.

    The source is read at most once per view, so one request sees a stable
    snapshot and no two requests share a cache.
    """

    def __init__(self, source: HistorySource, window: int):
        self._source = source
        self._window = window
        self._lines: Optional[List[str]] = None

    def recent_lines(self, limit: Optional[int] = None) -> List[str]:
        """
        Get the most recent history lines.

        Args:
            limit: Maximum number of lines (capped by the history window)

        Returns:
            Lines most-recent-first, without blanks or duplicates
        """
        if self._lines is None:
            self._lines = self._load()
        if limit is None or limit >= len(self._lines):
            return list(self._lines)
        return self._lines[:max(limit, 0)]

    def _load(self) -> List[str]:
        try:
            raw = list(self._source())
        except OSError as e:
            logger.warning(f"Could not read shell history: {e}")
            return []

        seen = set()
        lines: List[str] = []
        for line in reversed(raw):
            line = line.rstrip("\n")
            if not line.strip() or line in seen:
                continue
            seen.add(line)
            lines.append(line)
            if len(lines) >= self._window:
                break

        logger.debug(f"Loaded {len(lines)} history entries")
        return lines


class HistoryStore:
    """Hands out per-request history views over a history source."""

    def __init__(self, source: HistorySource, window: int = 1000):
        """
        Initialize history store.

        Args:
            source: Callable returning history lines oldest-first
            window: Number of most recent entries to consider
        """
        self.source = source
        self.window = window

    def for_request(self) -> RequestHistory:
        """Start a fresh history view for a new request."""
        return RequestHistory(self.source, self.window)


def first_word(text: str) -> str:
    parts = text.split(None, 1)
    return parts[0] if parts else ""


def filter_by_prefix_or_first_word(
    lines: Sequence[str],
    input_text: str,
    max_suggestions: int
) -> List[str]:
    """
    Select history lines relevant to the current input.

    Exact matches (lines starting with the input) come first; if there is
    room left, lines sharing the input's first word follow.

    Args:
        lines: Candidate history lines, most-recent-first
        input_text: Current buffer content
        max_suggestions: Maximum number of lines to return

    Returns:
        Matching lines in order
    """
    if not input_text:
        return []

    matches = [line for line in lines if line.startswith(input_text)]

    if len(matches) < max_suggestions:
        word = first_word(input_text)
        if word:
            exact = set(matches)
            matches.extend(
                line for line in lines
                if line not in exact and first_word(line) == word
            )

    return matches[:max_suggestions]
