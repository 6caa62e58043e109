"""Suggestion engine: single-flight background requests with staleness checks."""

import asyncio
import itertools
import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Dict, Iterable, List, Optional

from intellisuggest.buffer import LineBuffer
from intellisuggest.config import SuggestConfig
from intellisuggest.context import ContextBuilder
from intellisuggest.errors import BuildError, ProviderError
from intellisuggest.history import HistoryStore
from intellisuggest.menu import MenuController
from intellisuggest.providers.base import CompletionProvider
from intellisuggest.state import SessionState

logger = logging.getLogger(__name__)


MIN_INPUT_LENGTH = 2


class JobState(Enum):
    PENDING = auto()
    RUNNING = auto()
    CANCELLED = auto()
    COMPLETED = auto()
    FAILED = auto()


TERMINAL_STATES = (JobState.CANCELLED, JobState.COMPLETED, JobState.FAILED)


@dataclass
class Job:
    """One in-flight suggestion request for a specific input snapshot."""
    id: int
    input_text: str
    state: JobState = JobState.PENDING
    task: Optional[asyncio.Task] = field(default=None, repr=False, compare=False)

    @property
    def done(self) -> bool:
        return self.state in TERMINAL_STATES


def filter_candidates(
    candidates: Iterable[str],
    live_text: str,
    max_suggestions: int
) -> List[str]:
    """
    Keep candidates that extend the live buffer text.

    Blank and duplicate candidates are dropped; at most
    `max_suggestions` are returned, in backend order.
    """
    kept: List[str] = []
    for candidate in candidates:
        # Trailing spaces are significant: "ls " extends "ls "
        candidate = candidate.rstrip("\r\n")
        if not candidate.strip() or candidate in kept:
            continue
        if not candidate.startswith(live_text):
            logger.debug(f"Filtered out invalid suggestion: {candidate}")
            continue
        kept.append(candidate)
        if len(kept) >= max_suggestions:
            break
    return kept


class SuggestionEngine:
    """
    Runs suggestion requests in the background, one at a time.

    Each request is a Job with a monotonically increasing id, fetched on its
    own daemon thread. Starting a new job cancels the previous one; a
    cancelled job's thread may still finish, but its result is dropped
    because its id is no longer the active one. Old threads stuck on a slow
    backend never delay a new job. Completion handling runs on the event
    loop thread, which is the only place the buffer and menu are touched.
    """

    def __init__(
        self,
        config: SuggestConfig,
        state: SessionState,
        buffer: LineBuffer,
        display: MenuController,
        provider: CompletionProvider,
        history: HistoryStore,
        builder: Optional[ContextBuilder] = None,
        cwd: Callable[[], str] = os.getcwd
    ):
        self.config = config
        self.state = state
        self.buffer = buffer
        self.display = display
        self.provider = provider
        self.history = history
        self.builder = builder or ContextBuilder(
            max_suggestions=config.max_suggestions,
            directory_listing_size=config.directory_listing_size
        )
        self._cwd = cwd
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._jobs: Dict[int, Job] = {}
        self._active: Optional[Job] = None

    @property
    def active_job(self) -> Optional[Job]:
        return self._active

    @property
    def jobs(self) -> List[Job]:
        """Jobs that have not reached a terminal state."""
        with self._lock:
            return list(self._jobs.values())

    def on_input_changed(self, text: str) -> Optional[Job]:
        """
        React to new buffer content.

        Must be called from within the running event loop.

        Returns:
            The started Job, or None if no request was issued
        """
        if len(text) < MIN_INPUT_LENGTH:
            self.reset()
            self.display.clear()
            return None

        if text == self.state.last_input:
            logger.debug(f"Input unchanged, skipping request: '{text}'")
            return None

        logger.debug(f"Command changed from '{self.state.last_input}' to '{text}'")
        self.display.clear()
        return self._start(text)

    def _start(self, text: str) -> Job:
        with self._lock:
            previous = self._detach_active()
            job = Job(id=next(self._ids), input_text=text, state=JobState.RUNNING)
            self._jobs[job.id] = job
            self._active = job
            self.state.last_input = text

        if previous is not None:
            self._cancel_task(previous)

        job.task = asyncio.ensure_future(self._run(job))
        logger.debug(f"Started job {job.id} for: '{text}'")
        return job

    def _detach_active(self) -> Optional[Job]:
        # Caller holds the lock
        job = self._active
        if job is None:
            return None
        self._active = None
        job.state = JobState.CANCELLED
        self._jobs.pop(job.id, None)
        return job

    def _cancel_task(self, job: Job) -> None:
        logger.debug(f"Cancelling job {job.id}")
        if job.task is not None and not job.task.done():
            job.task.cancel()

    def cancel_pending(self) -> None:
        """Cancel the active job, if any. Never waits for its thread."""
        with self._lock:
            job = self._detach_active()
        if job is not None:
            self._cancel_task(job)

    def reset(self) -> None:
        """Cancel the active job and forget the last processed input."""
        self.cancel_pending()
        self.state.last_input = ""

    async def _run(self, job: Job) -> None:
        loop = asyncio.get_running_loop()
        result = loop.create_future()
        worker = threading.Thread(
            target=self._work,
            args=(loop, result, job.input_text),
            name=f"intellisuggest-job-{job.id}",
            daemon=True
        )
        worker.start()
        try:
            candidates = await result
        except asyncio.CancelledError:
            logger.debug(f"Job {job.id} cancelled while in flight")
            raise
        except Exception as e:
            self.handle_completion(job, error=e)
            return
        self.handle_completion(job, candidates=candidates)

    def _work(
        self,
        loop: asyncio.AbstractEventLoop,
        result: asyncio.Future,
        input_text: str
    ) -> None:
        """Thread target: run the fetch and post the outcome back to the loop."""
        try:
            candidates = self._fetch(input_text)
        except Exception as e:
            outcome = (None, e)
        else:
            outcome = (candidates, None)
        try:
            loop.call_soon_threadsafe(_settle, result, *outcome)
        except RuntimeError:
            logger.debug(f"Event loop closed before result for '{input_text}' arrived")

    def _fetch(self, input_text: str) -> List[str]:
        """Worker-thread side of a job: gather context and call the backend."""
        context = self.builder.gather(input_text, self.history.for_request(), self._cwd())
        prompt = self.builder.build(context)
        return self.provider.complete(prompt)

    def handle_completion(
        self,
        job: Job,
        candidates: Optional[List[str]] = None,
        error: Optional[BaseException] = None
    ) -> List[str]:
        """
        Deliver a finished job's result if it is still the active job.

        Returns:
            The candidates handed to the display (empty if none were)
        """
        with self._lock:
            current = self._active is not None and self._active.id == job.id
            if current:
                self._active = None
                job.state = JobState.FAILED if error is not None else JobState.COMPLETED
                self._jobs.pop(job.id, None)

        if not current:
            logger.debug(f"Discarding stale result of job {job.id}")
            return []

        if error is not None:
            if isinstance(error, (ProviderError, BuildError)):
                logger.warning(f"Suggestion request for '{job.input_text}' failed: {error}")
            else:
                logger.error(
                    f"Unexpected error in suggestion job {job.id}",
                    exc_info=(type(error), error, error.__traceback__)
                )
            return []

        live_text = self.buffer.get_text()
        accepted = filter_candidates(candidates or [], live_text, self.config.max_suggestions)
        logger.debug(f"Job {job.id}: {len(accepted)} of {len(candidates or [])} suggestions kept")

        if not accepted or not self.state.enabled:
            return []

        self.display.show(accepted)
        return accepted

    def close(self) -> None:
        """Cancel outstanding work. Never joins job threads."""
        self.cancel_pending()


def _settle(
    future: asyncio.Future,
    candidates: Optional[List[str]],
    error: Optional[BaseException]
) -> None:
    # The awaiting task may have been cancelled already
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(candidates)
