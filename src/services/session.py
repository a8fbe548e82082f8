"""Recording session state machine.

Drives one pass through a prompt list: each prompt is captured through a
``BaseCaptureBackend`` with lead-in and trail padding, and each finished
clip is appended to the offline queue. A singleton ensures only one
session is active at a time.

Phases per prompt::

    Idle -> Arming -> Recording -> Stopping -> Processing -> Idle | Completed
                \\________\\__________\\-> Error -> Idle (same prompt again)

Usage::

    from src.services.session import open_session, close_session

    controller = open_session(backend, queue, sentences, profile)
    await controller.start_recording()
    item = await controller.stop_recording()
    close_session()
"""

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable, Sequence

from src.core.config import get_settings
from src.core.exceptions import (
    CaptureError,
    SentencesUnavailableError,
    SessionAlreadyActiveError,
    StorageError,
)
from src.core.models import QueueItem, RecordingPhase, Sentence, SessionState, UserProfile
from src.services.capture.base import BaseCaptureBackend
from src.services.storage.queue_store import OfflineQueueStore

logger = logging.getLogger(__name__)

Wait = Callable[[float], Awaitable[None]]


class RecordingSessionController:
    """Sequences prompts and owns the capture lifecycle for one session.

    Args:
        backend: Capture backend selected at process start.
        queue: Offline queue that receives finished clips.
        sentences: Ordered prompts for this session (must not be empty).
        profile: Respondent snapshot embedded into every clip.
        lead_in_delay: Seconds between capture start and the visible
            recording indicator.
        trail_delay: Seconds between the stop request and the device stop.
        timer_interval: Seconds per tick of the visible timer.
        wait: Awaitable sleep used for every scheduled transition.
        on_phase_change: Called with the new phase on every transition.
        on_tick: Called with the elapsed seconds on every timer tick.
    """

    def __init__(
        self,
        backend: BaseCaptureBackend,
        queue: OfflineQueueStore,
        sentences: Sequence[Sentence],
        profile: UserProfile,
        lead_in_delay: float | None = None,
        trail_delay: float | None = None,
        timer_interval: float | None = None,
        wait: Wait = asyncio.sleep,
        on_phase_change: Callable[[RecordingPhase], None] | None = None,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        if not sentences:
            raise SentencesUnavailableError("Cannot start a session without sentences")

        settings = get_settings()
        self._backend = backend
        self._queue = queue
        self._sentences = tuple(sentences)
        self._profile = profile
        self._lead_in = settings.lead_in_delay if lead_in_delay is None else lead_in_delay
        self._trail = settings.trail_delay if trail_delay is None else trail_delay
        self._timer_interval = timer_interval or settings.timer_interval
        self._wait = wait
        self._on_phase_change = on_phase_change
        self._on_tick = on_tick

        self._state = SessionState()
        self._armed = asyncio.Event()
        self._timer_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state.model_copy()

    @property
    def phase(self) -> RecordingPhase:
        return self._state.phase

    @property
    def prompt_index(self) -> int:
        return self._state.prompt_index

    @property
    def elapsed_seconds(self) -> int:
        return self._state.elapsed_seconds

    @property
    def total(self) -> int:
        return len(self._sentences)

    @property
    def is_completed(self) -> bool:
        return self._state.phase is RecordingPhase.completed

    @property
    def current_sentence(self) -> Sentence | None:
        """The prompt to read next, or None once the session is complete."""
        if self._state.prompt_index >= len(self._sentences):
            return None
        return self._sentences[self._state.prompt_index]

    def _set_phase(self, phase: RecordingPhase) -> None:
        logger.debug("Prompt %s: %s -> %s", self._state.prompt_index, self._state.phase, phase)
        self._state.phase = phase
        if self._on_phase_change is not None:
            self._on_phase_change(phase)

    # ------------------------------------------------------------------
    # Capture lifecycle
    # ------------------------------------------------------------------

    async def start_recording(self) -> bool:
        """Start capturing the current prompt.

        The device starts immediately; the ``Recording`` phase (and the
        timer) only begins after the lead-in delay.

        Returns:
            True once ``Recording`` is entered, False if the request was
            ignored because a capture is already under way or the session
            is complete.

        Raises:
            CaptureError: If the device could not start.
            StorageError: If the recordings directory is unusable.
            In both cases the phase is back at ``Idle`` and the prompt is
            unchanged.
        """
        if self._state.phase is not RecordingPhase.idle:
            logger.debug("Start ignored in phase %s", self._state.phase)
            return False

        self._armed.clear()
        self._set_phase(RecordingPhase.arming)
        ready = asyncio.Event()
        try:
            await self._backend.start(ready.set)
            await ready.wait()
        except (CaptureError, StorageError) as exc:
            logger.warning("Capture failed to start for prompt %s: %s", self.prompt_index, exc)
            await self._recover(None)
            raise

        await self._wait(self._lead_in)
        self._state.elapsed_seconds = 0
        self._set_phase(RecordingPhase.recording)
        self._timer_task = asyncio.create_task(self._run_timer())
        self._armed.set()
        return True

    async def stop_recording(self) -> QueueItem | None:
        """Stop capturing and queue the finished clip.

        A request made while ``Arming`` waits for ``Recording`` first; the
        trail delay then always applies in full.

        Returns:
            The queued item, or None if the request was ignored.

        Raises:
            CaptureError: If the device failed while stopping.
            StorageError: If the clip could not be moved or queued.
        """
        if self._state.phase is RecordingPhase.arming:
            await self._armed.wait()
        if self._state.phase is not RecordingPhase.recording:
            logger.debug("Stop ignored in phase %s", self._state.phase)
            return None

        self._set_phase(RecordingPhase.stopping)
        await self._wait(self._trail)
        await self._stop_timer()

        handle: str | None = None
        try:
            handle = await self._backend.stop()
            self._set_phase(RecordingPhase.processing)
            item = self._build_item(handle)
            await self._queue.append(item)
        except (CaptureError, StorageError) as exc:
            logger.warning("Capture failed for prompt %s: %s", self.prompt_index, exc)
            await self._recover(handle)
            raise

        self._advance()
        return item

    async def abort(self) -> None:
        """Abandon an in-flight capture (e.g. when the operator leaves the screen)."""
        if self._state.phase not in (RecordingPhase.recording, RecordingPhase.arming):
            return
        if self._state.phase is RecordingPhase.arming:
            await self._armed.wait()
            if self._state.phase is not RecordingPhase.recording:
                return
        await self._stop_timer()
        handle: str | None = None
        try:
            handle = await self._backend.stop()
        except (CaptureError, StorageError) as exc:
            logger.warning("Capture abort: %s", exc)
        await self._recover(handle)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_item(self, handle: str) -> QueueItem:
        sentence = self._sentences[self._state.prompt_index]
        return QueueItem(
            id=self._new_item_id(),
            resource_handle=handle,
            sentence_id=sentence.id,
            text=sentence.text,
            metadata_snapshot=self._profile,
        )

    def _new_item_id(self) -> str:
        """Millisecond timestamp, bumped until it is unique in the queue."""
        stamp = int(time.time() * 1000)
        while self._queue.get(str(stamp)) is not None:
            stamp += 1
        return str(stamp)

    def _advance(self) -> None:
        self._state.prompt_index += 1
        if self._state.prompt_index >= len(self._sentences):
            self._set_phase(RecordingPhase.completed)
            logger.info("Session complete (%d prompts)", len(self._sentences))
        else:
            self._set_phase(RecordingPhase.idle)

    async def _recover(self, handle: str | None) -> None:
        """Pass through ``Error``, drop any orphaned clip, and return to ``Idle``."""
        self._set_phase(RecordingPhase.error)
        await self._stop_timer()
        if handle is not None:
            try:
                await self._backend.release(handle)
            except StorageError as exc:
                logger.warning("Could not release %s: %s", handle, exc.detail)
        self._set_phase(RecordingPhase.idle)
        self._armed.set()

    async def _run_timer(self) -> None:
        while True:
            await self._wait(self._timer_interval)
            self._state.elapsed_seconds += 1
            if self._on_tick is not None:
                self._on_tick(self._state.elapsed_seconds)

    async def _stop_timer(self) -> None:
        task, self._timer_task = self._timer_task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        self._state.elapsed_seconds = 0


# ---------------------------------------------------------------------------
# Module-level singleton management
# ---------------------------------------------------------------------------

_active_session: RecordingSessionController | None = None


def open_session(
    backend: BaseCaptureBackend,
    queue: OfflineQueueStore,
    sentences: Sequence[Sentence],
    profile: UserProfile,
    **kwargs,
) -> RecordingSessionController:
    """Create the process's recording session.

    Raises:
        SessionAlreadyActiveError: If a session is already open.
    """
    global _active_session
    if _active_session is not None:
        raise SessionAlreadyActiveError()
    _active_session = RecordingSessionController(backend, queue, sentences, profile, **kwargs)
    logger.info("Opened session with %d prompts for %s", len(sentences), profile.name)
    return _active_session


def close_session() -> None:
    """Forget the active session (no-op if none is open)."""
    global _active_session
    _active_session = None


def get_active_session() -> RecordingSessionController | None:
    """Return the currently active session, or None."""
    return _active_session
