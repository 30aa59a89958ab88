"""Capture session controller: the state machine behind the record toggle.

One controller owns at most one ``CaptureSession`` at a time. ``start()``
authorizes, validates the input format, installs the audio tap, starts the
engine and begins recognition; ``stop()`` releases every held resource.

Threading: the audio tap runs on the capture thread and only appends chunks
to the recognition request. Recognizer callbacks run on the recognizer's
thread and only enqueue a ``RecognitionEvent`` tagged with the session
generation. ``pump()`` applies queued events on the controlling thread, in
arrival order, and drops those whose generation is no longer active.
"""

import itertools
import logging
import queue
import threading
import uuid
from typing import Callable, Dict, FrozenSet, Optional

from ..audio.capture import AudioEngine
from ..errors import (
    AuthorizationError,
    AvailabilityError,
    CaptureError,
    FormatError,
    RecognitionError,
)
from ..models.events import AudioEvent, RecognitionEvent
from ..models.session import CaptureSession, CaptureState, Resource
from ..models.transcription import TranscriptionResult
from ..models.ui import CaptureStatus
from ..transcription.base import AbstractStreamingRecognizer, AuthorizationStatus
from ..transcription.publisher import TranscriptPublisher

logger = logging.getLogger(__name__)

INITIAL_PROMPT = "Press the button and start speaking..."
LISTENING_PROMPT = "Listening..."


class CaptureSessionController:
    """Owns the lifecycle of live transcription sessions."""

    def __init__(self,
                 recognizer: AbstractStreamingRecognizer,
                 audio_engine: AudioEngine,
                 publisher: Optional[TranscriptPublisher] = None):
        """Initialize the controller.

        Args:
            recognizer: Streaming recognizer used for every session
            audio_engine: Microphone input the tap is installed on
            publisher: Receives transcript and state updates; defaults to the
                       standard pubsub topics
        """
        self.recognizer = recognizer
        self.audio_engine = audio_engine
        self.publisher = publisher or TranscriptPublisher()

        self._lock = threading.RLock()
        self._events: "queue.Queue[RecognitionEvent]" = queue.Queue()
        self._generations = itertools.count(1)

        self._state = CaptureState.IDLE
        self._authorization: Optional[AuthorizationStatus] = None
        self._session: Optional[CaptureSession] = None
        self._transcript = INITIAL_PROMPT
        self._status_message = ""
        self._last_error: Optional[CaptureError] = None
        self._last_transcript: Optional[str] = None

        self._release_steps: Dict[Resource, Callable[[CaptureSession], None]] = {
            Resource.ENGINE: lambda session: self.audio_engine.stop(),
            Resource.TAP: lambda session: self.audio_engine.remove_tap(),
            Resource.REQUEST: lambda session: session.request.end_audio(),
            Resource.TASK: lambda session: session.task.cancel(),
        }

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def is_listening(self) -> bool:
        return self._state is CaptureState.LISTENING

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def last_transcript(self) -> Optional[str]:
        """Last hypothesis of the most recently finished session, if any."""
        return self._last_transcript

    @property
    def status_message(self) -> str:
        return self._status_message

    @property
    def last_error(self) -> Optional[CaptureError]:
        return self._last_error

    @property
    def authorization(self) -> Optional[AuthorizationStatus]:
        return self._authorization

    @property
    def session_id(self) -> Optional[str]:
        return self._session.session_id if self._session else None

    @property
    def held_resources(self) -> FrozenSet[Resource]:
        """Resources held by the active session (empty when none)."""
        return frozenset(self._session.held) if self._session else frozenset()

    def snapshot(self) -> CaptureStatus:
        return CaptureStatus(
            state=self._state,
            transcript=self._transcript,
            status_message=self._status_message,
            session_id=self.session_id,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def prepare(self) -> bool:
        """Resolve authorization ahead of the first ``start()``.

        Returns:
            True if the recognizer is authorized
        """
        with self._lock:
            if self._state is not CaptureState.IDLE:
                return self._authorization is AuthorizationStatus.AUTHORIZED
            try:
                self._authorize()
            except AuthorizationError as e:
                self._fail(e)
                return False
            return True

    def start(self) -> bool:
        """Start a capture session.

        Failures never propagate: the controller returns to IDLE with
        ``status_message`` and ``last_error`` describing what went wrong.

        Returns:
            True if the controller is now listening
        """
        with self._lock:
            if self._state is CaptureState.LISTENING:
                logger.warning("Capture already in progress")
                return True
            if self._state not in (CaptureState.IDLE, CaptureState.READY):
                logger.warning(f"Cannot start while {self._state.value}")
                return False

            self._last_error = None
            self._status_message = ""
            try:
                self._authorize()
                self._begin_listening()
            except CaptureError as e:
                self._fail(e)
                return False
            except Exception as e:
                logger.exception("Unexpected error while starting capture")
                self._fail(CaptureError(f"Capture failed to start: {e}"))
                return False
            return True

    def stop(self) -> None:
        """Stop the active session. A no-op unless listening."""
        with self._lock:
            if self._state is not CaptureState.LISTENING:
                logger.debug(f"stop() ignored while {self._state.value}")
                return
            self._teardown()
            self._set_state(CaptureState.IDLE)

    def toggle(self) -> bool:
        """Start if idle, stop if listening. Returns the new listening flag."""
        with self._lock:
            if self.is_listening:
                self.stop()
            else:
                self.start()
            return self.is_listening

    def reset_transcript(self) -> None:
        """Show the initial prompt again."""
        with self._lock:
            self._last_transcript = None
            self._set_transcript(INITIAL_PROMPT)

    def reset_authorization(self) -> None:
        """Forget the cached authorization so the next start asks again."""
        with self._lock:
            self._authorization = None
            logger.info("Authorization status reset")

    def shutdown(self) -> None:
        """Stop any session and release the recognizer."""
        with self._lock:
            self.stop()
            self._drain_stale()
            self.recognizer.cleanup()

    def pump(self, timeout: float = 0.0) -> int:
        """Apply queued recognizer callbacks on the calling thread.

        Args:
            timeout: Seconds to wait for the first event; 0 returns immediately

        Returns:
            Number of events taken off the queue (stale ones included)
        """
        processed = 0
        block = timeout > 0
        while True:
            try:
                event = self._events.get(block=block, timeout=timeout if block else None)
            except queue.Empty:
                return processed
            block = False
            processed += 1
            with self._lock:
                self._apply(event)

    # ------------------------------------------------------------------
    # Start path
    # ------------------------------------------------------------------

    def _authorize(self) -> None:
        if self._authorization is not AuthorizationStatus.AUTHORIZED:
            self._set_state(CaptureState.AUTHORIZING)
        if self._authorization is None:
            logger.info("Requesting speech recognition authorization")
            self._authorization = self.recognizer.request_authorization()
            logger.info(f"Authorization resolved: {self._authorization.value}")

        if self._authorization is not AuthorizationStatus.AUTHORIZED:
            raise AuthorizationError(
                f"Speech recognition authorization denied ({self._authorization.value})")
        self._set_state(CaptureState.READY)

    def _begin_listening(self) -> None:
        if not self.recognizer.is_available():
            raise AvailabilityError("Speech recognizer is unavailable")

        session = CaptureSession(
            session_id=uuid.uuid4().hex[:12],
            generation=next(self._generations),
        )
        self._session = session
        self._last_transcript = None

        session.request = self.recognizer.create_request()
        session.held.add(Resource.REQUEST)

        audio_format = self.audio_engine.input_format()
        if not audio_format.is_valid():
            raise FormatError(
                f"Invalid audio format: sample rate {audio_format.sample_rate}, "
                f"channel count {audio_format.channels}")

        request = session.request
        self.audio_engine.install_tap(lambda event: self._on_audio(request, event), audio_format)
        session.held.add(Resource.TAP)

        self.audio_engine.start()
        session.held.add(Resource.ENGINE)

        generation = session.generation
        session.task = self.recognizer.recognition_task(
            session.request,
            audio_format,
            lambda result, error: self._on_recognition(generation, result, error),
        )
        session.held.add(Resource.TASK)

        session.transcript = LISTENING_PROMPT
        self._set_transcript(LISTENING_PROMPT)
        self._set_state(CaptureState.LISTENING)
        logger.info(f"Listening (session {session.session_id}, generation {generation})")

    # ------------------------------------------------------------------
    # Background callbacks
    # ------------------------------------------------------------------

    @staticmethod
    def _on_audio(request, event: AudioEvent) -> None:
        request.append(event.audio_data)

    def _on_recognition(self,
                        generation: int,
                        result: Optional[TranscriptionResult],
                        error: Optional[Exception]) -> None:
        self._events.put(RecognitionEvent(generation=generation, result=result, error=error))

    def _apply(self, event: RecognitionEvent) -> None:
        session = self._session
        if (session is None or event.generation != session.generation
                or self._state is not CaptureState.LISTENING):
            logger.debug(f"Dropping stale recognition event (generation {event.generation})")
            return

        if event.is_error:
            error = event.error
            if not isinstance(error, RecognitionError):
                error = RecognitionError(f"Recognition error: {error}")
            logger.error(f"Recognition error: {error.message}")
            self._fail(error)
            return

        if event.result is not None:
            session.transcript = event.result.text
            self._set_transcript(event.result.text)

    # ------------------------------------------------------------------
    # Teardown and failure
    # ------------------------------------------------------------------

    def _teardown(self) -> None:
        """Release everything the session holds and forget it."""
        session = self._session
        if session is None:
            return
        if self._state is CaptureState.LISTENING:
            self._set_state(CaptureState.STOPPING)

        for resource in Resource:
            if not session.holds(resource):
                continue
            try:
                self._release_steps[resource](session)
            except Exception:
                logger.exception(f"Failed to release {resource.value}")
            session.held.discard(resource)

        if session.transcript and session.transcript != LISTENING_PROMPT:
            self._last_transcript = session.transcript
        session.request = None
        session.task = None
        self._session = None
        self._set_transcript(INITIAL_PROMPT)
        logger.info(f"Session {session.session_id} torn down")

    def _fail(self, error: CaptureError) -> None:
        """Surface ``error`` and return to IDLE with nothing held."""
        self._teardown()
        self._last_error = error
        self._status_message = error.message
        logger.warning(f"Capture failed: {error.status}: {error.message}")
        self._set_state(CaptureState.ERRORED)
        self._set_state(CaptureState.IDLE)

    def _drain_stale(self) -> None:
        while True:
            try:
                self._events.get_nowait()
            except queue.Empty:
                return

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def _set_state(self, state: CaptureState) -> None:
        if state is self._state:
            return
        logger.debug(f"State {self._state.value} -> {state.value}")
        self._state = state
        self.publisher.publish_status(self.snapshot())

    def _set_transcript(self, text: str) -> None:
        if text == self._transcript:
            return
        self._transcript = text
        self.publisher.publish_transcript(text)
