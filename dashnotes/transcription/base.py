"""Abstract base classes for streaming recognizers."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Iterator, Optional
import logging
import queue
import threading

from ..models.audio import AudioFormat
from ..models.transcription import TranscriptionResult

logger = logging.getLogger(__name__)

RecognitionCallback = Callable[[Optional[TranscriptionResult], Optional[Exception]], None]


class AuthorizationStatus(Enum):
    """Outcome of asking the recognizer for permission to run."""
    AUTHORIZED = "authorized"
    DENIED = "denied"
    RESTRICTED = "restricted"
    NOT_DETERMINED = "not_determined"


class AbstractRecognitionRequest(ABC):
    """Sink for raw audio chunks feeding one recognition task."""

    @abstractmethod
    def append(self, chunk: bytes) -> None:
        """Queue an audio chunk. May be called from any thread."""
        pass

    @abstractmethod
    def end_audio(self) -> None:
        """Signal that no more audio will be appended."""
        pass

    @property
    @abstractmethod
    def is_ended(self) -> bool:
        pass


class AbstractRecognitionTask(ABC):
    """A running recognition bound to one request."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop recognition. No callbacks are delivered after this returns."""
        pass

    @property
    @abstractmethod
    def is_cancelled(self) -> bool:
        pass


class AbstractStreamingRecognizer(ABC):
    """Abstract base class for streaming speech recognizers."""

    def __init__(self, language: str = "fr-FR"):
        """Initialize recognizer with language preference."""
        self.language = language

    @abstractmethod
    def request_authorization(self) -> AuthorizationStatus:
        """Ask for (or look up) permission to use the recognizer. May block."""
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the recognizer can accept a new task right now."""
        pass

    @abstractmethod
    def create_request(self) -> AbstractRecognitionRequest:
        """Build a fresh request for a new session."""
        pass

    @abstractmethod
    def recognition_task(self,
                         request: AbstractRecognitionRequest,
                         audio_format: AudioFormat,
                         callback: RecognitionCallback) -> AbstractRecognitionTask:
        """Begin recognizing the audio appended to ``request``.

        ``callback(result, error)`` is invoked from a background thread, once
        per hypothesis and at most once with an error.
        """
        pass

    def cleanup(self) -> None:
        """Clean up recognizer resources."""
        pass


class BufferedRecognitionRequest(AbstractRecognitionRequest):
    """Thread-safe request that buffers chunks until the task drains them."""

    _END = object()

    def __init__(self):
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._ended = threading.Event()
        self.chunks_appended = 0

    def append(self, chunk: bytes) -> None:
        if self._ended.is_set():
            return
        self._queue.put(chunk)
        self.chunks_appended += 1

    def end_audio(self) -> None:
        if self._ended.is_set():
            return
        self._ended.set()
        self._queue.put(self._END)
        logger.debug(f"Request ended after {self.chunks_appended} chunks")

    @property
    def is_ended(self) -> bool:
        return self._ended.is_set()

    def chunks(self) -> Iterator[bytes]:
        """Yield appended chunks in order until end_audio() is called."""
        while True:
            item = self._queue.get()
            if item is self._END:
                return
            yield item
