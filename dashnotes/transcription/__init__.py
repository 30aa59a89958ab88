"""Streaming speech recognition for DashNotes."""

from .base import (
    AbstractRecognitionRequest,
    AbstractRecognitionTask,
    AbstractStreamingRecognizer,
    AuthorizationStatus,
    BufferedRecognitionRequest,
)
from ..models.transcription import TranscriptionResult
from .publisher import TranscriptPublisher

__all__ = [
    "AbstractRecognitionRequest",
    "AbstractRecognitionTask",
    "AbstractStreamingRecognizer",
    "AuthorizationStatus",
    "BufferedRecognitionRequest",
    "TranscriptionResult",
    "TranscriptPublisher",
]
