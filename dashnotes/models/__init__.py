"""Data models for the DashNotes application."""

from .audio import AudioFormat, AudioStats
from .events import AudioEvent, RecognitionEvent
from .project import Project, DEFAULT_PROJECT_TITLE
from .session import CaptureSession, CaptureState, Resource
from .transcription import TranscriptionResult
from .ui import CaptureStatus

__all__ = [
    "AudioFormat",
    "AudioStats",
    "AudioEvent",
    "RecognitionEvent",
    "Project",
    "DEFAULT_PROJECT_TITLE",
    "CaptureSession",
    "CaptureState",
    "Resource",
    "TranscriptionResult",
    "CaptureStatus",
]
