"""Transcription-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List


@dataclass
class TranscriptionResult:
    """A hypothesis emitted by the streaming recognizer.

    Every hypothesis is a full revision of the utterance so far, not a delta.
    """
    text: str
    confidence: float = 0.0
    is_final: bool = False
    service: str = ""
    language: str = "fr-FR"
    timestamp: datetime = field(default_factory=datetime.now)
    alternatives: Optional[List[str]] = None
