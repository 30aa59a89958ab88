"""Event models passed between the audio thread, the recognizer and the controller."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from .transcription import TranscriptionResult


@dataclass
class AudioEvent:
    """Audio chunk captured by the input tap."""
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    peak_level: float = 0.0  # 0.0 - 1.0
    chunk_duration_ms: Optional[int] = None

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass
class RecognitionEvent:
    """One recognizer callback, tagged with the generation of the session that produced it."""
    generation: int
    result: Optional[TranscriptionResult] = None
    error: Optional[Exception] = None
    received_at: datetime = field(default_factory=datetime.now)

    @property
    def is_error(self) -> bool:
        return self.error is not None
