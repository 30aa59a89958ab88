"""Audio-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AudioFormat:
    """Negotiated format of the audio input stream."""
    sample_rate: float
    channels: int

    def is_valid(self) -> bool:
        """A format is usable only if both the rate and channel count are positive."""
        return self.sample_rate > 0 and self.channels > 0


@dataclass
class AudioStats:
    """Audio recording statistics."""
    is_running: bool
    duration_seconds: float
    sample_rate: float
    channels: int
    chunk_size: int
    total_chunks: int
    peak_level: float = 0.0
