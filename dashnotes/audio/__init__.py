"""Audio capture module."""

from .capture import AudioEngine

__all__ = [
    'AudioEngine',
]
