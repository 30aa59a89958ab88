"""UI-related data models."""

from dataclasses import dataclass
from typing import Optional

from .session import CaptureState


@dataclass(frozen=True)
class CaptureStatus:
    """Snapshot of the controller published to the UI on every state change."""
    state: CaptureState
    transcript: str
    status_message: str = ""
    session_id: Optional[str] = None

    @property
    def is_listening(self) -> bool:
        return self.state is CaptureState.LISTENING
