"""Capture session data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Set


class CaptureState(Enum):
    """Lifecycle state of the capture session controller."""
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    READY = "ready"
    LISTENING = "listening"
    STOPPING = "stopping"
    ERRORED = "errored"


class Resource(Enum):
    """Resources a capture session may hold. Released in declaration order."""
    ENGINE = "engine"
    TAP = "tap"
    REQUEST = "request"
    TASK = "task"


@dataclass
class CaptureSession:
    """One run of recording plus recognition. Owned exclusively by the controller."""
    session_id: str
    generation: int
    transcript: str = ""
    request: Optional[Any] = None
    task: Optional[Any] = None
    held: Set[Resource] = field(default_factory=set)

    def holds(self, resource: Resource) -> bool:
        return resource in self.held
