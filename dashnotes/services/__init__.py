"""Services layer for DashNotes application logic."""

from .capture_controller import CaptureSessionController, INITIAL_PROMPT
from .project_service import ProjectService, ProjectEditor

__all__ = [
    "CaptureSessionController",
    "INITIAL_PROMPT",
    "ProjectService",
    "ProjectEditor",
]
