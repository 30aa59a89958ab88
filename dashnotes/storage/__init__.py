"""Local persistence for DashNotes."""

from .project_store import ProjectStore

__all__ = ["ProjectStore"]
