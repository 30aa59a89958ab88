"""DashNotes: speak, watch the live transcript, keep it as a project."""

__version__ = "0.1.0"
