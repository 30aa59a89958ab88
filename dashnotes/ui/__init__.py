"""Terminal user interface."""

from .dashboard_screen import DashboardScreen

__all__ = ["DashboardScreen"]
