"""Interactive terminal dashboard for seedwatch sessions."""

from seedwatch.tui.app import DashboardApp
from seedwatch.tui.state import DashboardState

__all__ = ["DashboardApp", "DashboardState"]
