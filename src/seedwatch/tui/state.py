"""Dashboard view state, owned by the UI thread."""

from __future__ import annotations

import time
from dataclasses import dataclass

# Status message display duration in seconds
STATUS_DURATION = 3.0


@dataclass
class DashboardState:
    """Selection and transient UI state.

    Selection is tracked by transfer id, never by row position, so rows
    appearing or disappearing between refreshes cannot retarget an action.
    Only the UI thread touches this object.
    """

    selected_id: str | None = None
    show_files: bool = False
    running: bool = True
    status_message: str = ""
    status_expiry: float = 0.0

    def sync(self, ids: list[str]) -> None:
        """Keep the selection on a transfer that still exists."""
        if self.selected_id in ids:
            return
        self.selected_id = ids[0] if ids else None

    def move(self, delta: int, ids: list[str]) -> None:
        if not ids:
            self.selected_id = None
            return
        if self.selected_id not in ids:
            self.selected_id = ids[0]
            return
        index = ids.index(self.selected_id) + delta
        self.selected_id = ids[max(0, min(index, len(ids) - 1))]

    def set_status(self, message: str, now: float | None = None) -> None:
        now = time.time() if now is None else now
        self.status_message = message
        self.status_expiry = now + STATUS_DURATION

    def current_status(self, now: float | None = None) -> str:
        now = time.time() if now is None else now
        if self.status_message and now < self.status_expiry:
            return self.status_message
        self.status_message = ""
        return ""
