"""Dashboard application — interactive terminal view of a download session."""

from __future__ import annotations

import logging
import queue
import signal

from rich.console import Console
from rich.live import Live

from seedwatch.errors import SeedwatchError
from seedwatch.session.manager import SessionManager
from seedwatch.session.models import CompletionEvent
from seedwatch.tui.display import DashboardDisplay
from seedwatch.tui.keys import cbreak_keys
from seedwatch.tui.state import DashboardState

logger = logging.getLogger(__name__)


class DashboardApp:
    """Interactive dashboard for a SessionManager.

    Threading model:
    - Main thread: keyboard input + Rich Live rendering (this class)
    - Refresh thread: SessionManager.refresh_loop() (started by caller)

    Completion events arrive on the refresh thread and are handed over
    through a queue; the UI only ever reads published snapshots.
    """

    def __init__(
        self,
        manager: SessionManager,
        until_complete: bool = False,
        console: Console | None = None,
    ) -> None:
        self._manager = manager
        self._until_complete = until_complete
        self._state = DashboardState()
        self._display = DashboardDisplay()
        self._console = console or Console(stderr=True)
        self._events: queue.Queue[CompletionEvent] = queue.Queue()
        self.completed: list[CompletionEvent] = []

    @property
    def state(self) -> DashboardState:
        return self._state

    def run(self) -> None:
        """Run the dashboard main loop. Blocks until quit."""
        state = self._state
        unsubscribe = self._manager.subscribe(self._events.put)

        original_sigint = signal.getsignal(signal.SIGINT)
        original_sigterm = signal.getsignal(signal.SIGTERM)

        def _signal_handler(signum: int, frame: object) -> None:
            state.running = False

        signal.signal(signal.SIGINT, _signal_handler)
        signal.signal(signal.SIGTERM, _signal_handler)

        try:
            with cbreak_keys() as keys:
                with Live(
                    console=self._console,
                    screen=True,
                    refresh_per_second=4,
                ) as live:
                    while state.running:
                        key = keys.read(timeout=0.1)
                        if key is not None:
                            self.dispatch_key(key)
                        self.drain_events()

                        snapshot = self._manager.latest_snapshot
                        live.update(
                            self._display.render(
                                snapshot, state, pending=len(self._manager.pending())
                            ),
                            refresh=False,
                        )
                        if self._finished():
                            state.running = False
        except Exception:
            logger.exception("Dashboard error")
        finally:
            unsubscribe()
            signal.signal(signal.SIGINT, original_sigint)
            signal.signal(signal.SIGTERM, original_sigterm)

    def drain_events(self) -> None:
        while True:
            try:
                event = self._events.get_nowait()
            except queue.Empty:
                return
            self.completed.append(event)
            self._state.set_status(f"Download complete: {event.name}")

    def dispatch_key(self, key: str) -> None:
        state = self._state
        ids = self._manager.latest_snapshot.ids

        if key == "q":
            state.running = False
        elif key in ("j", "down"):
            state.move(1, ids)
        elif key in ("k", "up"):
            state.move(-1, ids)
        elif key in ("\r", "\n"):
            state.show_files = not state.show_files
        elif key in ("escape", "\x1b"):
            state.show_files = False
        elif key == "p":
            self._toggle_pause()
        elif key == "r":
            self._remove(delete_data=False)
        elif key == "x":
            self._remove(delete_data=True)

    def _toggle_pause(self) -> None:
        transfer_id = self._state.selected_id
        if transfer_id is None:
            return
        try:
            paused = self._manager.toggle_paused(transfer_id)
        except SeedwatchError as exc:
            self._state.set_status(f"Pause failed: {exc}")
            return
        self._state.set_status("Paused" if paused else "Resumed")

    def _remove(self, delete_data: bool) -> None:
        transfer_id = self._state.selected_id
        if transfer_id is None:
            return
        try:
            removed = self._manager.remove(transfer_id, delete_data=delete_data)
        except SeedwatchError as exc:
            self._state.set_status(f"Remove failed: {exc}")
            return
        name = removed.name if removed is not None else transfer_id
        suffix = " and its files" if delete_data else ""
        self._state.set_status(f"Removed {name}{suffix}")
        self._state.selected_id = None

    def _finished(self) -> bool:
        if not self._until_complete or self._manager.pending():
            return False
        stats = self._manager.stats()
        return stats.total > 0 and stats.finished == stats.total
