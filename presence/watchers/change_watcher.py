"""
Change watcher for the rich presence config path.

Watches a single path with a watchdog observer thread and turns bursts of
filesystem events into single wakeups on the asyncio event loop. The observer
is started once and reused for every reload; ``arm()`` and ``wait()`` only
touch loop-side state.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Any, Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

DEFAULT_DEBOUNCE_DELAY = 1.0


class DebounceHandler:
    """Delays a callback until events stop arriving for ``delay`` seconds."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._timer_task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def trigger(self, callback: Callable[[], None]) -> None:
        """Restart the timer; must be called on the event loop."""
        if self._timer_task is not None:
            self._timer_task.cancel()

        self._timer_task = asyncio.get_running_loop().create_task(self._delayed_callback(callback))

    async def _delayed_callback(self, callback: Callable[[], None]) -> None:
        await asyncio.sleep(self.delay)
        self._timer_task = None
        callback()

    def cancel(self) -> None:
        """Cancel the pending timer, if any."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None


class ConfigChangeHandler(FileSystemEventHandler):  # type: ignore[misc]
    """Forwards events for the watched path from the observer thread to the loop."""

    def __init__(self, watcher: "ChangeWatcher") -> None:
        super().__init__()
        self.watcher = watcher
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def on_modified(self, event: FileSystemEvent) -> None:
        self._handle_event(event, "modified")

    def on_created(self, event: FileSystemEvent) -> None:
        self._handle_event(event, "created")

    def on_moved(self, event: FileSystemEvent) -> None:
        self._handle_event(event, "moved")

    def on_deleted(self, event: FileSystemEvent) -> None:
        self._handle_event(event, "deleted")

    def _handle_event(self, event: FileSystemEvent, event_type: str) -> None:
        if event.is_directory or not self._concerns_watched_path(event):
            return

        self.logger.debug(f"Config path {event_type}: {self.watcher.path}")

        loop = self.watcher.loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(self.watcher.notify)
        except RuntimeError:
            # Loop already closed while the observer was shutting down
            self.logger.debug("Event loop closed, dropping filesystem event")

    def _concerns_watched_path(self, event: FileSystemEvent) -> bool:
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and Path(os.fsdecode(p)) == self.watcher.path for p in paths)


class ChangeWatcher:
    """
    Coalesced change notifications for one filesystem path.

    The parent directory is observed non-recursively so that editors which save
    by renaming a temporary file over the path are still noticed.
    """

    def __init__(self, path: Path | str, debounce_delay: float = DEFAULT_DEBOUNCE_DELAY) -> None:
        if debounce_delay < 0:
            raise ValueError("Debounce delay must be non-negative")

        self.path = Path(path).absolute()
        self.logger = logging.getLogger(__name__)

        self.observer = Observer()
        self.event_handler = ConfigChangeHandler(self)
        self.debounce_handler = DebounceHandler(debounce_delay)
        self.loop: asyncio.AbstractEventLoop | None = None
        self._changed = asyncio.Event()

        self.is_watching = False
        self._stopped = False
        self.start_time: float | None = None
        self.stats = {
            "raw_events": 0,
            "wakeups": 0,
        }

    def start(self, loop: asyncio.AbstractEventLoop) -> None:
        """
        Start observing the path.

        Args:
            loop: Event loop that receives the change notifications

        Raises:
            FileNotFoundError: If the watched path does not exist
            OSError: If the observer cannot watch the path
        """
        if self.is_watching:
            self.logger.warning("Change watcher is already running")
            return

        if not self.path.exists():
            raise FileNotFoundError(f"Config path does not exist: {self.path}")

        self.loop = loop
        try:
            self.observer.schedule(self.event_handler, str(self.path.parent), recursive=False)
            self.observer.start()
        except Exception as e:
            self.logger.error(f"Failed to start change watcher for {self.path}: {e}")
            self.loop = None
            raise

        self.is_watching = True
        self._stopped = False
        self.start_time = time.time()
        self.logger.info(f"Watching {self.path} with {self.debounce_handler.delay}s debounce")

    def notify(self) -> None:
        """Record one raw filesystem event; must be called on the event loop."""
        if self._stopped:
            return
        self.stats["raw_events"] += 1
        self.debounce_handler.trigger(self._fire)

    def _fire(self) -> None:
        self.stats["wakeups"] += 1
        self._changed.set()

    def arm(self) -> None:
        """Forget any wakeup recorded so far; the next change wakes ``wait()``."""
        self._changed.clear()

    async def wait(self) -> None:
        """Suspend until the next coalesced change, then consume it."""
        await self._changed.wait()
        self._changed.clear()

    def stop(self) -> None:
        """Stop the observer thread and drop any pending notification."""
        if self.is_watching and self.observer.is_alive():
            self.observer.stop()
            self.observer.join(timeout=5.0)

        # Events the observer queued to the loop before joining are dropped by notify()
        self._stopped = True
        self.debounce_handler.cancel()

        if not self.is_watching:
            return

        self.is_watching = False
        uptime = time.time() - self.start_time if self.start_time else 0
        self.logger.info(f"Change watcher stopped. Uptime: {uptime:.1f}s")

    def get_status(self) -> dict[str, Any]:
        """Get current watcher status and statistics."""
        return {
            "is_watching": self.is_watching,
            "path": str(self.path),
            "debounce_delay": self.debounce_handler.delay,
            "pending_wakeup": self._changed.is_set(),
            "statistics": self.stats.copy(),
        }
