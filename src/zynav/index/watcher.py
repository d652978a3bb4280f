"""Change watcher: refresh the index when tracked source files change.

Built on ``watchdog``.  Events for directories and for files without the
tracked extension are dropped; every other event restarts a debounce
timer, so a burst of saves ends in a single refresh once things go quiet.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class DebounceEventHandler(FileSystemEventHandler):
    """Filters file-system events and coalesces them into one callback.

    Parameters
    ----------
    on_change:
        Called (on the timer thread) once per quiet period.
    is_tracked:
        Predicate over a path; only tracked paths restart the timer.
    debounce_seconds:
        Quiet period after the last counted event.
    """

    def __init__(
        self,
        on_change: Callable[[], object],
        is_tracked: Callable[[str], bool],
        debounce_seconds: float = 0.5,
    ) -> None:
        super().__init__()
        self.on_change = on_change
        self.is_tracked = is_tracked
        self.debounce_seconds = debounce_seconds
        self.debounce_timer: threading.Timer | None = None
        self._timer_lock = threading.Lock()

    def on_any_event(self, event: FileSystemEvent) -> None:
        if self.should_process_event(event):
            logger.debug("File changed: %s - %s", event.event_type, event.src_path)
            self.reset_debounce_timer()

    def should_process_event(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        if event.event_type == "moved":
            target = getattr(event, "dest_path", "")
        else:
            target = event.src_path
        if isinstance(target, bytes):
            target = target.decode("utf-8", errors="replace")
        return bool(target) and self.is_tracked(target)

    def reset_debounce_timer(self) -> None:
        """Cancel the pending timer, if any, and start a fresh one."""
        with self._timer_lock:
            if self.debounce_timer is not None:
                self.debounce_timer.cancel()
            self.debounce_timer = threading.Timer(self.debounce_seconds, self.trigger_refresh)
            self.debounce_timer.daemon = True
            self.debounce_timer.start()

    def cancel(self) -> None:
        with self._timer_lock:
            if self.debounce_timer is not None:
                self.debounce_timer.cancel()
                self.debounce_timer = None

    def trigger_refresh(self) -> None:
        with self._timer_lock:
            self.debounce_timer = None
        logger.info("Source changes detected, refreshing index")
        try:
            self.on_change()
        except Exception as exc:
            logger.error("Index refresh callback failed: %s", exc)


class ChangeWatcher:
    """Watches a project tree and calls *on_change* after edits settle.

    Usage::

        watcher = ChangeWatcher(root, service.refresh_in_background, files.is_tracked)
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        root: Path,
        on_change: Callable[[], object],
        is_tracked: Callable[[str], bool],
        debounce_seconds: float = 0.5,
    ) -> None:
        self.root = root
        self.handler = DebounceEventHandler(on_change, is_tracked, debounce_seconds)
        self._observer: Observer | None = None

    def start(self) -> bool:
        """Start watching.  Returns False (logged) when the observer fails."""
        if self.is_active():
            return True
        try:
            observer = Observer()
            observer.schedule(self.handler, str(self.root), recursive=True)
            observer.start()
        except OSError as exc:
            logger.warning("Failed to start file watcher for %s: %s", self.root, exc)
            return False
        self._observer = observer
        logger.info("Watching %s", self.root)
        return True

    def stop(self) -> None:
        """Stop the observer and drop any pending refresh."""
        self.handler.cancel()
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5.0)
        if observer.is_alive():
            logger.warning("File watcher thread did not stop within timeout")

    def is_active(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def notify(self, path: str | Path) -> bool:
        """Report a change from outside the observer.  Returns True if counted."""
        if not self.handler.is_tracked(str(path)):
            return False
        self.handler.reset_debounce_timer()
        return True
