"""Tests for the debounced change watcher."""

from __future__ import annotations

import threading
import time
from unittest.mock import MagicMock

from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from zynav.index.files import SourceFiles
from zynav.index.watcher import ChangeWatcher, DebounceEventHandler


def _is_zy(path: str) -> bool:
    return path.endswith(".zy")


class TestEventFiltering:
    def test_tracked_file_counts(self) -> None:
        handler = DebounceEventHandler(MagicMock(), _is_zy)
        assert handler.should_process_event(FileModifiedEvent("/p/a.zy"))

    def test_other_extension_ignored(self) -> None:
        handler = DebounceEventHandler(MagicMock(), _is_zy)
        assert not handler.should_process_event(FileModifiedEvent("/p/a.txt"))

    def test_directory_ignored(self) -> None:
        handler = DebounceEventHandler(MagicMock(), _is_zy)
        assert not handler.should_process_event(DirModifiedEvent("/p/sub.zy"))

    def test_move_uses_destination(self) -> None:
        handler = DebounceEventHandler(MagicMock(), _is_zy)
        assert handler.should_process_event(FileMovedEvent("/p/a.tmp", "/p/a.zy"))
        assert not handler.should_process_event(FileMovedEvent("/p/a.zy", "/p/a.bak"))

    def test_bytes_paths_decoded(self) -> None:
        handler = DebounceEventHandler(MagicMock(), _is_zy)
        assert handler.should_process_event(FileCreatedEvent(b"/p/a.zy"))


class TestDebounce:
    def test_burst_collapses_into_one_call(self) -> None:
        fired = threading.Event()
        callback = MagicMock(side_effect=lambda: fired.set())
        handler = DebounceEventHandler(callback, _is_zy, debounce_seconds=0.1)

        for _ in range(5):
            handler.on_any_event(FileModifiedEvent("/p/a.zy"))
        assert fired.wait(timeout=5)
        time.sleep(0.3)
        assert callback.call_count == 1

    def test_ignored_events_never_fire(self) -> None:
        callback = MagicMock()
        handler = DebounceEventHandler(callback, _is_zy, debounce_seconds=0.05)
        handler.on_any_event(FileModifiedEvent("/p/a.md"))
        time.sleep(0.2)
        callback.assert_not_called()
        assert handler.debounce_timer is None

    def test_cancel_drops_pending_call(self) -> None:
        callback = MagicMock()
        handler = DebounceEventHandler(callback, _is_zy, debounce_seconds=0.2)
        handler.on_any_event(FileModifiedEvent("/p/a.zy"))
        handler.cancel()
        time.sleep(0.4)
        callback.assert_not_called()

    def test_callback_errors_are_contained(self) -> None:
        handler = DebounceEventHandler(MagicMock(side_effect=RuntimeError("boom")), _is_zy)
        handler.trigger_refresh()
        assert handler.debounce_timer is None


class TestChangeWatcher:
    def test_notify_filters_paths(self, tmp_path) -> None:
        fired = threading.Event()
        watcher = ChangeWatcher(tmp_path, fired.set, _is_zy, debounce_seconds=0.05)
        assert watcher.notify("README.md") is False
        assert watcher.notify(tmp_path / "a.zy") is True
        assert fired.wait(timeout=5)

    def test_start_and_stop(self, tmp_path) -> None:
        watcher = ChangeWatcher(tmp_path, MagicMock(), _is_zy)
        assert watcher.start() is True
        try:
            assert watcher.is_active()
            assert watcher.start() is True
        finally:
            watcher.stop()
        assert not watcher.is_active()

    def test_stop_without_start(self, tmp_path) -> None:
        ChangeWatcher(tmp_path, MagicMock(), _is_zy).stop()

    def test_observes_real_edits(self, tmp_path) -> None:
        files = SourceFiles(tmp_path)
        fired = threading.Event()
        watcher = ChangeWatcher(files.root, fired.set, files.is_tracked, debounce_seconds=0.05)
        assert watcher.start()
        try:
            (files.root / "ignored.txt").write_text("x", encoding="utf-8")
            (files.root / "a.zy").write_text("class A {}", encoding="utf-8")
            assert fired.wait(timeout=10)
        finally:
            watcher.stop()
