"""Tests for SymbolIndexService refresh, queries and persistence."""

from __future__ import annotations

import os
import threading
from unittest.mock import patch

import pytest

from zynav.core.config import IndexConfig
from zynav.index.service import ServiceStatus, SymbolIndexService, matches_path_hint


class _CancelAfter(threading.Event):
    """An event that reports itself set after *checks* negative answers."""

    def __init__(self, checks: int) -> None:
        super().__init__()
        self._left = checks

    def is_set(self) -> bool:
        if self._left <= 0:
            return True
        self._left -= 1
        return False


def _touch(path, text: str | None = None) -> None:
    """Rewrite *path* (optionally) and move its mtime forward."""
    if text is not None:
        path.write_text(text, encoding="utf-8")
    stat = path.stat()
    later = stat.st_mtime + 5
    os.utime(path, (later, later))


@pytest.fixture
def service(tmp_project, index_config):
    svc = SymbolIndexService(tmp_project, index_config)
    yield svc
    svc.shutdown()


# ── Path hints ────────────────────────────────────────────────────────────────


class TestMatchesPathHint:
    def test_directory_segment(self) -> None:
        assert matches_path_hint("model/Users.zy", "model")

    def test_file_stem(self) -> None:
        assert matches_path_hint("model/Users.zy", "Users")

    def test_namespace_style_hint(self) -> None:
        assert matches_path_hint("model/Users.zy", "Model\\Users")

    def test_partial_segment_does_not_match(self) -> None:
        assert not matches_path_hint("model/Users.zy", "ode")
        assert not matches_path_hint("model/Users.zy", "User")


# ── Refresh ───────────────────────────────────────────────────────────────────


class TestRefresh:
    def test_first_refresh_indexes_everything(self, service) -> None:
        assert service.ensure_up_to_date() is True
        assert service.status is ServiceStatus.WARM
        assert service.indexed_files() == ["logic/Users.zy", "model/Users.zy"]
        assert service.generation == 1

    def test_refresh_without_changes_is_idempotent(self, service) -> None:
        service.ensure_up_to_date()
        assert service.ensure_up_to_date(force=True) is False
        assert service.generation == 1

    def test_changed_file_is_reindexed_incrementally(self, service, tmp_project) -> None:
        service.ensure_up_to_date()
        path = tmp_project / "logic" / "Users.zy"
        _touch(path, path.read_text(encoding="utf-8") + "function extra() {}\n")
        with patch.object(service, "_full_rebuild") as full:
            assert service.ensure_up_to_date(force=True) is True
        full.assert_not_called()
        assert [loc.file_path for loc in service.find_definitions("extra")] == ["logic/Users.zy"]
        assert service.generation == 2

    def test_new_file_is_picked_up(self, service, tmp_project, write_file) -> None:
        service.ensure_up_to_date()
        write_file(tmp_project, "util/helpers.zy", "function helper() {}")
        service.ensure_up_to_date(force=True)
        assert [loc.file_path for loc in service.find_definitions("helper")] == ["util/helpers.zy"]

    def test_deleted_file_is_dropped(self, service, tmp_project) -> None:
        service.ensure_up_to_date()
        assert service.store.namespace_index_path("Logic").exists()
        (tmp_project / "logic" / "Users.zy").unlink()
        assert service.ensure_up_to_date(force=True) is True
        assert service.find_definitions("$name") == []
        assert [loc.file_path for loc in service.find_definitions("Users")] == ["model/Users.zy"]
        assert "logic/Users.zy" not in service.indexed_files()
        assert not service.store.namespace_index_path("Logic").exists()

    def test_many_changes_trigger_full_rebuild(self, tmp_project) -> None:
        config = IndexConfig(throttle_seconds=0, full_rebuild_min_changes=0, full_rebuild_ratio=0.0)
        svc = SymbolIndexService(tmp_project, config)
        try:
            svc.ensure_up_to_date()
            _touch(tmp_project / "model" / "Users.zy")
            with patch.object(svc, "_full_rebuild", wraps=svc._full_rebuild) as full:
                svc.ensure_up_to_date(force=True)
            full.assert_called_once()
        finally:
            svc.shutdown()

    def test_throttle_skips_recent_checks(self, tmp_project, write_file) -> None:
        svc = SymbolIndexService(tmp_project, IndexConfig(throttle_seconds=600))
        try:
            svc.ensure_up_to_date()
            write_file(tmp_project, "late.zy", "function late() {}")
            assert svc.ensure_up_to_date() is False
            assert svc.find_definitions("late") == []
            assert svc.ensure_up_to_date(force=True) is True
            assert len(svc.find_definitions("late")) == 1
        finally:
            svc.shutdown()

    def test_failure_is_logged_not_raised(self, service) -> None:
        with patch.object(service.files, "timestamps", side_effect=RuntimeError("boom")):
            assert service.ensure_up_to_date() is False
        assert service.status is ServiceStatus.COLD

    def test_snapshots_and_state_written(self, service) -> None:
        service.ensure_up_to_date()
        assert service.store.namespace_index_path("Model").exists()
        assert service.store.state_path.exists()

    def test_missing_snapshots_rebuilt_when_warm(self, service) -> None:
        service.ensure_up_to_date()
        for path in service.store.snapshot_paths():
            path.unlink()
        assert service.ensure_up_to_date(force=True) is False
        assert service.store.namespace_index_path("Model").exists()

    def test_background_refresh(self, service) -> None:
        future = service.refresh_in_background(force=True)
        assert future.result(timeout=10) is True
        assert service.stats().file_count == 2


# ── Cancellation ──────────────────────────────────────────────────────────────


class TestCancellation:
    def test_cancelled_scan_changes_nothing(self, service) -> None:
        assert service.ensure_up_to_date(cancel=_CancelAfter(1)) is False
        assert service.status is ServiceStatus.COLD
        assert service.indexed_files() == []

    def test_cancelled_rebuild_keeps_partial_result(self, service) -> None:
        count = service.rebuild(cancel=_CancelAfter(1))
        assert count == 1
        assert service.indexed_files() == ["logic/Users.zy"]

    def test_rebuild_counts_files(self, service) -> None:
        assert service.rebuild() == 2
        assert service.generation == 1


# ── Queries ───────────────────────────────────────────────────────────────────


class TestQueries:
    def test_find_definitions_all(self, service) -> None:
        paths = sorted(loc.file_path for loc in service.find_definitions("Users"))
        assert paths == ["logic/Users.zy", "model/Users.zy"]

    def test_locations_carry_kind_and_fqn(self, service) -> None:
        (loc,) = service.find_definitions("$age")
        assert loc.kind == "property"
        assert loc.fqn == "Model\\Users::$age"
        assert loc.namespace == "Model"

    def test_hint_narrows_results(self, service) -> None:
        locs = service.find_definitions("Users", preferred_path_hint="model")
        assert [loc.file_path for loc in locs] == ["model/Users.zy"]

    def test_unmatched_hint_returns_everything(self, service) -> None:
        assert len(service.find_definitions("Users", preferred_path_hint="nowhere")) == 2

    def test_unknown_name(self, service) -> None:
        assert service.find_definitions("Nobody") == []

    def test_returned_list_is_a_copy(self, service) -> None:
        first = service.find_definitions("age")
        first.clear()
        assert len(service.find_definitions("age")) == 2

    def test_refresh_during_query_does_not_cache_old_result(self, service, tmp_project, write_file) -> None:
        from zynav.index import service as service_module

        real = service_module.matches_path_hint
        refreshed: list[bool] = []

        def refresh_midway(*args, **kwargs):
            if not refreshed:
                refreshed.append(True)
                write_file(tmp_project, "extra/Users.zy", "namespace Extra;\nclass Users {}\n")
                service.ensure_up_to_date(force=True)
            return real(*args, **kwargs)

        with patch("zynav.index.service.matches_path_hint", side_effect=refresh_midway):
            service.find_definitions("Users", "nomatch")

        assert "extra/Users.zy" in service.indexed_files()
        paths = {loc.file_path for loc in service.find_definitions("Users", "nomatch")}
        assert "extra/Users.zy" in paths

    def test_locations_in_file(self, service) -> None:
        service.ensure_up_to_date()
        names = sorted(name for name, _ in service.locations_in_file("model/Users.zy"))
        assert names == ["$age", "Users", "age"]

    def test_stats(self, service) -> None:
        service.ensure_up_to_date()
        stats = service.stats()
        assert stats.status is ServiceStatus.WARM
        assert stats.file_count == 2
        assert stats.name_count == 4  # Users, age, $age, $name
        assert stats.location_count == 6
        assert stats.last_full_scan_ms > 0


# ── Warm start ────────────────────────────────────────────────────────────────


class TestWarmUp:
    def test_without_state(self, service) -> None:
        assert service.warm_up() is False
        assert service.store.cache_dir.is_dir()
        assert service.status is ServiceStatus.COLD

    def test_loads_saved_state(self, tmp_project, index_config) -> None:
        first = SymbolIndexService(tmp_project, index_config)
        first.ensure_up_to_date()
        first.shutdown()

        second = SymbolIndexService(tmp_project, index_config)
        try:
            assert second.warm_up() is True
            assert second.status is ServiceStatus.WARM
            assert len(second.find_definitions("Users")) == 2
            assert second.generation == 0
        finally:
            second.shutdown()

    def test_changes_since_save_are_applied(self, tmp_project, index_config) -> None:
        first = SymbolIndexService(tmp_project, index_config)
        first.ensure_up_to_date()
        first.shutdown()
        (tmp_project / "model" / "Users.zy").unlink()

        second = SymbolIndexService(tmp_project, index_config)
        try:
            second.warm_up()
            assert [loc.file_path for loc in second.find_definitions("Users")] == ["logic/Users.zy"]
        finally:
            second.shutdown()
