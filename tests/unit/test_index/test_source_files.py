"""Tests for SourceFiles enumeration."""

from __future__ import annotations

import os
import threading

from zynav.index.files import SourceFiles, mtime_ms, read_source


class TestEnumeration:
    def test_only_tracked_extension(self, tmp_project) -> None:
        files = SourceFiles(tmp_project)
        rels = [files.relative(p) for p in files.iter_files()]
        assert rels == ["logic/Users.zy", "model/Users.zy"]

    def test_extension_case_insensitive(self, tmp_path, write_file) -> None:
        write_file(tmp_path, "A.ZY", "class A {}")
        files = SourceFiles(tmp_path)
        assert [p.name for p in files.iter_files()] == ["A.ZY"]

    def test_skip_dirs(self, tmp_path, write_file) -> None:
        write_file(tmp_path, "src/a.zy", "")
        write_file(tmp_path, "node_modules/lib/b.zy", "")
        write_file(tmp_path, ".zynav/index/c.zy", "")
        files = SourceFiles(tmp_path)
        assert [files.relative(p) for p in files.iter_files()] == ["src/a.zy"]

    def test_large_files_skipped(self, tmp_path, write_file) -> None:
        write_file(tmp_path, "big.zy", "x" * 2048)
        write_file(tmp_path, "small.zy", "x")
        files = SourceFiles(tmp_path, max_file_size_kb=1)
        assert [p.name for p in files.iter_files()] == ["small.zy"]

    def test_files_in_is_not_recursive(self, tmp_path, write_file) -> None:
        write_file(tmp_path, "a.zy", "")
        write_file(tmp_path, "sub/b.zy", "")
        files = SourceFiles(tmp_path)
        assert [p.name for p in files.files_in(files.root)] == ["a.zy"]

    def test_files_in_missing_dir(self, tmp_path) -> None:
        assert SourceFiles(tmp_path).files_in(tmp_path / "gone") == []

    def test_source_dirs_include_root(self, tmp_project) -> None:
        files = SourceFiles(tmp_project)
        dirs = [files.relative(d) for d in files.source_dirs()]
        assert dirs == [".", "logic", "model"]

    def test_cancelled_iteration_stops(self, tmp_project) -> None:
        cancel = threading.Event()
        cancel.set()
        assert list(SourceFiles(tmp_project).iter_files(cancel)) == []


class TestTimestamps:
    def test_values_are_milliseconds(self, tmp_project) -> None:
        path = tmp_project / "model" / "Users.zy"
        os.utime(path, (1_700_000_000.5, 1_700_000_000.5))
        stamps = SourceFiles(tmp_project).timestamps()
        assert stamps["model/Users.zy"] == 1_700_000_000_500
        assert mtime_ms(path) == 1_700_000_000_500

    def test_cancelled_returns_none(self, tmp_project) -> None:
        cancel = threading.Event()
        cancel.set()
        assert SourceFiles(tmp_project).timestamps(cancel) is None


class TestIsTracked:
    def test_tracked(self, tmp_project) -> None:
        files = SourceFiles(tmp_project)
        assert files.is_tracked(tmp_project / "model" / "Users.zy")
        assert files.is_tracked("anywhere/Else.zy")

    def test_not_tracked(self, tmp_project) -> None:
        files = SourceFiles(tmp_project)
        assert not files.is_tracked(tmp_project / "README.md")
        assert not files.is_tracked(tmp_project / ".git" / "x.zy")


class TestReadSource:
    def test_reads_text(self, tmp_path, write_file) -> None:
        path = write_file(tmp_path, "a.zy", "class A {}")
        assert read_source(path) == "class A {}"

    def test_missing_returns_none(self, tmp_path) -> None:
        assert read_source(tmp_path / "missing.zy") is None
