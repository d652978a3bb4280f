"""Enumeration of ZY source files under a project root."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_SKIP_DIRS = frozenset({
    ".git", ".idea", ".zynav", "node_modules", "__pycache__",
    "venv", ".venv", "dist", "build",
})


def mtime_ms(path: Path) -> int:
    """Modification time in whole milliseconds.  Raises ``OSError``."""
    return path.stat().st_mtime_ns // 1_000_000


def read_source(path: Path) -> str | None:
    """Read a source file, or None (logged) when it cannot be read."""
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.warning("Cannot read %s: %s", path, exc)
        return None


class SourceFiles:
    """Finds the source files the index tracks.

    Parameters
    ----------
    root:
        Project root; every path handed out by ``relative`` is relative to it.
    extension:
        Tracked file extension, including the dot.
    skip_dirs:
        Directory names never descended into.
    max_file_size_kb:
        Files larger than this are skipped.
    """

    def __init__(
        self,
        root: Path,
        extension: str = ".zy",
        skip_dirs: Iterable[str] = DEFAULT_SKIP_DIRS,
        max_file_size_kb: int = 1024,
    ) -> None:
        self.root = root.resolve()
        self.extension = extension.lower()
        self._skip_dirs = frozenset(skip_dirs)
        self._max_bytes = max_file_size_kb * 1024

    def relative(self, path: Path) -> str:
        return path.resolve().relative_to(self.root).as_posix()

    def absolute(self, rel: str) -> Path:
        return self.root / rel

    def is_tracked(self, path: str | Path) -> bool:
        """True for paths carrying the tracked extension outside skipped dirs."""
        p = Path(path)
        if p.suffix.lower() != self.extension:
            return False
        try:
            parts = p.resolve().relative_to(self.root).parts
        except ValueError:
            parts = p.parts
        return not any(part in self._skip_dirs for part in parts[:-1])

    # ── Enumeration ───────────────────────────────────────────────────────────

    def iter_files(self, cancel: threading.Event | None = None) -> Iterator[Path]:
        """Yield tracked files in sorted order.  Stops early when *cancel* is set."""
        try:
            candidates = sorted(
                p for p in self.root.rglob("*") if p.suffix.lower() == self.extension
            )
        except OSError as exc:
            logger.warning("Error scanning project dir: %s", exc)
            return
        for path in candidates:
            if cancel is not None and cancel.is_set():
                return
            if self._accept(path):
                yield path

    def files_in(self, directory: Path) -> list[Path]:
        """Tracked files directly inside *directory* (non-recursive)."""
        try:
            children = sorted(directory.iterdir())
        except OSError as exc:
            logger.warning("Cannot list %s: %s", directory, exc)
            return []
        return [p for p in children if p.suffix.lower() == self.extension and self._accept(p)]

    def source_dirs(self, cancel: threading.Event | None = None) -> list[Path]:
        """The root plus every directory holding at least one tracked file."""
        dirs = {self.root}
        for path in self.iter_files(cancel):
            dirs.add(path.parent)
        return sorted(dirs)

    def timestamps(self, cancel: threading.Event | None = None) -> dict[str, int] | None:
        """``{relative path: mtime_ms}`` for every tracked file.

        Returns None when *cancel* fires mid-walk: a partial listing cannot
        tell a removed file from one that was not visited yet.
        """
        result: dict[str, int] = {}
        for path in self.iter_files(cancel):
            try:
                result[self.relative(path)] = mtime_ms(path)
            except OSError:
                continue
        if cancel is not None and cancel.is_set():
            logger.debug("Timestamp collection cancelled after %d files", len(result))
            return None
        return result

    def _accept(self, path: Path) -> bool:
        try:
            rel_parts = path.relative_to(self.root).parts
        except ValueError:
            return False
        if any(part in self._skip_dirs for part in rel_parts[:-1]):
            return False
        if not path.is_file():
            return False
        try:
            if path.stat().st_size > self._max_bytes:
                logger.debug("Skipping large file: %s", path)
                return False
        except OSError:
            return False
        return True
