"""JsonIndexStore: per-directory / per-namespace JSON snapshots on disk.

Layout under the cache directory::

    ns_<namespace>.index.json   directory (or directories) declaring <namespace>
    <rel_dir>.index.json        directory without a namespace
    index.json                  project root without a namespace
    state.json                  warm-start blob of the index service

``_`` in a key is escaped (``%5F``) before separators become ``_``, so
``a_b`` and ``a/b`` get different documents.

Every write goes to a temporary file in the same directory which is then
moved over the target with ``os.replace``, so a reader sees either the
old document or the new one.  Missing or malformed documents read as None.
"""

from __future__ import annotations

import contextlib
import logging
import os
import posixpath
import tempfile
import threading
import time
from pathlib import Path

from pydantic import BaseModel, ValidationError

from zynav.index.extractor import extract_namespace, extract_with_fallback
from zynav.index.files import SourceFiles, read_source
from zynav.index.models import DirIndex, FileEntry, ServiceState, SymbolEntry

logger = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".index.json"
STATE_FILE = "state.json"


def _sanitize(key: str, separator: str) -> str:
    """File-name form of *key*: *separator* becomes ``_``.

    ``%``, ``_`` and the other slash are percent-escaped first, so distinct
    keys never share a file name (``a_b`` vs ``a/b``).
    """
    escaped = key.replace("%", "%25").replace("_", "%5F")
    escaped = escaped.replace("/", "%2F") if separator == "\\" else escaped.replace("\\", "%5C")
    return escaped.replace(separator, "_")


def _atomic_write(path: Path, model: BaseModel) -> None:
    """Serialize *model* to *path* through a temp file + ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = model.model_dump_json(by_alias=True, indent=2)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.unlink(tmp)
        raise


class JsonIndexStore:
    """Reads and writes index snapshots for one project.

    Parameters
    ----------
    files:
        Source file enumeration for the project.
    cache_dir:
        Directory holding the snapshots; created on first write.
    """

    def __init__(self, files: SourceFiles, cache_dir: Path) -> None:
        self._files = files
        self.cache_dir = cache_dir

    # ── Paths ─────────────────────────────────────────────────────────────────

    def dir_index_path(self, rel_dir: str) -> Path:
        if rel_dir in ("", "."):
            return self.cache_dir / "index.json"
        return self.cache_dir / f"{_sanitize(rel_dir, '/')}{SNAPSHOT_SUFFIX}"

    def namespace_index_path(self, namespace: str) -> Path:
        key = _sanitize(namespace, "\\")
        return self.cache_dir / f"ns_{key}{SNAPSHOT_SUFFIX}"

    @property
    def state_path(self) -> Path:
        return self.cache_dir / STATE_FILE

    def snapshot_paths(self) -> list[Path]:
        """Every snapshot document currently on disk."""
        if not self.cache_dir.is_dir():
            return []
        return sorted(
            p for p in self.cache_dir.iterdir()
            if p.name == "index.json" or p.name.endswith(SNAPSHOT_SUFFIX)
        )

    def _rel_dir(self, directory: Path) -> str:
        rel = directory.resolve().relative_to(self._files.root).as_posix()
        return "" if rel == "." else rel

    # ── Building ──────────────────────────────────────────────────────────────

    def scan_dir(
        self,
        directory: Path,
        cancel: threading.Event | None = None,
    ) -> tuple[DirIndex, str | None]:
        """Build the snapshot of one directory without writing it.

        Returns the snapshot and the directory's namespace: the first
        namespace declared by any of its files, which is also given to
        symbols of files declaring none.
        """
        texts: list[tuple[Path, str]] = []
        for path in self._files.files_in(directory):
            if cancel is not None and cancel.is_set():
                break
            text = read_source(path)
            if text is not None:
                texts.append((path, text))

        dir_namespace = next(
            (ns for ns in (extract_namespace(text) for _, text in texts) if ns),
            None,
        )

        entries: list[FileEntry] = []
        for path, text in texts:
            try:
                stat = path.stat()
            except OSError as exc:
                logger.warning("Cannot stat %s: %s", path, exc)
                continue
            symbols = extract_with_fallback(text)
            entries.append(FileEntry(
                path=self._files.relative(path),
                mtime=stat.st_mtime_ns // 1_000_000,
                size=stat.st_size,
                symbols=[SymbolEntry.from_symbol(s, dir_namespace) for s in symbols],
            ))

        index = DirIndex.build(self._rel_dir(directory), entries, int(time.time() * 1000))
        return index, dir_namespace

    def write_dir_index(self, directory: Path, cancel: threading.Event | None = None) -> Path | None:
        """Build and persist the snapshot of one directory.

        Returns the written path, or None when the directory could not be
        indexed (logged).
        """
        try:
            index, namespace = self.scan_dir(directory, cancel)
            if namespace:
                out = self.namespace_index_path(namespace)
                index = self._merge_into_namespace(out, index)
            else:
                out = self.dir_index_path(index.dir)
            _atomic_write(out, index)
        except (OSError, ValueError) as exc:
            logger.warning("Build dir index failed for %s: %s", directory, exc)
            return None
        logger.debug(
            "Wrote %s: %d files, %d symbols",
            out.name, index.summary.file_count, index.summary.symbol_count,
        )
        return out

    def _merge_into_namespace(self, out: Path, index: DirIndex) -> DirIndex:
        """*index* plus the files other directories keep in the ``ns_`` document."""
        existing = self._read(out, DirIndex)
        if existing is None:
            return index
        others = [
            entry for entry in existing.files
            if posixpath.dirname(entry.path) != index.dir
        ]
        if not others:
            return index
        files = sorted(others + index.files, key=lambda entry: entry.path)
        return DirIndex.build(existing.dir, files, index.generated_at)

    def build_all_dir_indexes(self, cancel: threading.Event | None = None) -> list[Path]:
        """Rebuild every snapshot of the project.

        Visits the root and each directory holding a source file.
        Directories sharing a namespace end up in one ``ns_`` document.
        Snapshots from earlier passes that were not rewritten are deleted,
        unless the pass was cancelled.
        """
        grouped: dict[Path, DirIndex] = {}
        for directory in self._files.source_dirs(cancel):
            if cancel is not None and cancel.is_set():
                logger.debug("Snapshot build cancelled")
                break
            try:
                index, namespace = self.scan_dir(directory, cancel)
            except (OSError, ValueError) as exc:
                logger.warning("Error processing directory %s: %s", directory, exc)
                continue
            out = self.namespace_index_path(namespace) if namespace else self.dir_index_path(index.dir)
            previous = grouped.get(out)
            if previous is not None:
                index = DirIndex.build(previous.dir, previous.files + index.files, index.generated_at)
            grouped[out] = index

        written: list[Path] = []
        for out, index in grouped.items():
            try:
                _atomic_write(out, index)
            except OSError as exc:
                logger.warning("Cannot write %s: %s", out, exc)
                continue
            written.append(out)

        if cancel is None or not cancel.is_set():
            keep = set(written)
            for stale in self.snapshot_paths():
                if stale not in keep:
                    with contextlib.suppress(OSError):
                        stale.unlink()
                        logger.debug("Removed stale snapshot %s", stale.name)

        logger.info("Wrote %d index snapshots to %s", len(written), self.cache_dir)
        return written

    # ── Reading ───────────────────────────────────────────────────────────────

    def read_dir_index(self, rel_dir: str) -> DirIndex | None:
        return self._read(self.dir_index_path(rel_dir), DirIndex)

    def read_namespace_index(self, namespace: str) -> DirIndex | None:
        return self._read(self.namespace_index_path(namespace), DirIndex)

    def _read(self, path: Path, model: type[BaseModel]):
        if not path.exists():
            return None
        try:
            return model.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.debug("Read index failed: %s (%s)", path, exc)
            return None

    # ── Service state ─────────────────────────────────────────────────────────

    def load_state(self) -> ServiceState | None:
        return self._read(self.state_path, ServiceState)

    def save_state(self, state: ServiceState) -> None:
        try:
            _atomic_write(self.state_path, state)
        except OSError as exc:
            logger.warning("Cannot save index state: %s", exc)
