"""SymbolIndexService: the in-memory symbol map queried by navigation.

Owns ``name → [SymbolLocation]`` plus the ``path → mtime`` table it was
built from.  ``ensure_up_to_date`` diffs the table against the disk and
either patches the changed files in or rebuilds from scratch:

  removed + changed <= max(min_changes, ratio * files)  → incremental
  otherwise                                             → full rebuild

After any change the JSON snapshots are regenerated, the warm-start state
is saved and the query cache is dropped.  Refreshes are throttled and
serialized by one re-entrant lock; queries read a copy of the location
list.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from zynav.core.config import IndexConfig
from zynav.index.extractor import extract_with_fallback
from zynav.index.files import SourceFiles, mtime_ms, read_source
from zynav.index.models import LocationEntry, ServiceState
from zynav.index.schema import SymbolLocation
from zynav.index.store import JsonIndexStore

logger = logging.getLogger(__name__)


class ServiceStatus(str, Enum):
    COLD = "cold"
    WARM = "warm"


@dataclass(frozen=True)
class IndexStats:
    """Counts reported by ``SymbolIndexService.stats``."""

    status: ServiceStatus
    file_count: int
    name_count: int
    location_count: int
    last_full_scan_ms: int


def matches_path_hint(file_path: str, hint: str, extension: str = ".zy") -> bool:
    """True when *hint* names a path segment (or the file stem) of *file_path*."""
    pref = "/" + hint.replace("\\", "/").strip("/").lower()
    path = "/" + file_path.lower()
    return path.endswith(pref + extension) or (pref + "/") in path


class SymbolIndexService:
    """Incrementally maintained symbol index for one project.

    Parameters
    ----------
    project_dir:
        Root of the project to index.
    config:
        Index settings; defaults to ``IndexConfig()``.
    """

    def __init__(self, project_dir: Path, config: IndexConfig | None = None) -> None:
        self._config = config or IndexConfig()
        self.files = SourceFiles(
            project_dir,
            extension=self._config.extension,
            skip_dirs=self._config.skip_dirs,
            max_file_size_kb=self._config.max_file_size_kb,
        )
        self.store = JsonIndexStore(self.files, self.files.root / self._config.cache_dir)

        self._lock = threading.RLock()
        self._symbols: dict[str, list[SymbolLocation]] = {}
        self._timestamps: dict[str, int] = {}
        self._last_full_scan_ms = 0
        self._last_check: float | None = None
        self._status = ServiceStatus.COLD
        self._query_cache: dict[tuple[str, str | None], list[SymbolLocation]] = {}
        self._shutdown = threading.Event()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="zynav-index")
        self.generation = 0  # bumped on every map change

    @property
    def status(self) -> ServiceStatus:
        return self._status

    @property
    def project_dir(self) -> Path:
        return self.files.root

    # ── Public: lifecycle ─────────────────────────────────────────────────────

    def warm_up(self) -> bool:
        """Create the cache directory and load the persisted state, if any.

        Returns True when a saved state was loaded.
        """
        try:
            self.store.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Cannot create index directory %s: %s", self.store.cache_dir, exc)
        state = self.store.load_state()
        if state is None:
            return False
        with self._lock:
            self._symbols = {
                name: [entry.to_location() for entry in entries]
                for name, entries in state.symbol_to_locations.items()
            }
            self._timestamps = dict(state.file_timestamps)
            self._last_full_scan_ms = state.last_full_scan_ms
            self._status = ServiceStatus.WARM
            self._query_cache.clear()
        logger.info(
            "Loaded index state: %d files, %d names", len(self._timestamps), len(self._symbols),
        )
        return True

    def refresh_in_background(self, force: bool = False) -> Future:
        """Run ``ensure_up_to_date`` on the index worker thread."""
        return self._executor.submit(self.ensure_up_to_date, force)

    def shutdown(self) -> None:
        """Cancel running work and stop the worker thread."""
        self._shutdown.set()
        self._executor.shutdown(wait=True)

    # ── Public: refresh ───────────────────────────────────────────────────────

    def ensure_up_to_date(
        self,
        force: bool = False,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Bring the index in line with the disk.  Returns True if it changed.

        Calls within ``throttle_seconds`` of the previous one return at once
        unless *force* is set.  Errors are logged and leave the previous
        state in place.
        """
        cancel = cancel or self._shutdown
        with self._lock:
            now = time.monotonic()
            if (
                not force
                and self._last_check is not None
                and now - self._last_check < self._config.throttle_seconds
            ):
                return False
            self._last_check = now
            try:
                return self._refresh(cancel)
            except Exception as exc:
                logger.warning("Index refresh failed: %s", exc)
                return False

    def rebuild(self, cancel: threading.Event | None = None) -> int:
        """Discard the map and re-index every file.  Returns the file count."""
        cancel = cancel or self._shutdown
        with self._lock:
            self._last_check = time.monotonic()
            try:
                self._full_rebuild(cancel)
            except Exception as exc:
                logger.warning("Index rebuild failed: %s", exc)
                return len(self._timestamps)
            self._after_change(cancel)
            return len(self._timestamps)

    # ── Public: queries ───────────────────────────────────────────────────────

    def find_definitions(self, name: str, preferred_path_hint: str | None = None) -> list[SymbolLocation]:
        """Locations of symbols called *name*.

        With a *preferred_path_hint*, locations whose path contains the hint
        as a segment are returned if there are any; otherwise all of them.
        """
        self.ensure_up_to_date()
        key = (name, preferred_path_hint)
        with self._lock:
            cached = self._query_cache.get(key)
            if cached is not None:
                return list(cached)
            generation = self.generation
            locations = list(self._symbols.get(name, ()))
        if preferred_path_hint and locations:
            preferred = [
                loc for loc in locations
                if matches_path_hint(loc.file_path, preferred_path_hint, self.files.extension)
            ]
            if preferred:
                locations = preferred
        with self._lock:
            # Only cache a result computed from the current map.
            if self.generation == generation:
                self._query_cache[key] = list(locations)
        return locations

    def locations_in_file(self, file_path: str) -> list[tuple[str, SymbolLocation]]:
        """``(name, location)`` pairs of every symbol indexed for *file_path*."""
        with self._lock:
            return [
                (name, loc)
                for name, locs in self._symbols.items()
                for loc in locs
                if loc.file_path == file_path
            ]

    def indexed_files(self) -> list[str]:
        with self._lock:
            return sorted(self._timestamps)

    def stats(self) -> IndexStats:
        with self._lock:
            return IndexStats(
                status=self._status,
                file_count=len(self._timestamps),
                name_count=len(self._symbols),
                location_count=sum(len(v) for v in self._symbols.values()),
                last_full_scan_ms=self._last_full_scan_ms,
            )

    # ── Internal: refresh ─────────────────────────────────────────────────────

    def _refresh(self, cancel: threading.Event) -> bool:
        current = self.files.timestamps(cancel)
        if current is None:
            return False

        if self._status is ServiceStatus.WARM and current == self._timestamps:
            if not self.store.snapshot_paths():
                self.store.build_all_dir_indexes(cancel)
            return False

        removed = self._timestamps.keys() - current.keys()
        changed = {path for path, mtime in current.items() if self._timestamps.get(path) != mtime}
        threshold = max(
            self._config.full_rebuild_min_changes,
            int(len(current) * self._config.full_rebuild_ratio),
        )

        if self._status is ServiceStatus.COLD or len(removed) + len(changed) > threshold:
            logger.info(
                "Full index rebuild (%d removed, %d changed, %d files)",
                len(removed), len(changed), len(current),
            )
            self._full_rebuild(cancel)
        else:
            self._incremental(removed, changed, current, cancel)

        self._after_change(cancel)
        return True

    def _full_rebuild(self, cancel: threading.Event) -> None:
        symbols: dict[str, list[SymbolLocation]] = {}
        timestamps: dict[str, int] = {}
        for path in self.files.iter_files(cancel):
            rel = self.files.relative(path)
            indexed = self._index_file(rel)
            if indexed is None:
                continue
            mtime, locations = indexed
            timestamps[rel] = mtime
            for name, loc in locations:
                symbols.setdefault(name, []).append(loc)
        if cancel.is_set():
            logger.debug("Rebuild cancelled after %d files", len(timestamps))

        self._symbols = symbols
        self._timestamps = timestamps
        self._last_full_scan_ms = int(time.time() * 1000)
        self._status = ServiceStatus.WARM

    def _incremental(
        self,
        removed: set[str],
        changed: set[str],
        current: dict[str, int],
        cancel: threading.Event,
    ) -> None:
        stale = removed | changed
        symbols: dict[str, list[SymbolLocation]] = {}
        for name, locs in self._symbols.items():
            kept = [loc for loc in locs if loc.file_path not in stale]
            if kept:
                symbols[name] = kept
        timestamps = {p: m for p, m in self._timestamps.items() if p not in stale}

        for rel in sorted(changed):
            if cancel.is_set():
                logger.debug("Incremental update cancelled")
                break
            indexed = self._index_file(rel)
            if indexed is None:
                continue
            mtime, locations = indexed
            timestamps[rel] = mtime
            for name, loc in locations:
                symbols.setdefault(name, []).append(loc)

        self._symbols = symbols
        self._timestamps = timestamps
        self._status = ServiceStatus.WARM
        logger.info("Incremental index: removed=%d changed=%d", len(removed), len(changed))

    def _index_file(self, rel: str) -> tuple[int, list[tuple[str, SymbolLocation]]] | None:
        path = self.files.absolute(rel)
        try:
            mtime = mtime_ms(path)
        except OSError as exc:
            logger.debug("Cannot stat %s: %s", path, exc)
            return None
        text = read_source(path)
        if text is None:
            return None
        locations = [
            (
                sym.name,
                SymbolLocation(
                    file_path=rel,
                    offset=sym.offset,
                    kind=sym.kind.value,
                    namespace=sym.namespace,
                    fqn=sym.fqn,
                ),
            )
            for sym in extract_with_fallback(text)
        ]
        return mtime, locations

    def _after_change(self, cancel: threading.Event) -> None:
        self.generation += 1
        self._query_cache.clear()
        self.store.build_all_dir_indexes(cancel)
        self.store.save_state(self._snapshot_state())

    def _snapshot_state(self) -> ServiceState:
        return ServiceState(
            symbol_to_locations={
                name: [LocationEntry.from_location(loc) for loc in locs]
                for name, locs in self._symbols.items()
            },
            file_timestamps=dict(self._timestamps),
            last_full_scan_ms=self._last_full_scan_ms,
        )
