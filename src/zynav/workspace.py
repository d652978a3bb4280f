"""Workspace: one index service, resolver and watcher per project."""

from __future__ import annotations

import logging
from pathlib import Path

from zynav.core.config import ZynavConfig, load_config
from zynav.index.service import IndexStats, SymbolIndexService
from zynav.index.watcher import ChangeWatcher
from zynav.navigation.locations import DefinitionLocation
from zynav.navigation.resolver import ResolutionEngine

logger = logging.getLogger(__name__)


class Workspace:
    """Owns the per-project services.

    Usage::

        with Workspace(Path("my-project")) as ws:
            for loc in ws.goto_declaration(text, offset, "app/main.zy"):
                print(loc.display_label, loc.location_string())
    """

    def __init__(self, project_dir: Path, config: ZynavConfig | None = None) -> None:
        self.project_dir = project_dir.resolve()
        self.config = config or load_config(self.project_dir)
        self.service = SymbolIndexService(self.project_dir, self.config.index)
        self.engine = ResolutionEngine(self.service)
        self.watcher = ChangeWatcher(
            self.project_dir,
            on_change=lambda: self.service.refresh_in_background(force=True),
            is_tracked=self.service.files.is_tracked,
            debounce_seconds=self.config.watcher.debounce_seconds,
        )
        self._opened = False

    def open(self, watch: bool | None = None, wait: bool = False) -> None:
        """Load saved state, schedule a refresh and start the watcher.

        *watch* overrides ``config.watcher.enabled``; with *wait* the first
        refresh completes before returning.
        """
        if self._opened:
            return
        self.service.warm_up()
        future = self.service.refresh_in_background(force=True)
        if wait:
            future.result()
        if self.config.watcher.enabled if watch is None else watch:
            self.watcher.start()
        self._opened = True

    def goto_declaration(
        self,
        file_text: str,
        offset: int,
        file_path: str | Path | None = None,
    ) -> list[DefinitionLocation]:
        return self.engine.resolve(file_text, offset, file_path)

    def reindex(self) -> IndexStats:
        """Force a full rebuild of the index."""
        self.service.rebuild()
        return self.service.stats()

    def close(self) -> None:
        self.watcher.stop()
        self.service.shutdown()
        self._opened = False

    def __enter__(self) -> "Workspace":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
