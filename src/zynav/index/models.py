"""Pydantic models for the persisted index documents.

Field names on disk are camelCase (``generatedAt``, ``symbolToLocations``);
Python code uses the snake_case attribute names.  Always dump with
``by_alias=True``.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from zynav.index.schema import Symbol, SymbolKind, SymbolLocation

FORMAT_VERSION = 1


class _Persisted(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ── DirIndex ──────────────────────────────────────────────────────────────────


class SymbolEntry(_Persisted):
    """One symbol as stored inside a ``FileEntry``."""

    kind: SymbolKind
    name: str
    offset: int = Field(..., ge=0)
    namespace: str | None = None
    fqn: str | None = None

    @classmethod
    def from_symbol(cls, symbol: Symbol, namespace: str | None = None) -> "SymbolEntry":
        """Build an entry, filling in *namespace* when the symbol has none."""
        if symbol.namespace is None and namespace:
            return cls(
                kind=symbol.kind,
                name=symbol.name,
                offset=symbol.offset,
                namespace=namespace,
                fqn=f"{namespace}\\{symbol.fqn}",
            )
        return cls(
            kind=symbol.kind,
            name=symbol.name,
            offset=symbol.offset,
            namespace=symbol.namespace,
            fqn=symbol.fqn,
        )


class FileEntry(_Persisted):
    """One indexed source file."""

    path: str           # project-relative, forward slashes
    mtime: int          # milliseconds since the epoch
    size: int = 0
    symbols: list[SymbolEntry] = Field(default_factory=list)


class IndexSummary(_Persisted):
    file_count: int = Field(default=0, alias="fileCount")
    symbol_count: int = Field(default=0, alias="symbolCount")


class DirIndex(_Persisted):
    """Snapshot of one directory, or of every directory sharing a namespace."""

    version: int = FORMAT_VERSION
    dir: str
    generated_at: int = Field(default=0, alias="generatedAt")
    summary: IndexSummary = Field(default_factory=IndexSummary)
    files: list[FileEntry] = Field(default_factory=list)

    @classmethod
    def build(cls, directory: str, files: list[FileEntry], generated_at: int) -> "DirIndex":
        return cls(
            dir=directory,
            generated_at=generated_at,
            summary=IndexSummary(
                file_count=len(files),
                symbol_count=sum(len(f.symbols) for f in files),
            ),
            files=files,
        )


# ── Service state ─────────────────────────────────────────────────────────────


class LocationEntry(_Persisted):
    file_path: str = Field(..., alias="filePath")
    offset: int
    kind: str = ""
    namespace: str | None = None
    fqn: str | None = None

    @classmethod
    def from_location(cls, loc: SymbolLocation) -> "LocationEntry":
        return cls(
            file_path=loc.file_path,
            offset=loc.offset,
            kind=loc.kind,
            namespace=loc.namespace,
            fqn=loc.fqn,
        )

    def to_location(self) -> SymbolLocation:
        return SymbolLocation(
            file_path=self.file_path,
            offset=self.offset,
            kind=self.kind,
            namespace=self.namespace,
            fqn=self.fqn,
        )


class ServiceState(_Persisted):
    """Warm-start blob written next to the snapshots."""

    symbol_to_locations: dict[str, list[LocationEntry]] = Field(
        default_factory=dict, alias="symbolToLocations"
    )
    file_timestamps: dict[str, int] = Field(default_factory=dict, alias="fileTimestamps")
    last_full_scan_ms: int = Field(default=0, alias="lastFullScanMs")
