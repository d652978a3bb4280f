"""ResolutionEngine: "go to declaration" for a cursor position.

Lookup order, stopping at the first step that finds anything:

  1. word under the cursor (with ±1 retry and a 1-char fallback)
  2. ``->word`` property access: properties of the file's namespace snapshot
  3. declarations in the current file (index hits, then a text scan)
  4. member access ``new C()->word`` / ``$v->word``: members of class C
  5. ``use A\\B [as C];`` imports
  6. the whole index, by the raw word
  7. any other occurrence of the word in the current file

Ambiguity is a valid answer: every match is returned, first-found first.
In a property-access context steps 3-7 only ever yield property-shaped
results, so a same-named function or class is never offered.
"""

from __future__ import annotations

import logging
from pathlib import Path

from zynav.index.files import read_source
from zynav.index.schema import SymbolKind, SymbolLocation
from zynav.index.service import SymbolIndexService
from zynav.navigation.context import (
    WordSpan,
    extract_namespace,
    find_definition_shapes,
    find_members_in_class,
    find_occurrences,
    is_method_call,
    is_property_access,
    member_access_owner,
    parse_use_statements,
    word_at,
)
from zynav.navigation.locations import DefinitionLocation, dedupe, to_definition

logger = logging.getLogger(__name__)


class _Request:
    """Per-call state: the buffer, its path and the word being resolved."""

    def __init__(self, text: str, file_path: str | None, span: WordSpan) -> None:
        self.text = text
        self.file_path = file_path
        self.span = span
        self.word = span.text
        self.property_context = is_property_access(text, span)
        # Index key: properties are stored with their sigil.
        self.key = "$" + self.word if self.property_context else self.word
        self.namespace = extract_namespace(text)

    @property
    def buffer_path(self) -> str:
        return self.file_path or ""

    def is_self(self, loc: SymbolLocation) -> bool:
        """True for a hit on the clicked word itself."""
        if self.file_path is None or loc.file_path != self.file_path:
            return False
        return self.span.start - 1 <= loc.offset < self.span.end

    def here(self, offset: int, kind: str) -> SymbolLocation:
        return SymbolLocation(
            file_path=self.buffer_path,
            offset=offset,
            kind=kind,
            namespace=self.namespace,
        )


class ResolutionEngine:
    """Resolves cursor positions against a ``SymbolIndexService``."""

    def __init__(self, service: SymbolIndexService) -> None:
        self._service = service

    def resolve(
        self,
        file_text: str,
        cursor_offset: int,
        file_path: str | Path | None = None,
    ) -> list[DefinitionLocation]:
        """Declaration candidates for the word at *cursor_offset*.

        *file_path* identifies the buffer (absolute or project-relative) so
        its own symbols are found and the clicked word is skipped.  Never
        raises: failures are logged and give ``[]``.
        """
        try:
            return self._resolve(file_text, cursor_offset, self._relative(file_path))
        except Exception as exc:
            logger.warning("Declaration lookup failed at offset %d: %s", cursor_offset, exc)
            return []

    # ── Steps ─────────────────────────────────────────────────────────────────

    def _resolve(self, text: str, offset: int, file_path: str | None) -> list[DefinitionLocation]:
        span = word_at(text, offset)
        if not span.text.strip():
            return []
        req = _Request(text, file_path, span)

        found: list[SymbolLocation] = []
        if req.property_context:
            found = self._namespace_properties(req)
        if not found:
            found = self._local(req)
        if not found:
            found = self._member_access(req)
        if not found:
            found = self._imports(req)
        if not found:
            found = self._everywhere(req)
        if not found:
            found = self._occurrences(req)
        return self._present(req, found)

    def _namespace_properties(self, req: _Request) -> list[SymbolLocation]:
        if not req.namespace:
            return []
        self._service.ensure_up_to_date()
        snapshot = self._service.store.read_namespace_index(req.namespace)
        if snapshot is None:
            return []
        owner = member_access_owner(req.text, req.span, strict=True)
        suffix = f"\\{owner}::{req.key}" if owner else None

        found: list[SymbolLocation] = []
        for entry in snapshot.files:
            for sym in entry.symbols:
                if sym.kind is not SymbolKind.PROPERTY or sym.name != req.key:
                    continue
                if suffix and not (sym.fqn or "").endswith(suffix):
                    continue
                loc = SymbolLocation(
                    file_path=entry.path,
                    offset=sym.offset,
                    kind=sym.kind.value,
                    namespace=sym.namespace,
                    fqn=sym.fqn,
                )
                if not req.is_self(loc):
                    found.append(loc)
        return found

    def _local(self, req: _Request) -> list[SymbolLocation]:
        if req.file_path is not None:
            hits = [
                loc for loc in self._service.find_definitions(req.key)
                if loc.file_path == req.file_path and not req.is_self(loc)
            ]
            if hits:
                return hits
        if req.property_context:
            return []
        return [
            req.here(off, "definition")
            for off in find_definition_shapes(req.text, req.word)
            if not req.span.covers(off)
        ]

    def _member_access(self, req: _Request) -> list[SymbolLocation]:
        owner = member_access_owner(req.text, req.span)
        if not owner:
            return []
        method = is_method_call(req.text, req.span) and not req.property_context
        found = self._members_of(req, owner, method)
        if method:
            # Same-named methods elsewhere stay visible next to the local class.
            others = [
                loc for loc in self._service.find_definitions(req.word)
                if loc.kind == SymbolKind.METHOD.value
            ]
            found = dedupe(found, others)
        return found

    def _members_of(self, req: _Request, owner: str, method: bool) -> list[SymbolLocation]:
        kind = SymbolKind.METHOD.value if method else SymbolKind.PROPERTY.value
        offsets = find_members_in_class(req.text, owner, req.word, method)
        if offsets is not None:
            return [req.here(off, kind) for off in offsets if not req.span.covers(off)]

        for loc in self._service.find_definitions(owner):
            if loc.kind != SymbolKind.CLASS.value or loc.file_path == req.file_path:
                continue
            other = read_source(self._service.files.absolute(loc.file_path))
            if other is None:
                continue
            offsets = find_members_in_class(other, owner, req.word, method)
            if offsets is None:
                continue
            return [
                SymbolLocation(file_path=loc.file_path, offset=off, kind=kind, namespace=loc.namespace)
                for off in offsets
            ]
        return []

    def _imports(self, req: _Request) -> list[SymbolLocation]:
        imported = parse_use_statements(req.text).get(req.word)
        if imported is None or req.property_context:
            return []
        candidates = [
            loc for loc in self._service.find_definitions(imported.class_name)
            if loc.file_path != req.file_path
        ]
        if imported.aliased:
            exact = [loc for loc in candidates if loc.fqn == imported.fqn]
            if exact:
                return exact
        hinted = [
            loc for loc in self._service.find_definitions(imported.class_name, imported.namespace_path)
            if loc.file_path != req.file_path
        ]
        if imported.aliased:
            return hinted
        # A plain import keeps every same-named class visible.
        return dedupe(candidates, hinted)

    def _everywhere(self, req: _Request) -> list[SymbolLocation]:
        return [
            loc for loc in self._service.find_definitions(req.key)
            if loc.file_path != req.file_path
        ]

    def _occurrences(self, req: _Request) -> list[SymbolLocation]:
        return [
            req.here(off, "reference")
            for off in find_occurrences(req.text, req.word, property_only=req.property_context)
            if not (req.span.start - 1 <= off < req.span.end)
        ]

    # ── Presentation ──────────────────────────────────────────────────────────

    def _present(self, req: _Request, found: list[SymbolLocation]) -> list[DefinitionLocation]:
        texts: dict[str, str | None] = {req.buffer_path: req.text}
        result: list[DefinitionLocation] = []
        for loc in dedupe(found):
            if loc.file_path not in texts:
                texts[loc.file_path] = read_source(self._service.files.absolute(loc.file_path))
            symbols = self._service.locations_in_file(loc.file_path) if loc.file_path else []
            result.append(to_definition(loc, req.key, texts[loc.file_path], symbols))
        return result

    def _relative(self, file_path: str | Path | None) -> str | None:
        if file_path is None:
            return None
        path = Path(file_path)
        if path.is_absolute():
            try:
                return self._service.files.relative(path)
            except ValueError:
                return path.as_posix()
        return path.as_posix()
