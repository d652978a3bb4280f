"""Result records handed back to the editor shell."""

from __future__ import annotations

from dataclasses import dataclass

from zynav.index.schema import SymbolLocation
from zynav.navigation.context import extract_namespace, line_of


@dataclass(frozen=True)
class DefinitionLocation:
    """A declaration candidate.

    ``file_path`` is project-relative; it is empty for the caller's own
    buffer when that buffer has no path.  ``line`` is 1-based.
    """

    file_path: str
    offset: int
    line: int
    kind: str
    display_label: str

    def location_string(self) -> str:
        return f"{self.file_path or '<buffer>'}:{self.line}"


def dedupe(*groups: list[SymbolLocation]) -> list[SymbolLocation]:
    """Concatenate *groups*, keeping the first location per file + offset."""
    seen: set[tuple[str, int]] = set()
    result: list[SymbolLocation] = []
    for group in groups:
        for loc in group:
            key = (loc.file_path, loc.offset)
            if key in seen:
                continue
            seen.add(key)
            result.append(loc)
    return result


def display_label(
    loc: SymbolLocation,
    word: str,
    target_text: str | None,
    file_symbols: list[tuple[str, SymbolLocation]],
) -> str:
    """FQN when known, else ``namespace\\word``, else the word.

    Locations without an FQN borrow one from an indexed symbol of the same
    name in the same file: the one at that offset, or the nearest.
    """
    if loc.fqn:
        return loc.fqn
    names = {word, "$" + word.lstrip("$")}
    same_name = [s for name, s in file_symbols if name in names and s.fqn]
    if same_name:
        best = min(same_name, key=lambda s: abs(s.offset - loc.offset))
        return best.fqn or word
    namespace = loc.namespace or (extract_namespace(target_text) if target_text else None)
    return f"{namespace}\\{word}" if namespace else word


def to_definition(
    loc: SymbolLocation,
    word: str,
    target_text: str | None,
    file_symbols: list[tuple[str, SymbolLocation]],
) -> DefinitionLocation:
    return DefinitionLocation(
        file_path=loc.file_path,
        offset=loc.offset,
        line=line_of(target_text, loc.offset) if target_text is not None else 1,
        kind=loc.kind,
        display_label=display_label(loc, word, target_text, file_symbols),
    )
