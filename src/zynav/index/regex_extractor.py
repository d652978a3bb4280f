"""Regex-based symbol extraction, used when the scope pass finds nothing.

Not scope-aware: class spans come from plain brace counting starting at
each ``class Name {`` match, and every ``function name(`` match inside a
class span is taken to be a method.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from zynav.index.schema import Symbol, SymbolKind, build_fqn

FUNCTION_DEF = re.compile(r"function\s+(\w+)\s*\(")
CLASS_DEF = re.compile(r"class\s+(\w+)\s*\{")
PROPERTY_DEF = re.compile(r"(?:\w+\s+)?\$([A-Za-z_][A-Za-z0-9_]*)")
NAMESPACE_DECL = re.compile(
    r"\bnamespace\s+([A-Za-z_][A-Za-z0-9_]*(?:\\[A-Za-z_][A-Za-z0-9_]*)*)\s*;?",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class _ClassSpan:
    name: str
    start: int      # offset of the opening brace
    end: int        # offset of the matching closing brace, or len(text)

    def encloses(self, offset: int) -> bool:
        return self.start < offset < self.end


def find_namespace(text: str) -> str | None:
    """First ``namespace <path>`` declaration in *text*, if any."""
    match = NAMESPACE_DECL.search(text)
    return match.group(1) if match else None


def matching_brace(text: str, open_pos: int, limit: int | None = None) -> int:
    """Offset of the ``}`` closing the ``{`` at *open_pos*.

    Returns *limit* (default ``len(text)``) when the brace is never closed.
    """
    limit = len(text) if limit is None else limit
    depth = 0
    for i in range(open_pos, limit):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return limit


def extract_symbols_regex(text: str) -> list[Symbol]:
    """Extract classes, methods, functions and properties by pattern search."""
    if not text:
        return []
    namespace = find_namespace(text)
    symbols: list[Symbol] = []
    spans: list[_ClassSpan] = []

    for match in CLASS_DEF.finditer(text):
        name = match.group(1)
        brace = text.find("{", match.end(1))
        spans.append(_ClassSpan(name, brace, matching_brace(text, brace)))
        symbols.append(Symbol(
            name=name,
            kind=SymbolKind.CLASS,
            offset=match.start(1),
            namespace=namespace,
            fqn=build_fqn(name, namespace),
        ))

    for match in FUNCTION_DEF.finditer(text):
        name = match.group(1)
        offset = match.start(1)
        owner = next((s for s in spans if s.encloses(offset)), None)
        symbols.append(Symbol(
            name=name,
            kind=SymbolKind.METHOD if owner else SymbolKind.FUNCTION,
            offset=offset,
            namespace=namespace,
            fqn=build_fqn(name, namespace, owner.name if owner else None),
        ))

    for match in PROPERTY_DEF.finditer(text):
        dollar = match.start(1) - 1
        for span in spans:
            if not span.encloses(dollar) or _inside_method(text, span, dollar):
                continue
            name = "$" + match.group(1)
            symbols.append(Symbol(
                name=name,
                kind=SymbolKind.PROPERTY,
                offset=dollar,
                namespace=namespace,
                fqn=build_fqn(name, namespace, span.name),
            ))
            break

    return symbols


def _inside_method(text: str, span: _ClassSpan, offset: int) -> bool:
    """True when *offset* sits in the body of the nearest preceding method."""
    last = None
    for last in FUNCTION_DEF.finditer(text, span.start, offset):
        pass
    if last is None:
        return False
    brace = text.find("{", last.start(), offset)
    if brace < 0:
        return False
    return matching_brace(text, brace, offset) == offset
