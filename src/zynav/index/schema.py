"""Transient data model for the ZY index: tokens, scopes and symbols.

Everything here is rebuilt from scratch on every parse.  Scopes live in an
arena (``ScopeTree``) and refer to each other by integer id, so the tree
has cheap upward traversal without reference cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator


# ── Kinds ─────────────────────────────────────────────────────────────────────


class TokenKind(str, Enum):
    KEYWORD = "keyword"
    IDENTIFIER = "identifier"
    VARIABLE = "variable"          # $name
    BRACE_OPEN = "brace_open"
    BRACE_CLOSE = "brace_close"
    SEMICOLON = "semicolon"
    COLON = "colon"
    COMMA = "comma"
    STRING = "string"
    NUMBER = "number"
    COMMENT = "comment"
    WHITESPACE = "whitespace"
    PUNCT = "punct"                # any other single character


class ScopeKind(str, Enum):
    GLOBAL = "global"
    NAMESPACE = "namespace"
    CLASS = "class"
    METHOD = "method"
    FUNCTION = "function"


class SymbolKind(str, Enum):
    CLASS = "class"
    METHOD = "method"
    FUNCTION = "function"
    PROPERTY = "property"


# Scope end value while its closing brace has not been seen.
OPEN_END = -1


# ── Tokens ────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Token:
    """A lexical token covering ``text[start:end]``."""

    kind: TokenKind
    text: str
    start: int
    end: int


# ── Scopes ────────────────────────────────────────────────────────────────────


@dataclass
class Scope:
    """One node of the scope arena.  ``parent`` and ``children`` hold ids."""

    id: int
    kind: ScopeKind
    name: str
    start: int                  # offset of the introducing keyword
    name_offset: int            # offset of the name token
    parent: int | None = None
    end: int = OPEN_END         # end offset of the closing brace
    body_start: int = -1        # offset of the body's opening brace
    children: list[int] = field(default_factory=list)

    @property
    def is_open(self) -> bool:
        return self.end == OPEN_END

    def end_or(self, text_length: int) -> int:
        """End offset, treating an unclosed scope as extending to EOF."""
        return text_length if self.is_open else self.end

    def contains(self, offset: int, text_length: int) -> bool:
        return self.start <= offset <= self.end_or(text_length)


class ScopeTree:
    """Arena of scopes.  Id 0 is always the GLOBAL root."""

    def __init__(self, text_length: int) -> None:
        self.text_length = text_length
        self._scopes: list[Scope] = [
            Scope(id=0, kind=ScopeKind.GLOBAL, name="", start=0, name_offset=0, end=text_length)
        ]

    @property
    def root(self) -> Scope:
        return self._scopes[0]

    def __len__(self) -> int:
        return len(self._scopes)

    def add(self, kind: ScopeKind, name: str, start: int, name_offset: int, parent: int) -> Scope:
        """Create a scope under *parent* and return it."""
        scope = Scope(
            id=len(self._scopes),
            kind=kind,
            name=name,
            start=start,
            name_offset=name_offset,
            parent=parent,
        )
        self._scopes.append(scope)
        self._scopes[parent].children.append(scope.id)
        return scope

    def get(self, scope_id: int) -> Scope:
        return self._scopes[scope_id]

    def children(self, scope: Scope) -> list[Scope]:
        return [self._scopes[c] for c in scope.children]

    def parent(self, scope: Scope) -> Scope | None:
        return None if scope.parent is None else self._scopes[scope.parent]

    def enclosing(self, scope: Scope, kind: ScopeKind) -> Scope | None:
        """Nearest scope of *kind* starting at *scope* and walking upward."""
        current: Scope | None = scope
        while current is not None:
            if current.kind is kind:
                return current
            current = self.parent(current)
        return None

    def walk(self) -> Iterator[Scope]:
        """Pre-order traversal, children in source order."""
        stack = [self.root]
        while stack:
            scope = stack.pop()
            yield scope
            stack.extend(reversed(self.children(scope)))

    def first_of_kind(self, kind: ScopeKind) -> Scope | None:
        return next((s for s in self.walk() if s.kind is kind), None)

    def innermost_at(self, offset: int) -> Scope:
        """Deepest scope whose range contains *offset*."""
        current = self.root
        while True:
            inner = next(
                (c for c in self.children(current) if c.contains(offset, self.text_length)),
                None,
            )
            if inner is None:
                return current
            current = inner


# ── Symbols ───────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Symbol:
    """A named declaration with its fully-qualified name."""

    name: str               # properties keep their sigil, e.g. "$age"
    kind: SymbolKind
    offset: int             # offset of the name token
    namespace: str | None
    fqn: str
    scope_id: int | None = None


def build_fqn(name: str, namespace: str | None, class_name: str | None = None) -> str:
    """``ns\\name`` for top-level symbols, ``ns\\Class::name`` for members."""
    local = f"{class_name}::{name}" if class_name else name
    return f"{namespace}\\{local}" if namespace else local


@dataclass(frozen=True)
class SymbolLocation:
    """Where a symbol is declared, as held by the index service."""

    file_path: str          # project-relative, forward slashes
    offset: int
    kind: str = ""
    namespace: str | None = None
    fqn: str | None = None
