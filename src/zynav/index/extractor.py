"""Symbol extraction from ZY source text.

Two stages: the scope-based pass (``extract_symbols``) and the regex pass
in ``regex_extractor``.  ``needs_fallback`` decides when the second stage
runs; ``extract_with_fallback`` wires them together and is what the index
uses.

Extraction never raises.  Errors are logged and an empty list is returned
so the index can keep processing the remaining files.
"""

from __future__ import annotations

import logging

from zynav.index.regex_extractor import extract_symbols_regex, find_namespace
from zynav.index.schema import Scope, ScopeKind, ScopeTree, Symbol, SymbolKind, TokenKind, build_fqn
from zynav.index.scope_parser import parse_text
from zynav.index.tokenizer import tokenize

logger = logging.getLogger(__name__)

_PROPERTY_BREAKERS = (TokenKind.BRACE_OPEN, TokenKind.BRACE_CLOSE, TokenKind.KEYWORD)


# ── Public API ────────────────────────────────────────────────────────────────


def extract_symbols(text: str) -> list[Symbol]:
    """Scope-based extraction.  Returns ``[]`` on any internal failure."""
    try:
        return _extract_scoped(text)
    except Exception as exc:
        logger.debug("Scope-based extraction failed: %s", exc)
        return []


def needs_fallback(symbols: list[Symbol], error: BaseException | None) -> bool:
    """True when the primary pass failed or produced no symbols."""
    return error is not None or not symbols


def extract_with_fallback(text: str) -> list[Symbol]:
    """Scope-based extraction, falling back to the regex pass when needed."""
    if not text:
        return []
    symbols: list[Symbol] = []
    error: Exception | None = None
    try:
        symbols = _extract_scoped(text)
    except Exception as exc:
        error = exc
        logger.warning("Scope-based parser failed, falling back to regex: %s", exc)

    if not needs_fallback(symbols, error):
        return symbols
    try:
        return extract_symbols_regex(text)
    except Exception as exc:
        logger.warning("Regex extraction failed: %s", exc)
        return []


def extract_namespace(text: str) -> str | None:
    """Namespace declared by *text*, or None."""
    try:
        scope = parse_text(text).first_of_kind(ScopeKind.NAMESPACE)
    except Exception as exc:
        logger.debug("Namespace scan failed: %s", exc)
        scope = None
    if scope is not None:
        return scope.name
    return find_namespace(text)


# ── Scope walk ────────────────────────────────────────────────────────────────


def _extract_scoped(text: str) -> list[Symbol]:
    if not text:
        return []
    tree = parse_text(text)
    ns_scope = tree.first_of_kind(ScopeKind.NAMESPACE)
    namespace = ns_scope.name if ns_scope is not None else None

    symbols: list[Symbol] = []
    for scope in tree.walk():
        if scope.kind is ScopeKind.CLASS:
            symbols.append(Symbol(
                name=scope.name,
                kind=SymbolKind.CLASS,
                offset=scope.name_offset,
                namespace=namespace,
                fqn=build_fqn(scope.name, namespace),
                scope_id=scope.id,
            ))
            symbols.extend(_scan_properties(text, tree, scope, namespace))
        elif scope.kind is ScopeKind.METHOD:
            owner = tree.enclosing(scope, ScopeKind.CLASS)
            symbols.append(Symbol(
                name=scope.name,
                kind=SymbolKind.METHOD,
                offset=scope.name_offset,
                namespace=namespace,
                fqn=build_fqn(scope.name, namespace, owner.name if owner else None),
                scope_id=scope.id,
            ))
        elif scope.kind is ScopeKind.FUNCTION:
            if _inside_method(tree, scope):
                continue
            symbols.append(Symbol(
                name=scope.name,
                kind=SymbolKind.FUNCTION,
                offset=scope.name_offset,
                namespace=namespace,
                fqn=build_fqn(scope.name, namespace),
                scope_id=scope.id,
            ))
    return symbols


def _inside_method(tree: ScopeTree, scope: Scope) -> bool:
    parent = tree.parent(scope)
    while parent is not None:
        if parent.kind is ScopeKind.METHOD:
            return True
        parent = tree.parent(parent)
    return False


def _scan_properties(
    text: str,
    tree: ScopeTree,
    class_scope: Scope,
    namespace: str | None,
) -> list[Symbol]:
    """Properties declared before the class's first method.

    The region is tokenized on its own; a variable followed by ``;`` with
    no brace or keyword in between is a declaration.
    """
    start = class_scope.body_start + 1 if class_scope.body_start >= 0 else class_scope.name_offset
    methods = [c for c in tree.children(class_scope) if c.kind is ScopeKind.METHOD]
    end = methods[0].start if methods else class_scope.end_or(len(text))
    if end <= start:
        return []

    tokens = tokenize(text[start:end])
    found: list[Symbol] = []
    for i, token in enumerate(tokens):
        if token.kind is not TokenKind.VARIABLE:
            continue
        for following in tokens[i + 1:]:
            if following.kind in _PROPERTY_BREAKERS:
                break
            if following.kind is TokenKind.SEMICOLON:
                found.append(Symbol(
                    name=token.text,
                    kind=SymbolKind.PROPERTY,
                    offset=start + token.start,
                    namespace=namespace,
                    fqn=build_fqn(token.text, namespace, class_scope.name),
                    scope_id=class_scope.id,
                ))
                break
    return found
