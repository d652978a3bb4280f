"""Build a scope tree from a ZY token stream.

Scopes are introduced by the ``namespace``, ``class`` and ``function``
keywords, never by a brace.  The first ``{`` after such a declaration opens
its body; any other ``{`` opens an anonymous block.  Every ``}`` closes the
innermost open brace, and when that brace was a body the owning scope is
popped with ``end`` set to the brace's end offset.

A declaration terminated by ``;`` before any body brace has no body:
``namespace App;`` covers the rest of the file, ``function f();`` ends at
its semicolon.  Scopes whose body brace is never matched keep
``OPEN_END``.
"""

from __future__ import annotations

import logging

from zynav.index.schema import OPEN_END, Scope, ScopeKind, ScopeTree, Token, TokenKind
from zynav.index.tokenizer import tokenize

logger = logging.getLogger(__name__)

_DECLARATION_KINDS: dict[str, ScopeKind] = {
    "namespace": ScopeKind.NAMESPACE,
    "class": ScopeKind.CLASS,
    "function": ScopeKind.FUNCTION,
}


def parse_scopes(tokens: list[Token], text_length: int | None = None) -> ScopeTree:
    """Single forward pass over *tokens* returning the scope arena."""
    if text_length is None:
        text_length = tokens[-1].end if tokens else 0
    tree = ScopeTree(text_length)

    stack: list[Scope] = [tree.root]
    braces: list[int | None] = []       # owning scope id per open brace, None = plain block
    pending: Scope | None = None        # declared, still waiting for its body brace

    for i, token in enumerate(tokens):
        kind = token.kind

        if kind is TokenKind.KEYWORD and token.text in _DECLARATION_KINDS:
            found = _declared_name(tokens, i, token.text == "namespace")
            if found is None:
                continue
            name, name_offset = found
            parent = stack[-1]
            scope_kind = _DECLARATION_KINDS[token.text]
            if scope_kind is ScopeKind.FUNCTION and parent.kind is ScopeKind.CLASS:
                scope_kind = ScopeKind.METHOD
            scope = tree.add(scope_kind, name, token.start, name_offset, parent.id)
            stack.append(scope)
            pending = scope

        elif kind is TokenKind.BRACE_OPEN:
            if pending is not None:
                pending.body_start = token.start
                braces.append(pending.id)
                pending = None
            else:
                braces.append(None)

        elif kind is TokenKind.SEMICOLON:
            if pending is None:
                continue
            if pending.kind is not ScopeKind.NAMESPACE and stack[-1] is pending:
                stack.pop()
                pending.end = token.end
            pending = None

        elif kind is TokenKind.BRACE_CLOSE:
            if not braces:
                logger.debug("Ignoring unmatched '}' at offset %d", token.start)
                continue
            owner = braces.pop()
            if owner is None:
                continue
            # Body-less scopes opened inside this body end with it.
            while len(stack) > 1:
                scope = stack.pop()
                scope.end = token.end
                if scope.id == owner:
                    break

    # A namespace declared with ';' extends to the end of the file.
    for scope in stack[1:]:
        if scope.kind is ScopeKind.NAMESPACE and scope.body_start < 0 and scope.end == OPEN_END:
            scope.end = text_length

    return tree


def parse_text(text: str) -> ScopeTree:
    """Tokenize and parse *text* in one call."""
    return parse_scopes(tokenize(text), len(text))


def _declared_name(tokens: list[Token], keyword_index: int, qualified: bool) -> tuple[str, int] | None:
    """Find the name after a declaration keyword.

    Scanning stops at ``;`` or ``{``.  For namespaces (*qualified*) the
    name keeps following ``\\``-separated segments, e.g. ``App\\Model``.
    """
    for j in range(keyword_index + 1, len(tokens)):
        tok = tokens[j]
        if tok.kind in (TokenKind.SEMICOLON, TokenKind.BRACE_OPEN):
            return None
        if tok.kind is not TokenKind.IDENTIFIER:
            continue
        if not qualified:
            return tok.text, tok.start
        parts = [tok.text]
        k = j + 1
        while (
            k + 1 < len(tokens)
            and tokens[k].text == "\\"
            and tokens[k + 1].kind in (TokenKind.IDENTIFIER, TokenKind.KEYWORD)
        ):
            parts.append(tokens[k + 1].text)
            k += 2
        return "\\".join(parts), tok.start
    return None
