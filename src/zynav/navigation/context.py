"""Text heuristics around the cursor: the word, member access, imports.

Everything here works on the raw file text with regular expressions;
nothing is scope-aware.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_NAMESPACE = re.compile(r"(?m)^\s*namespace\s+([A-Za-z_\\][A-Za-z0-9_\\]*)")
_USE = re.compile(
    r"(?m)^[ \t]*use[ \t]+([\\\w]+)(?:[ \t]+as[ \t]+(\w+))?[ \t]*;?[ \t]*"
    r"(?://[^\r\n]*|/\*.*?\*/[ \t]*)?\r?$"
)
_NEW_ACCESS = re.compile(r"new\s+(\w+)\s*\(\s*\)\s*->\s*$")
_VAR_ACCESS = re.compile(r"(\$?)(\w+)\s*->\s*$")

# How far back from the word the member-access patterns look.
_LOOKBEHIND = 256


def _is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


@dataclass(frozen=True)
class WordSpan:
    """``text[start:end]`` under the cursor."""

    start: int
    end: int
    text: str

    def covers(self, offset: int) -> bool:
        return self.start <= offset < self.end


@dataclass(frozen=True)
class ImportedName:
    """One ``use`` statement: the imported FQN and whether it was aliased."""

    fqn: str
    aliased: bool

    @property
    def class_name(self) -> str:
        return self.fqn.rsplit("\\", 1)[-1]

    @property
    def namespace_path(self) -> str | None:
        """Namespace segments joined with ``/``, or None for a bare name."""
        parts = [p for p in self.fqn.split("\\") if p]
        return "/".join(parts[:-1]) or None


def _word_range(text: str, offset: int) -> tuple[int, int] | None:
    idx = max(0, min(offset, len(text)))
    start = end = idx
    while start > 0 and _is_word_char(text[start - 1]):
        start -= 1
    while end < len(text) and _is_word_char(text[end]):
        end += 1
    return (start, end) if start < end else None


def word_at(text: str, offset: int) -> WordSpan:
    """The identifier touching *offset*.

    Retries at ``offset - 1`` and ``offset + 1``, then settles for the
    single character at *offset* so there is always something to look up.
    """
    if not text:
        return WordSpan(0, 0, "")
    found = _word_range(text, offset)
    if found is None:
        for retry in (max(offset - 1, 0), min(offset + 1, len(text))):
            found = _word_range(text, retry)
            if found is not None:
                break
    if found is None:
        start = max(0, min(offset, len(text) - 1))
        found = (start, start + 1)
    start, end = found
    return WordSpan(start, end, text[start:end])


def is_property_access(text: str, span: WordSpan) -> bool:
    """``->word`` not followed by ``(``."""
    arrow = span.start >= 2 and text[span.start - 2:span.start] == "->"
    paren = span.end < len(text) and text[span.end] == "("
    return arrow and not paren


def is_method_call(text: str, span: WordSpan) -> bool:
    """``word`` followed (after optional spaces) by ``(``."""
    return text[span.end:span.end + 64].lstrip().startswith("(")


def extract_namespace(text: str) -> str | None:
    match = _NAMESPACE.search(text)
    return match.group(1) if match else None


def parse_use_statements(text: str) -> dict[str, ImportedName]:
    """Map of visible short name (alias or last segment) to its import."""
    imports: dict[str, ImportedName] = {}
    for match in _USE.finditer(text):
        fqn = match.group(1).strip("\\")
        alias = match.group(2)
        if alias:
            imports[alias] = ImportedName(fqn, aliased=True)
        elif fqn:
            imports[fqn.rsplit("\\", 1)[-1]] = ImportedName(fqn, aliased=False)
    return imports


def variable_class(text: str, var_name: str) -> str | None:
    """Class assigned to ``$var_name`` by the first ``$var = new C()``."""
    pattern = re.compile(r"\$" + re.escape(var_name) + r"\s*=\s*new\s+(\w+)\s*\(\s*\)")
    match = pattern.search(text)
    return match.group(1) if match else None


def member_access_owner(text: str, span: WordSpan, strict: bool = False) -> str | None:
    """Class name owning the member accessed as ``...->word``.

    Recognises ``new C()->word`` and ``$v->word`` with an earlier
    ``$v = new C()``.  When the variable's class is unknown the variable
    name itself is returned, unless *strict* is set.
    """
    before = text[max(0, span.start - _LOOKBEHIND):span.start]
    match = _NEW_ACCESS.search(before)
    if match:
        return match.group(1)
    match = _VAR_ACCESS.search(before)
    if not match:
        return None
    sigil, name = match.groups()
    resolved = variable_class(text, name) if sigil else None
    if resolved:
        return resolved
    if strict:
        return None if sigil else name
    return name


def find_class_body(text: str, class_name: str) -> tuple[int, int] | None:
    """``(open, close)`` brace offsets of the first ``class Name {`` body."""
    match = re.search(r"class\s+(" + re.escape(class_name) + r")\s*\{", text)
    if not match:
        return None
    open_pos = text.index("{", match.end(1))
    depth = 0
    for i in range(open_pos, len(text)):
        ch = text[i]
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return open_pos, i
    return open_pos, len(text)


def find_members_in_class(text: str, class_name: str, member: str, method: bool) -> list[int] | None:
    """Offsets of *member* declared in *class_name*'s body.

    Methods match ``function member(``; properties match ``$member``.
    Returns None when the class is not declared in *text*.
    """
    body = find_class_body(text, class_name)
    if body is None:
        return None
    start, end = body
    if method:
        pattern = re.compile(r"function\s+(" + re.escape(member) + r")\s*\(")
        return [m.start(1) for m in pattern.finditer(text, start + 1, end)]
    pattern = re.compile(r"\$" + re.escape(member) + r"\b")
    return [m.start() for m in pattern.finditer(text, start + 1, end)]


def find_definition_shapes(text: str, word: str) -> list[int]:
    """Offsets of ``function word(`` and ``class word {`` in *text*."""
    escaped = re.escape(word)
    offsets = [m.start(1) for m in re.finditer(r"function\s+(" + escaped + r")\s*\(", text)]
    if not offsets:
        offsets = [m.start(1) for m in re.finditer(r"class\s+(" + escaped + r")\s*\{", text)]
    return offsets


def find_occurrences(text: str, word: str, property_only: bool = False) -> list[int]:
    """Offsets of *word* as a whole token.

    With *property_only*, just ``$word`` and ``->word`` occurrences (the
    offset then points at the ``$`` or at the name after the arrow).
    """
    escaped = re.escape(word)
    if property_only:
        pattern = re.compile(r"(?:\$|(?<=->))" + escaped + r"(?!\w)")
    else:
        pattern = re.compile(r"(?<![\w$])" + escaped + r"(?!\w)")
    return [m.start() for m in pattern.finditer(text)]


def line_of(text: str, offset: int) -> int:
    """1-based line number of *offset*."""
    return text.count("\n", 0, max(0, min(offset, len(text)))) + 1
