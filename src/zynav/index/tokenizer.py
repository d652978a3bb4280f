"""Hand-written tokenizer for ZY source text.

The token stream covers the input without gaps: whitespace, comments and
characters the language does not know are emitted as tokens too, so
``tokens[i].end == tokens[i + 1].start`` always holds.  ``tokenize`` never
raises and every branch consumes at least one character.
"""

from __future__ import annotations

from zynav.index.schema import Token, TokenKind

KEYWORDS = frozenset({
    # declarations
    "namespace", "class", "function", "interface", "use", "as",
    "extends", "implements", "const", "var",
    # modifiers
    "public", "private", "protected", "static", "final", "abstract",
    # type names
    "string", "int", "float", "bool", "array",
    # statements
    "new", "return", "if", "else", "for", "foreach", "while",
})

_SINGLE_CHAR_KINDS: dict[str, TokenKind] = {
    "{": TokenKind.BRACE_OPEN,
    "}": TokenKind.BRACE_CLOSE,
    ";": TokenKind.SEMICOLON,
    ":": TokenKind.COLON,
    ",": TokenKind.COMMA,
}


def is_ident_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_"


def is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def tokenize(text: str) -> list[Token]:
    """Split *text* into a gapless list of tokens."""
    tokens: list[Token] = []
    length = len(text)
    pos = 0

    while pos < length:
        ch = text[pos]
        nxt = text[pos + 1] if pos + 1 < length else ""

        if ch == "/" and nxt == "/":
            end = text.find("\n", pos)
            end = length if end < 0 else end
            kind = TokenKind.COMMENT
        elif ch == "/" and nxt == "*":
            close = text.find("*/", pos + 2)
            end = length if close < 0 else close + 2
            kind = TokenKind.COMMENT
        elif ch in ("'", '"'):
            end = _scan_string(text, pos)
            kind = TokenKind.STRING
        elif ch.isdigit():
            end = pos + 1
            while end < length and (text[end].isdigit() or text[end] == "."):
                end += 1
            kind = TokenKind.NUMBER
        elif ch == "$" and nxt and is_ident_start(nxt):
            end = pos + 2
            while end < length and is_ident_char(text[end]):
                end += 1
            kind = TokenKind.VARIABLE
        elif is_ident_start(ch):
            end = pos + 1
            while end < length and is_ident_char(text[end]):
                end += 1
            kind = TokenKind.KEYWORD if text[pos:end] in KEYWORDS else TokenKind.IDENTIFIER
        elif ch.isspace():
            end = pos + 1
            while end < length and text[end].isspace():
                end += 1
            kind = TokenKind.WHITESPACE
        else:
            end = pos + 1
            kind = _SINGLE_CHAR_KINDS.get(ch, TokenKind.PUNCT)

        tokens.append(Token(kind=kind, text=text[pos:end], start=pos, end=end))
        pos = end

    return tokens


def _scan_string(text: str, start: int) -> int:
    """Return the end offset of the string literal opening at *start*.

    A backslash escapes exactly one character.  An unterminated literal
    runs to the end of the buffer.
    """
    quote = text[start]
    pos = start + 1
    length = len(text)
    while pos < length:
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        if ch == quote:
            return pos + 1
        pos += 1
    return length
