"""Tests for the ZY tokenizer."""

from __future__ import annotations

import pytest

from zynav.index.schema import TokenKind
from zynav.index.tokenizer import tokenize


def _kinds(text: str) -> list[TokenKind]:
    return [t.kind for t in tokenize(text) if t.kind is not TokenKind.WHITESPACE]


def _assert_gapless(text: str) -> None:
    tokens = tokenize(text)
    if not text:
        assert tokens == []
        return
    assert tokens[0].start == 0
    assert tokens[-1].end == len(text)
    for prev, cur in zip(tokens, tokens[1:]):
        assert prev.end == cur.start
    assert "".join(t.text for t in tokens) == text


# ── Coverage ──────────────────────────────────────────────────────────────────


class TestGapless:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            " ",
            "namespace App;\nclass A { public $x; function f() { return 1.5; } }",
            "/* never closed",
            "'unterminated string",
            '"escaped \\" quote" tail',
            "$ $1 $_ok @#%^&*",
            "// comment only",
            "weird été ☃ {}}}{;:,",
            "trailing backslash \\",
        ],
    )
    def test_tokens_cover_input(self, text: str) -> None:
        _assert_gapless(text)

    def test_every_token_non_empty(self) -> None:
        for token in tokenize("a{b}c;$d 'e' 1.2 /* f */ // g"):
            assert token.end > token.start


# ── Classification ────────────────────────────────────────────────────────────


class TestClassification:
    def test_keywords_and_identifiers(self) -> None:
        tokens = [t for t in tokenize("class Users") if t.kind is not TokenKind.WHITESPACE]
        assert tokens[0].kind is TokenKind.KEYWORD
        assert tokens[1].kind is TokenKind.IDENTIFIER
        assert tokens[1].text == "Users"

    def test_variable_keeps_sigil(self) -> None:
        tokens = tokenize("$user_name")
        assert len(tokens) == 1
        assert tokens[0].kind is TokenKind.VARIABLE
        assert tokens[0].text == "$user_name"

    def test_lone_dollar_is_punct(self) -> None:
        assert _kinds("$ 1") == [TokenKind.PUNCT, TokenKind.NUMBER]

    def test_structural_punctuation(self) -> None:
        assert _kinds("{};:,") == [
            TokenKind.BRACE_OPEN,
            TokenKind.BRACE_CLOSE,
            TokenKind.SEMICOLON,
            TokenKind.COLON,
            TokenKind.COMMA,
        ]

    def test_arrow_is_two_punct_tokens(self) -> None:
        assert _kinds("->") == [TokenKind.PUNCT, TokenKind.PUNCT]

    def test_number_with_dot(self) -> None:
        tokens = tokenize("3.14")
        assert [(t.kind, t.text) for t in tokens] == [(TokenKind.NUMBER, "3.14")]

    def test_line_comment_stops_at_newline(self) -> None:
        tokens = tokenize("// hi\nclass")
        assert tokens[0].kind is TokenKind.COMMENT
        assert tokens[0].text == "// hi"
        assert tokens[-1].kind is TokenKind.KEYWORD

    def test_block_comment_hides_braces(self) -> None:
        assert _kinds("/* { } */ x") == [TokenKind.COMMENT, TokenKind.IDENTIFIER]

    def test_unterminated_block_comment_runs_to_end(self) -> None:
        tokens = tokenize("a /* b { c")
        assert tokens[-1].kind is TokenKind.COMMENT
        assert tokens[-1].end == len("a /* b { c")

    def test_string_hides_braces_and_semicolons(self) -> None:
        assert _kinds("'{;}' x") == [TokenKind.STRING, TokenKind.IDENTIFIER]

    def test_backslash_escapes_one_character(self) -> None:
        tokens = tokenize(r"'a\'b' c")
        assert tokens[0].kind is TokenKind.STRING
        assert tokens[0].text == r"'a\'b'"

    def test_namespace_separator_is_punct(self) -> None:
        assert _kinds("App\\Model") == [
            TokenKind.IDENTIFIER,
            TokenKind.PUNCT,
            TokenKind.IDENTIFIER,
        ]
