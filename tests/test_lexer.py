# tests/test_lexer.py
"""
Tests for the Hansl tokenizer: token kinds, positions, losslessness and
the handling of unterminated strings and comments.
"""

import pytest

from hansl_lint.errors import (
    LexicalError,
    Rules,
    UnterminatedCommentError,
    UnterminatedStringError,
)
from hansl_lint.lexer import HANSL_GRAMMAR, TokenKind, tokenize


def kinds(text):
    return [(t.kind, t.text) for t in tokenize(text).significant()]


class TestGrammar:

    def test_grammar_compiles(self):
        assert "item" in HANSL_GRAMMAR
        assert "identifier" in HANSL_GRAMMAR

    def test_empty_input(self):
        stream = tokenize("")
        assert len(stream) == 0
        assert stream.errors == []


class TestTokenKinds:

    def test_declaration(self):
        assert kinds("scalar x = 1\n") == [
            (TokenKind.TYPE, "scalar"),
            (TokenKind.IDENTIFIER, "x"),
            (TokenKind.OPERATOR, "="),
            (TokenKind.NUMBER, "1"),
        ]

    def test_keywords_and_types(self):
        toks = tokenize("if matrices loop foo").significant()
        assert [t.kind for t in toks] == [
            TokenKind.KEYWORD, TokenKind.TYPE, TokenKind.KEYWORD, TokenKind.IDENTIFIER,
        ]

    def test_numbers(self):
        for lit in ("0", "42", "1.5", ".5", "1.5e-3", "2E10"):
            toks = tokenize(lit).significant()
            assert [(t.kind, t.text) for t in toks] == [(TokenKind.NUMBER, lit)]

    def test_dot_operator_after_number(self):
        assert kinds("2.*x") == [
            (TokenKind.NUMBER, "2"),
            (TokenKind.OPERATOR, ".*"),
            (TokenKind.IDENTIFIER, "x"),
        ]

    def test_range_operator(self):
        assert kinds("1..3") == [
            (TokenKind.NUMBER, "1"),
            (TokenKind.OPERATOR, ".."),
            (TokenKind.NUMBER, "3"),
        ]

    def test_address_of_and_logical_and(self):
        assert kinds("f(&a) && b") == [
            (TokenKind.IDENTIFIER, "f"),
            (TokenKind.PUNCT, "("),
            (TokenKind.OPERATOR, "&"),
            (TokenKind.IDENTIFIER, "a"),
            (TokenKind.PUNCT, ")"),
            (TokenKind.OPERATOR, "&&"),
            (TokenKind.IDENTIFIER, "b"),
        ]
        assert tokenize("f(&a)\n").errors == []

    def test_option_and_decrement(self):
        assert kinds("ols y const x --robust") == [
            (TokenKind.IDENTIFIER, "ols"),
            (TokenKind.IDENTIFIER, "y"),
            (TokenKind.KEYWORD, "const"),
            (TokenKind.IDENTIFIER, "x"),
            (TokenKind.OPTION, "--robust"),
        ]
        assert kinds("i--\n")[-1] == (TokenKind.OPERATOR, "--")

    def test_option_with_value(self):
        toks = tokenize('outfile --write="out.txt"').significant()
        assert toks[-1].kind is TokenKind.OPTION
        assert toks[-1].text == '--write="out.txt"'

    def test_accessor_and_at_ref(self):
        assert kinds("$nobs @name") == [
            (TokenKind.ACCESSOR, "$nobs"),
            (TokenKind.AT_REF, "@name"),
        ]

    def test_longest_operator_wins(self):
        texts = [t.text for t in tokenize("a += b == c != d").significant()]
        assert texts == ["a", "+=", "b", "==", "c", "!=", "d"]

    def test_transpose(self):
        assert kinds("X'X") == [
            (TokenKind.IDENTIFIER, "X"),
            (TokenKind.OPERATOR, "'"),
            (TokenKind.IDENTIFIER, "X"),
        ]

    def test_string_with_escaped_quote(self):
        toks = tokenize(r'string s = "say \"hi\""').significant()
        assert toks[-1].kind is TokenKind.STRING
        assert toks[-1].terminated

    def test_comments(self):
        stream = tokenize("x = 1  # one\n/* block\n   comment */\n")
        comments = stream.comments()
        assert [c.kind for c in comments] == [TokenKind.LINE_COMMENT, TokenKind.BLOCK_COMMENT]
        assert comments[0].text == "# one"
        assert comments[1].line == 2
        assert comments[1].end_line == 3

    def test_continuation(self):
        toks = tokenize("x = 1 + \\\n    2\n").tokens
        assert any(t.kind is TokenKind.CONTINUATION for t in toks)

    def test_backslash_operator_is_not_continuation(self):
        toks = tokenize("x = A \\ b\n").significant()
        assert toks[3].kind is TokenKind.OPERATOR
        assert toks[3].text == "\\"


class TestPositions:

    def test_lossless(self):
        text = "scalar x = 1  # one\r\n\tprint x\n/* c */\n"
        assert tokenize(text).text == text

    def test_line_and_column(self):
        toks = tokenize("a\n  bb = 1\n").significant()
        bb = toks[1]
        assert (bb.line, bb.column) == (2, 3)
        assert (bb.end_line, bb.end_column) == (2, 5)

    def test_crlf_counts_as_one_break(self):
        toks = tokenize("a\r\nb\rc\n").significant()
        assert [t.line for t in toks] == [1, 2, 3]

    def test_on_line(self):
        stream = tokenize("a = 1\nb = 2\n")
        assert [t.text for t in stream.on_line(2) if not t.is_trivia] == ["b", "=", "2"]
        assert stream.on_line(9) == []


class TestLexicalErrors:

    def test_unterminated_string_collected(self):
        stream = tokenize('string s = "abc\nscalar x = 1\n', filename="a.inp")
        assert len(stream.errors) == 1
        error = stream.errors[0]
        assert isinstance(error, UnterminatedStringError)
        assert error.rule is Rules.UNTERMINATED_STRING
        assert (error.location.file, error.location.line, error.location.column) == ("a.inp", 1, 12)
        # the string stops at the line end, so the next line tokenizes normally
        assert stream.on_line(2)[0].text == "scalar"

    def test_unterminated_comment_collected(self):
        stream = tokenize("x = 1\n/* never closed\nx = 2\n")
        assert len(stream.errors) == 1
        assert isinstance(stream.errors[0], UnterminatedCommentError)
        assert stream.errors[0].location.line == 2

    def test_unknown_character(self):
        stream = tokenize("x = `1`\n")
        assert len(stream.errors) == 2
        assert all(e.rule is Rules.INVALID_CHARACTER for e in stream.errors)

    def test_strict_raises(self):
        with pytest.raises(UnterminatedStringError):
            tokenize('s = "abc\n', strict=True)
        with pytest.raises(UnterminatedCommentError):
            tokenize("/* abc", strict=True)

    def test_strict_tolerates_unknown_character(self):
        stream = tokenize("x = `\n", strict=True)
        assert isinstance(stream.errors[0], LexicalError)
