"""
lexer.py — Hansl tokenizer
==========================

Splits Hansl source text into a flat, lossless token stream.  The token
grammar is a Parsimonious PEG whose last alternative accepts any single
character, so every input parses; problems such as unterminated strings
and comments are recognised by dedicated rules and reported afterwards.

Usage::

    from hansl_lint.lexer import tokenize, TokenKind

    stream = tokenize('scalar x = 1  # one\\n', filename="demo.inp")
    for tok in stream.significant():
        print(tok.line, tok.column, tok.kind.name, tok.text)

Depends on:
    - parsimonious (PEG parser)
"""

from __future__ import annotations

import bisect
import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from parsimonious.exceptions import ParseError
from parsimonious.grammar import Grammar
from parsimonious.nodes import Node, NodeVisitor

from hansl_lint.errors import (
    LexicalError,
    Rules,
    SourceLocation,
    UnterminatedCommentError,
    UnterminatedStringError,
)
from hansl_lint.vocabulary import KEYWORDS, TYPE_WORDS

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — TOKEN GRAMMAR (Parsimonious PEG)
# ═══════════════════════════════════════════════════════════════════

HANSL_TOKEN_GRAMMAR = r'''
    source           = item*
    item             = block_comment / unclosed_comment / line_comment
                     / string / unclosed_string / continuation / newline
                     / whitespace / option / number / accessor / at_ref
                     / identifier / operator / punct / unknown

    # ─────────────────────────────────────────────────────────────
    # Comments and strings
    # ─────────────────────────────────────────────────────────────

    block_comment    = ~r"/\*.*?\*/"s
    unclosed_comment = ~r"/\*.*"s
    line_comment     = ~r"#[^\r\n]*"
    string           = ~r'"(?:[^"\\\r\n]|\\.)*"'
    unclosed_string  = ~r'"(?:[^"\\\r\n]|\\.)*'

    # ─────────────────────────────────────────────────────────────
    # Layout
    # ─────────────────────────────────────────────────────────────

    continuation     = ~r"\\(?=[ \t]*(?:\r\n|\r|\n|$))"
    newline          = ~r"\r\n|\r|\n"
    whitespace       = ~r"[ \t\f\v]+"

    # ─────────────────────────────────────────────────────────────
    # Words and literals
    # ─────────────────────────────────────────────────────────────

    option           = ~r'--[A-Za-z][A-Za-z0-9_-]*(?:=(?:"(?:[^"\\\r\n]|\\.)*"|[^\s,;)#]+))?'
    number           = ~r"(?:\d+(?:\.(?![.*/^+=<>-])\d*)?|\.\d+)(?:[eE][+-]?\d+)?"
    accessor         = ~r"\$[A-Za-z_][A-Za-z0-9_]*"
    at_ref           = ~r"@[A-Za-z_][A-Za-z0-9_]*"
    identifier       = ~r"[A-Za-z_][A-Za-z0-9_]*"

    # ─────────────────────────────────────────────────────────────
    # Operators (longest first) and punctuation
    # ─────────────────────────────────────────────────────────────

    operator         = "+=" / "-=" / "*=" / "/=" / "^=" / "%=" / "~=" / "|="
                     / "==" / "!=" / "<=" / ">=" / "&&" / "&" / "||" / "++" / "--"
                     / ".*" / "./" / ".^" / ".+" / ".-" / ".=" / ".>" / ".<"
                     / "**" / ".." / "+" / "-" / "*" / "/" / "^" / "%"
                     / "=" / "<" / ">" / "!" / "~" / "|" / "'" / "?" / ":"
                     / "\\"
    punct            = "(" / ")" / "[" / "]" / "{" / "}" / "," / ";" / "."
    unknown          = ~r"."s
'''

HANSL_GRAMMAR = Grammar(HANSL_TOKEN_GRAMMAR)


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — TOKENS
# ═══════════════════════════════════════════════════════════════════

class TokenKind(enum.Enum):
    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    TYPE = "type"
    NUMBER = "number"
    STRING = "string"
    OPTION = "option"
    ACCESSOR = "accessor"
    AT_REF = "at_ref"
    OPERATOR = "operator"
    PUNCT = "punct"
    LINE_COMMENT = "line_comment"
    BLOCK_COMMENT = "block_comment"
    CONTINUATION = "continuation"
    NEWLINE = "newline"
    WHITESPACE = "whitespace"
    UNKNOWN = "unknown"


_TRIVIA = frozenset({
    TokenKind.WHITESPACE,
    TokenKind.NEWLINE,
    TokenKind.LINE_COMMENT,
    TokenKind.BLOCK_COMMENT,
    TokenKind.CONTINUATION,
})

_COMMENTS = frozenset({TokenKind.LINE_COMMENT, TokenKind.BLOCK_COMMENT})

_WORDS = frozenset({TokenKind.IDENTIFIER, TokenKind.KEYWORD, TokenKind.TYPE})


@dataclass(frozen=True)
class Token:
    """
    One lexical token.

    ``start``/``end`` are 0-based character offsets (end exclusive).
    ``line``/``column`` are 1-based; ``end_column`` is exclusive and refers
    to ``end_line``.
    """

    kind: TokenKind
    text: str
    start: int
    end: int
    line: int
    column: int
    end_line: int
    end_column: int
    terminated: bool = True

    @property
    def is_trivia(self) -> bool:
        return self.kind in _TRIVIA

    @property
    def is_comment(self) -> bool:
        return self.kind in _COMMENTS

    @property
    def is_word(self) -> bool:
        return self.kind in _WORDS

    def is_op(self, *texts: str) -> bool:
        return self.kind is TokenKind.OPERATOR and (not texts or self.text in texts)

    def is_punct(self, *texts: str) -> bool:
        return self.kind is TokenKind.PUNCT and (not texts or self.text in texts)

    def __repr__(self) -> str:
        return f"Token({self.kind.name}, {self.text!r}, {self.line}:{self.column})"


@dataclass
class TokenStream:
    """The result of tokenizing one source text."""

    tokens: List[Token]
    filename: str = ""
    errors: List[LexicalError] = field(default_factory=list)
    _by_line: Optional[Dict[int, List[Token]]] = field(
        default=None, repr=False, compare=False
    )

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)

    def __getitem__(self, index: int) -> Token:
        return self.tokens[index]

    @property
    def text(self) -> str:
        return "".join(tok.text for tok in self.tokens)

    def significant(self) -> List[Token]:
        """Tokens other than whitespace, newlines, comments and continuations."""
        return [tok for tok in self.tokens if not tok.is_trivia]

    def comments(self) -> List[Token]:
        return [tok for tok in self.tokens if tok.is_comment]

    def on_line(self, line: int) -> List[Token]:
        """Tokens that start on physical line *line*."""
        if self._by_line is None:
            by_line: Dict[int, List[Token]] = {}
            for tok in self.tokens:
                by_line.setdefault(tok.line, []).append(tok)
            self._by_line = by_line
        return self._by_line.get(line, [])


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — PARSE TREE → TOKENS
# ═══════════════════════════════════════════════════════════════════

class _LineIndex:
    """Maps character offsets to 1-based (line, column) pairs."""

    def __init__(self, text: str) -> None:
        starts = [0]
        i = 0
        n = len(text)
        while i < n:
            ch = text[i]
            if ch == "\r":
                if i + 1 < n and text[i + 1] == "\n":
                    i += 1
                starts.append(i + 1)
            elif ch == "\n":
                starts.append(i + 1)
            i += 1
        self._starts = starts

    def position(self, offset: int) -> tuple:
        idx = bisect.bisect_right(self._starts, offset) - 1
        return idx + 1, offset - self._starts[idx] + 1


class HanslTokenBuilder(NodeVisitor):
    """Transforms the Parsimonious parse tree into a list of ``Token``."""

    def __init__(self, text: str) -> None:
        self._index = _LineIndex(text)

    def generic_visit(self, node, visited_children):
        return visited_children or node

    def visit_source(self, node, visited_children):
        return list(visited_children)

    def visit_item(self, node, visited_children):
        return visited_children[0]

    # ─────────────────────────────────────────────────────────────
    # Leaves
    # ─────────────────────────────────────────────────────────────

    def visit_block_comment(self, node, _):
        return self._make(TokenKind.BLOCK_COMMENT, node)

    def visit_unclosed_comment(self, node, _):
        return self._make(TokenKind.BLOCK_COMMENT, node, terminated=False)

    def visit_line_comment(self, node, _):
        return self._make(TokenKind.LINE_COMMENT, node)

    def visit_string(self, node, _):
        return self._make(TokenKind.STRING, node)

    def visit_unclosed_string(self, node, _):
        return self._make(TokenKind.STRING, node, terminated=False)

    def visit_continuation(self, node, _):
        return self._make(TokenKind.CONTINUATION, node)

    def visit_newline(self, node, _):
        return self._make(TokenKind.NEWLINE, node)

    def visit_whitespace(self, node, _):
        return self._make(TokenKind.WHITESPACE, node)

    def visit_option(self, node, _):
        return self._make(TokenKind.OPTION, node)

    def visit_number(self, node, _):
        return self._make(TokenKind.NUMBER, node)

    def visit_accessor(self, node, _):
        return self._make(TokenKind.ACCESSOR, node)

    def visit_at_ref(self, node, _):
        return self._make(TokenKind.AT_REF, node)

    def visit_identifier(self, node, _):
        if node.text in TYPE_WORDS:
            return self._make(TokenKind.TYPE, node)
        if node.text in KEYWORDS:
            return self._make(TokenKind.KEYWORD, node)
        return self._make(TokenKind.IDENTIFIER, node)

    def visit_operator(self, node, _):
        return self._make(TokenKind.OPERATOR, node)

    def visit_punct(self, node, _):
        return self._make(TokenKind.PUNCT, node)

    def visit_unknown(self, node, _):
        return self._make(TokenKind.UNKNOWN, node)

    # ─────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────

    def _make(self, kind: TokenKind, node: Node, terminated: bool = True) -> Token:
        line, column = self._index.position(node.start)
        if node.end > node.start:
            end_line, last_col = self._index.position(node.end - 1)
            end_column = last_col + 1
        else:
            end_line, end_column = line, column
        return Token(
            kind=kind,
            text=node.text,
            start=node.start,
            end=node.end,
            line=line,
            column=column,
            end_line=end_line,
            end_column=end_column,
            terminated=terminated,
        )


# ═══════════════════════════════════════════════════════════════════
#  PART 4 — PUBLIC API
# ═══════════════════════════════════════════════════════════════════

def tokenize(text: str, filename: str = "", strict: bool = False) -> TokenStream:
    """
    Tokenize Hansl *text*.

    In strict mode the first unterminated string or block comment raises
    the matching ``LexicalError``.  Otherwise every lexical problem is
    collected on ``TokenStream.errors`` and tokenization always succeeds.
    """
    try:
        tree = HANSL_GRAMMAR.parse(text)
    except ParseError as exc:
        raise LexicalError(
            f"Cannot tokenize input: {exc}",
            location=SourceLocation(filename, exc.line(), exc.column()),
        ) from exc

    tokens: List[Token] = HanslTokenBuilder(text).visit(tree)
    stream = TokenStream(tokens=tokens, filename=filename)

    for tok in tokens:
        loc = SourceLocation(filename, tok.line, tok.column)
        error: Optional[LexicalError] = None
        if not tok.terminated and tok.kind is TokenKind.STRING:
            error = UnterminatedStringError(loc)
        elif not tok.terminated and tok.kind is TokenKind.BLOCK_COMMENT:
            error = UnterminatedCommentError(loc)
        elif tok.kind is TokenKind.UNKNOWN:
            error = LexicalError(f"Unexpected character {tok.text!r}", location=loc)
        if error is None:
            continue
        if strict and error.rule is not Rules.INVALID_CHARACTER:
            raise error
        stream.errors.append(error)

    logger.debug("tokenized %s: %d tokens, %d lexical problems",
                 filename or "<input>", len(tokens), len(stream.errors))
    return stream


__all__ = [
    "HANSL_TOKEN_GRAMMAR",
    "HANSL_GRAMMAR",
    "TokenKind",
    "Token",
    "TokenStream",
    "HanslTokenBuilder",
    "tokenize",
]
