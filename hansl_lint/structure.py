"""
hansl_lint/structure.py
═══════════════════════

Recovers the statement and block structure of a Hansl script from its
token stream.  This is not a Hansl parser: it only rebuilds what the style
rules need.

  • logical statements (physical lines joined by a trailing backslash, a
    trailing comma or still-open brackets),
  • block nesting (``function``/``if``/``loop``/end-terminated commands),
  • declarations (functions, parameters, typed and untyped variables,
    loop indices) and function docstrings.

Structural problems (stray terminators, unclosed blocks) are collected as
``StructureError`` objects instead of being raised, so that one broken
block does not hide every other finding in the file.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from hansl_lint.errors import Rules, SourceLocation, StructureError
from hansl_lint.lexer import Token, TokenKind, TokenStream
from hansl_lint.source import SourceFile
from hansl_lint.vocabulary import END_BLOCK_COMMANDS, TYPE_CATEGORY, VERBATIM_BLOCKS

logger = logging.getLogger(__name__)

ASSIGNMENT_OPERATORS = frozenset({
    "=", "+=", "-=", "*=", "/=", "^=", "%=", "~=", "|=", "++", "--",
})

# Scalar-like parameter types that are not declaration keywords.
PARAM_SCALAR_TYPES = frozenset({"bool", "int", "obs"})

# Keywords that always begin a new statement, even inside open brackets.
_STATEMENT_KEYWORDS = frozenset({
    "if", "elif", "else", "endif", "loop", "endloop", "end", "function",
    "return",
})

_OPENING = ("(", "[", "{")
_CLOSING = (")", "]", "}")

_VERBATIM_START = re.compile(
    r"^\s*(?:catch\s+)?(%s)\b" % "|".join(sorted(VERBATIM_BLOCKS))
)
_VERBATIM_END = re.compile(r"^\s*end\s+(%s)\b" % "|".join(sorted(VERBATIM_BLOCKS)))


# ═════════════════════════════════════════════════════════════════════════
#  DATA MODEL
# ═════════════════════════════════════════════════════════════════════════

class BlockKind(enum.Enum):
    FUNCTION = "function"
    IF = "if"
    LOOP = "loop"
    COMMAND = "command"


class BlockRole(enum.Enum):
    """How a statement takes part in the block structure."""

    NONE = "none"
    OPEN = "open"
    REOPEN = "reopen"       # elif / else
    CLOSE = "close"


@dataclass
class Statement:
    """
    One logical statement.

    ``tokens`` holds only significant tokens.  ``first_index`` and
    ``last_index`` point into the full token list of the stream.
    """

    tokens: List[Token]
    first_index: int
    last_index: int
    first_line: int
    last_line: int
    indent: str
    depth: int = 0
    catch: bool = False
    role: BlockRole = BlockRole.NONE

    @property
    def head(self) -> List[Token]:
        """Significant tokens after an optional ``catch`` prefix."""
        return self.tokens[1:] if self.catch else self.tokens

    @property
    def word(self) -> str:
        head = self.head
        return head[0].text if head else ""

    @property
    def is_multiline(self) -> bool:
        return self.last_line > self.first_line


@dataclass
class Block:
    kind: BlockKind
    name: str
    open_line: int
    depth: int
    close_line: int = 0

    @property
    def closed(self) -> bool:
        return self.close_line > 0


@dataclass(frozen=True)
class Parameter:
    name: str
    type_word: str
    token: Token
    pointer: bool = False
    const: bool = False


@dataclass
class FunctionDef:
    name: str
    name_token: Token
    return_type: str
    parameters: List[Parameter]
    header_line: int
    statement: Statement
    docstring: Optional[Token] = None
    end_line: int = 0


@dataclass(frozen=True)
class Declaration:
    """
    A name introduced by the script.

    ``category`` is one of ``function``, ``parameter``, ``loop_index``,
    ``untyped`` or a type category from ``TYPE_CATEGORY`` (``scalar``,
    ``series``, ``matrix``, ``string``, ``list``, ``bundle``, ``array``).
    """

    name: str
    category: str
    token: Token
    type_word: str = ""
    scope: str = ""


@dataclass
class ScriptStructure:
    statements: List[Statement] = field(default_factory=list)
    blocks: List[Block] = field(default_factory=list)
    functions: List[FunctionDef] = field(default_factory=list)
    declarations: List[Declaration] = field(default_factory=list)
    errors: List[StructureError] = field(default_factory=list)
    verbatim_lines: Set[int] = field(default_factory=set)

    def statement_at(self, line: int) -> Optional[Statement]:
        for stmt in self.statements:
            if stmt.first_line <= line <= stmt.last_line:
                return stmt
        return None

    def statement_lines(self) -> Set[int]:
        lines: Set[int] = set()
        for stmt in self.statements:
            lines.update(range(stmt.first_line, stmt.last_line + 1))
        return lines


# ═════════════════════════════════════════════════════════════════════════
#  STATEMENT SPLITTING
# ═════════════════════════════════════════════════════════════════════════

def _block_comment_lines(stream: Optional[TokenStream]) -> Set[int]:
    """Lines that begin inside a ``/* ... */`` comment opened on an earlier line."""
    covered: Set[int] = set()
    for tok in stream or ():
        if tok.kind is TokenKind.BLOCK_COMMENT:
            covered.update(range(tok.line + 1, tok.end_line + 1))
    return covered


def find_verbatim_lines(source: SourceFile, stream: Optional[TokenStream] = None) -> Set[int]:
    """Physical lines inside ``foreign`` blocks (terminators excluded).

    With *stream*, a ``foreign`` word at the start of a line inside a block
    comment does not open a block.
    """
    commented = _block_comment_lines(stream)
    verbatim: Set[int] = set()
    inside = False
    for number, text in enumerate(source.lines, 1):
        if inside:
            if _VERBATIM_END.match(text):
                inside = False
            else:
                verbatim.add(number)
        elif number not in commented and _VERBATIM_START.match(text):
            inside = True
    return verbatim


def _next_significant(tokens: Sequence[Token], index: int) -> Optional[Token]:
    for tok in tokens[index + 1:]:
        if not tok.is_trivia:
            return tok
    return None


def split_statements(
    tokens: Sequence[Token],
    source: SourceFile,
    verbatim_lines: Set[int] = frozenset(),
) -> List[Statement]:
    """Group significant tokens into logical statements."""
    statements: List[Statement] = []
    current: List[Tuple[int, Token]] = []
    depth = 0
    continued = False

    def flush() -> None:
        if current:
            first_idx, first_tok = current[0]
            last_idx, last_tok = current[-1]
            sig = [tok for _, tok in current]
            catch = bool(sig) and sig[0].kind is TokenKind.KEYWORD and sig[0].text == "catch"
            statements.append(Statement(
                tokens=sig,
                first_index=first_idx,
                last_index=last_idx,
                first_line=first_tok.line,
                last_line=last_tok.end_line,
                indent=source.indentation(first_tok.line),
                catch=catch,
            ))
        current.clear()

    for idx, tok in enumerate(tokens):
        if tok.line in verbatim_lines:
            continue
        if tok.kind is TokenKind.NEWLINE:
            if not current:
                continued = False
                continue
            last = current[-1][1]
            joined = (
                continued
                or last.is_punct(",")
                or (depth > 0 and not _starts_new_statement(tokens, idx))
            )
            continued = False
            if joined:
                continue
            flush()
            depth = 0
            continue
        if tok.kind is TokenKind.CONTINUATION:
            continued = True
            continue
        if tok.kind is TokenKind.WHITESPACE:
            continue
        if tok.is_comment:
            continue
        continued = False
        current.append((idx, tok))
        if tok.is_punct(*_OPENING):
            depth += 1
        elif tok.is_punct(*_CLOSING):
            depth = max(0, depth - 1)
    flush()
    return statements


def _starts_new_statement(tokens: Sequence[Token], newline_index: int) -> bool:
    nxt = _next_significant(tokens, newline_index)
    return (
        nxt is not None
        and nxt.kind is TokenKind.KEYWORD
        and nxt.text in _STATEMENT_KEYWORDS
    )


# ═════════════════════════════════════════════════════════════════════════
#  DECLARATION PARSING
# ═════════════════════════════════════════════════════════════════════════

def _skip_brackets(toks: Sequence[Token], i: int) -> int:
    """If toks[i] opens a bracket, return the index after its partner."""
    if i >= len(toks) or not toks[i].is_punct(*_OPENING):
        return i
    level = 0
    while i < len(toks):
        if toks[i].is_punct(*_OPENING):
            level += 1
        elif toks[i].is_punct(*_CLOSING):
            level -= 1
            if level == 0:
                return i + 1
        i += 1
    return i


def _split_top_level(toks: Sequence[Token]) -> List[List[Token]]:
    """Split on commas that are not nested inside brackets."""
    chunks: List[List[Token]] = [[]]
    level = 0
    for tok in toks:
        if tok.is_punct(*_OPENING):
            level += 1
        elif tok.is_punct(*_CLOSING):
            level -= 1
        if level == 0 and tok.is_punct(","):
            chunks.append([])
            continue
        chunks[-1].append(tok)
    return [chunk for chunk in chunks if chunk]


def parse_parameter(chunk: Sequence[Token]) -> Optional[Parameter]:
    i = 0
    const = False
    if i < len(chunk) and chunk[i].kind is TokenKind.KEYWORD and chunk[i].text == "const":
        const = True
        i += 1
    if i >= len(chunk):
        return None
    type_tok = chunk[i]
    if not (type_tok.kind is TokenKind.TYPE or type_tok.text in PARAM_SCALAR_TYPES):
        return None
    i += 1
    pointer = False
    if i < len(chunk) and chunk[i].is_op("*"):
        pointer = True
        i += 1
    if i >= len(chunk) or not chunk[i].is_word:
        return None
    name_tok = chunk[i]
    return Parameter(
        name=name_tok.text,
        type_word=type_tok.text,
        token=name_tok,
        pointer=pointer,
        const=const,
    )


def parse_function_header(stmt: Statement) -> Optional[FunctionDef]:
    """Parse ``function <type> name(<params>)``; None if not a header."""
    toks = stmt.head
    if not toks or toks[0].text != "function":
        return None
    i = 1
    return_type = ""
    if (i + 1 < len(toks) and toks[i].kind is TokenKind.TYPE
            and toks[i + 1].is_word):
        return_type = toks[i].text
        i += 1
    if i >= len(toks) or not toks[i].is_word:
        return None
    name_tok = toks[i]
    i += 1
    if i >= len(toks) or not toks[i].is_punct("("):
        return None
    end = _skip_brackets(toks, i)
    inner = toks[i + 1:end - 1] if end - 1 > i else []
    params = []
    for chunk in _split_top_level(inner):
        param = parse_parameter(chunk)
        if param is not None:
            params.append(param)
    return FunctionDef(
        name=name_tok.text,
        name_token=name_tok,
        return_type=return_type,
        parameters=params,
        header_line=stmt.first_line,
        statement=stmt,
    )


def typed_declaration_names(head: Sequence[Token]) -> List[Token]:
    """Names declared by ``<type> a [= ...]`` or ``<type> a, b``."""
    names: List[Token] = []
    i = 1
    while i < len(head):
        tok = head[i]
        if tok.kind is not TokenKind.IDENTIFIER:
            break
        names.append(tok)
        i = _skip_brackets(head, i + 1)
        if i < len(head) and head[i].is_punct(","):
            i += 1
            continue
        break
    return names


def untyped_assignment_name(head: Sequence[Token]) -> Optional[Token]:
    """The target of ``name = ...`` (or ``genr name = ...``)."""
    if len(head) >= 2 and head[0].kind is TokenKind.IDENTIFIER:
        if head[1].is_op(*ASSIGNMENT_OPERATORS):
            return head[0]
        if (head[0].text == "genr" and len(head) >= 3
                and head[1].kind is TokenKind.IDENTIFIER
                and head[2].is_op(*ASSIGNMENT_OPERATORS)):
            return head[1]
    return None


def loop_index_name(head: Sequence[Token]) -> Optional[Token]:
    """Index variable of ``loop i = ...``, ``loop foreach i`` or ``loop for (i = ...)``."""
    if len(head) < 3 or head[0].text != "loop":
        return None
    second = head[1]
    if second.kind is TokenKind.IDENTIFIER and head[2].is_op("="):
        return second
    if second.kind is TokenKind.KEYWORD and second.text == "foreach":
        return head[2] if head[2].kind is TokenKind.IDENTIFIER else None
    if (second.kind is TokenKind.KEYWORD and second.text == "for"
            and len(head) >= 5 and head[2].is_punct("(")
            and head[3].kind is TokenKind.IDENTIFIER and head[4].is_op("=")):
        return head[3]
    return None


def find_docstring(tokens: Sequence[Token], first_index: int) -> Optional[Token]:
    """The block comment directly above a statement, blank lines allowed."""
    j = first_index - 1
    while j >= 0 and tokens[j].kind in (TokenKind.WHITESPACE, TokenKind.NEWLINE):
        j -= 1
    if j >= 0 and tokens[j].kind is TokenKind.BLOCK_COMMENT and tokens[j].terminated:
        return tokens[j]
    return None


# ═════════════════════════════════════════════════════════════════════════
#  BLOCK ANALYSIS
# ═════════════════════════════════════════════════════════════════════════

def _classify(stmt: Statement) -> Tuple[BlockRole, BlockKind, str]:
    """Return (role, kind, name) for the statement's block behaviour."""
    head = stmt.head
    if not head:
        return BlockRole.NONE, BlockKind.COMMAND, ""
    word = head[0].text
    kind_of_head = head[0].kind
    if kind_of_head is TokenKind.KEYWORD:
        if word == "function":
            if any(tok.is_punct("(") for tok in head):
                return BlockRole.OPEN, BlockKind.FUNCTION, "function"
            return BlockRole.NONE, BlockKind.FUNCTION, ""
        if word == "if":
            return BlockRole.OPEN, BlockKind.IF, "if"
        if word in ("elif", "else"):
            return BlockRole.REOPEN, BlockKind.IF, "if"
        if word == "endif":
            return BlockRole.CLOSE, BlockKind.IF, "if"
        if word == "loop":
            return BlockRole.OPEN, BlockKind.LOOP, "loop"
        if word == "endloop":
            return BlockRole.CLOSE, BlockKind.LOOP, "loop"
        if word == "end":
            target = head[1].text if len(head) > 1 else ""
            if target == "function":
                return BlockRole.CLOSE, BlockKind.FUNCTION, "function"
            return BlockRole.CLOSE, BlockKind.COMMAND, target
    if kind_of_head is TokenKind.IDENTIFIER and word in END_BLOCK_COMMANDS:
        options = {tok.text.split("=")[0] for tok in head if tok.kind is TokenKind.OPTION}
        if word == "outfile" and "--close" in options:
            return BlockRole.CLOSE, BlockKind.COMMAND, "outfile"
        return BlockRole.OPEN, BlockKind.COMMAND, word
    return BlockRole.NONE, BlockKind.COMMAND, ""


def _describe(block: Block) -> str:
    return "function" if block.kind is BlockKind.FUNCTION else block.name


def _closer_text(stmt: Statement) -> str:
    head = stmt.head
    if head and head[0].text == "end" and len(head) > 1:
        return f"end {head[1].text}"
    return stmt.word


def _matches(block: Block, kind: BlockKind, name: str) -> bool:
    if block.kind is not kind:
        return False
    return kind is not BlockKind.COMMAND or block.name == name


def analyze(source: SourceFile, stream: TokenStream) -> ScriptStructure:
    """Build the ``ScriptStructure`` of one script."""
    filename = source.display_name
    tokens = stream.tokens
    verbatim = find_verbatim_lines(source, stream)
    structure = ScriptStructure(verbatim_lines=verbatim)
    structure.statements = split_statements(tokens, source, verbatim)

    stack: List[Block] = []
    open_functions: List[FunctionDef] = []
    symbols: Dict[str, Dict[str, str]] = {"": {}}

    def scope() -> str:
        return open_functions[-1].name if open_functions else ""

    def declare(tok: Token, category: str, type_word: str = "") -> None:
        table = symbols.setdefault(scope(), {})
        table[tok.text] = category
        structure.declarations.append(Declaration(
            name=tok.text, category=category, token=tok,
            type_word=type_word, scope=scope(),
        ))

    def error(message: str, rule, line: int, hint: str = "") -> None:
        structure.errors.append(StructureError(
            message, rule, location=SourceLocation(filename, line, 0), hint=hint,
        ))

    for stmt in structure.statements:
        role, kind, name = _classify(stmt)
        stmt.role = role

        if role is BlockRole.OPEN:
            stmt.depth = len(stack)
            stack.append(Block(kind, name, stmt.first_line, stmt.depth))
            structure.blocks.append(stack[-1])
            if kind is BlockKind.FUNCTION:
                fdef = parse_function_header(stmt)
                if fdef is not None:
                    fdef.docstring = find_docstring(tokens, stmt.first_index)
                    structure.functions.append(fdef)
                    declare(fdef.name_token, "function", fdef.return_type)
                    open_functions.append(fdef)
                    symbols[fdef.name] = {}
                    for param in fdef.parameters:
                        declare(param.token, "parameter", param.type_word)
                    continue
        elif role is BlockRole.REOPEN:
            if stack and stack[-1].kind is BlockKind.IF:
                stmt.depth = stack[-1].depth
            else:
                stmt.depth = len(stack)
                error(f"'{stmt.word}' without an open 'if' block",
                      Rules.UNMATCHED_BLOCK_END, stmt.first_line)
        elif role is BlockRole.CLOSE:
            closer = _closer_text(stmt)
            if stack and _matches(stack[-1], kind, name):
                block = stack.pop()
                block.close_line = stmt.first_line
                stmt.depth = block.depth
                _close_function(block, open_functions, stmt.first_line)
            else:
                match = next(
                    (i for i in range(len(stack) - 1, -1, -1)
                     if _matches(stack[i], kind, name)),
                    None,
                )
                if match is None:
                    stmt.depth = len(stack)
                    error(f"'{closer}' has no matching opening statement",
                          Rules.UNMATCHED_BLOCK_END, stmt.first_line)
                else:
                    inner = stack[-1]
                    error(
                        f"'{closer}' found while '{_describe(inner)}' block "
                        f"from line {inner.open_line} is still open",
                        Rules.UNMATCHED_BLOCK_END, stmt.first_line,
                        hint=f"Close the '{_describe(inner)}' block first",
                    )
                    while len(stack) > match:
                        block = stack.pop()
                        block.close_line = stmt.first_line
                        _close_function(block, open_functions, stmt.first_line)
                    stmt.depth = match
        else:
            stmt.depth = len(stack)

        _collect_declarations(stmt, symbols.get(scope(), {}), declare)

    for block in stack:
        error(f"'{_describe(block)}' block opened here is never closed",
              Rules.UNCLOSED_BLOCK, block.open_line,
              hint=_expected_terminator(block))

    logger.debug(
        "%s: %d statements, %d blocks, %d functions, %d structure errors",
        filename, len(structure.statements), len(structure.blocks),
        len(structure.functions), len(structure.errors),
    )
    return structure


def _close_function(block: Block, open_functions: List[FunctionDef], line: int) -> None:
    if block.kind is BlockKind.FUNCTION and open_functions:
        open_functions.pop().end_line = line


def _expected_terminator(block: Block) -> str:
    if block.kind is BlockKind.IF:
        return "Add 'endif'"
    if block.kind is BlockKind.LOOP:
        return "Add 'endloop'"
    return f"Add 'end {_describe(block)}'"


def _collect_declarations(stmt: Statement, known: Dict[str, str], declare) -> None:
    head = stmt.head
    if not head:
        return
    first = head[0]
    if first.kind is TokenKind.TYPE and first.text in TYPE_CATEGORY:
        for tok in typed_declaration_names(head):
            declare(tok, TYPE_CATEGORY[first.text], first.text)
        return
    index = loop_index_name(head)
    if index is not None:
        if index.text not in known:
            declare(index, "loop_index")
        return
    target = untyped_assignment_name(head)
    if target is not None and target.text not in known:
        declare(target, "untyped")


__all__ = [
    "BlockKind",
    "BlockRole",
    "Statement",
    "Block",
    "Parameter",
    "FunctionDef",
    "Declaration",
    "ScriptStructure",
    "find_verbatim_lines",
    "split_statements",
    "parse_function_header",
    "parse_parameter",
    "typed_declaration_names",
    "untyped_assignment_name",
    "loop_index_name",
    "find_docstring",
    "analyze",
]
