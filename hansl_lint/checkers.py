"""
hansl_lint/checkers.py
══════════════════════

Checker framework and the built-in style checkers.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │    SourceFile ─► tokenize ─► analyze (ScriptStructure)  │
  │  ┌──────────┐ ┌──────────┐ ┌────────────┐ ┌──────────┐  │
  │  │  naming  │ │  layout  │ │ whitespace │ │ comments │  │
  │  └────┬─────┘ └────┬─────┘ └─────┬──────┘ └────┬─────┘  │
  │       │   ┌────────┴──┐  ┌───────┴──┐          │        │
  │       │   │indentation│  │  files   │          │        │
  │       │   └─────┬─────┘  └────┬─────┘          │        │
  │  ┌────▼─────────▼─────────────▼────────────────▼─────┐  │
  │  │           SuppressionManager                      │  │
  │  │  # hansl-lint: ...  │  per-file ignores │  ignore │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             ▼                           │
  │                        LintResults                      │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        — read thresholds from the ``LintConfig``
  2. **collect_evidence()** — walk tokens / statements, gather sites
  3. **diagnose()**         — turn sites into diagnostics
  4. **report()**           — return diagnostics (filtered by suppressions)
"""

from __future__ import annotations

import logging
import os
import re
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import (
    Any,
    ClassVar,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from hansl_lint.config import NAMING_STYLES, LintConfig, expand_rule_reference
from hansl_lint.errors import (
    ConfigError,
    Diagnostic,
    RuleCode,
    Rules,
    Severity,
    SourceError,
    SourceLocation,
)
from hansl_lint.lexer import Token, TokenKind, TokenStream, tokenize
from hansl_lint.source import SourceFile, iter_source_files
from hansl_lint.structure import (
    BlockRole,
    Declaration,
    ScriptStructure,
    Statement,
    analyze,
)
from hansl_lint.vocabulary import COMMANDS, RESERVED_NAMES

logger = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

_DIRECTIVE = re.compile(
    r"hansl-lint:\s*(disable-next-line|disable-file|disable|off|on)\b"
    r"(?:\s*=\s*(?P<rules>[^#]*))?",
    re.IGNORECASE,
)

ANY_RULE = "*"


class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Sources:
      1. Inline comments: ``# hansl-lint: disable=HL201`` (same line),
         ``disable-next-line=...``, ``off`` / ``on`` regions and
         ``disable-file=...``
      2. File-level suppressions (``per_file_ignores`` in the config)
      3. Global suppressions (``ignore`` in the config or ``--ignore``)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.load_inline_suppressions(stream, source)
    >>> sm.add_file_suppression("HL102", "legacy/*.inp")
    >>> sm.add_global_suppression("HL602")
    >>> if not sm.is_suppressed(diagnostic):
    ...     emit(diagnostic)
    """

    def __init__(self) -> None:
        # line -> codes suppressed on that line
        self._inline: Dict[int, Set[str]] = defaultdict(set)
        # file pattern -> codes
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        # codes suppressed for the file being linted (disable-file)
        self._whole_file: Set[str] = set()
        self._global: Set[str] = set()

    def load_config(self, config: LintConfig) -> None:
        for code in config.ignore:
            self.add_global_suppression(code)
        for pattern, codes in config.per_file_ignores.items():
            for code in codes:
                self.add_file_suppression(code, pattern)

    def load_inline_suppressions(self, stream: TokenStream, source: SourceFile) -> None:
        """Scan ``#`` comments for ``hansl-lint:`` directives."""
        region_start: Optional[int] = None
        for tok in stream.comments():
            if tok.kind is not TokenKind.LINE_COMMENT:
                continue
            match = _DIRECTIVE.search(tok.text)
            if match is None:
                continue
            action = match.group(1).lower()
            codes = self._parse_codes(match.group("rules"), tok)
            if action == "disable":
                self._inline[tok.line].update(codes)
            elif action == "disable-next-line":
                target = _next_code_line(source, tok.line)
                if target:
                    self._inline[target].update(codes)
            elif action == "disable-file":
                self._whole_file.update(codes)
            elif action == "off":
                if region_start is None:
                    region_start = tok.line
            elif action == "on" and region_start is not None:
                for line in range(region_start, tok.line + 1):
                    self._inline[line].add(ANY_RULE)
                region_start = None
        if region_start is not None:
            for line in range(region_start, len(source.lines) + 1):
                self._inline[line].add(ANY_RULE)

    @staticmethod
    def _parse_codes(text: Optional[str], tok: Token) -> Set[str]:
        keys = [k for k in re.split(r"[,\s]+", (text or "").strip()) if k]
        if not keys:
            return {ANY_RULE}
        codes: Set[str] = set()
        for key in keys:
            if key.lower() == "all":
                return {ANY_RULE}
            try:
                codes.update(expand_rule_reference(key))
            except ConfigError:
                logger.warning("line %d: unknown rule %r in suppression comment",
                               tok.line, key)
        return codes

    def add_file_suppression(self, code: str, file_pattern: str) -> None:
        """Suppress ``code`` in files matching ``file_pattern``."""
        self._file_level[file_pattern].add(code)

    def add_global_suppression(self, code: str) -> None:
        """Globally suppress ``code``."""
        self._global.add(code)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        """Check whether a diagnostic should be suppressed."""
        code = diag.code

        # Global and whole-file
        for ids in (self._global, self._whole_file):
            if code in ids or ANY_RULE in ids:
                return True

        # Inline
        ids = self._inline.get(diag.location.line, set())
        if code in ids or ANY_RULE in ids:
            return True

        # File-level
        file = diag.location.file
        normalized = Path(file).as_posix()
        name = os.path.basename(file)
        for pattern, ids in self._file_level.items():
            if code in ids or ANY_RULE in ids:
                if fnmatch(normalized, pattern) or fnmatch(name, pattern):
                    return True
        return False

    def filter_diagnostics(
        self, diagnostics: Iterable[Diagnostic]
    ) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


def _next_code_line(source: SourceFile, line: int) -> int:
    for number in range(line + 1, len(source.lines) + 1):
        if source.line(number).strip():
            return number
    return 0


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — CHECKER BASE CLASS AND CONTEXT
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerContext:
    """
    Shared context passed to every checker during execution.

    Attributes
    ----------
    source       : the script being linted
    stream       : its token stream
    structure    : statements, blocks and declarations
    config       : LintConfig
    suppressions : SuppressionManager
    analyses     : results shared between checkers (keyed by name)
    stats        : mutable dict for timing / counting statistics
    """
    source: SourceFile
    stream: TokenStream
    structure: ScriptStructure
    config: LintConfig = field(default_factory=LintConfig)
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    analyses: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @property
    def filename(self) -> str:
        return self.source.display_name

    def is_verbatim(self, line: int) -> bool:
        return line in self.structure.verbatim_lines

    def get_analysis(self, name: str) -> Any:
        return self.analyses.get(name)

    def set_analysis(self, name: str, result: Any) -> None:
        self.analyses[name] = result


class Checker(ABC):
    """
    Abstract base class for all checkers.

    Lifecycle
    ─────────
      1. ``configure(ctx)``        — read settings from ``ctx.config``
      2. ``collect_evidence(ctx)`` — gather suspicious sites
      3. ``diagnose(ctx)``         — turn evidence into diagnostics
      4. ``report(ctx)``           — return final diagnostics

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``rules``
      - Implement ``collect_evidence()`` and ``diagnose()``
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    rules: ClassVar[Tuple[RuleCode, ...]] = ()

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def configure(self, ctx: CheckerContext) -> None:
        """Called before evidence collection.  Default does nothing."""

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        ctx: CheckerContext,
        rule: RuleCode,
        message: str,
        line: int,
        column: int = 0,
        end_column: int = 0,
        hint: str = "",
    ) -> None:
        """Helper to create and store a diagnostic."""
        self._diagnostics.append(Diagnostic(
            rule=rule,
            message=message,
            severity=ctx.config.severity_for(rule),
            location=SourceLocation(file=ctx.filename, line=line, column=column),
            checker_name=self.name,
            end_column=end_column,
            hint=hint,
        ))

    def _emit_at(self, ctx: CheckerContext, rule: RuleCode, message: str,
                 tok: Token, hint: str = "") -> None:
        end = tok.end_column if tok.end_line == tok.line else 0
        self._emit(ctx, rule, message, tok.line, tok.column, end, hint)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Registry of available checkers with discovery and filtering.

    Usage
    -----
    >>> registry = CheckerRegistry()
    >>> registry.register(NamingChecker)
    >>> registry.register(LayoutChecker)
    >>> checkers = registry.get_enabled()
    >>> checkers = registry.filter_by_rule("HL201")
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> None:
        """Register a checker class."""
        self._checkers[checker_cls.name] = checker_cls

    def unregister(self, name: str) -> None:
        """Remove a checker by name."""
        self._checkers.pop(name, None)

    def disable(self, name: str) -> None:
        """Disable a registered checker."""
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        """Re-enable a disabled checker."""
        self._disabled.discard(name)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())

    def get_enabled(self) -> List[Type[Checker]]:
        return [
            cls for name, cls in self._checkers.items()
            if name not in self._disabled
        ]

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    def filter_by_rule(self, key: str) -> List[Type[Checker]]:
        """Return checkers that can produce the rule named by *key*."""
        return [
            cls for cls in self._checkers.values()
            if any(rule == key for rule in cls.rules)
        ]

    @property
    def names(self) -> List[str]:
        return sorted(self._checkers.keys())


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — TOKEN HELPERS
# ═════════════════════════════════════════════════════════════════════════

_BREAKS = frozenset({TokenKind.NEWLINE, TokenKind.CONTINUATION})


def _prev_raw(tokens: Sequence[Token], index: int) -> Optional[Token]:
    return tokens[index - 1] if index > 0 else None


def _next_raw(tokens: Sequence[Token], index: int) -> Optional[Token]:
    return tokens[index + 1] if index + 1 < len(tokens) else None


def _space_before(tokens: Sequence[Token], index: int) -> bool:
    """Whitespace (or a line start) directly before tokens[index]."""
    prev = _prev_raw(tokens, index)
    return prev is None or prev.kind is TokenKind.WHITESPACE or prev.kind in _BREAKS


def _space_after(tokens: Sequence[Token], index: int) -> bool:
    """Whitespace (or a line end) directly after tokens[index]."""
    nxt = _next_raw(tokens, index)
    return (
        nxt is None
        or nxt.kind is TokenKind.WHITESPACE
        or nxt.kind in _BREAKS
        or nxt.kind is TokenKind.LINE_COMMENT
    )


def _at_line_start(tokens: Sequence[Token], index: int) -> bool:
    """Only indentation precedes tokens[index] on its line."""
    j = index - 1
    while j >= 0 and tokens[j].kind is TokenKind.WHITESPACE:
        j -= 1
    return j < 0 or tokens[j].kind in _BREAKS


def _at_line_end(tokens: Sequence[Token], index: int) -> bool:
    """Only whitespace or a comment follows tokens[index] on its line."""
    j = index + 1
    while j < len(tokens) and tokens[j].kind is TokenKind.WHITESPACE:
        j += 1
    return (
        j >= len(tokens)
        or tokens[j].kind in _BREAKS
        or tokens[j].kind is TokenKind.LINE_COMMENT
    )


def _statement_tokens(ctx: CheckerContext) -> Iterable[Tuple[Statement, List[int]]]:
    """Yield each statement with the stream indices of its significant tokens."""
    tokens = ctx.stream.tokens
    for stmt in ctx.structure.statements:
        indices = [
            i for i in range(stmt.first_index, stmt.last_index + 1)
            if not tokens[i].is_trivia and not ctx.is_verbatim(tokens[i].line)
        ]
        yield stmt, indices


def to_snake_case(name: str) -> str:
    """Suggest a lower snake case spelling of *name*."""
    s = re.sub(r"[^A-Za-z0-9]+", "_", name).strip("_")
    s = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s)
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", s)
    return re.sub(r"_+", "_", s).lower()


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — STYLE CHECKERS
# ═════════════════════════════════════════════════════════════════════════

# ─────────────────────────────────────────────────────────────────────────
#  5.1  Naming conventions
# ─────────────────────────────────────────────────────────────────────────

_CATEGORY_LABELS = {
    "function": "function",
    "parameter": "parameter",
    "loop_index": "loop index",
    "untyped": "variable",
    "array": "array",
}

AMBIGUOUS_NAMES = frozenset({"l", "O", "I"})


class NamingChecker(Checker):
    """
    Identifier naming conventions.

    The accepted styles are configured per category (function, parameter,
    scalar, series, matrix, ...).  Built-in names, ambiguous one-letter
    names and names longer than Gretl's limit are reported regardless of
    style.
    """

    name: ClassVar[str] = "naming"
    description: ClassVar[str] = "Naming conventions for functions, parameters and variables"
    rules: ClassVar[Tuple[RuleCode, ...]] = (
        Rules.FUNCTION_NAME, Rules.VARIABLE_NAME, Rules.PARAMETER_NAME,
        Rules.BUILTIN_SHADOWED, Rules.AMBIGUOUS_NAME, Rules.NAME_TOO_LONG,
    )

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Declaration] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._max_length = ctx.config.max_name_length

    def collect_evidence(self, ctx: CheckerContext) -> None:
        seen: Set[Tuple[int, int]] = set()
        for decl in ctx.structure.declarations:
            key = (decl.token.line, decl.token.column)
            if key in seen:
                continue
            seen.add(key)
            self._sites.append(decl)

    @staticmethod
    def _rule_for(category: str) -> RuleCode:
        if category == "function":
            return Rules.FUNCTION_NAME
        if category == "parameter":
            return Rules.PARAMETER_NAME
        return Rules.VARIABLE_NAME

    def diagnose(self, ctx: CheckerContext) -> None:
        for decl in self._sites:
            name = decl.name
            label = _CATEGORY_LABELS.get(decl.category, decl.category)
            rule = self._rule_for(decl.category)
            styles = ctx.config.styles_for(decl.category)

            if name.startswith("_"):
                self._emit_at(ctx, rule,
                              f"{label} name '{name}' starts with an underscore",
                              decl.token, hint=f"Rename to '{to_snake_case(name)}'")
            elif not any(NAMING_STYLES[s].match(name) for s in styles):
                hint = ""
                if "snake" in styles:
                    hint = f"Rename to '{to_snake_case(name)}'"
                self._emit_at(
                    ctx, rule,
                    f"{label} name '{name}' is not {' or '.join(styles)} case",
                    decl.token, hint=hint,
                )

            if name in RESERVED_NAMES:
                self._emit_at(
                    ctx, Rules.BUILTIN_SHADOWED,
                    f"{label} name '{name}' shadows a built-in Hansl name",
                    decl.token,
                )
            if name in AMBIGUOUS_NAMES:
                self._emit_at(
                    ctx, Rules.AMBIGUOUS_NAME,
                    f"ambiguous {label} name '{name}'",
                    decl.token, hint="Avoid 'l', 'O' and 'I' as names",
                )
            if len(name) > self._max_length:
                self._emit_at(
                    ctx, Rules.NAME_TOO_LONG,
                    f"{label} name '{name}' is {len(name)} characters long "
                    f"(limit {self._max_length})",
                    decl.token,
                )


# ─────────────────────────────────────────────────────────────────────────
#  5.2  Line layout
# ─────────────────────────────────────────────────────────────────────────

_URL = re.compile(r"(?:https?|ftp)://\S+|www\.\S+")


class LayoutChecker(Checker):
    """Line length, tabs, trailing whitespace, final newline, blank lines."""

    name: ClassVar[str] = "layout"
    description: ClassVar[str] = "Physical line layout"
    rules: ClassVar[Tuple[RuleCode, ...]] = (
        Rules.LINE_TOO_LONG, Rules.TAB_CHARACTER, Rules.TRAILING_WHITESPACE,
        Rules.MISSING_FINAL_NEWLINE, Rules.TOO_MANY_BLANK_LINES,
    )

    def __init__(self) -> None:
        super().__init__()
        self._long: List[Tuple[int, int]] = []
        self._tabs: List[int] = []
        self._trailing: List[Tuple[int, int]] = []
        self._blank_runs: List[Tuple[int, int]] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._max_length = ctx.config.max_line_length
        self._max_blank = ctx.config.max_blank_lines
        self._allow_urls = ctx.config.allow_long_urls

    def _comment_columns(self, stream: TokenStream) -> Dict[int, int]:
        """Line -> first column covered by a comment on that line."""
        columns: Dict[int, int] = {}
        for tok in stream.comments():
            for line in range(tok.line, tok.end_line + 1):
                col = tok.column if line == tok.line else 1
                columns[line] = min(columns.get(line, col), col)
        return columns

    def _url_exempt(self, text: str, comment_col: Optional[int]) -> bool:
        if comment_col is None:
            return False
        urls = [m for m in _URL.finditer(text) if m.start() + 1 >= comment_col]
        if not urls:
            return False
        stripped = text
        for m in reversed(urls):
            stripped = stripped[:m.start()] + stripped[m.end():]
        return len(stripped.rstrip()) <= self._max_length

    def collect_evidence(self, ctx: CheckerContext) -> None:
        source = ctx.source
        comment_cols = self._comment_columns(ctx.stream) if self._allow_urls else {}
        run_start = 0
        run_length = 0
        for number, text in enumerate(source.lines, 1):
            if len(text) > self._max_length:
                if not (self._allow_urls
                        and self._url_exempt(text, comment_cols.get(number))):
                    self._long.append((number, len(text)))
            if "\t" in source.indentation(number):
                self._tabs.append(number)
            stripped = text.rstrip(" \t\f\v")
            if stripped != text:
                self._trailing.append((number, len(stripped) + 1))
            if not text.strip():
                if run_length == 0:
                    run_start = number
                run_length += 1
            else:
                if run_length > self._max_blank:
                    self._blank_runs.append((run_start, run_length))
                run_length = 0
        if run_length > self._max_blank:
            self._blank_runs.append((run_start, run_length))

    def diagnose(self, ctx: CheckerContext) -> None:
        for line, length in self._long:
            self._emit(ctx, Rules.LINE_TOO_LONG,
                       f"line is {length} characters long (limit {self._max_length})",
                       line, self._max_length + 1, length + 1)
        for line in self._tabs:
            self._emit(ctx, Rules.TAB_CHARACTER,
                       "indentation contains a tab character", line, 1,
                       hint="Indent with spaces")
        for line, column in self._trailing:
            self._emit(ctx, Rules.TRAILING_WHITESPACE, "trailing whitespace",
                       line, column, len(ctx.source.line(line)) + 1)
        source = ctx.source
        if source.text and not source.ends_with_newline:
            last = len(source.lines)
            self._emit(ctx, Rules.MISSING_FINAL_NEWLINE,
                       "no newline at end of file",
                       last, len(source.line(last)) + 1)
        for start, length in self._blank_runs:
            self._emit(ctx, Rules.TOO_MANY_BLANK_LINES,
                       f"{length} consecutive blank lines (limit {self._max_blank})",
                       start + self._max_blank, 1)


# ─────────────────────────────────────────────────────────────────────────
#  5.3  Whitespace around operators and punctuation
# ─────────────────────────────────────────────────────────────────────────

ASSIGNMENT_SPACED = frozenset({
    "=", "+=", "-=", "*=", "/=", "^=", "%=", "~=", "|=",
})
COMPARISON_SPACED = frozenset({"==", "!=", "<=", ">=", "<", ">", "&&", "||"})
ARITHMETIC_SPACED = frozenset({
    "+", "-", "*", "/", ".*", "./", ".+", ".-", ".=", ".>", ".<",
})
UNARY_CAPABLE = frozenset({"+", "-", "*"})

# Commands whose arguments are file names, shell text or key=value pairs.
_FREE_TEXT_COMMANDS = frozenset({
    "open", "append", "store", "run", "include", "outfile", "join", "shell",
    "foreign",
})

_OPENING = ("(", "[", "{")


class WhitespaceChecker(Checker):
    """Spacing around binary operators, commas and brackets."""

    name: ClassVar[str] = "whitespace"
    description: ClassVar[str] = "Whitespace around operators, commas and brackets"
    rules: ClassVar[Tuple[RuleCode, ...]] = (
        Rules.OPERATOR_SPACING, Rules.MISSING_SPACE_AFTER_COMMA,
        Rules.SPACE_BEFORE_COMMA, Rules.SPACE_INSIDE_BRACKETS,
        Rules.SPACE_BEFORE_CALL_PAREN,
    )

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[RuleCode, str, Token, str]] = []

    def configure(self, ctx: CheckerContext) -> None:
        spaced = set(ASSIGNMENT_SPACED | COMPARISON_SPACED)
        if ctx.config.arithmetic_operator_spacing:
            spaced |= ARITHMETIC_SPACED
        self._spaced = frozenset(spaced)

    def collect_evidence(self, ctx: CheckerContext) -> None:
        tokens = ctx.stream.tokens
        for stmt, indices in _statement_tokens(ctx):
            free_text = stmt.word in _FREE_TEXT_COMMANDS
            is_command = stmt.word in COMMANDS
            for pos, i in enumerate(indices):
                tok = tokens[i]
                prev_sig = tokens[indices[pos - 1]] if pos > 0 else None
                next_sig = tokens[indices[pos + 1]] if pos + 1 < len(indices) else None
                if tok.kind is TokenKind.OPERATOR:
                    if not free_text:
                        self._check_operator(tokens, i, prev_sig, next_sig)
                elif tok.is_punct(","):
                    self._check_comma(tokens, i)
                elif tok.is_punct("(", "["):
                    self._check_after_open(tokens, i)
                elif tok.is_punct(")", "]"):
                    self._check_before_close(tokens, i)
                elif tok.kind is TokenKind.IDENTIFIER:
                    if stmt.role is BlockRole.OPEN and stmt.word == "function":
                        continue
                    if pos == (1 if stmt.catch else 0) and is_command:
                        continue
                    self._check_call(tokens, i, prev_sig, next_sig)

    # ── operators ────────────────────────────────────────────────────

    @staticmethod
    def _is_unary(prev_sig: Optional[Token]) -> bool:
        if prev_sig is None:
            return True
        if prev_sig.kind is TokenKind.OPERATOR:
            return prev_sig.text not in ("'", "++", "--")
        if prev_sig.is_punct(*_OPENING) or prev_sig.is_punct(",", ";"):
            return True
        return prev_sig.kind in (TokenKind.KEYWORD, TokenKind.TYPE)

    def _check_operator(self, tokens: Sequence[Token], i: int,
                        prev_sig: Optional[Token], next_sig: Optional[Token]) -> None:
        tok = tokens[i]
        if tok.text not in self._spaced:
            return
        if tok.text in UNARY_CAPABLE and self._is_unary(prev_sig):
            return
        if tok.text == "*" and (next_sig is None or next_sig.is_punct(")", "]", "}", ",")):
            # list wildcard such as "list L = x*"
            return
        before = _space_before(tokens, i)
        after = _space_after(tokens, i)
        if before and after:
            return
        side = "around" if not (before or after) else ("before" if not before else "after")
        self._sites.append((
            Rules.OPERATOR_SPACING,
            f"missing whitespace {side} operator '{tok.text}'",
            tok,
            f"Write ' {tok.text} ' with a space on each side",
        ))

    # ── commas ───────────────────────────────────────────────────────

    def _check_comma(self, tokens: Sequence[Token], i: int) -> None:
        tok = tokens[i]
        prev = _prev_raw(tokens, i)
        nxt = _next_raw(tokens, i)
        slicing = prev is not None and (prev.is_punct("[") or prev.is_punct(","))
        if (not slicing and not _space_after(tokens, i)
                and not (nxt is not None and nxt.is_punct(")", "]"))):
            self._sites.append((Rules.MISSING_SPACE_AFTER_COMMA,
                                "missing whitespace after ','", tok, ""))
        if prev is not None and prev.kind is TokenKind.WHITESPACE:
            before = _prev_raw(tokens, i - 1)
            if before is not None and before.kind not in _BREAKS and not (
                    before.is_punct("[", "(") or before.is_punct(",")):
                self._sites.append((Rules.SPACE_BEFORE_COMMA,
                                    "whitespace before ','", prev, ""))

    # ── brackets ─────────────────────────────────────────────────────

    def _check_after_open(self, tokens: Sequence[Token], i: int) -> None:
        nxt = _next_raw(tokens, i)
        if nxt is None or nxt.kind is not TokenKind.WHITESPACE:
            return
        if _at_line_end(tokens, i):
            return
        self._sites.append((Rules.SPACE_INSIDE_BRACKETS,
                            f"whitespace after '{tokens[i].text}'", nxt, ""))

    def _check_before_close(self, tokens: Sequence[Token], i: int) -> None:
        prev = _prev_raw(tokens, i)
        if prev is None or prev.kind is not TokenKind.WHITESPACE:
            return
        if _at_line_start(tokens, i):
            return
        before = _prev_raw(tokens, i - 1)
        if before is not None and (before.is_punct("(", "[") or before.is_punct(",")):
            # "( )" is reported once, after the opening bracket; "[1, ]" is a slice
            return
        self._sites.append((Rules.SPACE_INSIDE_BRACKETS,
                            f"whitespace before '{tokens[i].text}'", prev, ""))

    # ── calls ────────────────────────────────────────────────────────

    def _check_call(self, tokens: Sequence[Token], i: int,
                    prev_sig: Optional[Token], next_sig: Optional[Token]) -> None:
        if next_sig is None or not next_sig.is_punct("("):
            return
        nxt = _next_raw(tokens, i)
        if nxt is None or nxt.kind is not TokenKind.WHITESPACE:
            return
        if tokens[i + 2] is not next_sig:
            return
        expression = (
            prev_sig is None
            or prev_sig.kind in (TokenKind.OPERATOR, TokenKind.KEYWORD)
            or prev_sig.is_punct(*_OPENING)
            or prev_sig.is_punct(",")
        )
        if not expression:
            return
        self._sites.append((
            Rules.SPACE_BEFORE_CALL_PAREN,
            f"whitespace between '{tokens[i].text}' and its argument list",
            nxt,
            f"Write '{tokens[i].text}(...)'",
        ))

    def diagnose(self, ctx: CheckerContext) -> None:
        for rule, message, tok, hint in self._sites:
            self._emit_at(ctx, rule, message, tok, hint=hint)


# ─────────────────────────────────────────────────────────────────────────
#  5.4  Comments and docstrings
# ─────────────────────────────────────────────────────────────────────────

_BANNER = re.compile(r"^#[#\-=*]*$")


class CommentChecker(Checker):
    """Comment formatting and function docstrings."""

    name: ClassVar[str] = "comments"
    description: ClassVar[str] = "Comment format and function docstrings"
    rules: ClassVar[Tuple[RuleCode, ...]] = (
        Rules.COMMENT_MISSING_SPACE, Rules.INLINE_COMMENT_SPACING,
        Rules.MISSING_DOCSTRING, Rules.EMPTY_DOCSTRING,
    )

    def __init__(self) -> None:
        super().__init__()
        self._no_space: List[Token] = []
        self._tight_inline: List[Tuple[Token, int]] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._inline_spaces = ctx.config.inline_comment_spaces
        self._require_docstrings = ctx.config.require_docstrings

    def collect_evidence(self, ctx: CheckerContext) -> None:
        tokens = ctx.stream.tokens
        for i, tok in enumerate(tokens):
            if tok.kind is not TokenKind.LINE_COMMENT or ctx.is_verbatim(tok.line):
                continue
            text = tok.text.rstrip()
            body = text[1:]
            shebang = tok.line == 1 and tok.column == 1 and body.startswith("!")
            if body and not body[0].isspace() and not shebang and not _BANNER.match(text):
                self._no_space.append(tok)
            if not _at_line_start(tokens, i):
                prev = _prev_raw(tokens, i)
                gap = len(prev.text) if prev.kind is TokenKind.WHITESPACE else 0
                if gap < self._inline_spaces:
                    self._tight_inline.append((tok, gap))

    def diagnose(self, ctx: CheckerContext) -> None:
        for tok in self._no_space:
            self._emit(ctx, Rules.COMMENT_MISSING_SPACE,
                       "comment should start with '# '",
                       tok.line, tok.column, tok.column + 2,
                       hint="Insert a space after '#'")
        for tok, gap in self._tight_inline:
            self._emit(ctx, Rules.INLINE_COMMENT_SPACING,
                       f"inline comment preceded by {gap} space(s) "
                       f"(at least {self._inline_spaces} expected)",
                       tok.line, tok.column, tok.column + 1)
        for fdef in ctx.structure.functions:
            if fdef.docstring is None:
                if self._require_docstrings:
                    self._emit_at(ctx, Rules.MISSING_DOCSTRING,
                                  f"function '{fdef.name}' has no docstring",
                                  fdef.name_token,
                                  hint="Describe the function in a /* ... */ "
                                       "comment above its header")
                continue
            inner = fdef.docstring.text[2:-2]
            if not inner.replace("*", "").strip():
                self._emit(ctx, Rules.EMPTY_DOCSTRING,
                           f"docstring of function '{fdef.name}' is empty",
                           fdef.docstring.line, fdef.docstring.column)


# ─────────────────────────────────────────────────────────────────────────
#  5.5  Indentation
# ─────────────────────────────────────────────────────────────────────────

class IndentationChecker(Checker):
    """Statement indentation against block depth."""

    name: ClassVar[str] = "indentation"
    description: ClassVar[str] = "Indentation of statements and continuation lines"
    rules: ClassVar[Tuple[RuleCode, ...]] = (Rules.BAD_INDENTATION,)

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[Tuple[int, str]] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._size = ctx.config.indent_size

    def _width(self, indent: str) -> int:
        return len(indent.expandtabs(self._size))

    def _first_on_line(self, ctx: CheckerContext, line: int) -> Optional[Token]:
        for tok in ctx.stream.on_line(line):
            if tok.kind is not TokenKind.WHITESPACE:
                return tok
        return None

    def collect_evidence(self, ctx: CheckerContext) -> None:
        source = ctx.source
        for stmt in ctx.structure.statements:
            first = self._first_on_line(ctx, stmt.first_line)
            if first is None or first is not stmt.tokens[0]:
                continue
            expected = self._size * stmt.depth
            actual = self._width(stmt.indent)
            if actual != expected:
                self._sites.append((
                    stmt.first_line,
                    f"expected {expected} spaces of indentation, found {actual}",
                ))
            for line in range(stmt.first_line + 1, stmt.last_line + 1):
                lead = self._first_on_line(ctx, line)
                if lead is None or lead.is_trivia or ctx.is_verbatim(line):
                    continue
                if lead.is_punct(")", "]", "}"):
                    continue
                if self._width(source.indentation(line)) <= actual:
                    self._sites.append((
                        line,
                        "continuation line should be indented more than "
                        "the start of its statement",
                    ))

    def diagnose(self, ctx: CheckerContext) -> None:
        for line, message in self._sites:
            self._emit(ctx, Rules.BAD_INDENTATION, message, line, 1)


# ─────────────────────────────────────────────────────────────────────────
#  5.6  File names
# ─────────────────────────────────────────────────────────────────────────

class FileNameChecker(Checker):
    """Script base name and extension."""

    name: ClassVar[str] = "files"
    description: ClassVar[str] = "Script file naming"
    rules: ClassVar[Tuple[RuleCode, ...]] = (Rules.FILE_NAME, Rules.FILE_EXTENSION)

    def __init__(self) -> None:
        super().__init__()
        self._stem = ""
        self._ext = ""

    def collect_evidence(self, ctx: CheckerContext) -> None:
        if ctx.source.is_stdin:
            return
        base = os.path.basename(ctx.source.path)
        self._stem, self._ext = os.path.splitext(base)

    def diagnose(self, ctx: CheckerContext) -> None:
        if not self._stem:
            return
        if not NAMING_STYLES["snake"].match(self._stem):
            self._emit(ctx, Rules.FILE_NAME,
                       f"script name '{self._stem}' is not lower snake case", 1,
                       hint=f"Rename to '{to_snake_case(self._stem)}{self._ext}'")
        if self._ext.lower() != ".inp":
            self._emit(ctx, Rules.FILE_EXTENSION,
                       f"script extension '{self._ext or '(none)'}' is not '.inp'", 1)


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — DEFAULT REGISTRY AND RESULTS
# ═════════════════════════════════════════════════════════════════════════

_DEFAULT_REGISTRY = CheckerRegistry()
_DEFAULT_REGISTRY.register(NamingChecker)
_DEFAULT_REGISTRY.register(LayoutChecker)
_DEFAULT_REGISTRY.register(WhitespaceChecker)
_DEFAULT_REGISTRY.register(CommentChecker)
_DEFAULT_REGISTRY.register(IndentationChecker)
_DEFAULT_REGISTRY.register(FileNameChecker)


def default_registry() -> CheckerRegistry:
    return _DEFAULT_REGISTRY


@dataclass
class LintResults:
    """
    Aggregate results of a lint run.

    Attributes
    ----------
    diagnostics            : All diagnostics, sorted per file
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing statistics
    checker_names          : Names of checkers that were run
    sources                : Linted files by display name
    failures               : (path, message) for inputs that could not be read
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)
    sources: Dict[str, SourceFile] = field(default_factory=dict)
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.by_severity(Severity.ERROR))

    @property
    def warning_count(self) -> int:
        return len(self.by_severity(Severity.WARNING))

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    @property
    def file_count(self) -> int:
        return len(self.sources)

    def by_severity(self, severity: Severity) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is severity]

    def by_file(self, file: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.location.file == file]

    def by_rule(self, key: str) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.rule == key]

    def count_at_least(self, severity: Severity) -> int:
        return sum(1 for d in self.diagnostics if severity <= d.severity)

    def merge(self, other: "LintResults") -> None:
        self.diagnostics.extend(other.diagnostics)
        for name, diags in other.diagnostics_by_checker.items():
            self.diagnostics_by_checker[name].extend(diags)
        for key, val in other.stats.items():
            self.stats[key] = self.stats.get(key, 0) + val
        for name in other.checker_names:
            if name not in self.checker_names:
                self.checker_names.append(name)
        self.sources.update(other.sources)
        self.failures.extend(other.failures)

    def summary(self) -> str:
        """Human-readable summary."""
        lines = [
            f"Checked {self.file_count} file(s): {self.total_count} diagnostics "
            f"({self.error_count} errors, {self.warning_count} warnings)",
        ]
        for name in self.checker_names:
            count = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        for path, message in self.failures:
            lines.append(f"  failed: {path}: {message}")
        return "\n".join(lines)


# ═════════════════════════════════════════════════════════════════════════
#  PART 7 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

class CheckerRunner:
    """
    Runs a suite of checkers against Hansl scripts.

    Usage
    -----
    >>> runner = CheckerRunner(config=LintConfig(max_line_length=100))
    >>> results = runner.run_paths(["scripts/"])
    >>> print(results.summary())

    >>> # Or select specific checkers:
    >>> results = runner.run(source, checkers=["naming", "layout"])
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        config: Optional[LintConfig] = None,
    ) -> None:
        self.registry = registry or _DEFAULT_REGISTRY
        self.config = config or LintConfig()

    def _accept(self, diag: Diagnostic, suppressions: SuppressionManager) -> bool:
        return self.config.is_selected(diag.rule) and not suppressions.is_suppressed(diag)

    def _pass_diagnostics(self, ctx: CheckerContext) -> Dict[str, List[Diagnostic]]:
        """Lexical and structural problems found before the checkers run."""
        found: Dict[str, List[Diagnostic]] = {"lexer": [], "structure": []}
        problems = [("lexer", e) for e in ctx.stream.errors]
        problems += [("structure", e) for e in ctx.structure.errors]
        for origin, error in problems:
            loc = error.location or SourceLocation(ctx.filename, 0, 0)
            if ctx.is_verbatim(loc.line):
                continue
            found[origin].append(Diagnostic(
                rule=error.rule,
                message=error.message,
                severity=self.config.severity_for(error.rule),
                location=SourceLocation(ctx.filename, loc.line, loc.column),
                checker_name=origin,
                hint=error.hint,
            ))
        return found

    def run(
        self,
        source: SourceFile,
        checkers: Optional[Sequence[str]] = None,
    ) -> LintResults:
        """
        Lint a single script.

        Parameters
        ----------
        source   : the script
        checkers : list of checker names to run (None = all enabled)
        """
        results = LintResults()
        results.sources[source.display_name] = source

        stream = tokenize(source.text, filename=source.display_name)
        structure = analyze(source, stream)

        suppressions = SuppressionManager()
        suppressions.load_config(self.config)
        suppressions.load_inline_suppressions(stream, source)

        ctx = CheckerContext(
            source=source,
            stream=stream,
            structure=structure,
            config=self.config,
            suppressions=suppressions,
        )

        collected: List[Diagnostic] = []
        for origin, diags in self._pass_diagnostics(ctx).items():
            kept = [d for d in diags if self._accept(d, suppressions)]
            collected.extend(kept)
            results.diagnostics_by_checker[origin].extend(kept)

        if checkers is not None:
            checker_classes: List[Type[Checker]] = []
            for name in checkers:
                cls = self.registry.get_by_name(name)
                if cls is None:
                    raise ConfigError(
                        f"Unknown checker {name!r}",
                        hint="Available: " + ", ".join(self.registry.names),
                    )
                checker_classes.append(cls)
        else:
            checker_classes = self.registry.get_enabled()

        for cls in checker_classes:
            checker = cls()
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                logger.warning("checker '%s' failed on %s: %s",
                               checker_name, source.display_name, exc,
                               exc_info=logger.isEnabledFor(logging.INFO))
                diags = [Diagnostic(
                    rule=Rules.CHECKER_INTERNAL_ERROR,
                    message=f"Checker '{checker_name}' failed: {exc}",
                    severity=self.config.severity_for(Rules.CHECKER_INTERNAL_ERROR),
                    location=SourceLocation(source.display_name, 1, 0),
                    checker_name=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            diags = [d for d in diags if self._accept(d, suppressions)]
            collected.extend(diags)
            results.diagnostics_by_checker[checker_name].extend(diags)
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms

        collected.sort(key=lambda d: (d.location.line, d.location.column, d.rule.code))
        results.diagnostics = collected
        logger.info("%s: %d diagnostics", source.display_name, len(collected))
        return results

    def run_text(self, text: str, filename: str = "<string>",
                 checkers: Optional[Sequence[str]] = None) -> LintResults:
        """Lint *text* as if it were the contents of *filename*."""
        return self.run(SourceFile(path=filename, text=text), checkers=checkers)

    def run_paths(
        self,
        paths: Iterable[str],
        checkers: Optional[Sequence[str]] = None,
    ) -> LintResults:
        """
        Lint every script found under *paths*.

        Unreadable files are recorded in ``LintResults.failures`` and the
        run continues with the next file.  A path that does not exist
        raises ``SourceError``.
        """
        combined = LintResults()
        for path in iter_source_files(paths, self.config.extensions, self.config.exclude):
            try:
                source = SourceFile.from_stdin() if path == "-" else SourceFile.from_path(path)
            except SourceError as exc:
                logger.error("%s", exc.message)
                combined.failures.append((path, exc.message))
                continue
            combined.merge(self.run(source, checkers=checkers))
        return combined


def lint_text(text: str, filename: str = "<string>",
              config: Optional[LintConfig] = None) -> List[Diagnostic]:
    """Convenience wrapper: diagnostics for *text* with the default checkers."""
    return CheckerRunner(config=config).run_text(text, filename).diagnostics


__all__ = [
    "SuppressionManager",
    "CheckerContext",
    "Checker",
    "CheckerRegistry",
    "NamingChecker",
    "LayoutChecker",
    "WhitespaceChecker",
    "CommentChecker",
    "IndentationChecker",
    "FileNameChecker",
    "default_registry",
    "LintResults",
    "CheckerRunner",
    "lint_text",
    "to_snake_case",
]
