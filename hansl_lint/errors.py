# hansl_lint/errors.py
"""
Diagnostic model, rule codes and exception hierarchy for hansl-lint.

Architecture Overview:
─────────────────────
┌─────────────────────────────────────────────────────────────────────────────┐
│                          Error Hierarchy                                    │
├─────────────────────────────────────────────────────────────────────────────┤
│  HanslLintError (base)                                                      │
│  ├── LexicalError            - Tokenization failures (strict mode only)     │
│  │   ├── UnterminatedStringError                                            │
│  │   └── UnterminatedCommentError                                           │
│  ├── StructureError          - Block structure cannot be recovered          │
│  ├── ConfigError             - Bad configuration file or option             │
│  └── SourceError             - Unreadable / undecodable input               │
└─────────────────────────────────────────────────────────────────────────────┘

Rule Codes:
───────────
Every finding the linter can produce is identified by a ``RuleCode`` with a
code of the form ``HLnnn`` and a camelCase name.  Ranges:
  - 001-099: Lexical problems
  - 100-199: Naming conventions
  - 200-299: Line layout
  - 300-399: Whitespace around operators and punctuation
  - 400-499: Comments and docstrings
  - 500-599: Indentation and block structure
  - 600-699: File naming
  - 900-998: Style-guide document checks
  - 999:     Internal checker failures

Example Usage:
──────────────
    from hansl_lint.errors import Rules, Severity, SourceLocation, Diagnostic

    diag = Diagnostic(
        rule=Rules.LINE_TOO_LONG,
        message="line is 97 characters long (limit 80)",
        severity=Severity.STYLE,
        location=SourceLocation("estimate.inp", 12, 81),
    )
    print(diag.to_gcc_format())
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple


# ═══════════════════════════════════════════════════════════════════════════════
# SEVERITY AND CLASSIFICATION
# ═══════════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    Diagnostic severity levels.

    Each carries:
      • label       — the name shown in reports
      • color       — termcolor colour name
      • sarif_level — SARIF 2.1.0 ``level`` string
      • rank        — ordering key (higher is more severe)
    """

    ERROR = ("error", "red", "error", 3)
    WARNING = ("warning", "yellow", "warning", 2)
    STYLE = ("style", "cyan", "note", 1)
    INFORMATION = ("information", "white", "note", 0)

    def __init__(self, label: str, color: str, sarif_level: str, rank: int) -> None:
        self.label = label
        self.color = color
        self.sarif_level = sarif_level
        self.rank = rank

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    @classmethod
    def from_string(cls, s: str) -> "Severity":
        """Parse a severity from its label (case-insensitive)."""
        s_low = str(s).strip().lower()
        if s_low == "info":
            s_low = "information"
        for member in cls:
            if member.label == s_low:
                return member
        raise ConfigError(
            f"Unknown severity {s!r}",
            hint="Use one of: error, warning, style, information",
        )


@enum.unique
class RuleCategory(enum.Enum):
    """Groups of rules, mirroring the sections of the Hansl style guide."""

    LEXICAL = "lexical"
    NAMING = "naming"
    LAYOUT = "layout"
    WHITESPACE = "whitespace"
    COMMENTS = "comments"
    INDENTATION = "indentation"
    FILES = "files"
    DOCUMENTS = "documents"
    INTERNAL = "internal"


# ═══════════════════════════════════════════════════════════════════════════════
# RULE CODES
# ═══════════════════════════════════════════════════════════════════════════════

class RuleCode:
    """
    Structured identifier for a single style rule.

    A rule compares equal to another ``RuleCode`` with the same code, and to
    a string holding either its code (``"HL201"``) or its name
    (``"lineTooLong"``).
    """

    __slots__ = ("code", "name", "category", "default_severity", "summary")

    def __init__(
        self,
        code: str,
        name: str,
        category: RuleCategory,
        default_severity: Severity,
        summary: str,
    ) -> None:
        self.code = code
        self.name = name
        self.category = category
        self.default_severity = default_severity
        self.summary = summary

    def matches(self, key: str) -> bool:
        """True when *key* names this rule by code or by name."""
        key = key.strip()
        return key.upper() == self.code or key == self.name

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"RuleCode({self.code!r}, {self.name!r})"

    def __hash__(self) -> int:
        return hash(self.code)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, RuleCode):
            return self.code == other.code
        if isinstance(other, str):
            return self.matches(other)
        return False

    def to_dict(self) -> Dict[str, str]:
        return {
            "code": self.code,
            "name": self.name,
            "category": self.category.value,
            "severity": self.default_severity.label,
            "summary": self.summary,
        }


def _rule(code: str, name: str, category: RuleCategory,
          severity: Severity, summary: str) -> RuleCode:
    return RuleCode(code, name, category, severity, summary)


_C = RuleCategory
_S = Severity


class Rules:
    """Predefined rule codes."""

    # ═══════════════════════════════════════════════════════════════════════════
    # LEXICAL (001-099)
    # ═══════════════════════════════════════════════════════════════════════════

    UNTERMINATED_STRING = _rule(
        "HL001", "unterminatedString", _C.LEXICAL, _S.ERROR,
        "String literal is not closed on its line",
    )
    UNTERMINATED_COMMENT = _rule(
        "HL002", "unterminatedComment", _C.LEXICAL, _S.ERROR,
        "Block comment is missing its closing */",
    )
    INVALID_CHARACTER = _rule(
        "HL003", "invalidCharacter", _C.LEXICAL, _S.WARNING,
        "Character that cannot start any Hansl token",
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # NAMING (100-199)
    # ═══════════════════════════════════════════════════════════════════════════

    FUNCTION_NAME = _rule(
        "HL101", "functionName", _C.NAMING, _S.STYLE,
        "Function name does not follow the naming convention",
    )
    VARIABLE_NAME = _rule(
        "HL102", "variableName", _C.NAMING, _S.STYLE,
        "Variable name does not follow the convention for its type",
    )
    PARAMETER_NAME = _rule(
        "HL103", "parameterName", _C.NAMING, _S.STYLE,
        "Function parameter name does not follow the naming convention",
    )
    BUILTIN_SHADOWED = _rule(
        "HL104", "builtinShadowed", _C.NAMING, _S.WARNING,
        "User identifier reuses the name of a built-in function or keyword",
    )
    AMBIGUOUS_NAME = _rule(
        "HL105", "ambiguousName", _C.NAMING, _S.STYLE,
        "Identifier 'l', 'O' or 'I' is easily confused with digits",
    )
    NAME_TOO_LONG = _rule(
        "HL106", "nameTooLong", _C.NAMING, _S.STYLE,
        "Identifier exceeds the maximum name length",
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # LAYOUT (200-299)
    # ═══════════════════════════════════════════════════════════════════════════

    LINE_TOO_LONG = _rule(
        "HL201", "lineTooLong", _C.LAYOUT, _S.STYLE,
        "Line exceeds the maximum line length",
    )
    TAB_CHARACTER = _rule(
        "HL202", "tabCharacter", _C.LAYOUT, _S.STYLE,
        "Indentation uses tab characters",
    )
    TRAILING_WHITESPACE = _rule(
        "HL203", "trailingWhitespace", _C.LAYOUT, _S.STYLE,
        "Line ends with whitespace",
    )
    MISSING_FINAL_NEWLINE = _rule(
        "HL204", "missingFinalNewline", _C.LAYOUT, _S.STYLE,
        "File does not end with a newline",
    )
    TOO_MANY_BLANK_LINES = _rule(
        "HL205", "tooManyBlankLines", _C.LAYOUT, _S.STYLE,
        "Too many consecutive blank lines",
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # WHITESPACE (300-399)
    # ═══════════════════════════════════════════════════════════════════════════

    OPERATOR_SPACING = _rule(
        "HL301", "operatorSpacing", _C.WHITESPACE, _S.STYLE,
        "Binary operator is not surrounded by spaces",
    )
    MISSING_SPACE_AFTER_COMMA = _rule(
        "HL302", "missingSpaceAfterComma", _C.WHITESPACE, _S.STYLE,
        "Comma is not followed by a space",
    )
    SPACE_BEFORE_COMMA = _rule(
        "HL303", "spaceBeforeComma", _C.WHITESPACE, _S.STYLE,
        "Whitespace before a comma",
    )
    SPACE_INSIDE_BRACKETS = _rule(
        "HL304", "spaceInsideBrackets", _C.WHITESPACE, _S.STYLE,
        "Whitespace just inside parentheses or brackets",
    )
    SPACE_BEFORE_CALL_PAREN = _rule(
        "HL305", "spaceBeforeCallParen", _C.WHITESPACE, _S.STYLE,
        "Whitespace between a function name and its argument list",
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # COMMENTS (400-499)
    # ═══════════════════════════════════════════════════════════════════════════

    COMMENT_MISSING_SPACE = _rule(
        "HL401", "commentMissingSpace", _C.COMMENTS, _S.STYLE,
        "Comment text should start with '# '",
    )
    INLINE_COMMENT_SPACING = _rule(
        "HL402", "inlineCommentSpacing", _C.COMMENTS, _S.STYLE,
        "Inline comment is too close to the code",
    )
    MISSING_DOCSTRING = _rule(
        "HL403", "missingDocstring", _C.COMMENTS, _S.STYLE,
        "Function has no /* ... */ docstring above it",
    )
    EMPTY_DOCSTRING = _rule(
        "HL404", "emptyDocstring", _C.COMMENTS, _S.STYLE,
        "Function docstring is empty",
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # INDENTATION (500-599)
    # ═══════════════════════════════════════════════════════════════════════════

    BAD_INDENTATION = _rule(
        "HL501", "badIndentation", _C.INDENTATION, _S.STYLE,
        "Statement is not indented to its block depth",
    )
    UNMATCHED_BLOCK_END = _rule(
        "HL502", "unmatchedBlockEnd", _C.INDENTATION, _S.ERROR,
        "Block terminator has no matching opener",
    )
    UNCLOSED_BLOCK = _rule(
        "HL503", "unclosedBlock", _C.INDENTATION, _S.ERROR,
        "Block is still open at end of file",
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # FILES (600-699)
    # ═══════════════════════════════════════════════════════════════════════════

    FILE_NAME = _rule(
        "HL601", "fileName", _C.FILES, _S.STYLE,
        "Script file name is not lower snake case",
    )
    FILE_EXTENSION = _rule(
        "HL602", "fileExtension", _C.FILES, _S.INFORMATION,
        "Hansl scripts should use the .inp extension",
    )

    # ═══════════════════════════════════════════════════════════════════════════
    # DOCUMENTS (900-998) AND INTERNAL (999)
    # ═══════════════════════════════════════════════════════════════════════════

    RECOMMENDED_SAMPLE_VIOLATION = _rule(
        "HL901", "recommendedSampleViolation", _C.DOCUMENTS, _S.WARNING,
        "Code sample labelled as recommended breaks a style rule",
    )
    DISCOURAGED_SAMPLE_CLEAN = _rule(
        "HL902", "discouragedSampleClean", _C.DOCUMENTS, _S.INFORMATION,
        "Code sample labelled as discouraged breaks no style rule",
    )
    CHECKER_INTERNAL_ERROR = _rule(
        "HL999", "checkerInternalError", _C.INTERNAL, _S.INFORMATION,
        "A checker failed while analysing the file",
    )


ALL_RULES: Tuple[RuleCode, ...] = tuple(
    sorted(
        (value for value in vars(Rules).values() if isinstance(value, RuleCode)),
        key=lambda r: r.code,
    )
)


def lookup_rule(key: str) -> RuleCode:
    """Find a rule by code or name; raise ``ConfigError`` when unknown."""
    for rule in ALL_RULES:
        if rule.matches(key):
            return rule
    raise ConfigError(
        f"Unknown rule {key!r}",
        hint="Run 'hansl-lint rules' for the list of rule codes",
    )


def resolve_rules(keys: Iterable[str]) -> List[RuleCode]:
    """Resolve a list of codes/names, expanding ``all`` to every rule."""
    result: List[RuleCode] = []
    for key in keys:
        if key.strip().lower() == "all":
            return list(ALL_RULES)
        rule = lookup_rule(key)
        if rule not in result:
            result.append(rule)
    return result


# ═══════════════════════════════════════════════════════════════════════════════
# SOURCE LOCATIONS AND DIAGNOSTICS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SourceLocation:
    """A point in a source file (1-based line and column)."""

    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if not self.file and self.line == 0:
            return "<unknown location>"
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Diagnostic:
    """
    A single style finding.

    Attributes
    ----------
    rule         : The ``RuleCode`` that was broken
    message      : Human-readable description
    severity     : Effective severity (after configuration overrides)
    location     : Primary source location
    checker_name : Name of the checker that produced this
    end_column   : Exclusive end column of the offending text (0 = unknown)
    hint         : Optional suggestion for fixing the finding
    """

    rule: RuleCode
    message: str
    severity: Severity
    location: SourceLocation
    checker_name: str = ""
    end_column: int = 0
    hint: str = ""

    @property
    def code(self) -> str:
        return self.rule.code

    def sort_key(self) -> Tuple[str, int, int, str]:
        return (self.location.file, self.location.line,
                self.location.column, self.rule.code)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        result: Dict[str, Any] = {
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "severity": self.severity.label,
            "code": self.rule.code,
            "rule": self.rule.name,
            "message": self.message,
            "checker": self.checker_name,
        }
        if self.end_column:
            result["end_column"] = self.end_column
        if self.hint:
            result["hint"] = self.hint
        return result

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_dict())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message [code]."""
        return (f"{self.location}: {self.severity.label}: "
                f"{self.message} [{self.rule.code}]")

    def classic_line(self) -> str:
        """Classic one-liner: ``[file:line]: (severity) message [code]``."""
        return (f"[{self.location.file}:{self.location.line}]: "
                f"({self.severity.label}) {self.message} [{self.rule.code}]")


# ═══════════════════════════════════════════════════════════════════════════════
# EXCEPTION CLASSES
# ═══════════════════════════════════════════════════════════════════════════════

class HanslLintError(Exception):
    """
    Base exception for all hansl-lint errors.

    Carries an optional source location and a hint that the CLI prints
    below the message.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.hint = hint

    def __str__(self) -> str:
        text = self.message
        if self.location is not None:
            text = f"{self.location}: {text}"
        if self.hint:
            text = f"{text}\nhint: {self.hint}"
        return text


# ───────────────────────────────────────────────────────────────────────────────
# LEXICAL ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class LexicalError(HanslLintError):
    """Error during tokenization."""

    rule: RuleCode = Rules.INVALID_CHARACTER


class UnterminatedStringError(LexicalError):
    """String literal not closed before the end of its line."""

    rule = Rules.UNTERMINATED_STRING

    def __init__(self, location: Optional[SourceLocation] = None) -> None:
        super().__init__(
            "Unterminated string literal (missing closing \")",
            location=location,
            hint="Add the closing quote character",
        )


class UnterminatedCommentError(LexicalError):
    """Block comment not properly closed."""

    rule = Rules.UNTERMINATED_COMMENT

    def __init__(self, location: Optional[SourceLocation] = None) -> None:
        super().__init__(
            "Unterminated block comment (missing closing */)",
            location=location,
            hint="Add */ to close the comment",
        )


# ───────────────────────────────────────────────────────────────────────────────
# OTHER ERRORS
# ───────────────────────────────────────────────────────────────────────────────

class StructureError(HanslLintError):
    """Block structure problem found while analysing statements."""

    def __init__(
        self,
        message: str,
        rule: RuleCode,
        location: Optional[SourceLocation] = None,
        hint: str = "",
    ) -> None:
        super().__init__(message, location=location, hint=hint)
        self.rule = rule


class ConfigError(HanslLintError):
    """Invalid configuration value, option or file."""


class SourceError(HanslLintError):
    """Input file could not be read or decoded."""


__all__ = [
    "Severity",
    "RuleCategory",
    "RuleCode",
    "Rules",
    "ALL_RULES",
    "lookup_rule",
    "resolve_rules",
    "SourceLocation",
    "Diagnostic",
    "HanslLintError",
    "LexicalError",
    "UnterminatedStringError",
    "UnterminatedCommentError",
    "StructureError",
    "ConfigError",
    "SourceError",
]
