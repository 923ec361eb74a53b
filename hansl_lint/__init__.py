"""hansl_lint — style checker for Hansl, the scripting language of Gretl.

Submodules
----------
errors
    Severities, the rule catalogue (``HLxxx`` codes), ``Diagnostic`` and
    the exception hierarchy.

lexer
    Parsimonious grammar and ``tokenize()`` producing a ``TokenStream``
    that keeps whitespace, newlines and comments.

structure
    Statement splitting, block matching (``function``/``if``/``loop``
    and their terminators), declarations and function headers.

checkers
    Checker framework (``Checker``, ``CheckerRegistry``,
    ``SuppressionManager``, ``CheckerRunner``) and the built-in checkers.

config
    ``.hansl-lint.yaml`` loading and ``LintConfig``.

reporter
    Terminal, plain, GCC and JSON output plus SARIF and HTML reports.

doccheck
    Lints the labelled code samples of a Markdown style guide.

cli
    Command line entry point: ``check``, ``rules``, ``tokens``,
    ``doc-check``, ``init``.

Usage
-----
Command-line::

    hansl-lint check scripts/
    python -m hansl_lint check --format gcc estimate.inp

Programmatic::

    from hansl_lint import lint_text

    for diag in lint_text("scalar myVar=1\\n", "estimate.inp"):
        print(diag.to_gcc_format())
"""

from __future__ import annotations

__version__: str = "0.1.0"

from hansl_lint.errors import (  # noqa: E402
    ALL_RULES,
    ConfigError,
    Diagnostic,
    HanslLintError,
    Rules,
    Severity,
    SourceError,
    SourceLocation,
)
from hansl_lint.source import SourceFile  # noqa: E402
from hansl_lint.lexer import tokenize  # noqa: E402
from hansl_lint.structure import analyze  # noqa: E402
from hansl_lint.config import LintConfig, load_config  # noqa: E402
from hansl_lint.checkers import (  # noqa: E402
    Checker,
    CheckerRegistry,
    CheckerRunner,
    LintResults,
    default_registry,
    lint_text,
)
from hansl_lint.reporter import Reporter  # noqa: E402

__all__: list[str] = [
    "__version__",
    "ALL_RULES",
    "Rules",
    "Severity",
    "SourceLocation",
    "Diagnostic",
    "HanslLintError",
    "ConfigError",
    "SourceError",
    "SourceFile",
    "tokenize",
    "analyze",
    "LintConfig",
    "load_config",
    "Checker",
    "CheckerRegistry",
    "CheckerRunner",
    "LintResults",
    "default_registry",
    "lint_text",
    "Reporter",
]
