"""
hansl_lint/reporter.py
══════════════════════

Colourful diagnostic reporter for hansl-lint.

Output formats
──────────────
  • terminal : Rust-style rendering with the offending source line
  • plain    : classic one-liners ``[file:line]: (severity) message [HLnnn]``
  • gcc      : ``file:line:col: severity: message [HLnnn]``
  • json     : one JSON object per line
  • SARIF    : written to ``--sarif PATH`` or ``$HANSL_LINT_SARIF``
  • HTML     : written to ``--html PATH`` or ``$HANSL_LINT_HTML``

Usage
─────
    from hansl_lint.reporter import Reporter
    from hansl_lint.errors import Rules

    with Reporter(fmt="terminal") as rep:
        (rep.diagnostic(Rules.LINE_TOO_LONG, "line is 97 characters long")
            .at("estimate.inp", 12, 81)
            .span(81, 98)
            .hint("split the expression over two lines")
            .emit())
"""

from __future__ import annotations

import json
import logging
import os
import sys
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, TextIO

import jinja2
from termcolor import colored

from hansl_lint import __version__
from hansl_lint.errors import (
    ALL_RULES,
    Diagnostic,
    RuleCode,
    Severity,
    SourceLocation,
)
from hansl_lint.source import SourceFile

logger = logging.getLogger(__name__)

SARIF_ENV_VAR = "HANSL_LINT_SARIF"
HTML_ENV_VAR = "HANSL_LINT_HTML"
HTML_TEMPLATE_ENV_VAR = "HANSL_LINT_HTML_TEMPLATE"

FORMATS = ("terminal", "plain", "gcc", "json")


def colour_default(stream: TextIO) -> bool:
    """Colour when *stream* is a TTY and ``NO_COLOR`` is unset."""
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


# ═════════════════════════════════════════════════════════════════════════
#  STATISTICS
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class ReporterStats:
    """Aggregate counts per severity."""
    error: int = 0
    warning: int = 0
    style: int = 0
    information: int = 0

    def record(self, severity: Severity) -> None:
        """Increment the counter that corresponds to *severity*."""
        attr = severity.label
        setattr(self, attr, getattr(self, attr) + 1)

    @property
    def total(self) -> int:
        return self.error + self.warning + self.style + self.information

    def summary_line(self) -> str:
        parts: List[str] = []
        if self.error:
            parts.append(f"{self.error} error{'s' if self.error != 1 else ''}")
        if self.warning:
            parts.append(f"{self.warning} warning{'s' if self.warning != 1 else ''}")
        if self.style:
            parts.append(f"{self.style} style")
        if self.information:
            parts.append(f"{self.information} info")
        if not parts:
            return "no diagnostics emitted"
        return "; ".join(parts) + f" ({self.total} total)"


# ═════════════════════════════════════════════════════════════════════════
#  DIAGNOSTIC BUILDER
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticBuilder:
    """
    Incrementally constructed diagnostic.

    Usage::

        (reporter.diagnostic(Rules.TRAILING_WHITESPACE, "trailing whitespace")
            .at("demo.inp", 10, 12)
            .span(12, 15)
            .hint("strip the line")
            .emit())
    """

    def __init__(self, reporter: "Reporter", rule: RuleCode, message: str) -> None:
        self._reporter = reporter
        self.rule = rule
        self.message = message
        self.severity = rule.default_severity
        self.location = SourceLocation()
        self.end_column = 0
        self.checker_name = ""
        self._hint = ""

    # ── builder methods (all return self for chaining) ───────────────

    def at(self, file: str, line: int, column: int = 0) -> "DiagnosticBuilder":
        self.location = SourceLocation(file, line, column)
        return self

    def span(self, start_col: int, end_col: int) -> "DiagnosticBuilder":
        """Underline columns ``start_col`` to ``end_col`` (exclusive)."""
        self.location = SourceLocation(self.location.file, self.location.line, start_col)
        self.end_column = end_col
        return self

    def with_severity(self, severity: Severity) -> "DiagnosticBuilder":
        self.severity = severity
        return self

    def hint(self, message: str) -> "DiagnosticBuilder":
        self._hint = message
        return self

    def from_checker(self, name: str) -> "DiagnosticBuilder":
        self.checker_name = name
        return self

    def build(self) -> Diagnostic:
        return Diagnostic(
            rule=self.rule,
            message=self.message,
            severity=self.severity,
            location=self.location,
            checker_name=self.checker_name,
            end_column=self.end_column,
            hint=self._hint,
        )

    def emit(self) -> None:
        """Finalise and send the diagnostic to the reporter."""
        self._reporter.emit(self.build())


# ═════════════════════════════════════════════════════════════════════════
#  RENDERERS
# ═════════════════════════════════════════════════════════════════════════

class _SourceCache:
    """Source lines for the terminal renderer."""

    def __init__(self, sources: Optional[Mapping[str, SourceFile]] = None) -> None:
        self._sources: Dict[str, SourceFile] = dict(sources or {})
        self._failed: set = set()

    def line(self, file: str, number: int) -> Optional[str]:
        source = self._sources.get(file)
        if source is None and file and file not in self._failed:
            try:
                with open(file, "r", encoding="utf-8", errors="replace") as fh:
                    source = SourceFile(path=file, text=fh.read())
                self._sources[file] = source
            except OSError:
                self._failed.add(file)
        if source is None or not 0 < number <= len(source.lines):
            return None
        return source.line(number)


class _TerminalRenderer:
    """Render diagnostics with a source excerpt and caret underline."""

    def __init__(self, stream: TextIO, colour: bool, sources: _SourceCache) -> None:
        self._stream = stream
        self._colour = colour
        self._sources = sources

    def _paint(self, text: str, color: Optional[str] = None,
               attrs: Optional[List[str]] = None) -> str:
        if not self._colour:
            return text
        return colored(text, color, attrs=attrs, force_color=True)

    def render(self, diag: Diagnostic) -> None:
        lines: List[str] = []
        sev = diag.severity

        # ── header: severity[HLnnn]: message ─────────────────────────
        head = self._paint(f"{sev.label}[{diag.code}]", sev.color, ["bold"])
        lines.append(f"{head}: {self._paint(diag.message, attrs=['bold'])}")

        loc = diag.location
        arrow = self._paint("-->", "blue", ["bold"])
        lines.append(f"  {arrow} {loc}")

        # ── source excerpt ───────────────────────────────────────────
        text = self._sources.line(loc.file, loc.line) if loc.line else None
        if text is not None:
            gutter = str(loc.line)
            pipe = self._paint("|", "blue", ["bold"])
            lines.append(f" {self._paint(gutter, 'blue', ['bold'])} {pipe} {text}")
            if loc.column:
                width = max(diag.end_column - loc.column, 1) if diag.end_column else 1
                pad = " " * (loc.column - 1)
                marker = self._paint("^" * width, sev.color, ["bold"])
                lines.append(f" {' ' * len(gutter)} {pipe} {pad}{marker}")

        if diag.hint:
            lines.append(f"  = {self._paint('help', 'green', ['bold'])}: {diag.hint}")
        lines.append(f"  = {self._paint('rule', 'cyan', ['bold'])}: {diag.rule.name}")
        lines.append("")
        self._stream.write("\n".join(lines) + "\n")


class _PlainRenderer:
    """One classic line per diagnostic, for log files and non-TTY use."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.classic_line() + "\n")
        if diag.hint:
            self._stream.write(f"  hint: {diag.hint}\n")


class _GccRenderer:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.to_gcc_format() + "\n")


class _JsonRenderer:
    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def render(self, diag: Diagnostic) -> None:
        self._stream.write(diag.to_json_str() + "\n")


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0 BUILDER
# ═════════════════════════════════════════════════════════════════════════

class _SarifBuilder:
    """Accumulates diagnostics and writes a SARIF 2.1.0 JSON file."""

    SARIF_VERSION = "2.1.0"
    SARIF_SCHEMA = (
        "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
        "Schemata/sarif-schema-2.1.0.json"
    )

    def __init__(self) -> None:
        self._results: List[Dict[str, Any]] = []
        self._rules: Dict[str, Dict[str, Any]] = {}

    def add(self, diag: Diagnostic) -> None:
        rule = diag.rule
        if rule.code not in self._rules:
            self._rules[rule.code] = {
                "id": rule.code,
                "name": rule.name,
                "shortDescription": {"text": rule.summary},
                "defaultConfiguration": {"level": rule.default_severity.sarif_level},
                "properties": {"category": rule.category.value},
            }

        loc = diag.location
        result: Dict[str, Any] = {
            "ruleId": rule.code,
            "level": diag.severity.sarif_level,
            "message": {"text": diag.message},
        }
        if loc.file:
            region: Dict[str, Any] = {"startLine": max(loc.line, 1)}
            if loc.column:
                region["startColumn"] = loc.column
            if diag.end_column:
                region["endColumn"] = diag.end_column
            result["locations"] = [{
                "physicalLocation": {
                    "artifactLocation": {"uri": Path(loc.file).as_posix()},
                    "region": region,
                }
            }]
        if diag.hint:
            result.setdefault("properties", {})["hint"] = diag.hint
        self._results.append(result)

    def to_dict(self, tool_name: str, version: str) -> Dict[str, Any]:
        order = {rule.code: i for i, rule in enumerate(ALL_RULES)}
        rules = sorted(self._rules.values(), key=lambda r: order.get(r["id"], 0))
        return {
            "$schema": self.SARIF_SCHEMA,
            "version": self.SARIF_VERSION,
            "runs": [
                {
                    "tool": {
                        "driver": {
                            "name": tool_name,
                            "version": version,
                            "informationUri": "https://gretl.sourceforge.net/",
                            "rules": rules,
                        }
                    },
                    "results": self._results,
                }
            ],
        }

    def to_json(self, tool_name: str = "hansl-lint", version: str = __version__) -> str:
        return json.dumps(self.to_dict(tool_name, version), indent=2)

    def write(self, path: str, tool_name: str = "hansl-lint",
              version: str = __version__) -> None:
        Path(path).write_text(self.to_json(tool_name, version), encoding="utf-8")


# ═════════════════════════════════════════════════════════════════════════
#  HTML BUILDER
# ═════════════════════════════════════════════════════════════════════════

class _HtmlBuilder:
    """Accumulates diagnostics and renders to an HTML file via Jinja2."""

    def __init__(self, sources: _SourceCache) -> None:
        self._diagnostics: List[Dict[str, Any]] = []
        self._sources = sources

    def add(self, diag: Diagnostic) -> None:
        loc = diag.location
        self._diagnostics.append({
            "severity": diag.severity.label,
            "code": diag.code,
            "rule": diag.rule.name,
            "message": diag.message,
            "file": loc.file,
            "line": loc.line,
            "column": loc.column,
            "hint": diag.hint,
            "source": self._sources.line(loc.file, loc.line) if loc.line else None,
        })

    def render(self, template_path: Optional[str] = None,
               stats: Optional[ReporterStats] = None) -> str:
        env = jinja2.Environment(autoescape=True)
        tmpl = env.from_string(self._load_template(template_path))
        files = sorted({d["file"] for d in self._diagnostics})
        return tmpl.render(
            diagnostics=self._diagnostics,
            total=len(self._diagnostics),
            files=files,
            summary=stats.summary_line() if stats else "",
            version=__version__,
        )

    def write(self, path: str, template_path: Optional[str] = None,
              stats: Optional[ReporterStats] = None) -> None:
        Path(path).write_text(self.render(template_path, stats), encoding="utf-8")

    @staticmethod
    def _load_template(template_path: Optional[str]) -> str:
        """Explicit template, then ``$HANSL_LINT_HTML_TEMPLATE``, then built-in."""
        if template_path:
            return Path(template_path).read_text(encoding="utf-8")
        env_tmpl = os.environ.get(HTML_TEMPLATE_ENV_VAR, "")
        if env_tmpl:
            if Path(env_tmpl).is_file():
                return Path(env_tmpl).read_text(encoding="utf-8")
            logger.warning("$%s points to a missing file: %s", HTML_TEMPLATE_ENV_VAR, env_tmpl)
        return _DEFAULT_HTML_TEMPLATE


# ═════════════════════════════════════════════════════════════════════════
#  REPORTER  (main entry point)
# ═════════════════════════════════════════════════════════════════════════

class Reporter:
    """
    Central diagnostic dispatcher.

    Use as a context manager::

        with Reporter(fmt="gcc") as rep:
            rep.emit_all(results.diagnostics)
        # finish() is called automatically

    Or manually::

        rep = Reporter()
        rep.diagnostic(Rules.TAB_CHARACTER, "tab").at("a.inp", 3, 1).emit()
        rep.finish()
    """

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        fmt: str = "terminal",
        colour: Optional[bool] = None,
        sources: Optional[Mapping[str, SourceFile]] = None,
        sarif_path: Optional[str] = None,
        html_path: Optional[str] = None,
        summary_stream: Optional[TextIO] = None,
        show_summary: bool = True,
        tool_name: str = "hansl-lint",
        tool_version: str = __version__,
    ) -> None:
        if fmt not in FORMATS:
            raise ValueError(f"unknown output format {fmt!r}")
        self.stream = stream or sys.stdout
        self.summary_stream = summary_stream or sys.stderr
        self.fmt = fmt
        self.show_summary = show_summary
        self.tool_name = tool_name
        self.tool_version = tool_version
        self.stats = ReporterStats()
        self._diagnostics: List[Diagnostic] = []
        self._finished = False
        self._colour = colour if colour is not None else colour_default(self.stream)
        self._sources = _SourceCache(sources)

        if fmt == "terminal":
            self._renderer: Any = _TerminalRenderer(self.stream, self._colour, self._sources)
        elif fmt == "plain":
            self._renderer = _PlainRenderer(self.stream)
        elif fmt == "gcc":
            self._renderer = _GccRenderer(self.stream)
        else:
            self._renderer = _JsonRenderer(self.stream)

        # ── optional writers (argument or env var) ───────────────────
        self._sarif_path = sarif_path or os.environ.get(SARIF_ENV_VAR, "")
        self._sarif: Optional[_SarifBuilder] = _SarifBuilder() if self._sarif_path else None

        self._html_path = html_path or os.environ.get(HTML_ENV_VAR, "")
        self._html: Optional[_HtmlBuilder] = (
            _HtmlBuilder(self._sources) if self._html_path else None
        )

    # ── context manager ──────────────────────────────────────────────

    def __enter__(self) -> "Reporter":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.finish()

    # ── emission ─────────────────────────────────────────────────────

    def diagnostic(self, rule: RuleCode, message: str) -> DiagnosticBuilder:
        """Create a :class:`DiagnosticBuilder` bound to this reporter."""
        return DiagnosticBuilder(self, rule, message)

    def emit(self, diag: Diagnostic) -> None:
        """Route one diagnostic to every active output."""
        self.stats.record(diag.severity)
        self._diagnostics.append(diag)
        self._renderer.render(diag)
        if self._sarif is not None:
            self._sarif.add(diag)
        if self._html is not None:
            self._html.add(diag)

    def emit_all(self, diagnostics: Iterable[Diagnostic]) -> None:
        for diag in diagnostics:
            self.emit(diag)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    # ── finalisation ─────────────────────────────────────────────────

    def _print_summary(self) -> None:
        summary = self.stats.summary_line()
        if self.fmt == "terminal" and self._colour:
            if self.stats.error:
                color = "red"
            elif self.stats.total:
                color = "yellow"
            else:
                color = "green"
            line = colored(f"  ╰─ {summary}", color, attrs=["bold"], force_color=True)
        else:
            line = f"  {summary}"
        self.summary_stream.write(line + "\n")

    def finish(self) -> ReporterStats:
        """
        Print the summary line and write SARIF / HTML if configured.

        Write failures are logged and otherwise ignored.  Calling this more
        than once has no further effect.
        """
        if self._finished:
            return self.stats
        self._finished = True
        self.stream.flush()

        if self.show_summary and self.fmt in ("terminal", "plain"):
            self._print_summary()

        if self._sarif is not None:
            try:
                self._sarif.write(self._sarif_path, self.tool_name, self.tool_version)
                logger.info("SARIF report written to %s", self._sarif_path)
            except OSError as exc:
                logger.error("failed to write SARIF report %s: %s", self._sarif_path, exc)

        if self._html is not None:
            try:
                self._html.write(self._html_path, stats=self.stats)
                logger.info("HTML report written to %s", self._html_path)
            except (OSError, jinja2.TemplateError) as exc:
                logger.error("failed to write HTML report %s: %s", self._html_path, exc)

        return self.stats


# ═════════════════════════════════════════════════════════════════════════
#  DEFAULT HTML TEMPLATE
# ═════════════════════════════════════════════════════════════════════════

_DEFAULT_HTML_TEMPLATE = textwrap.dedent("""\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>hansl-lint report</title>
  <style>
    :root { --bg: #1e1e2e; --fg: #cdd6f4; --surface: #313244;
            --red: #f38ba8; --yellow: #f9e2af; --cyan: #89dceb;
            --green: #a6e3a1; --blue: #89b4fa; --border: #45475a; }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: 'Fira Code', 'Cascadia Code', monospace;
           background: var(--bg); color: var(--fg); padding: 2rem; }
    h1 { margin-bottom: 1rem; }
    h2 { margin: 1.5rem 0 0.8rem; font-size: 1.1em; color: var(--blue); }
    .card { background: var(--surface); border: 1px solid var(--border);
            border-radius: 8px; padding: 1rem; margin-bottom: 1rem; }
    .sev-error       { border-left: 4px solid var(--red); }
    .sev-warning     { border-left: 4px solid var(--yellow); }
    .sev-style       { border-left: 4px solid var(--cyan); }
    .sev-information { border-left: 4px solid var(--fg); }
    .badge { display: inline-block; padding: 2px 8px; border-radius: 4px;
             font-size: 0.85em; font-weight: bold; color: var(--bg); }
    .badge-error       { background: var(--red); }
    .badge-warning     { background: var(--yellow); }
    .badge-style       { background: var(--cyan); }
    .badge-information { background: var(--fg); }
    .loc { color: var(--blue); font-size: 0.9em; }
    .msg { margin-top: 0.4rem; }
    pre  { margin-top: 0.4rem; padding: 0.4rem; background: var(--bg);
           border-radius: 4px; overflow-x: auto; }
    .help { color: var(--green); margin-top: 0.3rem; font-size: 0.9em; }
    .summary { margin-top: 2rem; padding: 1rem; background: var(--surface);
               border-radius: 8px; text-align: center; font-size: 1.1em; }
  </style>
</head>
<body>
  <h1>hansl-lint report</h1>
  {% for f in files %}
  <h2>{{ f }}</h2>
  {% for d in diagnostics if d.file == f %}
  <div class="card sev-{{ d.severity }}">
    <span class="badge badge-{{ d.severity }}">{{ d.severity }}</span>
    <code>[{{ d.code }}] {{ d.rule }}</code>
    <span class="loc">{{ d.file }}:{{ d.line }}{% if d.column %}:{{ d.column }}{% endif %}</span>
    <div class="msg">{{ d.message }}</div>
    {% if d.source is not none %}<pre>{{ d.source }}</pre>{% endif %}
    {% if d.hint %}<div class="help">help: {{ d.hint }}</div>{% endif %}
  </div>
  {% endfor %}
  {% endfor %}
  <div class="summary">{{ total }} diagnostic{{ 's' if total != 1 else '' }}{% if summary %}: {{ summary }}{% endif %}</div>
  <p style="margin-top:1rem;font-size:0.8em;">hansl-lint {{ version }}</p>
</body>
</html>
""")


__all__ = [
    "FORMATS",
    "SARIF_ENV_VAR",
    "HTML_ENV_VAR",
    "HTML_TEMPLATE_ENV_VAR",
    "colour_default",
    "ReporterStats",
    "DiagnosticBuilder",
    "Reporter",
]
