# tests/test_reporter.py
"""
Tests for the Reporter: output formats, summary line, SARIF and HTML
reports.
"""

import io
import json

import pytest

from hansl_lint.errors import Diagnostic, Rules, Severity, SourceLocation
from hansl_lint.reporter import (
    HTML_TEMPLATE_ENV_VAR,
    SARIF_ENV_VAR,
    Reporter,
    ReporterStats,
)
from hansl_lint.source import SourceFile


def sample_diag(line=1, column=11, hint="Write ' = '"):
    return Diagnostic(
        rule=Rules.OPERATOR_SPACING,
        message="missing whitespace around operator '='",
        severity=Severity.STYLE,
        location=SourceLocation("demo.inp", line, column),
        checker_name="whitespace",
        end_column=column + 1,
        hint=hint,
    )


@pytest.fixture
def sources():
    return {"demo.inp": SourceFile(path="demo.inp", text="scalar x=1\n")}


def run_reporter(diags, **kwargs):
    out = io.StringIO()
    err = io.StringIO()
    with Reporter(stream=out, summary_stream=err, **kwargs) as rep:
        rep.emit_all(diags)
    return out.getvalue(), err.getvalue()


class TestFormats:

    def test_gcc(self):
        out, err = run_reporter([sample_diag()], fmt="gcc")
        assert out == "demo.inp:1:11: style: missing whitespace around operator '=' [HL301]\n"
        assert err == ""

    def test_plain(self):
        out, err = run_reporter([sample_diag()], fmt="plain")
        assert out.splitlines() == [
            "[demo.inp:1]: (style) missing whitespace around operator '=' [HL301]",
            "  hint: Write ' = '",
        ]
        assert "1 style (1 total)" in err

    def test_json(self):
        out, _ = run_reporter([sample_diag(), sample_diag(line=2, hint="")], fmt="json")
        records = [json.loads(line) for line in out.splitlines()]
        assert [r["line"] for r in records] == [1, 2]
        assert records[0]["code"] == "HL301"
        assert records[0]["rule"] == "operatorSpacing"
        assert records[0]["hint"] == "Write ' = '"
        assert "hint" not in records[1]

    def test_terminal_excerpt(self, sources):
        out, _ = run_reporter([sample_diag(column=9)], fmt="terminal",
                              colour=False, sources=sources)
        lines = out.splitlines()
        assert lines[0] == "style[HL301]: missing whitespace around operator '='"
        assert lines[1] == "  --> demo.inp:1:9"
        assert lines[2] == " 1 | scalar x=1"
        assert lines[3] == "   |         ^"
        assert "  = help: Write ' = '" in lines
        assert "  = rule: operatorSpacing" in lines

    def test_terminal_without_source(self):
        out, _ = run_reporter([sample_diag()], fmt="terminal", colour=False)
        assert "  --> demo.inp:1:11" in out
        assert " | " not in out

    def test_terminal_colour(self, sources):
        out, _ = run_reporter([sample_diag()], fmt="terminal", colour=True, sources=sources)
        assert "\x1b[" in out

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            Reporter(fmt="xml")


class TestSummary:

    def test_no_diagnostics(self):
        _, err = run_reporter([], fmt="terminal", colour=False)
        assert err == "  no diagnostics emitted\n"

    def test_summary_can_be_silenced(self):
        _, err = run_reporter([sample_diag()], fmt="plain", show_summary=False)
        assert err == ""

    def test_stats(self):
        stats = ReporterStats()
        stats.record(Severity.ERROR)
        stats.record(Severity.ERROR)
        stats.record(Severity.INFORMATION)
        assert stats.total == 3
        assert stats.summary_line() == "2 errors; 1 info (3 total)"

    def test_finish_is_idempotent(self):
        out = io.StringIO()
        err = io.StringIO()
        rep = Reporter(stream=out, summary_stream=err, fmt="plain")
        rep.emit(sample_diag())
        rep.finish()
        rep.finish()
        assert err.getvalue().count("total") == 1

    def test_builder(self):
        out = io.StringIO()
        with Reporter(stream=out, summary_stream=io.StringIO(), fmt="gcc") as rep:
            (rep.diagnostic(Rules.TAB_CHARACTER, "tab")
                .at("a.inp", 3, 1)
                .with_severity(Severity.WARNING)
                .from_checker("layout")
                .emit())
        assert out.getvalue() == "a.inp:3:1: warning: tab [HL202]\n"
        assert rep.diagnostics[0].checker_name == "layout"


class TestSarif:

    def test_sarif_file(self, tmp_path):
        path = tmp_path / "out.sarif"
        run_reporter([sample_diag(), sample_diag(line=2)], fmt="gcc", sarif_path=str(path))
        data = json.loads(path.read_text())
        assert data["version"] == "2.1.0"
        run = data["runs"][0]
        assert run["tool"]["driver"]["name"] == "hansl-lint"
        assert [r["id"] for r in run["tool"]["driver"]["rules"]] == ["HL301"]
        result = run["results"][0]
        assert result["ruleId"] == "HL301"
        assert result["level"] == "note"
        region = result["locations"][0]["physicalLocation"]["region"]
        assert region == {"startLine": 1, "startColumn": 11, "endColumn": 12}
        assert result["properties"]["hint"] == "Write ' = '"

    def test_sarif_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "env.sarif"
        monkeypatch.setenv(SARIF_ENV_VAR, str(path))
        run_reporter([sample_diag()], fmt="gcc")
        assert path.exists()

    def test_sarif_write_failure_is_logged(self, tmp_path, caplog):
        path = tmp_path / "missing-dir" / "out.sarif"
        run_reporter([sample_diag()], fmt="gcc", sarif_path=str(path))
        assert "failed to write SARIF report" in caplog.text


class TestHtml:

    def test_html_report(self, tmp_path, sources):
        path = tmp_path / "report.html"
        diag = Diagnostic(
            rule=Rules.VARIABLE_NAME,
            message="scalar name '<b>' is not snake case",
            severity=Severity.STYLE,
            location=SourceLocation("demo.inp", 1, 8),
        )
        run_reporter([diag], fmt="gcc", html_path=str(path), sources=sources)
        html = path.read_text()
        assert "<h2>demo.inp</h2>" in html
        assert "&lt;b&gt;" in html
        assert "scalar x=1" in html
        assert "1 diagnostic:" in html

    def test_custom_template(self, tmp_path, monkeypatch):
        template = tmp_path / "t.html"
        template.write_text("{{ total }}|{% for d in diagnostics %}{{ d.code }}{% endfor %}")
        monkeypatch.setenv(HTML_TEMPLATE_ENV_VAR, str(template))
        path = tmp_path / "report.html"
        run_reporter([sample_diag(), sample_diag(line=2)], fmt="gcc", html_path=str(path))
        assert path.read_text() == "2|HL301HL301"
