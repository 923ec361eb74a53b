# tests/test_suppression.py
"""
Tests for inline ``# hansl-lint:`` directives and configuration-driven
suppressions.
"""

import pytest

from hansl_lint.checkers import SuppressionManager
from hansl_lint.errors import Diagnostic, Rules, Severity, SourceLocation


def make_diag(code_rule=Rules.OPERATOR_SPACING, file="a.inp", line=1):
    return Diagnostic(
        rule=code_rule,
        message="m",
        severity=Severity.STYLE,
        location=SourceLocation(file, line, 1),
    )


class TestInlineDirectives:

    @pytest.mark.parametrize("directive", [
        "disable=HL102",
        "disable=variableName",
        "disable=naming",
        "disable = HL102, HL301",
        "disable",
        "disable=all",
    ])
    def test_same_line(self, codes, directive):
        text = f"scalar myVar = 1  # hansl-lint: {directive}\n"
        assert codes(text, select=["naming"]) == []

    def test_same_line_only(self, codes):
        text = "scalar myVar = 1  # hansl-lint: disable=HL102\nscalar otherVar = 2\n"
        assert codes(text, select=["naming"]) == ["HL102"]

    def test_other_rule_not_suppressed(self, codes):
        text = "scalar myVar=1  # hansl-lint: disable=HL102\n"
        assert codes(text, select=["naming", "HL301"]) == ["HL301"]

    def test_case_insensitive(self, codes):
        text = "scalar myVar = 1  # HANSL-LINT: DISABLE=hl102\n"
        assert codes(text, select=["naming"]) == []

    def test_next_line_skips_blank_lines(self, codes):
        text = "# hansl-lint: disable-next-line=HL301\n\nscalar x=1\nscalar y=1\n"
        assert codes(text, select=["HL301"]) == ["HL301"]

    def test_off_on_region(self, lint):
        text = (
            "# hansl-lint: off\n"
            "scalar x=1\n"
            "scalar y=1\n"
            "# hansl-lint: on\n"
            "scalar z=1\n"
        )
        diags = lint(text, select=["HL301"])
        assert [d.location.line for d in diags] == [5]

    def test_off_until_end_of_file(self, codes):
        text = "scalar a = 1\n# hansl-lint: off\nscalar x=1\n"
        assert codes(text, select=["HL301"]) == []

    def test_disable_file(self, codes):
        text = "scalar x=1\n# hansl-lint: disable-file=whitespace\n\nscalar y=1\n"
        assert codes(text, select=["HL301"]) == []

    def test_unknown_rule_is_logged(self, codes, caplog):
        text = "scalar x=1  # hansl-lint: disable=HL777\n"
        assert codes(text, select=["HL301"]) == ["HL301"]
        assert "unknown rule 'HL777'" in caplog.text

    def test_block_comment_is_not_a_directive(self, codes):
        text = "scalar x=1  /* hansl-lint: disable */\n"
        assert codes(text, select=["HL301"]) == ["HL301"]


class TestConfigSuppressions:

    def test_ignore(self, codes):
        assert codes("scalar x=1\n", select=["whitespace"], ignore=["HL301"]) == []

    def test_ignore_by_category(self, codes):
        assert codes("scalar myVar=1\n", ignore=["naming", "whitespace"]) == []

    def test_per_file_ignores(self, codes):
        options = {"select": ["naming"], "per_file_ignores": {"legacy_*.inp": ["naming"]}}
        assert codes("scalar myVar = 1\n", "legacy_model.inp", **options) == []
        assert codes("scalar myVar = 1\n", "model.inp", **options) == ["HL102"]

    def test_per_file_ignores_with_directory(self, codes):
        options = {"per_file_ignores": {"legacy/*.inp": ["HL301"]}, "select": ["HL301"]}
        assert codes("scalar x=1\n", "legacy/old.inp", **options) == []

    def test_select_limits_rules(self, codes):
        assert codes("scalar myVar=1\n", select=["HL102"]) == ["HL102"]


class TestSuppressionManager:

    def test_global(self):
        sm = SuppressionManager()
        sm.add_global_suppression("HL301")
        assert sm.is_suppressed(make_diag())
        assert not sm.is_suppressed(make_diag(Rules.LINE_TOO_LONG))

    def test_file_pattern(self):
        sm = SuppressionManager()
        sm.add_file_suppression("HL301", "gen_*.inp")
        assert sm.is_suppressed(make_diag(file="out/gen_model.inp"))
        assert not sm.is_suppressed(make_diag(file="model.inp"))

    def test_filter(self):
        sm = SuppressionManager()
        sm.add_global_suppression("HL201")
        kept = sm.filter_diagnostics([make_diag(), make_diag(Rules.LINE_TOO_LONG)])
        assert [d.code for d in kept] == ["HL301"]
