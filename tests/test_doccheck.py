# tests/test_doccheck.py
"""
Tests for checking the labelled Hansl samples of a Markdown style guide.
"""

import pytest

from hansl_lint.config import LintConfig
from hansl_lint.doccheck import (
    SampleKind,
    check_document,
    check_text,
    classify_label,
    extract_samples,
)


class TestExtraction:

    def test_samples_and_labels(self, style_guide_md):
        samples = extract_samples(style_guide_md)
        assert [s.kind for s in samples] == [
            SampleKind.RECOMMENDED, SampleKind.DISCOURAGED, SampleKind.UNLABELLED,
        ]
        assert [s.language for s in samples] == ["hansl", "hansl", "python"]
        assert [s.first_line for s in samples] == [8, 14, 20]
        assert [s.label_line for s in samples] == [5, 11, 17]
        assert samples[0].code == "scalar x = 1\n"

    def test_indented_fence(self):
        md = "- Do this:\n\n    ```hansl\n    scalar x = 1\n    ```\n"
        sample = extract_samples(md)[0]
        assert sample.indent == 4
        assert sample.code == "scalar x = 1\n"

    def test_tilde_fence(self):
        samples = extract_samples("Good:\n~~~\nprint x\n~~~\n")
        assert samples[0].code == "print x\n"
        assert samples[0].language == ""

    @pytest.mark.parametrize("label, kind", [
        ("**Recommended:**", SampleKind.RECOMMENDED),
        ("Good", SampleKind.RECOMMENDED),
        ("*Not recommended*", SampleKind.DISCOURAGED),
        ("Bad example:", SampleKind.DISCOURAGED),
        ("Don't do this", SampleKind.DISCOURAGED),
        ("Avoid", SampleKind.DISCOURAGED),
        ("An example", SampleKind.UNLABELLED),
    ])
    def test_classify_label(self, label, kind):
        assert classify_label(label) is kind


class TestCheckText:

    def test_consistent_guide(self, style_guide_md):
        results = check_text(style_guide_md, "STYLE.md")
        assert results.diagnostics == []
        assert results.stats["doccheck_samples"] == 2

    def test_recommended_sample_breaks_rule(self):
        results = check_text("Good:\n\n```hansl\nscalar x=1\n```\n", "g.md")
        diag, = results.diagnostics
        assert diag.code == "HL901"
        assert (diag.location.file, diag.location.line, diag.location.column) == ("g.md", 4, 9)
        assert "HL301" in diag.message

    def test_indented_sample_columns(self):
        md = "- Do this:\n\n    ```hansl\n    scalar x=1\n    ```\n"
        diag, = check_text(md, "g.md").diagnostics
        assert (diag.location.line, diag.location.column) == (4, 13)

    def test_discouraged_sample_is_clean(self):
        diag, = check_text("Avoid:\n\n```\nscalar x = 1\n```\n", "g.md").diagnostics
        assert diag.code == "HL902"
        assert diag.location.line == 1

    def test_snippet_rules_are_exempt(self):
        md = "Good:\n```hansl\nfunction void f()\nend function\n```\n"
        assert check_text(md, "g.md").diagnostics == []

    def test_unlabelled_and_foreign_language_skipped(self):
        md = "Some text\n\n```hansl\nscalar x=1\n```\n\nGood:\n```r\nx=1\n```\n"
        results = check_text(md, "g.md")
        assert results.diagnostics == []
        assert results.stats["doccheck_samples"] == 0

    def test_selecting_document_rules(self):
        good = "Good:\n\n```hansl\nscalar x=1\n```\n"
        avoid = "Avoid:\n\n```hansl\nscalar x = 1\n```\n"
        assert [d.code for d in check_text(good, "g.md", LintConfig(select=["HL901"])).diagnostics] \
            == ["HL901"]
        assert check_text(avoid, "g.md", LintConfig(select=["HL901"])).diagnostics == []
        assert [d.code for d in check_text(avoid, "g.md", LintConfig(select=["HL902"])).diagnostics] \
            == ["HL902"]
        assert check_text(good, "g.md", LintConfig(select=["HL902"])).diagnostics == []

    def test_selecting_sample_rules(self):
        md = (
            "Good:\n\n```hansl\nscalar myVar=1\n```\n\n"
            "Avoid:\n\n```hansl\nscalar x=1\n```\n"
        )
        diag, = check_text(md, "g.md", LintConfig(select=["naming"])).diagnostics
        assert diag.code == "HL901"
        assert "HL102" in diag.message

    def test_config_applies(self):
        md = "Good:\n\n```hansl\nscalar x=1\n```\n"
        assert check_text(md, "g.md", LintConfig(ignore=["HL301"])).diagnostics == []
        assert check_text(md, "g.md", LintConfig(ignore=["HL901"])).diagnostics == []


class TestCheckDocument:

    def test_reads_file(self, tmp_path, style_guide_md):
        path = tmp_path / "STYLE.md"
        path.write_text(style_guide_md)
        results = check_document(str(path))
        assert results.diagnostics == []
        assert results.file_count == 1
