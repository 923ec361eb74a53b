# tests/test_cli.py
"""
Tests for the hansl-lint command line interface.
"""

import io
import json
import logging
import sys

import pytest

from hansl_lint import __version__
from hansl_lint.checkers import CheckerRunner
from hansl_lint.cli import build_parser, main
from hansl_lint.errors import ALL_RULES


@pytest.fixture
def script(tmp_path):
    def _script(text, name="model.inp"):
        path = tmp_path / name
        path.write_text(text)
        return str(path)
    return _script


class TestParser:

    def test_subcommands(self):
        parser = build_parser()
        args = parser.parse_args(["check", "a.inp", "--format", "gcc", "-vv"])
        assert args.command == "check"
        assert args.paths == ["a.inp"]
        assert args.format == "gcc"
        assert args.verbose == 2
        assert args.fail_on == "style"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--version"])
        assert exc.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 2
        assert "usage" in capsys.readouterr().err


class TestCheck:

    def test_clean(self, script, clean_script, capsys):
        assert main(["check", script(clean_script)]) == 0
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "no diagnostics emitted" in captured.err

    def test_findings(self, script, messy_script, capsys):
        assert main(["check", "--format", "gcc", script(messy_script)]) == 1
        out = capsys.readouterr().out
        assert "model.inp:2:9: style: missing whitespace around operator '=' [HL301]" in out

    def test_fail_on(self, script):
        path = script("scalar x=1\n")
        assert main(["check", "--fail-on", "warning", path]) == 0
        assert main(["check", "--fail-on", "style", path]) == 1

    def test_select_and_ignore(self, script):
        path = script("scalar myVar=1\n")
        assert main(["check", "--ignore", "HL301,naming", path]) == 0
        assert main(["check", "--select", "HL301", "--ignore", "HL301", path]) == 0
        assert main(["check", "--select", "layout", path]) == 0

    def test_max_line_length(self, script):
        path = script("x = " + "1 + " * 20 + "1\n")
        assert main(["check", "--select", "HL201", path]) == 1
        assert main(["check", "--select", "HL201", "--max-line-length", "90", path]) == 0

    def test_json_output(self, script, capsys):
        main(["check", "--format", "json", script("scalar x=1\n")])
        record = json.loads(capsys.readouterr().out.splitlines()[0])
        assert record["code"] == "HL301"

    def test_stdin(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "stdin", io.StringIO("scalar x=1\n"))
        assert main(["check", "--format", "gcc", "-"]) == 1
        assert "<stdin>:1:9" in capsys.readouterr().out

    def test_directory(self, tmp_path, script):
        script("scalar x = 1\n", "a.inp")
        script("scalar x=1\n", "b.inp")
        script("scalar x=1\n", "c.txt")
        assert main(["check", "--format", "gcc", str(tmp_path)]) == 1

    def test_missing_path(self, tmp_path, capsys):
        assert main(["check", str(tmp_path / "nope.inp")]) == 2
        assert "No such file or directory" in capsys.readouterr().err

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "bad.inp"
        path.write_bytes(b"scalar caf\xe9 = 1\n")
        assert main(["check", str(path)]) == 2

    def test_config_file(self, tmp_path, script):
        (tmp_path / ".hansl-lint.yaml").write_text("ignore: [HL301]\n")
        assert main(["check", script("scalar x=1\n")]) == 0

    def test_bad_config(self, tmp_path, script, capsys):
        config = tmp_path / "bad.yaml"
        config.write_text("max_len: 3\n")
        assert main(["check", "--config", str(config), script("x = 1\n")]) == 2
        assert "Unknown configuration key" in capsys.readouterr().err

    def test_sarif(self, tmp_path, script):
        sarif = tmp_path / "out.sarif"
        main(["check", "--sarif", str(sarif), script("scalar x=1\n")])
        data = json.loads(sarif.read_text())
        assert data["runs"][0]["results"][0]["ruleId"] == "HL301"

    def test_interrupted(self, script, monkeypatch, capsys):
        def interrupt(self, paths, checkers=None):
            raise KeyboardInterrupt
        monkeypatch.setattr(CheckerRunner, "run_paths", interrupt)
        assert main(["check", script("scalar x = 1\n")]) == 130
        assert capsys.readouterr().out == ""

    def test_quiet(self, script, capsys):
        main(["check", "-q", script("scalar x=1\n")])
        assert capsys.readouterr().err == ""

    def test_verbose_logs(self, script, capsys):
        main(["check", "-v", script("scalar x = 1\n")])
        err = capsys.readouterr().err
        assert "[INFO ]" in err
        assert logging.getLogger("hansl_lint").level == logging.INFO


class TestRules:

    def test_text(self, capsys):
        assert main(["rules"]) == 0
        out = capsys.readouterr().out
        assert "HL201  lineTooLong" in out
        assert len(out.splitlines()) == len(ALL_RULES)

    def test_json(self, capsys):
        assert main(["rules", "--format", "json"]) == 0
        rows = {r["code"]: r for r in json.loads(capsys.readouterr().out)}
        assert rows["HL201"]["checker"] == "layout"
        assert rows["HL305"]["checker"] == "whitespace"
        assert rows["HL001"]["checker"] == ""
        assert rows["HL102"]["category"] == "naming"


class TestTokens:

    def test_significant(self, script, capsys):
        assert main(["tokens", script("scalar x = 1  # c\n")]) == 0
        out = capsys.readouterr().out
        assert "TYPE" in out
        assert "'scalar'" in out
        assert "LINE_COMMENT" not in out

    def test_all(self, script, capsys):
        main(["tokens", "--all", script("scalar x = 1  # c\n")])
        out = capsys.readouterr().out
        assert "LINE_COMMENT" in out
        assert "NEWLINE" in out

    def test_unterminated(self, script, capsys):
        main(["tokens", script('s = "abc\n')])
        captured = capsys.readouterr()
        assert "(unterminated)" in captured.out
        assert "Unterminated string literal" in captured.err


class TestDocCheck:

    def test_consistent(self, tmp_path, style_guide_md):
        path = tmp_path / "STYLE.md"
        path.write_text(style_guide_md)
        assert main(["doc-check", str(path)]) == 0

    def test_inconsistent(self, tmp_path, capsys):
        path = tmp_path / "STYLE.md"
        path.write_text("Good:\n\n```hansl\nscalar x=1\n```\n")
        assert main(["doc-check", "--format", "gcc", str(path)]) == 1
        assert "[HL901]" in capsys.readouterr().out

    def test_select(self, tmp_path, capsys):
        path = tmp_path / "STYLE.md"
        path.write_text("Good:\n\n```hansl\nscalar x=1\n```\n")
        assert main(["doc-check", "--format", "gcc", "--select", "HL901", str(path)]) == 1
        assert "STYLE.md:4:9: warning: recommended sample breaks HL301" in capsys.readouterr().out
        assert main(["doc-check", "--select", "naming", str(path)]) == 0


class TestInit:

    def test_creates_file(self, tmp_path):
        assert main(["init"]) == 0
        assert (tmp_path / ".hansl-lint.yaml").read_text().startswith("# hansl-lint")

    def test_refuses_to_overwrite(self, tmp_path, capsys):
        (tmp_path / ".hansl-lint.yaml").write_text("keep: me\n")
        assert main(["init"]) == 1
        assert "File already exists" in capsys.readouterr().err
        assert (tmp_path / ".hansl-lint.yaml").read_text() == "keep: me\n"
        assert main(["init", "--force"]) == 0

    def test_output_path(self, tmp_path):
        target = tmp_path / "conf" / "lint.yaml"
        target.parent.mkdir()
        assert main(["init", "-o", str(target)]) == 0
        assert target.exists()
