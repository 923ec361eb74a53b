# tests/test_config.py
"""
Tests for LintConfig and the YAML configuration loader.
"""

import logging

import pytest
import yaml

from hansl_lint.config import (
    CONFIG_ENV_VAR,
    LintConfig,
    expand_rule_reference,
    find_config_file,
    load_config,
    read_config_file,
    skeleton_yaml,
)
from hansl_lint.errors import ConfigError, Rules, Severity


class TestLintConfig:

    def test_defaults(self):
        config = LintConfig()
        assert config.max_line_length == 80
        assert config.indent_size == 4
        assert config.inline_comment_spaces == 2
        assert config.styles_for("matrix") == ["snake", "upper"]
        assert config.styles_for("scalar") == ["snake"]
        assert config.validate() == []

    def test_rule_references_normalised(self):
        config = LintConfig(select=["lineTooLong", "files"], ignore="HL301, HL302")
        assert config.select == ["HL201", "HL601", "HL602"]
        assert config.ignore == ["HL301", "HL302"]

    def test_unknown_rule(self):
        with pytest.raises(ConfigError):
            LintConfig(ignore=["HL777"])

    def test_is_selected(self):
        config = LintConfig(select=["naming"])
        assert config.is_selected(Rules.FUNCTION_NAME)
        assert not config.is_selected(Rules.LINE_TOO_LONG)
        assert LintConfig().is_selected(Rules.LINE_TOO_LONG)

    def test_severity_overrides(self):
        config = LintConfig(severity_overrides={"lineTooLong": "warning", "files": "error"})
        assert config.severity_for(Rules.LINE_TOO_LONG) is Severity.WARNING
        assert config.severity_for(Rules.FILE_EXTENSION) is Severity.ERROR
        assert config.severity_for(Rules.TAB_CHARACTER) is Severity.STYLE

    def test_bad_severity(self):
        with pytest.raises(ConfigError):
            LintConfig(severity_overrides={"HL201": "fatal"})

    def test_naming_override_keeps_other_defaults(self):
        config = LintConfig(naming={"function": "camel"})
        assert config.styles_for("function") == ["camel"]
        assert config.styles_for("matrix") == ["snake", "upper"]

    @pytest.mark.parametrize("naming", [
        {"widgets": ["snake"]},
        {"scalar": ["kebab"]},
        {"scalar": []},
    ])
    def test_bad_naming(self, naming):
        with pytest.raises(ConfigError):
            LintConfig(naming=naming)

    def test_extensions_get_a_dot(self):
        assert LintConfig(extensions=["inp", ".hansl"]).extensions == [".inp", ".hansl"]

    def test_validate_warnings(self):
        warnings = LintConfig(max_line_length=0, indent_size=0,
                              select=["HL201"], ignore=["HL201"]).validate()
        assert "max_line_length must be positive" in warnings
        assert "indent_size must be positive" in warnings
        assert any("both selected and ignored" in w for w in warnings)

    def test_merged_skips_none(self):
        base = LintConfig(max_line_length=100, ignore=["HL602"])
        merged = base.merged(max_line_length=None, select=["naming"])
        assert merged.max_line_length == 100
        assert merged.ignore == ["HL602"]
        assert "HL101" in merged.select
        assert base.select == []

    def test_expand_rule_reference(self):
        assert expand_rule_reference("HL201") == ["HL201"]
        assert expand_rule_reference("trailingWhitespace") == ["HL203"]
        assert "HL503" in expand_rule_reference("indentation")
        assert len(expand_rule_reference("all")) == len(expand_rule_reference("ALL"))


class TestFromMapping:

    def test_dashes_in_keys(self):
        config = LintConfig.from_mapping({"max-line-length": 100, "require-docstrings": False})
        assert config.max_line_length == 100
        assert config.require_docstrings is False

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown configuration key"):
            LintConfig.from_mapping({"max_len": 100}, source="x.yaml")

    @pytest.mark.parametrize("data", [
        {"max_line_length": "long"},
        {"max_line_length": True},
        {"allow_long_urls": "yes"},
        {"naming": ["snake"]},
        {"exclude": {"a": 1}},
    ])
    def test_wrong_types(self, data):
        with pytest.raises(ConfigError):
            LintConfig.from_mapping(data)

    def test_string_becomes_list(self):
        assert LintConfig.from_mapping({"exclude": "build/*"}).exclude == ["build/*"]


class TestFiles:

    def test_read_plain_mapping(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("max_line_length: 120\nignore: [HL602]\n")
        assert read_config_file(path) == {"max_line_length": 120, "ignore": ["HL602"]}

    def test_read_section(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("hansl-lint:\n  indent_size: 2\nother-tool:\n  x: 1\n")
        assert read_config_file(path) == {"indent_size": 2}

    def test_read_empty(self, tmp_path):
        path = tmp_path / "c.yaml"
        path.write_text("")
        assert read_config_file(path) == {}

    @pytest.mark.parametrize("content", ["[1, 2]\n", "a: [unclosed\n", "hansl-lint: 3\n"])
    def test_read_invalid(self, tmp_path, content):
        path = tmp_path / "c.yaml"
        path.write_text(content)
        with pytest.raises(ConfigError):
            read_config_file(path)

    def test_read_missing(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            read_config_file(tmp_path / "nope.yaml")

    def test_find_searches_parents(self, tmp_path):
        (tmp_path / ".hansl-lint.yml").write_text("indent_size: 2\n")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_config_file(nested) == (tmp_path / ".hansl-lint.yml").resolve()

    def test_load_defaults(self, tmp_path):
        config, path = load_config(start=tmp_path)
        assert path is None
        assert config == LintConfig()

    def test_load_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "elsewhere.yaml"
        path.write_text("max_line_length: 99\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        config, found = load_config(start=tmp_path)
        assert found == path
        assert config.max_line_length == 99

    def test_explicit_path_wins(self, tmp_path, monkeypatch):
        env_file = tmp_path / "env.yaml"
        env_file.write_text("max_line_length: 99\n")
        explicit = tmp_path / "explicit.yaml"
        explicit.write_text("max_line_length: 70\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(env_file))
        config, _ = load_config(str(explicit))
        assert config.max_line_length == 70

    def test_load_logs_validation_warnings(self, tmp_path, caplog):
        path = tmp_path / ".hansl-lint.yaml"
        path.write_text("max_line_length: 20\n")
        with caplog.at_level(logging.WARNING, logger="hansl_lint"):
            load_config(start=tmp_path)
        assert "unusually small" in caplog.text

    def test_skeleton_loads_back(self):
        data = yaml.safe_load(skeleton_yaml())
        assert LintConfig.from_mapping(data) == LintConfig()
