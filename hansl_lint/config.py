"""
Configuration for hansl-lint.

Settings come from three layers, later ones winning:

  1. the defaults of ``LintConfig``,
  2. a YAML file (``.hansl-lint.yaml``), either a plain mapping or a
     mapping nested under a ``hansl-lint:`` key,
  3. command line options.

The file is located from an explicit path, then the ``HANSL_LINT_CONFIG``
environment variable, then by searching ``.hansl-lint.yaml`` /
``.hansl-lint.yml`` from the working directory upwards.

Example file::

    max_line_length: 100
    ignore: [HL602]
    per_file_ignores:
      "legacy/*.inp": [naming]
    severity_overrides:
      lineTooLong: warning
    naming:
      matrix: [snake, upper]
"""

from __future__ import annotations

import dataclasses
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Pattern, Tuple

import yaml

from hansl_lint.errors import (
    ALL_RULES,
    ConfigError,
    RuleCategory,
    RuleCode,
    Severity,
    lookup_rule,
)

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "HANSL_LINT_CONFIG"
CONFIG_FILE_NAMES = (".hansl-lint.yaml", ".hansl-lint.yml")
CONFIG_SECTION = "hansl-lint"

NAMING_STYLES: Dict[str, Pattern[str]] = {
    "snake": re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$"),
    "upper": re.compile(r"^[A-Z][A-Z0-9]*(_[A-Z0-9]+)*$"),
    "camel": re.compile(r"^[a-z][a-zA-Z0-9]*$"),
    "any": re.compile(r"^[A-Za-z][A-Za-z0-9_]*$"),
}

NAMING_CATEGORIES = (
    "function", "parameter", "loop_index", "untyped",
    "scalar", "series", "matrix", "string", "list", "bundle", "array",
)


def _default_naming() -> Dict[str, List[str]]:
    naming = {category: ["snake"] for category in NAMING_CATEGORIES}
    naming["matrix"] = ["snake", "upper"]
    naming["list"] = ["snake", "upper"]
    # An untyped assignment may create a matrix or a list.
    naming["untyped"] = ["snake", "upper"]
    return naming


def _rule_keys(values: Any, what: str) -> List[str]:
    """Normalise rule references to codes; categories expand to their rules."""
    if values is None:
        return []
    if isinstance(values, str):
        values = [v for v in re.split(r"[,\s]+", values) if v]
    if not isinstance(values, (list, tuple, set, frozenset)):
        raise ConfigError(f"'{what}' must be a list of rule codes or names")
    codes: List[str] = []
    for value in values:
        if isinstance(value, RuleCode):
            keys = [value.code]
        else:
            keys = expand_rule_reference(str(value))
        for code in keys:
            if code not in codes:
                codes.append(code)
    return codes


def expand_rule_reference(key: str) -> List[str]:
    """
    Expand *key* to rule codes.

    Accepts a code (``HL201``), a rule name (``lineTooLong``), a category
    (``naming``) or ``all``.
    """
    key = key.strip()
    if key.lower() == "all":
        return [rule.code for rule in ALL_RULES]
    for category in RuleCategory:
        if key.lower() == category.value:
            return [rule.code for rule in ALL_RULES if rule.category is category]
    return [lookup_rule(key).code]


@dataclass
class LintConfig:
    """All tunable settings of a lint run."""

    max_line_length: int = 80
    allow_long_urls: bool = True
    max_blank_lines: int = 2
    indent_size: int = 4
    inline_comment_spaces: int = 2
    require_docstrings: bool = True
    arithmetic_operator_spacing: bool = True
    max_name_length: int = 31
    naming: Dict[str, List[str]] = field(default_factory=_default_naming)
    select: List[str] = field(default_factory=list)
    ignore: List[str] = field(default_factory=list)
    per_file_ignores: Dict[str, List[str]] = field(default_factory=dict)
    severity_overrides: Dict[str, Severity] = field(default_factory=dict)
    exclude: List[str] = field(default_factory=list)
    extensions: List[str] = field(default_factory=lambda: [".inp"])

    def __post_init__(self) -> None:
        self.select = _rule_keys(self.select, "select")
        self.ignore = _rule_keys(self.ignore, "ignore")
        self.per_file_ignores = {
            str(pattern): _rule_keys(rules, f"per_file_ignores[{pattern!r}]")
            for pattern, rules in (self.per_file_ignores or {}).items()
        }
        overrides: Dict[str, Severity] = {}
        for key, value in (self.severity_overrides or {}).items():
            severity = value if isinstance(value, Severity) else Severity.from_string(value)
            for code in expand_rule_reference(str(key)):
                overrides[code] = severity
        self.severity_overrides = overrides
        naming = _default_naming()
        for category, styles in (self.naming or {}).items():
            naming[category] = self._check_styles(category, styles)
        self.naming = naming
        self.extensions = [
            ext if ext.startswith(".") else f".{ext}" for ext in self.extensions
        ]

    @staticmethod
    def _check_styles(category: str, styles: Any) -> List[str]:
        if category not in NAMING_CATEGORIES:
            raise ConfigError(
                f"Unknown naming category {category!r}",
                hint="Use one of: " + ", ".join(NAMING_CATEGORIES),
            )
        if isinstance(styles, str):
            styles = [styles]
        if not isinstance(styles, (list, tuple)) or not styles:
            raise ConfigError(f"naming.{category} must be a style or a list of styles")
        for style in styles:
            if style not in NAMING_STYLES:
                raise ConfigError(
                    f"Unknown naming style {style!r} for {category}",
                    hint="Use one of: " + ", ".join(NAMING_STYLES),
                )
        return list(styles)

    # ─────────────────────────────────────────────────────────────────
    #  Queries used by the checkers
    # ─────────────────────────────────────────────────────────────────

    def is_selected(self, rule: RuleCode) -> bool:
        """True unless a non-empty ``select`` list leaves *rule* out.

        ``ignore`` and ``per_file_ignores`` are applied by the
        suppression manager.
        """
        return not self.select or rule.code in self.select

    def severity_for(self, rule: RuleCode) -> Severity:
        return self.severity_overrides.get(rule.code, rule.default_severity)

    def styles_for(self, category: str) -> List[str]:
        return self.naming.get(category, ["snake"])

    # ─────────────────────────────────────────────────────────────────
    #  Construction and validation
    # ─────────────────────────────────────────────────────────────────

    def validate(self) -> List[str]:
        """Return a list of validation warnings (empty if valid)."""
        warnings: List[str] = []
        if self.max_line_length <= 0:
            warnings.append("max_line_length must be positive")
        elif self.max_line_length < 40:
            warnings.append(f"max_line_length {self.max_line_length} is unusually small")
        if self.max_blank_lines < 0:
            warnings.append("max_blank_lines must be non-negative")
        if self.indent_size <= 0:
            warnings.append("indent_size must be positive")
        if self.inline_comment_spaces < 1:
            warnings.append("inline_comment_spaces should be at least 1")
        if self.max_name_length <= 0:
            warnings.append("max_name_length must be positive")
        both = sorted(set(self.select) & set(self.ignore))
        if both:
            warnings.append("rules both selected and ignored: " + ", ".join(both))
        return warnings

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: str = "") -> "LintConfig":
        """Build a config from a parsed YAML mapping."""
        where = f" in {source}" if source else ""
        known = {f.name: f for f in dataclasses.fields(cls)}
        kwargs: Dict[str, Any] = {}
        for raw_key, value in data.items():
            key = str(raw_key).replace("-", "_")
            if key not in known:
                raise ConfigError(
                    f"Unknown configuration key {raw_key!r}{where}",
                    hint="Valid keys: " + ", ".join(sorted(known)),
                )
            kwargs[key] = _coerce(key, known[key].default, value, where)
        return cls(**kwargs)

    def merged(self, **overrides: Any) -> "LintConfig":
        """Return a copy with the non-None *overrides* applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "max_line_length": self.max_line_length,
            "allow_long_urls": self.allow_long_urls,
            "max_blank_lines": self.max_blank_lines,
            "indent_size": self.indent_size,
            "inline_comment_spaces": self.inline_comment_spaces,
            "require_docstrings": self.require_docstrings,
            "arithmetic_operator_spacing": self.arithmetic_operator_spacing,
            "max_name_length": self.max_name_length,
            "naming": dict(self.naming),
            "select": list(self.select),
            "ignore": list(self.ignore),
            "per_file_ignores": dict(self.per_file_ignores),
            "severity_overrides": {
                code: sev.label for code, sev in self.severity_overrides.items()
            },
            "exclude": list(self.exclude),
            "extensions": list(self.extensions),
        }


def _coerce(key: str, default: Any, value: Any, where: str) -> Any:
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigError(f"'{key}' must be true or false{where}")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"'{key}' must be an integer{where}")
        return value
    if key in ("naming", "per_file_ignores", "severity_overrides"):
        if not isinstance(value, Mapping):
            raise ConfigError(f"'{key}' must be a mapping{where}")
        return dict(value)
    if key in ("exclude", "extensions"):
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, list):
            raise ConfigError(f"'{key}' must be a list{where}")
        return [str(v) for v in value]
    return value


# ═════════════════════════════════════════════════════════════════════════
#  FILE LOADING
# ═════════════════════════════════════════════════════════════════════════

def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Search *start* (default: the working directory) and its parents."""
    directory = (start or Path.cwd()).resolve()
    for candidate_dir in (directory, *directory.parents):
        for name in CONFIG_FILE_NAMES:
            candidate = candidate_dir / name
            if candidate.is_file():
                return candidate
    return None


def resolve_config_path(
    path: Optional[str] = None, start: Optional[Path] = None
) -> Optional[Path]:
    """Explicit path, then ``HANSL_LINT_CONFIG``, then the upward search."""
    if path:
        return Path(path)
    env_path = os.getenv(CONFIG_ENV_VAR, "").strip()
    if env_path:
        logger.info("using configuration from $%s", CONFIG_ENV_VAR)
        return Path(env_path)
    return find_config_file(start)


def read_config_file(path: Path) -> Dict[str, Any]:
    """Parse a YAML config file into a mapping (empty file -> ``{}``)."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigError(f"Configuration file not found: {path}")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration file {path}: {exc}")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration file {path} must contain a mapping, "
            f"got {type(data).__name__}"
        )
    if CONFIG_SECTION in data:
        section = data[CONFIG_SECTION]
        if section is None:
            return {}
        if not isinstance(section, dict):
            raise ConfigError(f"'{CONFIG_SECTION}' section in {path} must be a mapping")
        return section
    return data


def load_config(
    path: Optional[str] = None, start: Optional[Path] = None
) -> Tuple[LintConfig, Optional[Path]]:
    """
    Locate and load the configuration.

    Returns the config and the file it came from (None when the defaults
    are used).  Validation warnings are logged, not raised.
    """
    resolved = resolve_config_path(path, start)
    if resolved is None:
        logger.debug("no configuration file found, using defaults")
        config = LintConfig()
    else:
        config = LintConfig.from_mapping(read_config_file(resolved), source=str(resolved))
        logger.info("loaded configuration from %s", resolved)
    for warning in config.validate():
        logger.warning("configuration: %s", warning)
    return config, resolved


SKELETON_HEADER = """\
# hansl-lint configuration.
# Rules may be named by code (HL201), by name (lineTooLong) or by
# category (naming, layout, whitespace, comments, indentation, files).
"""


def skeleton_yaml() -> str:
    """Text of a default configuration file, as written by ``hansl-lint init``."""
    body = yaml.safe_dump(LintConfig().to_dict(), default_flow_style=False, sort_keys=False)
    return SKELETON_HEADER + body


__all__ = [
    "CONFIG_ENV_VAR",
    "CONFIG_FILE_NAMES",
    "NAMING_STYLES",
    "NAMING_CATEGORIES",
    "LintConfig",
    "expand_rule_reference",
    "find_config_file",
    "resolve_config_path",
    "read_config_file",
    "load_config",
    "skeleton_yaml",
]
