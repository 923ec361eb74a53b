"""Loading Hansl source files and discovering them on disk."""

from __future__ import annotations

import fnmatch
import logging
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from hansl_lint.errors import SourceError

logger = logging.getLogger(__name__)

STDIN_NAME = "<stdin>"

_LINE_BREAK = re.compile(r"\r\n|\r|\n")


@dataclass
class SourceFile:
    """
    The text of one script plus the views the checkers need.

    ``lines`` holds the physical lines without their terminators, so
    ``lines[n - 1]`` is line *n*.
    """

    path: str
    text: str
    display_name: str = ""
    lines: List[str] = field(init=False, repr=False)
    ends_with_newline: bool = field(init=False)

    def __post_init__(self) -> None:
        if not self.display_name:
            self.display_name = self.path
        self.lines = _split_lines(self.text)
        self.ends_with_newline = self.text.endswith(("\n", "\r"))

    @classmethod
    def from_path(cls, path: str, display_name: Optional[str] = None) -> "SourceFile":
        """Read *path* as UTF-8 (a BOM is accepted)."""
        try:
            with open(path, "r", encoding="utf-8-sig", newline="") as fh:
                text = fh.read()
        except FileNotFoundError:
            raise SourceError(f"Hansl script not found: {path}")
        except PermissionError:
            raise SourceError(f"Cannot read Hansl script: {path}")
        except IsADirectoryError:
            raise SourceError(f"Expected a file but got a directory: {path}")
        except UnicodeDecodeError as e:
            raise SourceError(
                f"Hansl script is not valid UTF-8: {path} ({e})",
                hint="Convert the file to UTF-8 before linting",
            )
        if display_name is None:
            display_name = _display_path(path)
        return cls(path=path, text=text, display_name=display_name)

    @classmethod
    def from_stdin(cls, stream=None) -> "SourceFile":
        stream = stream or sys.stdin
        return cls(path=STDIN_NAME, text=stream.read(), display_name=STDIN_NAME)

    @property
    def is_stdin(self) -> bool:
        return self.path == STDIN_NAME

    def line(self, number: int) -> str:
        """Physical line *number* (1-based), or '' when out of range."""
        if 0 < number <= len(self.lines):
            return self.lines[number - 1]
        return ""

    def indentation(self, number: int) -> str:
        text = self.line(number)
        return text[: len(text) - len(text.lstrip(" \t"))]


def _split_lines(text: str) -> List[str]:
    """Split on the same line terminators the tokenizer recognises."""
    if not text:
        return []
    lines = _LINE_BREAK.split(text)
    if lines[-1] == "":
        lines.pop()
    return lines


def _display_path(path: str) -> str:
    try:
        rel = os.path.relpath(path)
    except ValueError:
        return path
    return path if rel.startswith(os.pardir) else rel


# ═════════════════════════════════════════════════════════════════════════
#  FILE DISCOVERY
# ═════════════════════════════════════════════════════════════════════════

def is_excluded(path: str, patterns: Sequence[str]) -> bool:
    """True when *path* (or its base name) matches one of the glob *patterns*."""
    normalized = Path(path).as_posix()
    name = os.path.basename(path)
    for pattern in patterns:
        if fnmatch.fnmatch(normalized, pattern) or fnmatch.fnmatch(name, pattern):
            return True
        if fnmatch.fnmatch(normalized, f"*/{pattern}"):
            return True
    return False


def iter_source_files(
    paths: Iterable[str],
    extensions: Sequence[str] = (".inp",),
    exclude: Sequence[str] = (),
) -> Iterator[str]:
    """
    Expand *paths* into script paths.

    Files named explicitly are always yielded (unless excluded); directories
    are walked recursively for files with one of *extensions*.  Results are
    sorted within each directory so runs are reproducible.
    """
    wanted = tuple(ext.lower() for ext in extensions)
    for raw in paths:
        if raw == "-":
            yield raw
            continue
        if is_excluded(raw, exclude):
            logger.info("excluded: %s", raw)
            continue
        if os.path.isdir(raw):
            for root, dirs, files in os.walk(raw):
                dirs[:] = sorted(
                    d for d in dirs
                    if not d.startswith(".")
                    and not is_excluded(os.path.join(root, d), exclude)
                )
                for name in sorted(files):
                    full = os.path.join(root, name)
                    if not name.lower().endswith(wanted):
                        continue
                    if is_excluded(full, exclude):
                        logger.info("excluded: %s", full)
                        continue
                    yield full
        elif os.path.exists(raw):
            yield raw
        else:
            raise SourceError(f"No such file or directory: {raw}")


__all__ = ["SourceFile", "STDIN_NAME", "iter_source_files", "is_excluded"]
