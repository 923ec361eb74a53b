"""
Consistency check for Markdown style guides.

A style guide shows each rule with code samples labelled as recommended or
discouraged.  ``check_document`` lints every fenced Hansl sample and
reports

  * HL901 for each problem found in a sample labelled as recommended,
  * HL902 for a sample labelled as discouraged that breaks no rule.

The label of a sample is the nearest non-blank line above its opening
fence, e.g. ``**Recommended:**`` or ``Not recommended``.
"""

from __future__ import annotations

import dataclasses
import enum
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from hansl_lint.checkers import CheckerRunner, LintResults, SuppressionManager
from hansl_lint.config import LintConfig
from hansl_lint.errors import Diagnostic, Rules, SourceLocation
from hansl_lint.source import SourceFile

logger = logging.getLogger(__name__)

# Rules about whole files or missing context, meaningless for a snippet.
SAMPLE_EXEMPT_RULES = ("HL204", "HL601", "HL602", "HL403")

DOCUMENT_RULES = (Rules.RECOMMENDED_SAMPLE_VIOLATION.code, Rules.DISCOURAGED_SAMPLE_CLEAN.code)

HANSL_LANGUAGES = frozenset({"", "hansl", "inp", "gretl"})

_FENCE = re.compile(r"^(?P<indent>[ \t]*)(?P<fence>`{3,}|~{3,})[ \t]*(?P<lang>[\w+-]*)")

_DISCOURAGED = re.compile(
    r"\bnot\s+recommended\b|\bbad\b|\bavoid\b|\bdon['’]t\b|\bdo\s+not\b|\bwrong\b",
    re.IGNORECASE,
)
_RECOMMENDED = re.compile(r"\brecommended\b|\bgood\b|\bdo\b|\bcorrect\b", re.IGNORECASE)


class SampleKind(enum.Enum):
    RECOMMENDED = "recommended"
    DISCOURAGED = "discouraged"
    UNLABELLED = "unlabelled"


def classify_label(label: str) -> SampleKind:
    text = label.strip().strip("*_#>:-` ")
    if _DISCOURAGED.search(text):
        return SampleKind.DISCOURAGED
    if _RECOMMENDED.search(text):
        return SampleKind.RECOMMENDED
    return SampleKind.UNLABELLED


@dataclass
class CodeSample:
    """A fenced code block of the document."""

    code: str
    language: str
    first_line: int          # Markdown line of the first code line
    indent: int              # width of the fence indentation removed from each line
    label: str = ""
    label_line: int = 0
    kind: SampleKind = SampleKind.UNLABELLED


def extract_samples(text: str) -> List[CodeSample]:
    """Find fenced code blocks and the label line above each."""
    lines = text.splitlines()
    samples: List[CodeSample] = []
    last_text: Optional[tuple] = None
    i = 0
    while i < len(lines):
        match = _FENCE.match(lines[i])
        if match is None:
            if lines[i].strip():
                last_text = (i + 1, lines[i])
            i += 1
            continue
        fence = match.group("fence")
        indent = match.group("indent")
        opening = i
        body: List[str] = []
        i += 1
        while i < len(lines) and not lines[i].strip().startswith(fence):
            line = lines[i]
            body.append(line[len(indent):] if line.startswith(indent) else line.lstrip())
            i += 1
        sample = CodeSample(
            code="\n".join(body) + ("\n" if body else ""),
            language=match.group("lang").lower(),
            first_line=opening + 2,
            indent=len(indent),
        )
        if last_text is not None:
            sample.label_line, sample.label = last_text
            sample.kind = classify_label(sample.label)
        samples.append(sample)
        last_text = None
        i += 1
    return samples


def _sample_config(config: LintConfig) -> LintConfig:
    # Samples are always linted with every rule; the selection is applied
    # to the findings afterwards.
    ignore = list(config.ignore) + [c for c in SAMPLE_EXEMPT_RULES if c not in config.ignore]
    return dataclasses.replace(config, select=[], ignore=ignore, per_file_ignores={})


def _wanted(config: LintConfig) -> Tuple[Set[str], Set[str]]:
    """
    Split the selection of *config* into the document rules to report and
    the sample rules that count towards HL901.

    An empty selection reports everything.  Selecting only sample rules
    (e.g. ``naming``) reports HL901 for those rules alone.
    """
    if not config.select:
        return set(DOCUMENT_RULES), set()
    inner = {code for code in config.select if code not in DOCUMENT_RULES}
    outer = {code for code in config.select if code in DOCUMENT_RULES}
    if inner:
        outer.add(Rules.RECOMMENDED_SAMPLE_VIOLATION.code)
    return outer, inner


def check_text(text: str, filename: str, config: Optional[LintConfig] = None) -> LintResults:
    """Check the Markdown *text* of the document *filename*."""
    config = config or LintConfig()
    runner = CheckerRunner(config=_sample_config(config))
    outer, inner = _wanted(config)
    found: List[Diagnostic] = []
    samples = extract_samples(text)
    linted = 0

    for number, sample in enumerate(samples, 1):
        if sample.language not in HANSL_LANGUAGES or sample.kind is SampleKind.UNLABELLED:
            continue
        linted += 1
        source = SourceFile(path=f"<sample {number}>", text=sample.code)
        diagnostics = runner.run(source).diagnostics
        logger.debug("%s: sample at line %d (%s): %d diagnostics", filename,
                     sample.first_line, sample.kind.value, len(diagnostics))

        if sample.kind is SampleKind.RECOMMENDED:
            if Rules.RECOMMENDED_SAMPLE_VIOLATION.code not in outer:
                continue
            for diag in diagnostics:
                if inner and diag.code not in inner:
                    continue
                column = diag.location.column + sample.indent if diag.location.column else 0
                found.append(Diagnostic(
                    rule=Rules.RECOMMENDED_SAMPLE_VIOLATION,
                    message=(f"recommended sample breaks {diag.code} "
                             f"({diag.rule.name}): {diag.message}"),
                    severity=config.severity_for(Rules.RECOMMENDED_SAMPLE_VIOLATION),
                    location=SourceLocation(
                        filename, sample.first_line + diag.location.line - 1, column,
                    ),
                    checker_name="doccheck",
                    hint=diag.hint,
                ))
        elif not diagnostics and Rules.DISCOURAGED_SAMPLE_CLEAN.code in outer:
            found.append(Diagnostic(
                rule=Rules.DISCOURAGED_SAMPLE_CLEAN,
                message=f"sample labelled '{sample.label.strip()}' breaks no style rule",
                severity=config.severity_for(Rules.DISCOURAGED_SAMPLE_CLEAN),
                location=SourceLocation(filename, sample.label_line, 0),
                checker_name="doccheck",
                hint="Make the discouraged sample show the problem or relabel it",
            ))

    suppressions = SuppressionManager()
    suppressions.load_config(config)
    results = LintResults()
    results.sources[filename] = SourceFile(path=filename, text=text, display_name=filename)
    results.checker_names.append("doccheck")
    results.diagnostics = suppressions.filter_diagnostics(found)
    results.diagnostics.sort(key=lambda d: (d.location.line, d.location.column, d.code))
    results.diagnostics_by_checker["doccheck"].extend(results.diagnostics)
    results.stats["doccheck_samples"] = linted
    logger.info("%s: %d of %d samples checked, %d findings",
                filename, linted, len(samples), len(results.diagnostics))
    return results


def check_document(path: str, config: Optional[LintConfig] = None) -> LintResults:
    """Read and check the Markdown style guide at *path*."""
    source = SourceFile.from_path(path)
    return check_text(source.text, source.display_name, config)


__all__ = [
    "SampleKind",
    "CodeSample",
    "classify_label",
    "extract_samples",
    "check_text",
    "check_document",
]
