"""
hansl_lint/cli.py
=================

Command line interface.

Usage
-----
    hansl-lint <command> [options]

Commands
--------
    check       Lint Hansl scripts (files, directories or '-' for stdin)
    rules       List every rule the linter can report
    tokens      Dump the token stream of a script
    doc-check   Check the code samples of a Markdown style guide
    init        Write a skeleton .hansl-lint.yaml

Exit codes
----------
    0   no findings at or above --fail-on
    1   findings at or above --fail-on
    2   infrastructure failure (unreadable input, bad configuration)
    130 interrupted
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import textwrap
import traceback
from typing import List, Optional, Sequence

from termcolor import colored

from hansl_lint import __version__
from hansl_lint.checkers import CheckerRunner, LintResults, default_registry
from hansl_lint.config import CONFIG_FILE_NAMES, LintConfig, load_config, skeleton_yaml
from hansl_lint.doccheck import check_document
from hansl_lint.errors import ALL_RULES, HanslLintError, Severity
from hansl_lint.lexer import tokenize
from hansl_lint.reporter import FORMATS, Reporter, colour_default
from hansl_lint.source import SourceFile

logger = logging.getLogger("hansl_lint")

EXIT_OK = 0
EXIT_FINDINGS = 1
EXIT_INFRA = 2
EXIT_INTERRUPTED = 130

_LOG_FORMAT = "%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s"


def _configure_logging(verbosity: int, quiet: bool = False) -> None:
    """Set up the ``hansl_lint`` logger.

    0 → WARNING, 1 → INFO, 2+ → DEBUG; ``quiet`` → ERROR.
    """
    level = logging.WARNING
    if quiet:
        level = logging.ERROR
    elif verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    for handler in list(logger.handlers):
        if getattr(handler, "_hansl_lint", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=_LOG_FORMAT, datefmt="%H:%M:%S"))
    handler._hansl_lint = True  # type: ignore[attr-defined]
    logger.setLevel(level)
    logger.addHandler(handler)


def _error(message: str, hint: str = "") -> None:
    use_colour = colour_default(sys.stderr)
    prefix = colored("error:", "red", attrs=["bold"], force_color=True) if use_colour else "error:"
    sys.stderr.write(f"hansl-lint: {prefix} {message}\n")
    if hint:
        sys.stderr.write(f"  hint: {hint}\n")


def _split_rules(values: Optional[List[str]]) -> List[str]:
    keys: List[str] = []
    for value in values or []:
        keys.extend(k.strip() for k in value.split(",") if k.strip())
    return keys


def _load_config(args: argparse.Namespace) -> LintConfig:
    config, _ = load_config(getattr(args, "config", None))
    select = _split_rules(getattr(args, "select", None))
    ignore = _split_rules(getattr(args, "ignore", None))
    return config.merged(
        select=select or None,
        ignore=(config.ignore + ignore) if ignore else None,
        max_line_length=getattr(args, "max_line_length", None),
    )


def _reporter(args: argparse.Namespace, results: LintResults) -> Reporter:
    return Reporter(
        fmt=args.format,
        colour=False if args.no_color else None,
        sources=results.sources,
        sarif_path=args.sarif,
        html_path=args.html,
        show_summary=not args.quiet,
    )


def _exit_code(results: LintResults, fail_on: str) -> int:
    if results.failures:
        return EXIT_INFRA
    if results.count_at_least(Severity.from_string(fail_on)):
        return EXIT_FINDINGS
    return EXIT_OK


# ═══════════════════════════════════════════════════════════════════════════
# COMMANDS
# ═══════════════════════════════════════════════════════════════════════════

def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    config = _load_config(args)
    runner = CheckerRunner(config=config)
    results = runner.run_paths(args.paths)
    logger.info(results.summary())
    if not results.sources and not results.failures:
        logger.warning("no Hansl scripts found under: %s", " ".join(args.paths))

    with _reporter(args, results) as rep:
        rep.emit_all(results.diagnostics)
    return _exit_code(results, args.fail_on)


def cmd_doc_check(args: argparse.Namespace) -> int:
    """Handle the 'doc-check' command."""
    config = _load_config(args)
    combined = LintResults()
    for path in args.documents:
        combined.merge(check_document(path, config))
    with _reporter(args, combined) as rep:
        rep.emit_all(combined.diagnostics)
    return _exit_code(combined, args.fail_on)


def cmd_rules(args: argparse.Namespace) -> int:
    """Handle the 'rules' command."""
    registry = default_registry()
    rows = []
    for rule in ALL_RULES:
        entry = rule.to_dict()
        checkers = registry.filter_by_rule(rule.code)
        entry["checker"] = checkers[0].name if checkers else ""
        rows.append(entry)

    if args.format == "json":
        sys.stdout.write(json.dumps(rows, indent=2) + "\n")
        return EXIT_OK

    for row in rows:
        sys.stdout.write(
            f"{row['code']}  {row['name']:<28} {row['category']:<12} "
            f"{row['severity']:<12} {row['summary']}\n"
        )
    return EXIT_OK


def cmd_tokens(args: argparse.Namespace) -> int:
    """Handle the 'tokens' command (debug aid)."""
    source = SourceFile.from_stdin() if args.path == "-" else SourceFile.from_path(args.path)
    stream = tokenize(source.text, filename=source.display_name)
    for tok in stream:
        if tok.is_trivia and not args.all:
            continue
        flag = "" if tok.terminated else "  (unterminated)"
        sys.stdout.write(
            f"{tok.line}:{tok.column}-{tok.end_line}:{tok.end_column}\t"
            f"{tok.kind.name:<13} {tok.text!r}{flag}\n"
        )
    for error in stream.errors:
        sys.stderr.write(f"{error}\n")
    return EXIT_OK


def cmd_init(args: argparse.Namespace) -> int:
    """Handle the 'init' command (write a skeleton configuration)."""
    output_path = args.output or CONFIG_FILE_NAMES[0]
    if os.path.exists(output_path) and not args.force:
        _error(f"File already exists: {output_path}", hint="Use --force to overwrite")
        return EXIT_FINDINGS
    try:
        with open(output_path, "w", encoding="utf-8") as fh:
            fh.write(skeleton_yaml())
    except OSError as e:
        _error(f"Cannot write file: {e}")
        return EXIT_INFRA
    sys.stderr.write(f"Created: {output_path}\n")
    return EXIT_OK


# ═══════════════════════════════════════════════════════════════════════════
# ARGUMENT PARSER
# ═══════════════════════════════════════════════════════════════════════════

def _add_report_options(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config",
        default=None,
        help="Configuration file (default: $HANSL_LINT_CONFIG or .hansl-lint.yaml)",
    )
    p.add_argument(
        "--format",
        choices=FORMATS,
        default="terminal",
        help="Output format (default: terminal)",
    )
    p.add_argument(
        "--select",
        action="append",
        metavar="RULES",
        help="Only report these rules (codes, names or categories, comma separated)",
    )
    p.add_argument(
        "--ignore",
        action="append",
        metavar="RULES",
        help="Do not report these rules",
    )
    p.add_argument(
        "--max-line-length",
        type=int,
        default=None,
        help="Maximum line length (default: 80)",
    )
    p.add_argument(
        "--fail-on",
        choices=[s.label for s in Severity],
        default="style",
        help="Lowest severity that makes the exit status 1 (default: style)",
    )
    p.add_argument("--sarif", default=None, metavar="PATH",
                   help="Also write a SARIF 2.1.0 report")
    p.add_argument("--html", default=None, metavar="PATH",
                   help="Also write an HTML report")
    p.add_argument("--no-color", action="store_true", default=False,
                   help="Disable coloured output")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the hansl-lint CLI."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    common.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Only print diagnostics",
    )

    parser = argparse.ArgumentParser(
        prog="hansl-lint",
        description="Style checker for Hansl, the scripting language of Gretl.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              %(prog)s check scripts/
              %(prog)s check --format gcc --ignore HL602 estimate.inp
              cat estimate.inp | %(prog)s check -
              %(prog)s rules --format json
              %(prog)s doc-check STYLE.md
              %(prog)s init
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # ── check ────────────────────────────────────────────────────────────

    p_check = subparsers.add_parser(
        "check",
        parents=[common],
        help="Lint Hansl scripts",
        description="Lint Hansl scripts. Directories are searched recursively.",
    )
    p_check.add_argument("paths", nargs="+", metavar="PATH",
                         help="Script, directory, or '-' for stdin")
    _add_report_options(p_check)
    p_check.set_defaults(func=cmd_check)

    # ── rules ────────────────────────────────────────────────────────────

    p_rules = subparsers.add_parser(
        "rules",
        parents=[common],
        help="List all rules",
    )
    p_rules.add_argument("--format", choices=("text", "json"), default="text")
    p_rules.set_defaults(func=cmd_rules)

    # ── tokens ───────────────────────────────────────────────────────────

    p_tokens = subparsers.add_parser(
        "tokens",
        parents=[common],
        help="Dump the token stream of a script",
    )
    p_tokens.add_argument("path", help="Script or '-' for stdin")
    p_tokens.add_argument("--all", action="store_true", default=False,
                          help="Include whitespace, newlines and comments")
    p_tokens.set_defaults(func=cmd_tokens)

    # ── doc-check ────────────────────────────────────────────────────────

    p_doc = subparsers.add_parser(
        "doc-check",
        parents=[common],
        help="Check the code samples of a Markdown style guide",
        description=(
            "Lint every fenced Hansl sample of a Markdown document. Samples "
            "labelled as recommended must be clean; samples labelled as "
            "discouraged should break at least one rule."
        ),
    )
    p_doc.add_argument("documents", nargs="+", metavar="DOCUMENT")
    _add_report_options(p_doc)
    p_doc.set_defaults(func=cmd_doc_check)

    # ── init ─────────────────────────────────────────────────────────────

    p_init = subparsers.add_parser(
        "init",
        parents=[common],
        help="Write a skeleton configuration file",
    )
    p_init.add_argument("-o", "--output", default=None,
                        help=f"Output path (default: {CONFIG_FILE_NAMES[0]})")
    p_init.add_argument("-f", "--force", action="store_true", default=False,
                        help="Overwrite an existing file")
    p_init.set_defaults(func=cmd_init)

    return parser


# ═══════════════════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════════════════

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the hansl-lint CLI.

    Returns the process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    _configure_logging(args.verbose, args.quiet)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        return EXIT_INTERRUPTED
    except HanslLintError as e:
        _error(e.message, e.hint)
        return EXIT_INFRA
    except BrokenPipeError:
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return EXIT_OK
    except Exception as e:
        _error(f"internal error: {e}")
        traceback.print_exc()
        return EXIT_INFRA


if __name__ == "__main__":
    sys.exit(main())
