"""Command-line interface for the caption QA analyzer.

WHY: Editors and CI jobs need to check caption files without opening
an editor. The CLI wires input loading, term list discovery, config
assembly, analysis and rendering behind two subcommands.

HOW: argparse with two subcommands. ``analyze`` runs the rule engine
and prints findings (default) or raw metrics as JSON or text.
``inspect`` prints the segments the dialect parser produces, as JSON,
for debugging segmentation. Status messages go to stderr so stdout can
be piped.

RULES:
- Input: -t/--text, else the FILE argument, else stdin
- Term lists are discovered upward from the current directory
- --rule is repeatable and validated against the metric type names
- Exit codes: 0 success, 1 usage/input error, 2 when --fail-on-error
  is set and at least one error-severity finding was reported
- --verbose switches logging to DEBUG
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from caption_qa import __version__
from caption_qa.config import ANALYSIS_TYPES, AnalysisConfig, parse_rule_types
from caption_qa.core.metrics import MetricType
from caption_qa.core.termlists import load_default_term_lists
from caption_qa.output import (
    MODE_FINDINGS,
    OUTPUT_MODES,
    build_analysis_output,
    build_segments_output,
    count_by_severity,
    render_text,
    to_json,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_FINDINGS = 2


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _read_input(args: argparse.Namespace) -> str:
    """Return the document text from -t, FILE or stdin.

    Raises:
        OSError: If FILE cannot be read.
    """
    if args.text is not None:
        return args.text
    if args.file:
        return Path(args.file).read_text(encoding="utf-8")
    return sys.stdin.read()


def _build_config(args: argparse.Namespace) -> AnalysisConfig:
    """Assemble one AnalysisConfig from flags and discovered term lists.

    Raises:
        ValueError: If a --rule name is unknown.
        OSError: If --baseline cannot be read.
    """
    terms = load_default_term_lists(Path.cwd())
    baseline_text = None
    if args.baseline:
        baseline_text = Path(args.baseline).read_text(encoding="utf-8")

    kwargs = {}
    if terms.capitalization_terms:
        kwargs["capitalization_terms"] = terms.capitalization_terms
    # The flag can only switch blank-line skipping on; the env sets the default.
    if args.ignore_empty_lines:
        kwargs["ignore_empty_lines"] = True
    return AnalysisConfig.from_env(
        enabled_rule_types=parse_rule_types(args.rule),
        proper_nouns=terms.proper_nouns,
        abbreviations=terms.abbreviations,
        baseline_text=baseline_text,
        include_warnings=not args.no_warnings,
        **kwargs,
    )


def _run_analyze(args: argparse.Namespace) -> int:
    try:
        text = _read_input(args)
        config = _build_config(args)
        records = build_analysis_output(text, args.type, config, args.mode)
    except (OSError, ValueError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return EXIT_ERROR

    if args.format == "json":
        print(to_json(records, compact=args.compact))
    else:
        print(render_text(records))

    counts = count_by_severity(records)
    if args.mode == MODE_FINDINGS:
        _status(
            "{} error(s), {} warning(s)".format(counts.get("error", 0), counts.get("warn", 0))
        )
    else:
        _status("{} metric(s)".format(len(records)))

    if args.fail_on_error and counts.get("error", 0):
        return EXIT_FINDINGS
    return EXIT_OK


def _run_inspect(args: argparse.Namespace) -> int:
    try:
        text = _read_input(args)
        segments = build_segments_output(
            text,
            args.type,
            segment_index=args.segment,
            ignore_empty_lines=args.ignore_empty_lines,
        )
    except (OSError, ValueError) as e:
        print("Error: {}".format(e), file=sys.stderr)
        return EXIT_ERROR

    print(to_json(segments, compact=args.compact))
    return EXIT_OK


def _add_input_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help="Caption or script file to read (default: stdin).",
    )
    parser.add_argument(
        "-t", "--text",
        default=None,
        help="Analyze this text instead of a file.",
    )
    parser.add_argument(
        "--type",
        choices=ANALYSIS_TYPES,
        default=ANALYSIS_TYPES[0],
        help="Document dialect (default: %(default)s).",
    )
    parser.add_argument(
        "--ignore-empty-lines",
        action="store_true",
        help="Treat blank lines as non-breaking between a timestamp and its text.",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print JSON on a single line.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    WHY: Separating parser construction from main() makes the CLI
    testable without running an analysis.

    RULES:
    - Subcommands: analyze, inspect (one is required)
    - --rule accepts metric type names, case-insensitive, repeatable
    """
    parser = argparse.ArgumentParser(
        prog="caption_qa",
        description="Check timed captions and bilingual news scripts against "
                    "house style (line length, reading speed, punctuation, etc.).",
    )
    parser.add_argument("--version", action="version", version="%(prog)s " + __version__)
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Run the QA rules and report issues.")
    _add_input_arguments(analyze)
    analyze.add_argument(
        "--mode",
        choices=OUTPUT_MODES,
        default=MODE_FINDINGS,
        help="Report classified findings or raw metrics (default: %(default)s).",
    )
    analyze.add_argument(
        "--rule",
        action="append",
        default=None,
        metavar="TYPE",
        help="Only report this rule type. Can be given multiple times. "
             "Available: {}.".format(", ".join(t.value for t in MetricType)),
    )
    analyze.add_argument(
        "--baseline",
        default=None,
        metavar="FILE",
        help="Trusted transcript to compare timestamp lines against.",
    )
    analyze.add_argument(
        "--no-warnings",
        action="store_true",
        help="Drop warn-severity findings.",
    )
    analyze.add_argument(
        "--format",
        choices=("json", "text"),
        default="json",
        help="Output format (default: %(default)s).",
    )
    analyze.add_argument(
        "--fail-on-error",
        action="store_true",
        help="Exit with status 2 when any error-severity finding is reported.",
    )
    analyze.set_defaults(handler=_run_analyze)

    inspect = sub.add_parser("inspect", help="Print the parsed segments as JSON.")
    _add_input_arguments(inspect)
    inspect.add_argument(
        "--segment",
        type=int,
        default=None,
        metavar="N",
        help="Only print the segment at this 0-based index.",
    )
    inspect.set_defaults(handler=_run_inspect)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI.

    RULES:
    - argv=None means use sys.argv (normal CLI invocation)
    - Returns the exit code; __main__ passes it to sys.exit()
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    logger.debug("Running %s (%s)", args.command, args.type)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
