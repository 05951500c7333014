"""Command-line front end: read a diff trace, write the colored DOT graph."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence, TextIO

from diffgraph.config import LOG_FORMAT, LabelSource, RenderConfig
from diffgraph.data_processing import GraphParseError, annotate_trace, read_events
from diffgraph.visualizer import render_dot


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="diffgraph",
        description="Color and regroup a differential-trace computation graph by relative error.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="include error values and debug metadata in node labels",
    )
    parser.add_argument(
        "-c",
        "--collapse",
        action="store_true",
        help="collapse zero-error function clusters into single box nodes",
    )
    parser.add_argument(
        "--label-source",
        choices=[source.value for source in LabelSource],
        default=LabelSource.LABEL.value,
        help="node field shown as the label (default: %(default)s)",
    )
    parser.add_argument("files", nargs="*", metavar="FILE", help="input DOT files; '-' or none reads stdin")
    return parser


def main(
    argv: Optional[Sequence[str]] = None,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, stream=sys.stderr)

    config = RenderConfig(
        verbose=args.verbose,
        collapse=args.collapse,
        label_source=LabelSource(args.label_source),
    )
    try:
        trace = annotate_trace(read_events(args.files, stdin=stdin))
    except GraphParseError as exc:
        logging.error("Aborting on malformed input: %s", exc)
        return 1
    except (OSError, UnicodeDecodeError) as exc:
        logging.error("Could not read input: %s", exc)
        return 1

    (stdout or sys.stdout).write(render_dot(trace, config))
    return 0
