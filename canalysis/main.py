#!/usr/bin/env python3
"""canalysis/main.py: CLI entry-point for the analysis-results reader.

Usage examples
--------------
    # Read an analysis directory and report counts and errors
    python -m canalysis read ch_analysis/

    # Same, as JSON, loading files one at a time
    python -m canalysis read ch_analysis/ --format json --sequential

    # Show the resolved types of one translation unit
    python -m canalysis dump ch_analysis/ --file list.c --what types

    # Show the primary proof obligations of every function of a unit
    python -m canalysis dump ch_analysis/ --file list.c --what ppos

Exit codes
----------
    0   Success (every record constructed and bound).
    1   The read recorded one or more errors.
    2   Infrastructure failure (missing directory, unknown file, etc.).
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import Dict, Optional, Sequence

from . import __version__
from .config import BindOrder, ReadOptions
from .errors import MissingReferenceError
from .model import CApplication, CFile
from .report import Reporter

_log = logging.getLogger("canalysis")

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2

DUMP_KINDS = ("types", "predicates", "ppos", "spos", "api")

# Handler installed by the last _configure_logging call.
_cli_handler: Optional[logging.Handler] = None


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``canalysis`` logger: 0 → WARNING, 1 → INFO, 2+ → DEBUG."""
    global _cli_handler
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("canalysis")
    root.setLevel(level)
    if _cli_handler is not None:
        root.removeHandler(_cli_handler)
    root.addHandler(handler)
    _cli_handler = handler


def _resolve_dir(raw: str) -> Path:
    p = Path(raw).expanduser().resolve()
    if not p.is_dir():
        _log.error("analysis directory not found: %s", p)
        raise SystemExit(EXIT_INFRA)
    return p


def _read_application(args: argparse.Namespace) -> CApplication:
    options = ReadOptions.from_env(
        parallel=False if args.sequential else None,
        max_workers=args.workers,
        bind_order=BindOrder(args.bind_order),
    )
    app = CApplication(_resolve_dir(args.directory), options=options)
    app.read()
    return app


# ===========================================================================
# Sub-command implementations
# ===========================================================================

def cmd_read(args: argparse.Namespace) -> int:
    """Read every family file and report per-domain counts and errors."""
    app = _read_application(args)
    reporter = Reporter(sys.stdout, color=not args.no_color)
    if args.format == "json":
        reporter.json(app)
    else:
        reporter.summary(app)
        reporter.errors(app.errors)
    return EXIT_OK if app.errors.is_empty else EXIT_ERROR


def _dump_rows(cfile: CFile, what: str) -> Dict[str, str]:
    if what == "types":
        return {str(t.index): str(t) for t in cfile.types}
    if what == "predicates":
        return {str(p.index): str(p) for p in cfile.predicates}
    rows: Dict[str, str] = {}
    for name in sorted(cfile.functions):
        fn = cfile.functions[name]
        entries = {"ppos": fn.ppos, "spos": fn.spos, "api": fn.api_assumptions}[what]
        for item in entries:
            rows[f"{name}#{item.index}"] = str(item)
    return rows


def cmd_dump(args: argparse.Namespace) -> int:
    """Print the resolved instances of one domain of one translation unit."""
    app = _read_application(args)
    try:
        cfile = app.get_cfile_strictly(args.file)
    except MissingReferenceError as exc:
        _log.error("%s (known files: %s)", exc, ", ".join(sorted(app.files)) or "none")
        return EXIT_INFRA
    reporter = Reporter(sys.stdout, color=not args.no_color)
    reporter.listing(f"{cfile.name}: {args.what}", _dump_rows(cfile, args.what))
    return EXIT_OK if app.errors.is_empty else EXIT_ERROR


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="canalysis",
        description=(
            "Read the result tables of a C static analyzer into a resolved\n"
            "object model and report what was found."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              canalysis read ch_analysis/
              canalysis read ch_analysis/ --format json
              canalysis dump ch_analysis/ --file list.c --what predicates
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    def _add_read_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("directory", help="Analysis directory.")
        p.add_argument(
            "--no-color",
            action="store_true",
            help="Disable coloured output.",
        )
        g = p.add_argument_group("loading")
        g.add_argument(
            "--sequential",
            action="store_true",
            help="Load files one at a time instead of on a thread pool.",
        )
        g.add_argument(
            "--workers",
            type=int,
            default=None,
            metavar="N",
            help="Loader threads (default: CANALYSIS_WORKERS or the executor default).",
        )
        g.add_argument(
            "--bind-order",
            choices=[o.value for o in BindOrder],
            default=BindOrder.DECLARATION.value,
            help="Order of the bind pass (default: declaration).",
        )

    # --- read --------------------------------------------------------------
    p_read = subparsers.add_parser(
        "read",
        help="Read an analysis directory and report counts and errors.",
    )
    _add_read_args(p_read)
    p_read.add_argument(
        "-f", "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text).",
    )
    p_read.set_defaults(func=cmd_read)

    # --- dump --------------------------------------------------------------
    p_dump = subparsers.add_parser(
        "dump",
        help="Print the resolved instances of one translation unit.",
    )
    _add_read_args(p_dump)
    p_dump.add_argument(
        "--file",
        required=True,
        metavar="NAME",
        help="Source file name of the unit, as recorded by the analyzer.",
    )
    p_dump.add_argument(
        "--what",
        choices=DUMP_KINDS,
        default="types",
        help="What to print (default: types).",
    )
    p_dump.set_defaults(func=cmd_dump)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA
    except Exception as exc:
        _log.error("Unhandled exception: %s", exc, exc_info=True)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
