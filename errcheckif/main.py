#!/usr/bin/env python3
"""errcheckif/main.py - command-line entry point.

Usage examples
--------------
    # Check front-end dumps, cppcheck-addon JSON lines on stdout
    errcheckif build/pkg/x.go.json build/pkg/y.go.json

    # Check every dump and notation file below a directory, GCC style
    errcheckif -f gcc build/

    # Hand-written program in S-expression notation
    errcheckif repro.sexp -vv

    # Accept `_, _ = f()` and suppress one diagnostic kind
    errcheckif --no-joint-discard --suppress errMergeNotChecked build/

    # Suppress a diagnostic kind in matching files only
    errcheckif --suppress 'errIgnored:*/generated/*' build/

Exit codes
----------
    0   No findings.
    1   One or more findings were reported.
    2   Infrastructure failure (missing file, malformed dump, bad config,
        checker crash).
    130 Interrupted.

The module doubles as ``python -m errcheckif`` via the companion
``errcheckif/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from . import __version__
from .ast_nodes import SourceUnit
from .checkers import (
    CheckerRunResults,
    CheckerRunner,
    DiagnosticSeverity,
    SuppressionManager,
    default_registry,
)
from .config import AnalyzerConfig
from .dump import parse_dump
from .errors import ErrCheckIfError
from .notation import parse_file

_log = logging.getLogger("errcheckif")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_FINDINGS: int = 1
EXIT_INFRA: int = 2
EXIT_INTERRUPTED: int = 130

DUMP_SUFFIXES = (".json",)
NOTATION_SUFFIXES = (".sexp", ".lisp")


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``errcheckif`` logger.

    Parameters
    ----------
    verbosity:
        0 -> WARNING, 1 -> INFO, 2+ -> DEBUG.
    """
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
    root = logging.getLogger("errcheckif")
    root.setLevel(level)
    # repeated calls (tests, embedding) replace the handler
    root.handlers[:] = [handler]


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` -> ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _collect_inputs(raw_paths: Sequence[str]) -> List[Path]:
    """Expand directories to the dump and notation files below them.

    Raises
    ------
    ErrCheckIfError
        If a path does not exist or has an unsupported suffix.
    """
    known = DUMP_SUFFIXES + NOTATION_SUFFIXES
    inputs: List[Path] = []
    for raw in raw_paths:
        p = Path(raw).expanduser()
        if p.is_dir():
            found = sorted(f for f in p.rglob("*") if f.is_file() and f.suffix in known)
            _log.info("%s: %d input files", p, len(found))
            inputs.extend(found)
        elif not p.exists():
            raise ErrCheckIfError(f"input not found: {p}")
        elif p.suffix not in known:
            raise ErrCheckIfError(
                f"{p}: unsupported input (expected {', '.join(known)})"
            )
        else:
            inputs.append(p)
    return inputs


def _load_unit(path: Path) -> SourceUnit:
    if path.suffix in DUMP_SUFFIXES:
        _log.info("Loading dump: %s", path)
        return parse_dump(path)
    _log.info("Parsing notation: %s", path)
    return parse_file(path)


def _build_suppressions(entries: Sequence[str]) -> SuppressionManager:
    """``ID`` suppresses globally, ``ID:PATTERN`` in matching files."""
    sm = SuppressionManager()
    for entry in entries:
        error_id, sep, pattern = entry.partition(":")
        if sep:
            sm.add_file_suppression(error_id, pattern)
        else:
            sm.add_global_suppression(error_id)
    return sm


def _build_config(args: argparse.Namespace) -> AnalyzerConfig:
    base = AnalyzerConfig.load(args.config) if args.config else AnalyzerConfig()
    config = base.merged(
        report_joint_discard=False if args.no_joint_discard else None,
        skip_test_units=False if args.include_tests else None,
        jobs=args.jobs,
    )
    for warning in config.validate():
        _log.warning("configuration: %s", warning)
    return config


def _emit_diagnostics(results: CheckerRunResults, fmt: str, stream: TextIO) -> None:
    """Write *results* to *stream* in the chosen format."""
    if fmt == "summary":
        stream.write(results.summary() + "\n")
        return
    for diag in results.diagnostics:
        if fmt == "json":
            stream.write(diag.to_json_str() + "\n")
        else:
            stream.write(diag.to_gcc_format() + "\n")


def _list_checkers(stream: TextIO) -> None:
    registry = default_registry()
    for name in registry.names:
        cls = registry.get_by_name(name)
        if cls is None:
            continue
        ids = ", ".join(sorted(cls.error_ids))
        cwes = ", ".join(f"CWE-{v}" for v in sorted(set(cls.cwe_ids.values())))
        stream.write(f"  {name:25s} {cls.description}\n")
        stream.write(f"  {'':25s} IDs: {ids}\n")
        stream.write(f"  {'':25s} CWEs: {cwes}\n")


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="errcheckif",
        description=(
            "errcheckif - report error values that are ignored, or bound\n"
            "and then neither checked nor returned."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              errcheckif build/x.go.json
              errcheckif -f gcc --suppress errIgnored build/
              errcheckif repro.sexp -vv
        """),
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        metavar="PATH",
        help="Front-end dumps (.json), notation files (.sexp) or directories.",
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
    parser.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )
    parser.add_argument(
        "-f", "--format",
        choices=["json", "gcc", "summary"],
        default="json",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--suppress",
        action="append",
        default=[],
        metavar="ID[:PATTERN]",
        help="Suppress an error id, globally or in files matching PATTERN.",
    )
    parser.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="JSON configuration file.",
    )
    parser.add_argument(
        "--checkers",
        action="append",
        default=None,
        metavar="NAME",
        help="Checker to run (repeatable; default: all).",
    )
    parser.add_argument(
        "--no-joint-discard",
        action="store_true",
        help="Accept assignments whose every target is '_'.",
    )
    parser.add_argument(
        "--include-tests",
        action="store_true",
        help="Also analyse test units.",
    )
    parser.add_argument(
        "-j", "--jobs",
        type=int,
        default=None,
        metavar="N",
        help="Analyse N units in parallel.",
    )
    parser.add_argument(
        "--list-checkers",
        action="store_true",
        help="List available checkers and exit.",
    )
    return parser


# ===========================================================================
# Entry point
# ===========================================================================

def _run(args: argparse.Namespace) -> int:
    config = _build_config(args)
    units = [_load_unit(p) for p in _collect_inputs(args.inputs)]

    runner = CheckerRunner(
        suppressions=_build_suppressions(args.suppress),
        config=config,
    )
    results = runner.run_units(units, checkers=args.checkers)

    out = _open_output(args.output)
    try:
        _emit_diagnostics(results, args.format, out)
    finally:
        if out is not sys.stdout:
            out.close()

    if results.by_error_id("checkerInternalError"):
        return EXIT_INFRA
    findings = [d for d in results.diagnostics
                if d.severity != DiagnosticSeverity.INFORMATION]
    _log.info("%d findings in %d units", len(findings), results.units)
    return EXIT_FINDINGS if findings else EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the errcheckif CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` -> ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if args.list_checkers:
        _list_checkers(sys.stdout)
        return EXIT_OK
    if not args.inputs:
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return _run(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return EXIT_INTERRUPTED
    except ErrCheckIfError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA
    except OSError as exc:
        _log.error("I/O error: %s", exc)
        return EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
