"""
dipsflame.cli - Command-line interface for dipsflame.

This module provides a CLI for importing DIPS profiling logs and writing the
reconstructed timelines for flamegraph viewers.

Usage:
    dipsflame <log_file> [<log_file> ...] [--output/-o <file>] [--format <format>]
              [--timezone <name>] [--top <count>]

Examples:
    dipsflame app.log
    dipsflame frontend.log backend.log -o profile.speedscope.json
    dipsflame app.log --format stats --top 15
    dipsflame app.log --format folded | flamegraph.pl > app.svg
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import timezone, tzinfo
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dipsflame import __version__
from dipsflame.core.errors import (
    CallGraphError,
    DipsFormatError,
    FrameEmissionError,
    UnrecognizedFormatError,
)
from dipsflame.core.importer import import_dips_profiling
from dipsflame.core.parser import DipsLogParser
from dipsflame.core.profile import ProfileGroup
from dipsflame.core.sources import FileDataSource, MultiFileDataSource
from dipsflame.core.stats import compute_frame_stats, format_stats_table
from dipsflame.exporters.speedscope import to_folded, to_speedscope

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FILE_NOT_FOUND = 1
EXIT_UNRECOGNIZED_FORMAT = 2
EXIT_INVALID_LOG = 3
EXIT_EMISSION_FAILED = 4
EXIT_NO_PROFILE = 5


def resolve_timezone(name: str) -> tzinfo:
    """Resolve a ``--timezone`` value to a tzinfo.

    Accepts ``UTC`` and any IANA time zone name.

    Raises:
        argparse.ArgumentTypeError: If the name is unknown
    """
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise argparse.ArgumentTypeError(f"unknown time zone: {name}") from e


def positive_int(value: str) -> int:
    """Parse a count that must be at least 1.

    Raises:
        argparse.ArgumentTypeError: If the value is not a positive integer
    """
    try:
        count = int(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid count: {value}") from e
    if count < 1:
        raise argparse.ArgumentTypeError(f"count must be at least 1: {value}")
    return count


def parse_args(args: List[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: List of arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="dipsflame",
        description="Rebuild call-tree timelines from DIPS profiling logs",
        epilog="Example: dipsflame frontend.log backend.log -o profile.speedscope.json",
    )

    parser.add_argument(
        "input_files",
        nargs="+",
        type=str,
        help="DIPS profiling log files; pass one per service for distributed transactions",
    )

    parser.add_argument(
        "-o", "--output",
        type=str,
        default=None,
        help="Output file path (defaults to stdout)",
    )

    parser.add_argument(
        "--format",
        type=str,
        choices=["speedscope", "folded", "stats"],
        default="speedscope",
        help="Output format: speedscope JSON, folded stacks or a frame stats table "
             "(default: speedscope)",
    )

    parser.add_argument(
        "--timezone",
        type=resolve_timezone,
        default=None,
        help="Time zone the log timestamps are written in, e.g. Europe/Oslo "
             "(default: host local time)",
    )

    parser.add_argument(
        "--top",
        type=positive_int,
        default=20,
        help="Number of frames listed by --format stats (default: 20)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(args)


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def load_profile_group(
    input_paths: List[str],
    tz: Optional[tzinfo] = None,
) -> Optional[ProfileGroup]:
    """Import one or more DIPS profiling log files.

    Args:
        input_paths: Paths of the log files
        tz: Time zone of the log timestamps (None for host local time)

    Returns:
        The imported ProfileGroup, or None if the logs hold no calls

    Raises:
        FileNotFoundError: If an input file doesn't exist
        DipsFormatError: If a file is not a DIPS log or has a malformed line
        CallGraphError: If the parent links contain a cycle
        FrameEmissionError: If a frame cannot be emitted
    """
    paths = [Path(p) for p in input_paths]
    for path in paths:
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")

    sources = [FileDataSource(path) for path in paths]
    data_source = sources[0] if len(sources) == 1 else MultiFileDataSource(sources)

    return asyncio.run(
        import_dips_profiling(
            data_source, parser=DipsLogParser(tz=tz), require_format=True
        )
    )


def generate_output(group: ProfileGroup, output_format: str, top: int = 20) -> str:
    """Render a profile group in the requested output format.

    Args:
        group: The imported profile group
        output_format: "speedscope", "folded" or "stats"
        top: Number of rows for the stats table

    Returns:
        The rendered output
    """
    if output_format == "folded":
        return to_folded(group)
    if output_format == "stats":
        return format_stats_table(compute_frame_stats(group), limit=top)
    return json.dumps(to_speedscope(group))


def write_output(content: str, output_path: str | None) -> None:
    """Write content to output file or stdout.

    Args:
        content: The content to write
        output_path: Path to output file, or None for stdout
    """
    if output_path:
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    else:
        print(content)


def main(args: List[str] | None = None) -> int:
    """Main entry point for the CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parsed_args = parse_args(args)
    configure_logging(parsed_args.verbose)

    try:
        logger.info("Loading %d log files", len(parsed_args.input_files))
        group = load_profile_group(parsed_args.input_files, parsed_args.timezone)

        if group is None:
            print("Error: No calls found, no profile produced", file=sys.stderr)
            return EXIT_NO_PROFILE

        logger.info("Imported %d lanes", len(group.profiles))

        output = generate_output(group, parsed_args.format, parsed_args.top)
        write_output(output, parsed_args.output)

        if parsed_args.output:
            logger.info("Output written to: %s", parsed_args.output)

        return EXIT_OK

    except UnrecognizedFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_UNRECOGNIZED_FORMAT

    except (DipsFormatError, CallGraphError, UnicodeDecodeError) as e:
        print(f"Error: Invalid profiling log: {e}", file=sys.stderr)
        return EXIT_INVALID_LOG

    except FrameEmissionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_EMISSION_FAILED

    except OSError as e:
        # missing, unreadable or not a regular file
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FILE_NOT_FOUND


if __name__ == "__main__":
    sys.exit(main())
