"""Command-line interface for converting MH folders into mailbox files."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable

from mh_migration import migrate as migration
from mh_migration.errors import ConversionError
from mh_migration.options import DEFAULT_FORMAT, ConversionOptions
from mh_migration.readers import mh_folder
from mh_migration.writers.mailbox_format import FORMATS


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mh-migration",
        description="Convert MH message files and folders into MMDF or mboxrd mailboxes.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    convert_parser = subparsers.add_parser(
        "convert",
        help="Write the messages of MH folders or files as a single mailbox stream.",
    )
    convert_parser.add_argument(
        "sources",
        nargs="+",
        type=Path,
        help="MH message files or folders, processed in the order given.",
    )
    convert_parser.add_argument(
        "-f",
        "--format",
        choices=FORMATS,
        default=DEFAULT_FORMAT,
        help=f"Mailbox format to produce (default: {DEFAULT_FORMAT}).",
    )
    convert_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        help="Append the mailbox to this file instead of writing to standard output.",
    )
    _add_message_options(convert_parser)
    convert_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable progress bar output during the conversion run.",
    )
    convert_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log the envelope line of every converted message.",
    )
    convert_parser.set_defaults(handler=_handle_convert)

    list_parser = subparsers.add_parser(
        "list",
        help="List MH folders and show their message counts.",
    )
    list_parser.add_argument(
        "sources",
        nargs="+",
        type=Path,
        help="MH folders to inspect.",
    )
    list_parser.set_defaults(handler=_handle_list)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Check that every message can be converted without writing a mailbox.",
    )
    scan_parser.add_argument(
        "sources",
        nargs="+",
        type=Path,
        help="MH message files or folders to check.",
    )
    scan_parser.add_argument(
        "--report",
        type=Path,
        help="Optional path to write a JSON report describing detected problems.",
    )
    _add_message_options(scan_parser)
    scan_parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable the progress bar output during the scan.",
    )
    scan_parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Increase logging verbosity for troubleshooting.",
    )
    scan_parser.set_defaults(handler=_handle_scan)

    return parser


def _add_message_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-s",
        "--mark-seen",
        action="store_true",
        help="Add a 'Status: R' header so mail readers show every message as read.",
    )
    parser.add_argument(
        "-t",
        "--strip-trailing-blank-lines",
        action="store_true",
        help="Remove blank lines at the end of each message.",
    )


Handler = Callable[[argparse.Namespace], int]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)

    args.sources = [source.resolve() for source in args.sources]
    if getattr(args, "output", None) is not None:
        args.output = args.output.resolve()
        if args.output.is_dir():
            parser.error("--output must name a file, not a directory")
    if getattr(args, "report", None) is not None:
        args.report = args.report.resolve()

    return args


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(getattr(args, "verbose", False))
    handler: Handler = args.handler
    try:
        return handler(args)
    except ConversionError as exc:
        print(f"mh-migration: {exc}", file=sys.stderr)
        return 1


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


def _options_from_args(args: argparse.Namespace) -> ConversionOptions:
    return ConversionOptions(
        format=getattr(args, "format", DEFAULT_FORMAT),
        mark_seen=args.mark_seen,
        strip_trailing_blank_lines=args.strip_trailing_blank_lines,
        verbose=args.verbose,
    )


def _handle_convert(args: argparse.Namespace) -> int:
    options = _options_from_args(args)
    show_progress = not args.no_progress

    if args.output is not None:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        with args.output.open("ab") as handle:
            stats = migration.convert_sources(
                args.sources, handle, options, show_progress=show_progress
            )
    else:
        stats = migration.convert_sources(
            args.sources, sys.stdout.buffer, options, show_progress=show_progress
        )

    print(
        f"Conversion complete: {stats.converted_messages} messages from "
        f"{stats.processed_sources} sources written as {stats.format}.",
        file=sys.stderr,
    )
    if stats.warnings:
        print(
            f"  {stats.warnings} warning{'s' if stats.warnings != 1 else ''} reported.",
            file=sys.stderr,
        )
    return 0


def _handle_list(args: argparse.Namespace) -> int:
    summaries = mh_folder.summarize_folders(args.sources)
    if not summaries:
        print("No MH folders found")
        return 0

    name_width = max(len(summary.display_path) for summary in summaries)
    name_width = max(name_width, len("Name"))
    print("MH folders:")
    header = (
        f"  {'Name'.ljust(name_width)}  {'Messages':>8}  {'First':>6}  "
        f"{'Last':>6}  {'Other':>5}"
    )
    print(header)
    print("  " + "-" * (len(header) - 2))
    for summary in summaries:
        name = summary.display_path.ljust(name_width)
        first = "-" if summary.first_message is None else str(summary.first_message)
        last = "-" if summary.last_message is None else str(summary.last_message)
        print(
            f"  {name}  {summary.message_count:8d}  {first:>6}  {last:>6}  "
            f"{summary.skipped_entries:5d}"
        )
    return 0


def _handle_scan(args: argparse.Namespace) -> int:
    report = migration.scan_sources(
        args.sources,
        _options_from_args(args),
        show_progress=not args.no_progress,
    )

    print(
        "Scan complete: "
        f"{report.valid_messages} of {report.total_messages} messages convertible, "
        f"{len(report.problems)} problems, {len(report.warnings)} warnings."
    )
    if report.problems:
        print("Problems:")
        for problem in report.problems:
            print(f"  {problem.source}: {problem.error}: {problem.message}")
    for warning in report.warnings:
        print(f"  warning: {warning}")

    if args.report is not None:
        migration.write_report(args.report, report)
        print(f"Report written to {args.report}")

    return 1 if report.problems else 0


if __name__ == "__main__":  # pragma: no cover - manual execution entry point
    raise SystemExit(main())
