"""Command line entry point: collect, render and bundle one report."""

import argparse
import datetime
import getpass
import socket
import sys
from pathlib import Path

from . import __version__
from .bundle import BundlePaths, write_bundle
from .errors import BlueBoxError
from .events import collect_all_events
from .hardware import collect_hardware
from .helpers import format_bytes
from .models import EventCategory, RunMetadata
from .progress import Progress
from .render import render
from .report import assemble, summary_counts
from .software import collect_applications

DEFAULT_MAX_EVENTS = 2000

# 3 event categories, hardware, applications, assemble, render, write
TOTAL_STEPS = 8


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------
def parse_time(text: str) -> datetime.datetime:
    """ISO-8601 timestamp; values without an offset are local time."""
    try:
        dt = datetime.datetime.fromisoformat(text.strip().replace("Z", "+00:00"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 date/time: {text!r}") from None
    if dt.tzinfo is None:
        dt = dt.astimezone()
    return dt


def parse_event_ids(values: list[str] | None) -> list[int] | None:
    """Flatten ``41,1000 6008`` style input into unique IDs, keeping order."""
    if not values:
        return None
    ids: list[int] = []
    for value in values:
        for part in value.replace(",", " ").split():
            try:
                n = int(part)
            except ValueError:
                raise argparse.ArgumentTypeError(f"not an event ID: {part!r}") from None
            if n < 0:
                raise argparse.ArgumentTypeError(f"event IDs cannot be negative: {n}")
            if n not in ids:
                ids.append(n)
    return ids or None


def positive_int(text: str) -> int:
    try:
        n = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError("must be a positive integer")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bluebox",
        description="Collect event logs, hardware and installed applications into an offline HTML report.",
    )
    p.add_argument("--start-time", type=parse_time, help="only events at or after this time (ISO-8601)")
    p.add_argument("--end-time", type=parse_time, help="only events at or before this time (ISO-8601)")
    p.add_argument(
        "--event-ids",
        nargs="+",
        metavar="ID",
        help="only these event IDs (space or comma separated)",
    )
    p.add_argument(
        "--max-events",
        type=positive_int,
        default=DEFAULT_MAX_EVENTS,
        help=f"maximum events per log query (default {DEFAULT_MAX_EVENTS})",
    )
    p.add_argument("--output-dir", type=Path, help="output directory (default ./out/BlueBox_<timestamp>)")
    p.add_argument(
        "--include-warnings",
        action="store_true",
        help="accepted for compatibility; warnings are always included",
    )
    p.add_argument("--quiet", action="store_true", help="no banner or progress output")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.event_ids = parse_event_ids(args.event_ids)
    except argparse.ArgumentTypeError as e:
        parser.error(f"argument --event-ids: {e}")
    if args.start_time and args.end_time and args.start_time > args.end_time:
        parser.error("--start-time must not be later than --end-time")
    return args


# ---------------------------------------------------------------------------
# Run
# ---------------------------------------------------------------------------
def run(args: argparse.Namespace, progress: Progress, *, now: datetime.datetime | None = None) -> BundlePaths:
    """Collect everything, then write the bundle. Fatal errors propagate."""
    now = now or datetime.datetime.now().astimezone()
    stamp = now.strftime("%Y%m%d_%H%M%S")
    output_dir = args.output_dir or Path.cwd() / "out" / f"BlueBox_{stamp}"

    metadata = RunMetadata(
        generated_at=now,
        machine_name=socket.gethostname(),
        user_name=getpass.getuser(),
        start_time=args.start_time,
        end_time=args.end_time,
        event_ids=args.event_ids,
        max_events=args.max_events,
        include_warnings=args.include_warnings,
        tool_version=__version__,
    )

    events = collect_all_events(
        start_time=args.start_time,
        end_time=args.end_time,
        event_ids=args.event_ids,
        max_events=args.max_events,
        errors=metadata.errors,
        progress=progress,
    )

    progress.step("Hardware inventory")
    hardware = collect_hardware()

    progress.step("Installed applications")
    applications = collect_applications(metadata.errors)

    progress.step("Assembling report")
    document = assemble(metadata, events, hardware, applications)

    progress.step("Rendering HTML")
    html_text = render(document)

    progress.step("Writing files")
    paths = write_bundle(output_dir, document, html_text, stamp=stamp)
    progress.finish()

    if progress.enabled:
        counts = summary_counts(document)
        print()
        print(
            "  Events: "
            + ", ".join(f"{cat.value} {counts[cat.value]}" for cat in EventCategory)
            + f"; Applications: {counts['Applications']}"
        )
        for message in metadata.errors:
            print(f"  [WARN] {message}")
    return paths


def _banner() -> None:
    print(f"BlueBox {__version__} - diagnostics report")
    print()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    progress = Progress(TOTAL_STEPS, enabled=not args.quiet)
    if not args.quiet:
        _banner()

    try:
        paths = run(args, progress)
    except (BlueBoxError, OSError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print()
        print("Done. 3 files generated:")
        for label, path in [
            ("Data", paths.data_path),
            ("Report", paths.html_path),
            ("Archive", paths.archive_path),
        ]:
            size = format_bytes(path.stat().st_size) if path.exists() else "?"
            print(f"  {label:8s}: {path} ({size})")
    return 0
