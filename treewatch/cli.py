"""Command line interface for treewatch."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from inotify_simple import flags, masks

from .config import DEFAULT_BUFFER_SIZE, EVENT_BITS, INVALID_WD, WatcherOptions, parse_event_mask
from .errors import EventStreamError
from .events import flag_names
from .logger import configure_logging, log_event
from .watcher import TreeWatcher


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "handler"):
        parser.print_help()
        return 1
    return args.handler(args)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="treewatch", description="Recursive inotify directory watcher")
    subparsers = parser.add_subparsers(dest="command")

    watch = subparsers.add_parser(
        "watch",
        help="Report changes below directories",
        description="Watch directories and print one line per event. A trailing '/' "
        "watches only the immediate children of a directory.",
    )
    watch.add_argument("paths", nargs="+", help="Directories to watch")
    watch.add_argument("--events", default="all", help="Comma-separated event names (default: all)")
    watch.add_argument(
        "--timeout",
        type=int,
        default=-1,
        help="Stop after this many milliseconds without events (default: wait forever)",
    )
    watch.add_argument("--read-delay", type=int, default=0, help="Coalescing delay in milliseconds (0-1000)")
    watch.add_argument("--buffer-size", type=int, default=DEFAULT_BUFFER_SIZE)
    watch.add_argument("--max-events", type=int, help="Stop after this many events")
    watch.add_argument("--json", action="store_true", help="Print events as JSON lines")
    watch.add_argument("--log-file", type=Path)
    watch.add_argument("-v", "--verbose", action="store_true", help="Trace watch bookkeeping")
    watch.set_defaults(handler=_handle_watch)

    flags_parser = subparsers.add_parser("flags", help="List the event names accepted by --events")
    flags_parser.set_defaults(handler=_handle_flags)

    return parser


def _handle_watch(args: argparse.Namespace) -> int:
    logger = configure_logging(args.log_file, level=logging.DEBUG if args.verbose else logging.INFO)
    try:
        options = WatcherOptions(
            interest_mask=parse_event_mask(args.events),
            buffer_size=args.buffer_size,
        )
    except ValueError as exc:
        print(f"Invalid options: {exc}", file=sys.stderr)
        return 1

    with TreeWatcher(logger, options=options) as watcher:
        watched = [path for path in args.paths if watcher.add_watch(path) != INVALID_WD]
        if not watched:
            print("No watchable directories given.", file=sys.stderr)
            return 1
        log_event(
            logger,
            level=logging.INFO,
            action="watch.start",
            message=f"Watching {len(watched)} root(s)",
            extra={"paths": watched, "watches": len(watcher.watches)},
        )

        count = 0
        try:
            for event in watcher.events(timeout=args.timeout, read_delay=args.read_delay):
                if args.json:
                    print(json.dumps(event.to_dict(), ensure_ascii=False), flush=True)
                else:
                    names = "|".join(flag_names(event.mask))
                    print(f"{event.path}\t{event.event_type.name}\t(0x{event.mask:x} {names})", flush=True)
                count += 1
                if args.max_events is not None and count >= args.max_events:
                    break
        except EventStreamError as exc:
            log_event(
                logger,
                level=logging.ERROR,
                action="watch.stream_error",
                message=str(exc),
                extra={"where": exc.where, "errno": exc.errno},
            )
            print(f"Error: {exc}", file=sys.stderr)
            return 2
        except KeyboardInterrupt:
            pass

    log_event(logger, level=logging.INFO, action="watch.stop", message=f"Reported {count} event(s)")
    return 0


def _handle_flags(args: argparse.Namespace) -> int:
    for flag in flags:
        if not flag & EVENT_BITS:
            continue
        print(f"{flag.name.lower():<14} 0x{int(flag):08x}")
    for mask in masks:
        print(f"{mask.name.lower():<14} 0x{int(mask):08x}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
