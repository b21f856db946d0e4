"""Configuration and constants for treewatch watchers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from inotify_simple import flags, masks

# Matches the size of ``struct inotify_event`` without its trailing name.
EVENT_HEADER_SIZE = 16
NAME_MAX = 255

DEFAULT_BUFFER_SIZE = 4 * 1024
MIN_BUFFER_SIZE = EVENT_HEADER_SIZE + NAME_MAX + 1
MAX_READ_DELAY_MS = 1000

# Returned by ``add_watch`` for paths that cannot be watched.
INVALID_WD = -1

# Bits the kernel reports in events. Control flags such as IN_ONESHOT or
# IN_MASK_ADD change how a watch behaves and never belong in an interest mask.
EVENT_BITS = int(masks.ALL_EVENTS | flags.IGNORED | flags.Q_OVERFLOW | flags.UNMOUNT | flags.ISDIR)


@dataclass(slots=True)
class WatcherOptions:
    """Options that control how a :class:`~treewatch.watcher.TreeWatcher` behaves."""

    interest_mask: int = int(masks.ALL_EVENTS)
    buffer_size: int = DEFAULT_BUFFER_SIZE

    def __post_init__(self) -> None:
        self.interest_mask = int(self.interest_mask)
        if self.buffer_size < MIN_BUFFER_SIZE:
            raise ValueError(
                f"buffer_size must be at least {MIN_BUFFER_SIZE} bytes, got {self.buffer_size}"
            )


def parse_event_mask(names: str | Iterable[str]) -> int:
    """Build an interest mask from flag names such as ``"create,moved_to"``.

    ``"all"`` selects every event inotify reports for a watch. Names are case
    insensitive and may also be given as an iterable.
    """

    if isinstance(names, str):
        names = names.split(",")

    mask = 0
    for raw in names:
        name = raw.strip().upper()
        if not name:
            continue
        if name in ("ALL", "ALL_EVENTS"):
            mask |= masks.ALL_EVENTS
        elif name in masks.__members__:
            mask |= masks[name]
        elif name in flags.__members__ and flags[name] & EVENT_BITS:
            mask |= flags[name]
        elif name in flags.__members__:
            raise ValueError(f"Not an event name: {raw.strip()!r}")
        else:
            raise ValueError(f"Unknown inotify event name: {raw.strip()!r}")
    if not mask:
        raise ValueError("At least one event name is required")
    return int(mask)


__all__ = [
    "DEFAULT_BUFFER_SIZE",
    "EVENT_BITS",
    "EVENT_HEADER_SIZE",
    "INVALID_WD",
    "MAX_READ_DELAY_MS",
    "MIN_BUFFER_SIZE",
    "WatcherOptions",
    "parse_event_mask",
]
