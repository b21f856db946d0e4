"""Normalized event types built from raw inotify records."""
from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any

from inotify_simple import flags

from .models import RawEvent


class EventType(Enum):
    """Filesystem event kinds a watcher can report."""

    CREATED = auto()
    DELETED = auto()
    MOVED_FROM = auto()
    MOVED_TO = auto()
    MODIFIED = auto()
    ATTRIB = auto()
    CLOSED = auto()
    OPENED = auto()
    ACCESSED = auto()
    SELF_DELETED = auto()
    SELF_MOVED = auto()
    UNMOUNTED = auto()
    IGNORED = auto()
    OVERFLOW = auto()
    OTHER = auto()


# Checked in order; the first matching flag decides the event type.
_TYPE_BY_FLAG: tuple[tuple[int, EventType], ...] = (
    (flags.Q_OVERFLOW, EventType.OVERFLOW),
    (flags.IGNORED, EventType.IGNORED),
    (flags.UNMOUNT, EventType.UNMOUNTED),
    (flags.CREATE, EventType.CREATED),
    (flags.DELETE, EventType.DELETED),
    (flags.MOVED_FROM, EventType.MOVED_FROM),
    (flags.MOVED_TO, EventType.MOVED_TO),
    (flags.MODIFY, EventType.MODIFIED),
    (flags.ATTRIB, EventType.ATTRIB),
    (flags.CLOSE_WRITE | flags.CLOSE_NOWRITE, EventType.CLOSED),
    (flags.OPEN, EventType.OPENED),
    (flags.ACCESS, EventType.ACCESSED),
    (flags.DELETE_SELF, EventType.SELF_DELETED),
    (flags.MOVE_SELF, EventType.SELF_MOVED),
)


@dataclass(slots=True)
class FileSystemEvent:
    """Container describing a single filesystem change event."""

    path: Path
    event_type: EventType
    mask: int
    wd: int
    is_directory: bool = False
    cookie: int = 0
    timestamp: float = field(default_factory=lambda: time.time())

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "type": self.event_type.name,
            "mask": self.mask,
            "wd": self.wd,
            "is_directory": self.is_directory,
            "cookie": self.cookie,
        }


def event_type_for(mask: int) -> EventType:
    for flag, event_type in _TYPE_BY_FLAG:
        if mask & flag:
            return event_type
    return EventType.OTHER


def describe(event: RawEvent, base_path: str) -> FileSystemEvent:
    """Build a :class:`FileSystemEvent` for *event* raised on the watch of *base_path*."""

    path = os.path.join(base_path, event.name) if event.name else base_path
    return FileSystemEvent(
        path=Path(path),
        event_type=event_type_for(event.mask),
        mask=event.mask,
        wd=event.wd,
        is_directory=bool(event.mask & flags.ISDIR),
        cookie=event.cookie,
    )


def flag_names(mask: int) -> list[str]:
    return [flag.name for flag in flags.from_mask(mask)]


__all__ = ["EventType", "FileSystemEvent", "describe", "event_type_for", "flag_names"]
