"""treewatch package exports."""

from .config import INVALID_WD, WatcherOptions, parse_event_mask
from .errors import BufferOverflowError, EventStreamError, TreeWatchError, UnknownWatchError
from .events import EventType, FileSystemEvent, describe
from .watcher import TreeWatcher

__all__ = [
    "BufferOverflowError",
    "EventStreamError",
    "EventType",
    "FileSystemEvent",
    "INVALID_WD",
    "TreeWatchError",
    "TreeWatcher",
    "UnknownWatchError",
    "WatcherOptions",
    "describe",
    "parse_event_mask",
]
