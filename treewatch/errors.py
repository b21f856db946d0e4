"""Exception types raised by treewatch."""
from __future__ import annotations


class TreeWatchError(Exception):
    """Base class for treewatch errors."""


class EventStreamError(TreeWatchError, OSError):
    """The inotify event stream can no longer be trusted.

    Raised for failures while waiting on or reading from the inotify instance,
    for corrupt records and for events referring to unknown watches. Callers
    should discard the watcher and register their watches again.
    """

    def __init__(self, errno: int, strerror: str, *, where: str | None = None) -> None:
        OSError.__init__(self, errno, strerror)
        self.where = where


class BufferOverflowError(EventStreamError):
    """Synthetic create events did not fit into the event buffer."""


class UnknownWatchError(TreeWatchError, KeyError):
    """A watch descriptor is not known to the registry."""

    def __init__(self, wd: int) -> None:
        KeyError.__init__(self, wd)
        self.wd = wd

    def __str__(self) -> str:
        return f"Unknown watch descriptor: {self.wd}"


__all__ = [
    "BufferOverflowError",
    "EventStreamError",
    "TreeWatchError",
    "UnknownWatchError",
]
