"""Core dataclasses shared across treewatch modules."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from inotify_simple import Event as RawEvent

from .config import INVALID_WD

SEP = "/"


def is_recursive(path: str) -> bool:
    """Return ``True`` when *path* names a recursive watch (no trailing ``/``)."""

    return not path.endswith(SEP)


@dataclass(slots=True)
class WatchEntry:
    """Bookkeeping for one inotify watch.

    ``recycled_by_move`` is set when a moved-in directory reused a watch the
    kernel already had. The kernel queues ``IN_MOVED_TO`` on the new parent
    before ``IN_MOVE_SELF`` on the moved directory, so the flag is always seen
    by the self-move it is meant to cancel.
    """

    path: str
    recycled_by_move: bool = False

    @property
    def recursive(self) -> bool:
        return is_recursive(self.path)


class InstallOutcome(Enum):
    """How the kernel answered an ``add_watch`` request."""

    CREATED = "created"
    DUPLICATE = "duplicate"
    MOVED = "moved"
    RECURSIVE = "changed to recursive"
    FAILED = "failed"


@dataclass(slots=True)
class InstallResult:
    wd: int
    outcome: InstallOutcome

    @property
    def reused(self) -> bool:
        """The kernel handed back a watch that was already registered."""

        return self.outcome in (
            InstallOutcome.DUPLICATE,
            InstallOutcome.MOVED,
            InstallOutcome.RECURSIVE,
        )

    @classmethod
    def failed(cls) -> "InstallResult":
        return cls(wd=INVALID_WD, outcome=InstallOutcome.FAILED)


__all__ = [
    "InstallOutcome",
    "InstallResult",
    "RawEvent",
    "SEP",
    "WatchEntry",
    "is_recursive",
]
