"""In-memory registry of active inotify watches."""
from __future__ import annotations

from typing import Iterator

from .errors import UnknownWatchError
from .models import SEP, WatchEntry


class WatchRegistry:
    """Maps watch descriptors to the directory paths they watch.

    Entries are only ever erased when the kernel confirms a watch is gone
    (``IN_IGNORED``). A rename keeps the descriptor and only rewrites the
    recorded path through :meth:`reassociate`.
    """

    def __init__(self) -> None:
        self._entries: dict[int, WatchEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, wd: object) -> bool:
        return wd in self._entries

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._entries))

    def get(self, wd: int) -> WatchEntry | None:
        return self._entries.get(wd)

    def entry(self, wd: int) -> WatchEntry:
        try:
            return self._entries[wd]
        except KeyError:
            raise UnknownWatchError(wd) from None

    def lookup(self, wd: int) -> str:
        """Return the path watched by *wd* or raise :class:`UnknownWatchError`."""

        return self.entry(wd).path

    def insert(self, wd: int, path: str) -> WatchEntry:
        if wd in self._entries:
            raise ValueError(f"Watch descriptor {wd} is already registered")
        entry = WatchEntry(path=path)
        self._entries[wd] = entry
        return entry

    def reassociate(self, wd: int, new_path: str) -> str:
        """Point an existing watch at *new_path* and return the old path."""

        entry = self.entry(wd)
        old_path, entry.path = entry.path, new_path
        return old_path

    def remove(self, wd: int) -> WatchEntry | None:
        return self._entries.pop(wd, None)

    def subtree(self, path: str) -> list[int]:
        """Return the descriptors watching *path* or any directory below it.

        Membership is decided on the recorded paths alone, since a moved-out
        directory no longer exists at its old location.
        """

        root = path.rstrip(SEP)
        prefix = root + SEP
        return [
            wd
            for wd, entry in self._entries.items()
            if entry.path == root or entry.path.startswith(prefix)
        ]

    def snapshot(self) -> dict[int, str]:
        return {wd: entry.path for wd, entry in self._entries.items()}


__all__ = ["WatchRegistry"]
