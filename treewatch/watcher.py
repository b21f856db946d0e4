"""Recursive directory watcher built on inotify.

inotify only reports changes to the immediate children of a watched
directory. :class:`TreeWatcher` keeps one watch per directory of every
recursively watched tree and maintains them as the tree changes:

- watches are added to subdirectories that are created or moved in;
- a watched directory renamed inside watched territory keeps its descriptor,
  only the recorded path is rewritten;
- watches are removed from directories moved out of watched territory;
- when a populated tree is copied in faster than watches can be added, the
  missing children are reported through synthetic ``IN_CREATE`` records.

Events are returned one at a time from :meth:`TreeWatcher.read`. All state is
unsynchronized and belongs to the single thread calling it.
"""
from __future__ import annotations

import errno
import logging
import os
import select
import time
from dataclasses import replace
from typing import Any, Callable, Iterator

from inotify_simple import INotify, flags

from .buffer import EventBuffer
from .config import INVALID_WD, MAX_READ_DELAY_MS, WatcherOptions
from .errors import EventStreamError
from .events import FileSystemEvent, describe
from .installer import WatchInstaller
from .models import RawEvent
from .registry import WatchRegistry

LOGGER_NAME = "treewatch.watcher"


class TreeWatcher:
    """An inotify instance that watches directories, recursively or not.

    Paths without a trailing ``/`` are watched together with every current and
    future subdirectory; paths ending in ``/`` only report their immediate
    children.
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        interest_mask: int | None = None,
        *,
        options: WatcherOptions | None = None,
        inotify_factory: Callable[[], Any] | None = None,
    ) -> None:
        self.options = options or WatcherOptions()
        if interest_mask is not None:
            self.options = replace(self.options, interest_mask=interest_mask)
        self.logger = logger or logging.getLogger(LOGGER_NAME)

        factory = inotify_factory or INotify
        try:
            self._inotify = factory()
        except OSError as exc:
            self.logger.error("Error: inotify_init1():%s - %s", exc.errno, exc.strerror)
            raise

        self._poller = select.poll()
        self._poller.register(self._inotify.fileno(), select.POLLIN)
        self._registry = WatchRegistry()
        self._buffer = EventBuffer(self.options.buffer_size)
        self._installer = WatchInstaller(
            self._inotify,
            self._registry,
            self._buffer,
            interest_mask=self.options.interest_mask,
            logger=self.logger,
        )
        self._closed = False

    def __enter__(self) -> "TreeWatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def interest_mask(self) -> int:
        return self.options.interest_mask

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def watches(self) -> dict[int, str]:
        """Snapshot of the active watches, descriptor to path."""

        return self._registry.snapshot()

    def close(self) -> None:
        """Release the inotify instance. Every watch goes with it."""

        if self._closed:
            return
        self._closed = True
        self._poller.unregister(self._inotify.fileno())
        self._inotify.close()

    def path(self, wd: int) -> str:
        """Return the path watched by *wd*; raises :class:`UnknownWatchError`."""

        return self._registry.lookup(wd)

    lookup_path = path

    def add_watch(self, path: str | os.PathLike[str], is_move_origin: bool = True) -> int:
        """Watch the directory *path* and return its watch descriptor.

        Paths that are empty, missing, not directories or unreadable are
        logged and yield ``INVALID_WD`` (-1). See
        :meth:`WatchInstaller.install` for *is_move_origin*; the default suits
        both the initial setup of existing directories and moved-in ones.
        """

        return self._installer.install(path, is_move_origin).wd

    def rm_watch(self, wd: int) -> None:
        """Ask the kernel to drop *wd*.

        The registry entry goes away once the matching ``IN_IGNORED`` record
        is read.
        """

        try:
            self._inotify.rm_watch(wd)
        except OSError as exc:
            self.logger.warning("Warning: inotify_rm_watch():%s - %s", exc.errno, exc.strerror)

    def rm_all_watches(self) -> None:
        """Drop every watch. The instance stays usable afterwards."""

        for wd in self._registry:
            self.rm_watch(wd)

    def read(self, timeout: int = -1, read_delay: int = 0) -> RawEvent | None:
        """Return the next event of interest, or ``None`` once *timeout* ms pass.

        A negative *timeout* blocks until an event of interest arrives.
        *read_delay* (0 to 1000 ms) is slept after the first event becomes
        available so the kernel can coalesce further events into one read.
        Raises :class:`EventStreamError` when the event stream fails or the
        watcher has been closed.
        """

        found = self._read(timeout, read_delay)
        return found[0] if found else None

    def read_event(self, timeout: int = -1, read_delay: int = 0) -> FileSystemEvent | None:
        """Like :meth:`read`, but returns a :class:`FileSystemEvent` with a full path."""

        found = self._read(timeout, read_delay)
        return describe(*found) if found else None

    def events(self, timeout: int = -1, read_delay: int = 0) -> Iterator[FileSystemEvent]:
        """Yield events until a read times out."""

        while True:
            event = self.read_event(timeout, read_delay)
            if event is None:
                return
            yield event

    def _read(self, timeout: int, read_delay: int) -> tuple[RawEvent, str] | None:
        if self._closed:
            self.logger.error("Error: poll():%d - %s", errno.EBADF, "watcher is closed")
            raise EventStreamError(errno.EBADF, "read from a closed watcher", where="poll()")
        if not 0 <= read_delay <= MAX_READ_DELAY_MS:
            raise ValueError(f"read_delay must be within 0..{MAX_READ_DELAY_MS} ms, got {read_delay}")

        deadline = None if timeout < 0 else time.monotonic() + timeout / 1000
        while True:
            if not self._buffer and not self._fill(timeout, read_delay):
                return None

            while self._buffer:
                event = self._take()
                base_path = self._dispatch(event)
                if event.mask & self.interest_mask:
                    return event, base_path

            # Everything read so far was of no interest; wait again with
            # whatever time is left.
            if deadline is not None:
                timeout = int((deadline - time.monotonic()) * 1000)
                if timeout <= 0:
                    return None

    def _fill(self, timeout: int, read_delay: int) -> bool:
        where = "poll()"
        try:
            if not self._poller.poll(timeout):
                return False
            if read_delay:
                where = "sleep()"
                time.sleep(read_delay / 1000)
            where = "read()"
            data = os.read(self._inotify.fileno(), self._buffer.capacity)
        except OSError as exc:
            self.logger.error("Error: %s:%s - %s", where, exc.errno, exc.strerror)
            raise EventStreamError(exc.errno or errno.EIO, exc.strerror or str(exc), where=where) from exc

        if not data:
            # Possibly too many events at once.
            self.logger.error("Error: read():%d - %s", errno.EIO, "zero-length read")
            raise EventStreamError(errno.EIO, "zero-length read from inotify", where="read()")
        self._buffer.load(data)
        return True

    def _take(self) -> RawEvent:
        try:
            return self._buffer.take()
        except EventStreamError as exc:
            self.logger.error("Error: read() - %s", exc.strerror)
            raise

    def _dispatch(self, event: RawEvent) -> str:
        """Update the watches for *event* and return the path it was raised on."""

        entry = self._registry.get(event.wd)
        if entry is None:
            self.logger.error(
                "Error: read() - Event for unknown wd [%d] possibly due to IN_Q_OVERFLOW", event.wd
            )
            raise EventStreamError(
                errno.EINVAL, f"event for unknown watch descriptor {event.wd}", where="read()"
            )
        base_path = entry.path
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug(
                "- [%d] %s (%#x)",
                event.wd,
                os.path.join(base_path, event.name) if event.name else base_path,
                event.mask,
            )

        # A subdirectory was created or moved into a recursive watch.
        if (
            event.mask & flags.ISDIR
            and event.mask & (flags.CREATE | flags.MOVED_TO)
            and entry.recursive
        ):
            moved_in = bool(event.mask & flags.MOVED_TO)
            result = self._installer.install(os.path.join(base_path, event.name), moved_in)
            if moved_in and result.reused:
                # The kernel kept the watch across the move; its pending
                # IN_MOVE_SELF announces the arrival, not a departure.
                self._registry.entry(result.wd).recycled_by_move = True

        if event.mask & flags.MOVE_SELF:
            if entry.recycled_by_move:
                entry.recycled_by_move = False
            elif not entry.recursive:
                self.rm_watch(event.wd)
            else:
                for wd in self._registry.subtree(entry.path):
                    self.rm_watch(wd)

        if event.mask & flags.IGNORED:
            self.logger.debug("[%d] %s deleted", event.wd, entry.path)
            self._registry.remove(event.wd)

        return base_path


__all__ = ["INVALID_WD", "TreeWatcher"]
