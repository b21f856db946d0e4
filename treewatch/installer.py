"""Installs inotify watches on directories, recursively where requested."""
from __future__ import annotations

import logging
import os
from collections import deque
from typing import Any

from inotify_simple import flags

from .buffer import EventBuffer
from .config import EVENT_BITS
from .errors import BufferOverflowError
from .models import SEP, InstallOutcome, InstallResult, is_recursive
from .registry import WatchRegistry

LOGGER_NAME = "treewatch.installer"

_CHILD_FLAGS = flags.CREATE | flags.MOVED_TO


class WatchInstaller:
    """Adds watches to an inotify instance and keeps the registry in step.

    A path without a trailing ``/`` is watched recursively: the watch asks for
    child creation and move-in notifications so that the dispatcher can attach
    watches to new subdirectories. A path ending in ``/`` is shallow and never
    gains descendant watches.
    """

    def __init__(
        self,
        inotify: Any,
        registry: WatchRegistry,
        buffer: EventBuffer,
        *,
        interest_mask: int,
        logger: logging.Logger | None = None,
    ) -> None:
        self._inotify = inotify
        self._registry = registry
        self._buffer = buffer
        self.interest_mask = interest_mask
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def watch_mask(self, recursive: bool) -> int:
        mask = self.interest_mask & EVENT_BITS | flags.ONLYDIR | flags.MOVE_SELF
        if recursive:
            mask |= _CHILD_FLAGS
        return int(mask)

    def install(self, path: str | os.PathLike[str], is_move_origin: bool = True) -> InstallResult:
        """Watch *path* and prepare its existing children.

        With *is_move_origin* the directory is treated as having arrived with
        its contents already in place (a move-in, or the initial setup of an
        existing tree): every subdirectory of a recursive watch gets its own
        watch, top-down and without reporting anything. Otherwise the
        directory was just created and each immediate child is queued as a
        synthetic ``IN_CREATE`` record, because the kernel may have populated
        it before our watch took effect. Such children can be reported twice
        but are never missed.

        Only the descriptor of *path* itself is returned.
        """

        path = os.fspath(path)
        result = self._add(path)
        if result.outcome in (InstallOutcome.FAILED, InstallOutcome.DUPLICATE):
            return result

        if is_move_origin:
            if is_recursive(path):
                self._bring_up_subdirectories(path)
        else:
            self._synthesize_children(result.wd, path)
        return result

    def _add(self, path: str) -> InstallResult:
        if not path:
            self.logger.warning("Warning: Cannot watch %r: empty path", path)
            return InstallResult.failed()

        recursive = is_recursive(path)
        try:
            wd = self._inotify.add_watch(path, self.watch_mask(recursive))
        except OSError as exc:
            self.logger.warning("Warning: Cannot watch %r: %s", path, exc.strerror or exc)
            return InstallResult.failed()

        entry = self._registry.get(wd)
        if entry is None:
            self._registry.insert(wd, path)
            self.logger.debug("[%d] %s created", wd, path)
            return InstallResult(wd, InstallOutcome.CREATED)

        old_path = entry.path
        if path == old_path or (not recursive and path == old_path + SEP):
            if not recursive and entry.recursive:
                # The shallow mask just replaced the recursive one; put it back.
                try:
                    self._inotify.add_watch(old_path, self.watch_mask(True))
                except OSError as exc:
                    self.logger.warning("Warning: Cannot rewatch %r: %s", old_path, exc.strerror or exc)
            self.logger.debug("[%d] %s ignored as a duplicate", wd, path)
            return InstallResult(wd, InstallOutcome.DUPLICATE)

        if recursive and old_path == path + SEP:
            outcome = InstallOutcome.RECURSIVE
        else:
            outcome = InstallOutcome.MOVED
        self._registry.reassociate(wd, path)
        self.logger.debug("[%d] %s %s", wd, path, outcome.value)
        return InstallResult(wd, outcome)

    def _bring_up_subdirectories(self, root: str) -> None:
        pending = deque([root])
        while pending:
            current = pending.popleft()
            for child in self._subdirectories(current):
                result = self._add(child)
                # A duplicate means this part of the tree is already in place.
                if result.outcome not in (InstallOutcome.FAILED, InstallOutcome.DUPLICATE):
                    pending.append(child)

    def _subdirectories(self, path: str) -> list[str]:
        try:
            with os.scandir(path) as entries:
                return [entry.path for entry in entries if entry.is_dir(follow_symlinks=False)]
        except OSError as exc:
            self.logger.warning("Warning: Cannot list %r: %s", path, exc.strerror or exc)
            return []

    def _synthesize_children(self, wd: int, path: str) -> None:
        recursive = is_recursive(path)
        report_files = bool(self.interest_mask & flags.CREATE)
        try:
            with os.scandir(path) as entries:
                children = list(entries)
        except OSError as exc:
            self.logger.warning("Warning: Cannot list %r: %s", path, exc.strerror or exc)
            return

        for child in children:
            is_dir = child.is_dir(follow_symlinks=False)
            if not (is_dir or child.is_file(follow_symlinks=False) or child.is_symlink()):
                # devices, fifos and sockets
                continue
            if not (report_files or (is_dir and recursive)):
                continue
            mask = flags.CREATE | flags.ISDIR if is_dir else flags.CREATE
            try:
                self._buffer.append(wd, int(mask), child.name)
            except BufferOverflowError as exc:
                self.logger.error("Error: add_watch() - %s", exc.strerror)
                raise


__all__ = ["WatchInstaller"]
