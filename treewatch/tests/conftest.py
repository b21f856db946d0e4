from __future__ import annotations

import errno
import logging
import os
import stat
import struct

import pytest
from inotify_simple import flags

from treewatch.watcher import TreeWatcher


def pack_event(wd: int, mask: int, name: str = "", cookie: int = 0) -> bytes:
    encoded = os.fsencode(name)
    size = (len(encoded) + 4) // 4 * 4 if encoded else 0
    return struct.pack("iIII", wd, int(mask), cookie, size) + encoded.ljust(size, b"\0")


class FakeINotify:
    """Pipe-backed stand-in for ``inotify_simple.INotify``.

    Watches are keyed by inode like the kernel does, so adding a watch on a
    renamed directory returns its existing descriptor. Records are only
    produced when a test calls :meth:`emit`, or by :meth:`rm_watch`.
    """

    def __init__(self) -> None:
        self._read_fd, self._write_fd = os.pipe()
        self._next_wd = 1
        self._wd_by_inode: dict[tuple[int, int], int] = {}
        self._inode_by_wd: dict[int, tuple[int, int]] = {}
        self.masks: dict[int, int] = {}
        self.removed: list[int] = []
        self.closed = False

    def fileno(self) -> int:
        return self._read_fd

    def add_watch(self, path, mask: int) -> int:
        path = os.fspath(path)
        if not path:
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
        st = os.stat(path)
        if mask & flags.ONLYDIR and not stat.S_ISDIR(st.st_mode):
            raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), path)
        key = (st.st_dev, st.st_ino)
        wd = self._wd_by_inode.get(key)
        if wd is None:
            wd = self._next_wd
            self._next_wd += 1
            self._wd_by_inode[key] = wd
            self._inode_by_wd[wd] = key
        self.masks[wd] = mask
        return wd

    def rm_watch(self, wd: int) -> None:
        key = self._inode_by_wd.pop(wd, None)
        if key is None:
            raise OSError(errno.EINVAL, os.strerror(errno.EINVAL))
        del self._wd_by_inode[key]
        del self.masks[wd]
        self.removed.append(wd)
        self.emit(wd, flags.IGNORED)

    def emit(self, wd: int, mask: int, name: str = "", cookie: int = 0) -> None:
        os.write(self._write_fd, pack_event(wd, mask, name, cookie))

    pack = staticmethod(pack_event)

    def emit_raw(self, data: bytes) -> None:
        os.write(self._write_fd, data)

    def hang_up(self) -> None:
        os.close(self._write_fd)
        self._write_fd = -1

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        os.close(self._read_fd)
        if self._write_fd >= 0:
            os.close(self._write_fd)


@pytest.fixture()
def fake_inotify():
    fake = FakeINotify()
    yield fake
    fake.close()


@pytest.fixture()
def diag_logger() -> logging.Logger:
    # Not under "treewatch" so records reach caplog even after the CLI
    # configured that logger not to propagate.
    logger = logging.getLogger("tests.treewatch")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture()
def watcher_factory(fake_inotify, diag_logger):
    created: list[TreeWatcher] = []

    def factory(**kwargs: object) -> TreeWatcher:
        kwargs.setdefault("logger", diag_logger)
        watcher = TreeWatcher(inotify_factory=lambda: fake_inotify, **kwargs)
        created.append(watcher)
        return watcher

    yield factory

    for watcher in created:
        watcher.close()


def wd_for(watcher: TreeWatcher, path) -> int:
    path = os.fspath(path)
    for wd, watched in watcher.watches.items():
        if watched == path:
            return wd
    raise AssertionError(f"{path} is not watched: {watcher.watches}")


@pytest.fixture()
def wd_of():
    return wd_for
