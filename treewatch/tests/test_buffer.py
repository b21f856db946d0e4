"""Tests for :mod:`treewatch.buffer`."""
from __future__ import annotations

import struct

import pytest
from inotify_simple import flags

from treewatch.buffer import EventBuffer, record_size
from treewatch.errors import BufferOverflowError, EventStreamError


def test_append_and_take_synthetic_record() -> None:
    buffer = EventBuffer(256)
    buffer.append(4, flags.CREATE | flags.ISDIR, "photos")

    assert buffer
    assert buffer.pending == record_size("photos") == 16 + 8

    event = buffer.take()

    assert (event.wd, event.mask, event.cookie, event.name) == (4, flags.CREATE | flags.ISDIR, 0, "photos")
    assert not buffer
    assert buffer.length == buffer.offset == 0


def test_names_are_padded_to_int_boundary() -> None:
    assert record_size("abc") == 16 + 4
    assert record_size("abcd") == 16 + 8
    assert record_size("") == 16 + 4


def test_records_drain_in_order() -> None:
    buffer = EventBuffer(256)
    data = struct.pack("iIII", 1, flags.MODIFY, 0, 8) + b"a.txt\0\0\0"
    buffer.load(data)
    buffer.append(1, flags.CREATE, "b.txt")

    names = [buffer.take().name, buffer.take().name]

    assert names == ["a.txt", "b.txt"]
    assert not buffer


def test_utf8_names_round_trip() -> None:
    buffer = EventBuffer(256)
    buffer.append(2, flags.CREATE, "사진")

    assert buffer.take().name == "사진"


def test_overflow_raises_and_keeps_pending_records() -> None:
    buffer = EventBuffer(64)
    buffer.append(1, flags.CREATE, "first")
    length = buffer.length

    with pytest.raises(BufferOverflowError) as excinfo:
        buffer.append(1, flags.CREATE, "x" * 40)

    assert excinfo.value.where == "add_watch()"
    assert buffer.length == length
    assert buffer.take().name == "first"


def test_truncated_record_is_fatal() -> None:
    buffer = EventBuffer(256)
    data = struct.pack("iIII", 1, flags.CREATE, 0, 16) + b"short\0"
    buffer.load(data)

    with pytest.raises(EventStreamError):
        buffer.take()


def test_load_rejects_pending_data() -> None:
    buffer = EventBuffer(256)
    buffer.append(1, flags.CREATE, "a")

    with pytest.raises(RuntimeError):
        buffer.load(b"")
