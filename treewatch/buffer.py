"""Fixed-capacity buffer of packed ``struct inotify_event`` records."""
from __future__ import annotations

import errno
import os
import struct

from .config import DEFAULT_BUFFER_SIZE, EVENT_HEADER_SIZE
from .errors import BufferOverflowError, EventStreamError
from .models import RawEvent

_EVENT_FMT = "iIII"
_ALIGN = struct.calcsize("i")


def record_size(name: str | bytes) -> int:
    """Return the packed size of a record carrying *name*."""

    encoded = os.fsencode(name)
    return EVENT_HEADER_SIZE + _padded_length(encoded)


def _padded_length(encoded: bytes) -> int:
    # NUL terminator included, rounded up to an int boundary.
    return (len(encoded) + _ALIGN) // _ALIGN * _ALIGN


class EventBuffer:
    """Batch of inotify records drained strictly front to back.

    The buffer is refilled from the kernel only once every record has been
    handed out. Synthetic records are appended behind whatever is still
    pending so they are dispatched in the same pass.
    """

    def __init__(self, capacity: int = DEFAULT_BUFFER_SIZE) -> None:
        self._data = bytearray(capacity)
        self.length = 0
        self.offset = 0

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def pending(self) -> int:
        return self.length - self.offset

    def __bool__(self) -> bool:
        return self.offset < self.length

    def clear(self) -> None:
        self.length = self.offset = 0

    def load(self, data: bytes) -> None:
        """Replace the drained buffer contents with *data* read from the kernel."""

        if self:
            raise RuntimeError("Cannot load into a buffer with pending records")
        if len(data) > self.capacity:
            raise BufferOverflowError(
                errno.EINVAL,
                f"{len(data)} bytes do not fit into a {self.capacity} byte buffer",
                where="read()",
            )
        self._data[: len(data)] = data
        self.length = len(data)
        self.offset = 0

    def append(self, wd: int, mask: int, name: str, cookie: int = 0) -> None:
        """Pack a synthetic record behind the pending ones."""

        encoded = os.fsencode(name)
        size = _padded_length(encoded)
        end = self.length + record_size(encoded)
        if end > self.capacity:
            raise BufferOverflowError(
                errno.EINVAL,
                f"no room for a synthetic event on {name!r} ({self.pending} bytes pending)",
                where="add_watch()",
            )
        struct.pack_into(_EVENT_FMT, self._data, self.length, wd, mask, cookie, size)
        start = self.length + EVENT_HEADER_SIZE
        self._data[start:end] = encoded.ljust(size, b"\0")
        self.length = end

    def take(self) -> RawEvent:
        """Unpack the next record and advance past it."""

        if self.offset + EVENT_HEADER_SIZE > self.length:
            raise EventStreamError(errno.EINVAL, "Incomplete event header in buffer", where="read()")
        wd, mask, cookie, size = struct.unpack_from(_EVENT_FMT, self._data, self.offset)
        start = self.offset + EVENT_HEADER_SIZE
        end = start + size
        if end > self.length:
            raise EventStreamError(errno.EINVAL, "Incomplete event returned", where="read()")

        name = bytes(self._data[start:end]).split(b"\0", 1)[0]
        self.offset = end
        if self.offset == self.length:
            self.clear()
        return RawEvent(wd, mask, cookie, os.fsdecode(name))


__all__ = ["EventBuffer", "record_size"]
