"""Shared read-write memory mapping of a whole file."""

from __future__ import annotations

import mmap
import os
from pathlib import Path

from .errors import CorruptError, UnsupportedError


def _require_length(length: int) -> None:
    if length <= 0:
        raise UnsupportedError("mmap length must be non-zero")


class MmapFile:
    """A file mapped read-write and shared with other processes."""

    def __init__(self, path, handle, length: int) -> None:
        self._path = Path(path)
        self._file = handle
        self._length = length
        self._map = mmap.mmap(handle.fileno(), length)

    @classmethod
    def _from_handle(cls, path, handle, length: int, resize: bool) -> "MmapFile":
        try:
            if resize:
                handle.truncate(length)
            return cls(path, handle, length)
        except BaseException:
            handle.close()
            raise

    @classmethod
    def create(cls, path, length: int) -> "MmapFile":
        """Create or truncate ``path`` to ``length`` zero bytes and map it."""
        _require_length(length)
        return cls._from_handle(path, open(path, "w+b"), length, resize=True)

    @classmethod
    def create_new(cls, path, length: int) -> "MmapFile":
        """Like :meth:`create`, but fail if ``path`` already exists."""
        _require_length(length)
        return cls._from_handle(path, open(path, "x+b"), length, resize=True)

    @classmethod
    def open(cls, path) -> "MmapFile":
        """Map an existing file at its current size."""
        handle = open(path, "r+b")
        length = os.fstat(handle.fileno()).st_size
        if length == 0:
            handle.close()
            raise UnsupportedError("mmap length must be non-zero")
        return cls._from_handle(path, handle, length, resize=False)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def data(self) -> mmap.mmap:
        """The mapping itself, readable and writable as a buffer."""
        return self._map

    def range(self, offset: int, length: int) -> memoryview:
        """Writable view of ``length`` bytes starting at ``offset``."""
        if offset < 0 or length < 0:
            raise CorruptError("range overflow")
        end = offset + length
        if end > self._length:
            raise CorruptError("range out of bounds")
        return memoryview(self._map)[offset:end]

    def __len__(self) -> int:
        return self._length

    def lock(self) -> None:
        raise UnsupportedError("mlock is not supported")

    def unlock(self) -> None:
        raise UnsupportedError("mlock is not supported")

    def sync(self) -> None:
        """Flush the file's data and metadata to disk."""
        os.fsync(self._file.fileno())

    def flush_async(self) -> None:
        self._map.flush()

    def flush_sync(self) -> None:
        self._map.flush()

    def close(self) -> None:
        if not self._map.closed:
            self._map.close()
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> "MmapFile":
        return self

    def __exit__(self, *args) -> None:
        self.close()