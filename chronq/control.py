"""Memory-mapped control block shared by a queue's writer and readers."""

from __future__ import annotations

import os
import struct
import time
from pathlib import Path

from .errors import CorruptMetadataError, UnsupportedVersionError
from .mmapfile import MmapFile

CTRL_MAGIC = 0x4348524E
CTRL_VERSION = 3
CONTROL_BLOCK_SIZE = 512

_U32 = struct.Struct("<I")
_U64 = struct.Struct("<Q")
_U32_MASK = 0xFFFFFFFF

# Field offsets; hot fields sit on separate 128-byte lines.
_MAGIC = 0
_VERSION = 4
_INIT_STATE = 8
_WRITER_EPOCH = 16
_SEGMENT_SIZE = 24
_SEGMENT_GEN = 128
_CURRENT_SEGMENT = 132
_WRITE_OFFSET = 256
_WRITER_HEARTBEAT_NS = 264
_NOTIFY_SEQ = 384
_WAITERS_PENDING = 388

_STATE_INITIALISING = 1
_STATE_READY = 2


class ControlFile:
    """Typed access to a queue's ``control.meta`` block."""

    def __init__(self, mapping: MmapFile) -> None:
        self._mmap = mapping

    @classmethod
    def create(
        cls, path, current_segment: int, write_offset: int, writer_epoch: int, segment_size: int
    ) -> "ControlFile":
        """Build a fresh block beside ``path`` and move it into place."""
        path = Path(path)
        tmp_path = path.with_suffix(".tmp")
        mapping = MmapFile.create(tmp_path, CONTROL_BLOCK_SIZE)
        try:
            mapping.data[:] = bytes(CONTROL_BLOCK_SIZE)
            control = cls(mapping)
            control._put(_U32, _INIT_STATE, _STATE_INITIALISING)
            control._put(_U32, _VERSION, CTRL_VERSION)
            control._put(_U64, _SEGMENT_SIZE, segment_size)
            control._put(_U32, _SEGMENT_GEN, 0)
            control._put(_U32, _CURRENT_SEGMENT, current_segment)
            control._put(_U64, _WRITE_OFFSET, write_offset)
            control._put(_U64, _WRITER_EPOCH, writer_epoch)
            control._put(_U64, _WRITER_HEARTBEAT_NS, 0)
            control._put(_U32, _NOTIFY_SEQ, 0)
            control._put(_U32, _WAITERS_PENDING, 0)
            control._put(_U32, _MAGIC, CTRL_MAGIC)
            control._put(_U32, _INIT_STATE, _STATE_READY)
            os.replace(tmp_path, path)
        except BaseException:
            mapping.close()
            raise
        return control

    @classmethod
    def open(cls, path) -> "ControlFile":
        mapping = MmapFile.open(path)
        if len(mapping) < CONTROL_BLOCK_SIZE:
            mapping.close()
            raise CorruptMetadataError("control.meta too small")
        return cls(mapping)

    def _get(self, fmt: struct.Struct, offset: int) -> int:
        return fmt.unpack_from(self._mmap.data, offset)[0]

    def _put(self, fmt: struct.Struct, offset: int, value: int) -> None:
        fmt.pack_into(self._mmap.data, offset, value)

    def lock(self) -> None:
        self._mmap.lock()

    def wait_ready(self) -> None:
        """Block until initialisation finishes, then check magic and version."""
        while self._get(_U32, _INIT_STATE) != _STATE_READY:
            time.sleep(0)
        if self._get(_U32, _MAGIC) != CTRL_MAGIC:
            raise CorruptMetadataError("control.meta magic mismatch")
        version = self._get(_U32, _VERSION)
        if version != CTRL_VERSION:
            raise UnsupportedVersionError(version)

    @property
    def current_segment(self) -> int:
        return self._get(_U32, _CURRENT_SEGMENT)

    @property
    def segment_size(self) -> int:
        return self._get(_U64, _SEGMENT_SIZE)

    @property
    def write_offset(self) -> int:
        return self._get(_U64, _WRITE_OFFSET)

    @write_offset.setter
    def write_offset(self, offset: int) -> None:
        self._put(_U64, _WRITE_OFFSET, offset)

    def segment_index(self) -> tuple[int, int]:
        """Consistent ``(segment, offset)`` pair read under the generation lock."""
        while True:
            start = self._get(_U32, _SEGMENT_GEN)
            if start & 1:
                continue
            segment = self._get(_U32, _CURRENT_SEGMENT)
            offset = self._get(_U64, _WRITE_OFFSET)
            end = self._get(_U32, _SEGMENT_GEN)
            if start == end:
                return segment, offset

    def set_segment_index(self, segment: int, offset: int) -> None:
        generation = self._get(_U32, _SEGMENT_GEN)
        self._put(_U32, _SEGMENT_GEN, (generation + 1) & _U32_MASK)
        self._put(_U32, _CURRENT_SEGMENT, segment)
        self._put(_U64, _WRITE_OFFSET, offset)
        self._put(_U32, _SEGMENT_GEN, (generation + 2) & _U32_MASK)

    @property
    def notify_seq(self) -> int:
        return self._get(_U32, _NOTIFY_SEQ)

    @notify_seq.setter
    def notify_seq(self, value: int) -> None:
        self._put(_U32, _NOTIFY_SEQ, value & _U32_MASK)

    @property
    def waiters_pending(self) -> int:
        return self._get(_U32, _WAITERS_PENDING)

    @waiters_pending.setter
    def waiters_pending(self, value: int) -> None:
        self._put(_U32, _WAITERS_PENDING, value & _U32_MASK)

    @property
    def writer_heartbeat_ns(self) -> int:
        return self._get(_U64, _WRITER_HEARTBEAT_NS)

    @writer_heartbeat_ns.setter
    def writer_heartbeat_ns(self, heartbeat: int) -> None:
        self._put(_U64, _WRITER_HEARTBEAT_NS, heartbeat)

    @property
    def writer_epoch(self) -> int:
        return self._get(_U64, _WRITER_EPOCH)

    @writer_epoch.setter
    def writer_epoch(self, epoch: int) -> None:
        self._put(_U64, _WRITER_EPOCH, epoch)

    def close(self) -> None:
        self._mmap.close()

    def __enter__(self) -> "ControlFile":
        return self

    def __exit__(self, *args) -> None:
        self.close()