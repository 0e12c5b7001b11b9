"""Fixed 64-byte message header and commit-word helpers."""

from __future__ import annotations

import struct
import zlib
from dataclasses import dataclass

from .errors import CorruptError, PayloadTooLargeError

HEADER_SIZE = 64
RECORD_ALIGN = 64
MAX_PAYLOAD_LEN = 0xFFFFFFFF - 1
PAD_TYPE_ID = 0xFFFF

COMMIT_LEN_OFFSET = 0
SEQ_OFFSET = 8
TIMESTAMP_OFFSET = 16
TYPE_ID_OFFSET = 24
FLAGS_OFFSET = 26
RESERVED_OFFSET = 28

_PADDING_LEN = 32
_LAYOUT = struct.Struct("<IIQQHHI32s")
_COMMIT = struct.Struct("<I")


@dataclass(frozen=True)
class MessageHeader:
    """Record header.

    ``commit_len`` is 0 while the record is uncommitted, otherwise the
    payload length plus one. ``reserved_u32`` carries the payload CRC-32.
    """

    commit_len: int
    seq: int
    timestamp_ns: int
    type_id: int
    flags: int
    reserved_u32: int
    pad0: int = 0
    padding: bytes = bytes(_PADDING_LEN)

    def __post_init__(self) -> None:
        if len(self.padding) != _PADDING_LEN:
            raise ValueError(f"padding must be {_PADDING_LEN} bytes")

    @classmethod
    def new_uncommitted(
        cls, seq: int, timestamp_ns: int, type_id: int, flags: int, reserved_u32: int
    ) -> "MessageHeader":
        return cls(
            commit_len=0,
            seq=seq,
            timestamp_ns=timestamp_ns,
            type_id=type_id,
            flags=flags,
            reserved_u32=reserved_u32,
        )

    def to_bytes(self) -> bytes:
        return _LAYOUT.pack(
            self.commit_len,
            self.pad0,
            self.seq,
            self.timestamp_ns,
            self.type_id,
            self.flags,
            self.reserved_u32,
            bytes(self.padding),
        )

    @classmethod
    def from_bytes(cls, data) -> "MessageHeader":
        if len(data) != HEADER_SIZE:
            raise CorruptError(f"header must be {HEADER_SIZE} bytes")
        commit_len, pad0, seq, timestamp_ns, type_id, flags, reserved, padding = (
            _LAYOUT.unpack(bytes(data))
        )
        return cls(
            commit_len=commit_len,
            seq=seq,
            timestamp_ns=timestamp_ns,
            type_id=type_id,
            flags=flags,
            reserved_u32=reserved,
            pad0=pad0,
            padding=padding,
        )

    def validate_crc(self, payload) -> None:
        """Raise :class:`CorruptError` unless the payload matches the stored CRC."""
        if crc32(payload) != self.reserved_u32:
            raise CorruptError("crc mismatch")


def crc32(payload) -> int:
    """IEEE CRC-32 of ``payload``."""
    return zlib.crc32(payload) & 0xFFFFFFFF


def commit_len_for_payload(payload_len: int) -> int:
    if payload_len < 0:
        raise ValueError("payload length cannot be negative")
    if payload_len > MAX_PAYLOAD_LEN:
        raise PayloadTooLargeError()
    return payload_len + 1


def payload_len_from_commit(commit_len: int) -> int:
    if commit_len == 0:
        raise CorruptError("commit length is zero")
    return commit_len - 1


def load_commit_len(buffer, offset: int = 0) -> int:
    """Read the commit word of the header starting at ``offset``."""
    return _COMMIT.unpack_from(buffer, offset)[0]


def store_commit_len(buffer, offset: int, commit_len: int) -> None:
    """Publish the commit word of the header starting at ``offset``."""
    _COMMIT.pack_into(buffer, offset, commit_len)