"""Exception hierarchy for queue operations.

Operating-system failures surface as the built-in ``OSError`` family; the
classes here cover everything the queue itself detects.
"""

from __future__ import annotations


class ChronicleError(Exception):
    """Base class of every error raised by the queue."""


class _DetailError(ChronicleError):
    """An error carrying a short description behind a fixed prefix."""

    prefix = ""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"{self.prefix}: {detail}")


class CorruptError(_DetailError):
    """Record data failed validation."""

    prefix = "corrupt data"


class CorruptMetadataError(_DetailError):
    """A metadata file is malformed."""

    prefix = "corrupt metadata"


class UnsupportedError(_DetailError):
    """The requested operation or argument is not supported."""

    prefix = "unsupported"


class UnsupportedVersionError(ChronicleError):
    """A metadata file was written with an unknown format version."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(f"unsupported version: {version}")


class _FixedMessageError(ChronicleError):
    message = ""

    def __init__(self) -> None:
        super().__init__(self.message)


class PayloadTooLargeError(_FixedMessageError):
    """A payload exceeds the largest length a record can hold."""

    message = "payload too large"


class QueueFullError(_FixedMessageError):
    """The queue cannot accept more data under the current policy."""

    message = "queue full"


class WriterAlreadyActiveError(_FixedMessageError):
    """Another live writer already owns the queue."""

    message = "writer already active"