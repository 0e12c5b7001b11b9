"""Timestamp-ordered merge of several queue readers."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Iterator, Protocol, Union

from .errors import CorruptError, UnsupportedError

_PARK_SLEEP = 100e-6


@dataclass(frozen=True)
class BusySpin:
    """Spin until a message is committed."""


@dataclass(frozen=True)
class Sleep:
    """Sleep ``duration`` seconds when nothing is committed."""

    duration: float


@dataclass(frozen=True)
class SpinThenPark:
    """Spin for ``spin_us`` microseconds, then sleep briefly."""

    spin_us: int = 10


WaitStrategy = Union[BusySpin, Sleep, SpinThenPark]


class _MessageRef(Protocol):
    seq: int
    timestamp_ns: int
    type_id: int
    payload_offset: int
    payload_len: int


class _Reader(Protocol):
    def peek_committed(self) -> bool: ...

    def next_ref(self) -> _MessageRef | None: ...

    def payload_at(self, offset: int, length: int) -> bytes: ...

    def commit(self) -> None: ...


@dataclass(frozen=True)
class MergedMessage:
    """A message together with the index of the reader it came from."""

    source: int
    seq: int
    timestamp_ns: int
    type_id: int
    payload: bytes


@dataclass(frozen=True)
class _Pending:
    seq: int
    timestamp_ns: int
    type_id: int
    payload_offset: int
    payload_len: int


class FanInReader:
    """Merges readers, yielding the earliest timestamp first.

    Ties go to the reader with the lower index. Each message must be
    committed to its source with :meth:`commit`.
    """

    def __init__(self, readers) -> None:
        self._readers: list[_Reader] = list(readers)
        self._pending: list[_Pending | None] = [None] * len(self._readers)
        self.wait_strategy: WaitStrategy = SpinThenPark(spin_us=10)

    def add_reader(self, reader) -> None:
        self._readers.append(reader)
        self._pending.append(None)

    def _any_committed(self) -> bool:
        return any(reader.peek_committed() for reader in self._readers)

    def wait(self) -> None:
        """Wait for data on any source according to :attr:`wait_strategy`."""
        strategy = self.wait_strategy
        if isinstance(strategy, BusySpin):
            while not self._any_committed():
                pass
        elif isinstance(strategy, Sleep):
            if not self._any_committed():
                time.sleep(strategy.duration)
        elif isinstance(strategy, SpinThenPark):
            deadline = time.perf_counter() + strategy.spin_us / 1_000_000
            while time.perf_counter() < deadline:
                if self._any_committed():
                    return
            # Cannot block on several queues at once; a short sleep bounds CPU use.
            time.sleep(_PARK_SLEEP)
        else:
            raise UnsupportedError("unknown wait strategy")

    def next(self) -> MergedMessage | None:
        """Return the earliest pending message, or ``None`` if all are empty."""
        for index, reader in enumerate(self._readers):
            if self._pending[index] is None:
                ref = reader.next_ref()
                if ref is not None:
                    self._pending[index] = _Pending(
                        ref.seq,
                        ref.timestamp_ns,
                        ref.type_id,
                        ref.payload_offset,
                        ref.payload_len,
                    )

        candidates = [
            (pending.timestamp_ns, index)
            for index, pending in enumerate(self._pending)
            if pending is not None
        ]
        if not candidates:
            return None
        _, source = min(candidates)

        message = self._pending[source]
        if message is None:
            raise CorruptError("pending message missing")
        self._pending[source] = None
        payload = self._readers[source].payload_at(
            message.payload_offset, message.payload_len
        )
        return MergedMessage(
            source=source,
            seq=message.seq,
            timestamp_ns=message.timestamp_ns,
            type_id=message.type_id,
            payload=bytes(payload),
        )

    def __iter__(self) -> Iterator[MergedMessage]:
        while (message := self.next()) is not None:
            yield message

    def commit(self, source: int) -> None:
        """Commit the last message read from reader ``source``."""
        if not 0 <= source < len(self._readers):
            raise UnsupportedError("invalid fan-in source")
        self._readers[source].commit()