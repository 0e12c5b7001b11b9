import time
from dataclasses import dataclass

import pytest

from chronq.errors import UnsupportedError
from chronq.merge import BusySpin, FanInReader, MergedMessage, Sleep, SpinThenPark


@dataclass
class _Ref:
    seq: int
    timestamp_ns: int
    type_id: int
    payload_offset: int
    payload_len: int


class FakeReader:
    """In-memory stand-in for a queue reader."""

    def __init__(self, messages=()):
        self.buffer = bytearray()
        self.refs = []
        self.cursor = 0
        self.commits = 0
        for timestamp, payload in messages:
            self.append(timestamp, payload)

    def append(self, timestamp, payload, type_id=1):
        offset = len(self.buffer)
        self.buffer.extend(payload)
        self.refs.append(_Ref(len(self.refs), timestamp, type_id, offset, len(payload)))

    def peek_committed(self):
        return self.cursor < len(self.refs)

    def next_ref(self):
        if self.cursor >= len(self.refs):
            return None
        ref = self.refs[self.cursor]
        self.cursor += 1
        return ref

    def payload_at(self, offset, length):
        return bytes(self.buffer[offset : offset + length])

    def commit(self):
        self.commits += 1


def test_merge_orders_by_timestamp_and_source():
    reader_a = FakeReader([(100, b"a1"), (300, b"a2")])
    reader_b = FakeReader([(200, b"b1"), (300, b"b2")])
    fanin = FanInReader([reader_a, reader_b])

    seen = []
    while (message := fanin.next()) is not None:
        seen.append((message.source, message.timestamp_ns, message.payload))

    assert seen == [
        (0, 100, b"a1"),
        (1, 200, b"b1"),
        (0, 300, b"a2"),
        (1, 300, b"b2"),
    ]


def test_merge_returns_none_when_empty():
    fanin = FanInReader([FakeReader(), FakeReader()])
    assert fanin.next() is None


def test_iteration_yields_full_messages():
    reader = FakeReader()
    reader.append(5, b"x", type_id=7)
    fanin = FanInReader([reader])
    assert list(fanin) == [
        MergedMessage(source=0, seq=0, timestamp_ns=5, type_id=7, payload=b"x")
    ]


def test_add_reader_joins_merge():
    fanin = FanInReader([FakeReader([(50, b"first")])])
    fanin.add_reader(FakeReader([(10, b"earlier")]))
    assert [(m.source, m.payload) for m in fanin] == [(1, b"earlier"), (0, b"first")]


def test_pending_message_kept_until_chosen():
    reader_a = FakeReader([(300, b"late")])
    reader_b = FakeReader([(100, b"early")])
    fanin = FanInReader([reader_a, reader_b])
    assert fanin.next().payload == b"early"
    reader_b.append(200, b"middle")
    assert fanin.next().payload == b"middle"
    assert fanin.next().payload == b"late"
    assert fanin.next() is None


def test_commit_forwards_to_source():
    reader_a = FakeReader([(1, b"a")])
    reader_b = FakeReader()
    fanin = FanInReader([reader_a, reader_b])
    message = fanin.next()
    fanin.commit(message.source)
    assert (reader_a.commits, reader_b.commits) == (1, 0)


@pytest.mark.parametrize("source", [2, -1])
def test_commit_invalid_source(source):
    fanin = FanInReader([FakeReader(), FakeReader()])
    with pytest.raises(UnsupportedError, match="invalid fan-in source"):
        fanin.commit(source)


def test_sleep_strategy_sleeps_when_idle():
    reader = FakeReader()
    fanin = FanInReader([reader])
    fanin.wait_strategy = Sleep(0.05)
    start = time.perf_counter()
    fanin.wait()
    elapsed = time.perf_counter() - start
    assert elapsed >= 0.04
    assert fanin.next() is None
    assert reader.cursor == 0


def test_sleep_strategy_returns_when_data_ready():
    fanin = FanInReader([FakeReader([(1, b"ready")])])
    fanin.wait_strategy = Sleep(5.0)
    start = time.perf_counter()
    fanin.wait()
    assert time.perf_counter() - start < 1.0
    assert fanin.next().payload == b"ready"


def test_busy_spin_returns_when_data_ready():
    fanin = FanInReader([FakeReader(), FakeReader([(2, b"spin")])])
    fanin.wait_strategy = BusySpin()
    fanin.wait()
    assert fanin.next().source == 1


def test_default_strategy_and_park_returns():
    fanin = FanInReader([FakeReader()])
    assert fanin.wait_strategy == SpinThenPark(spin_us=10)
    start = time.perf_counter()
    fanin.wait()
    assert time.perf_counter() - start < 1.0