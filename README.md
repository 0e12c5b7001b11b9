# chronq

Building blocks for a persisted, memory-mapped message queue that processes on
one host share through the file system. The package provides the record header
format, the shared control block, reader wake-ups, a timestamp-ordered fan-in
merge and helpers for a directory-based bus of strategies.

There are no third-party dependencies.

## Modules

- `chronq.header`: the 64-byte `MessageHeader` record header, a frozen
  dataclass with `commit_len`, `seq`, `timestamp_ns`, `type_id`, `flags` and
  `reserved_u32`. `reserved_u32` holds the CRC-32 of the payload. The module
  also has these helpers:
  - `MessageHeader.new_uncommitted`, `to_bytes`, `from_bytes` and
    `validate_crc`.
  - `crc32(payload)`.
  - `commit_len_for_payload(n)`, which returns `n + 1` and raises
    `PayloadTooLargeError` above `MAX_PAYLOAD_LEN`.
  - `payload_len_from_commit(c)`, which raises `CorruptError` when `c` is 0.
  - `load_commit_len(buffer, offset)` and
    `store_commit_len(buffer, offset, value)`, which read and write the
    little-endian commit word.
  - The constants `HEADER_SIZE`, `RECORD_ALIGN`, `PAD_TYPE_ID` and the field
    offsets.
- `chronq.mmapfile`: `MmapFile` maps a whole file read-write and shared.
  - `create(path, length)` truncates the file or creates it.
  - `create_new(path, length)` fails if the file exists.
  - `open(path)` maps the file at its current size.
  - A zero length raises `UnsupportedError`.
  - `data` is the mapping itself.
  - `range(offset, length)` returns a bounds-checked writable `memoryview`.
  - `sync()` fsyncs the file. `flush_sync()` and `flush_async()` flush the
    mapping.
  - `MmapFile` is a context manager.
  - `lock()` and `unlock()` always raise `UnsupportedError`, because memory
    locking is not supported.
- `chronq.control`: `ControlFile` wraps a 512-byte `control.meta` block.
  - `create(path, current_segment, write_offset, writer_epoch, segment_size)`
    builds the block in a `.tmp` file beside `path` and then moves it into
    place.
  - `open(path)` maps an existing block.
  - `wait_ready()` waits for initialisation to finish. It then raises
    `CorruptMetadataError` on a bad magic and `UnsupportedVersionError` on an
    unknown version.
  - The properties are `current_segment`, `segment_size`, `write_offset`,
    `notify_seq`, `waiters_pending`, `writer_heartbeat_ns` and
    `writer_epoch`. All except the first two can be set.
  - `segment_index()` and `set_segment_index(segment, offset)` read and write
    the segment/offset pair consistently, under a generation counter.
- `chronq.notifier`: `ReaderNotifier(readers_dir, name)` and
  `WriterNotifier(readers_dir)`.
  - On Linux the reader creates an eventfd and advertises it in
    `readers_dir/<name>.efd` as `"<pid> <fd>"`. `wait()` blocks until it is
    signalled.
  - The writer rescans the directory every 100 ms in a background thread and
    opens each advertised eventfd through `/proc`. `notify_all()` signals every
    known reader.
  - On other platforms `wait()` sleeps for 1 ms and `notify_all()` does
    nothing.
  - Both classes are context managers. Closing a reader removes its `.efd`
    record.
- `chronq.merge`: `FanInReader(readers)` merges several readers.
  - `next()` returns the pending message with the smallest `timestamp_ns` as a
    `MergedMessage`, with the lower reader index winning ties. It returns
    `None` when every reader is empty.
  - Iterating the `FanInReader` yields messages until all readers are empty.
  - `commit(source)` commits the reader that a message came from. It raises
    `UnsupportedError` for an unknown index.
  - `add_reader(reader)` appends another source.
  - `wait()` follows `wait_strategy`, which is one of `BusySpin()`,
    `Sleep(duration)` or `SpinThenPark(spin_us)`. The default is
    `SpinThenPark(10)`, which spins and then sleeps for 100 µs.
- `chronq.layout`: `BusLayout(root)`, `StrategyId(name)` and
  `StrategyEndpoints`.
  - `strategy_endpoints(strategy)` returns
    `root/orders/queue/<name>/orders_out` and `.../orders_in`.
  - `mark_ready(dir)` and `write_lease(dir, payload)` delegate to
    `chronq.markers`.
- `chronq.markers`:
  - `mark_ready(endpoint_dir)` creates an empty `READY` file atomically, by
    writing `READY.tmp` and then renaming it.
  - `write_lease(endpoint_dir, payload)` writes `LEASE`.
  - Both create the directory if it is missing.
- `chronq.registration`: `ReaderRegistration.register(queue_dir, name)`.
  - It creates `queue_dir/readers` and exposes `meta_path`
    (`readers/<name>.meta`) and `reader_name`.
  - An empty name raises `ValueError`.
  - `close()` removes the meta file if it exists. The class is a context
    manager.
- `chronq.discovery`: `RouterDiscovery(layout)`.
  - `poll()` scans `root/orders/queue` for strategies whose `orders_out`
    directory holds a `READY` file.
  - It returns `Added(strategy, orders_out)` events, then `Removed(strategy)`
    events, each sorted by strategy name.
  - It scans on the first call, whenever the directory changes, and at least
    every 0.5 s. Otherwise it returns an empty list.
- `chronq.errors`: `ChronicleError` and its subclasses:
  - `CorruptError`
  - `CorruptMetadataError`
  - `UnsupportedError`
  - `UnsupportedVersionError`
  - `PayloadTooLargeError`
  - `QueueFullError`
  - `WriterAlreadyActiveError`

  Operating-system failures propagate as `OSError`.

## Install

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example: writing and reading a record by hand

```python
from chronq.header import (
    MessageHeader, crc32, commit_len_for_payload, load_commit_len, store_commit_len,
)
from chronq.mmapfile import MmapFile

payload = b"hello world"
header = MessageHeader.new_uncommitted(1, 42, 7, 0, crc32(payload))

with MmapFile.create("queue.q", 1024) as m:
    m.range(0, 64)[:] = header.to_bytes()
    m.range(64, len(payload))[:] = payload
    store_commit_len(m.data, 0, commit_len_for_payload(len(payload)))

with MmapFile.open("queue.q") as m:
    read = MessageHeader.from_bytes(m.data[0:64])
    assert load_commit_len(m.data, 0) > 0
    read.validate_crc(m.data[64:64 + len(payload)])
```

## Example: the control block

```python
from chronq.control import ControlFile

with ControlFile.create("control.meta", 0, 64, 1, 1 << 20) as control:
    control.set_segment_index(2, 4096)

with ControlFile.open("control.meta") as control:
    control.wait_ready()
    print(control.segment_index(), control.segment_size, control.writer_epoch)
```

## Example: discovering strategies

```python
from chronq.layout import BusLayout, StrategyId
from chronq.discovery import RouterDiscovery, Added, Removed

layout = BusLayout("./demo_bus")
endpoints = layout.strategy_endpoints(StrategyId("strategy_a"))
layout.mark_ready(endpoints.orders_out)

discovery = RouterDiscovery(layout)
for event in discovery.poll():
    if isinstance(event, Added):
        print("added", event.strategy, event.orders_out)
    elif isinstance(event, Removed):
        print("removed", event.strategy)
```

## What the package does not do

The package has no queue writer or reader of its own. It does not lay records
out in segment files, does not roll segments over, does not store reader
positions and does not delete old segments. It has no writer lock and no
command-line tool.

`FanInReader` needs reader objects that provide `peek_committed()`,
`next_ref()`, `payload_at(offset, length)` and `commit()`. You have to supply
them yourself.