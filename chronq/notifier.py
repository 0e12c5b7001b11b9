"""Cross-process wake-ups for readers blocked on an empty queue.

On Linux each waiting reader owns an eventfd and advertises it through a
``<name>.efd`` record (``"<pid> <fd>"``) in the queue's readers directory.
The writer opens every advertised eventfd and signals all of them after an
append. Elsewhere readers fall back to a short sleep and the writer does
nothing.
"""

from __future__ import annotations

import os
import select
import sys
import threading
import time
from pathlib import Path

from .errors import ChronicleError, CorruptError

EFD_SUFFIX = ".efd"

_RESCAN_INTERVAL = 0.1
_FALLBACK_SLEEP = 0.001
_EVENTFD_LINK = "anon_inode:[eventfd]"
_SUPPORTED = sys.platform.startswith("linux") and hasattr(os, "eventfd")


def _write_efd_record(path: Path, pid: int, fd: int) -> None:
    tmp_path = path.with_name(path.name + ".tmp")
    tmp_path.write_text(f"{pid} {fd}\n")
    os.replace(tmp_path, path)


def _parse_efd_record(path: Path) -> tuple[int, int]:
    parts = path.read_text().split()
    if not parts:
        raise CorruptError("missing pid in efd record")
    try:
        pid = int(parts[0])
    except ValueError:
        raise CorruptError("invalid pid in efd record") from None
    if pid < 0:
        raise CorruptError("invalid pid in efd record")
    if len(parts) < 2:
        raise CorruptError("missing fd in efd record")
    try:
        fd = int(parts[1])
    except ValueError:
        raise CorruptError("invalid fd in efd record") from None
    return pid, fd


def _open_reader_fd(pid: int, fd: int) -> int:
    """Open a private handle on another (or this) process's eventfd."""
    proc_path = f"/proc/{pid}/fd/{fd}"
    if os.readlink(proc_path) != _EVENTFD_LINK:
        raise CorruptError("efd record does not name an eventfd")
    if pid == os.getpid():
        return os.dup(fd)
    return os.open(proc_path, os.O_RDWR | os.O_CLOEXEC | os.O_NONBLOCK)


class ReaderNotifier:
    """A reader's wake-up channel; :meth:`wait` blocks until signalled."""

    def __init__(self, readers_dir, name: str) -> None:
        self._fd: int | None = None
        self._efd_path: Path | None = None
        self._closed = False
        if not _SUPPORTED:
            return
        readers_dir = Path(readers_dir)
        readers_dir.mkdir(parents=True, exist_ok=True)
        efd_path = readers_dir / f"{name}{EFD_SUFFIX}"
        fd = os.eventfd(0, os.EFD_NONBLOCK | os.EFD_CLOEXEC)
        try:
            _write_efd_record(efd_path, os.getpid(), fd)
        except BaseException:
            os.close(fd)
            raise
        self._fd = fd
        self._efd_path = efd_path

    def wait(self) -> None:
        """Block until a writer signals, consuming the pending signal."""
        if self._closed:
            raise ValueError("notifier is closed")
        if self._fd is None:
            time.sleep(_FALLBACK_SLEEP)
            return
        poller = select.poll()
        poller.register(self._fd, select.POLLIN)
        poller.poll()
        try:
            os.eventfd_read(self._fd)
        except BlockingIOError:
            pass

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._efd_path is not None:
            try:
                self._efd_path.unlink()
            except FileNotFoundError:
                pass
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "ReaderNotifier":
        return self

    def __exit__(self, *args) -> None:
        self.close()


class WriterNotifier:
    """Tracks the readers advertised in a directory and wakes them all."""

    def __init__(self, readers_dir) -> None:
        self._readers_dir = Path(readers_dir)
        self._readers: dict[str, int] = {}
        self._signatures: dict[str, tuple[int, int, int]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._worker: threading.Thread | None = None
        if not _SUPPORTED:
            return
        self._readers_dir.mkdir(parents=True, exist_ok=True)
        self._rescan()
        self._worker = threading.Thread(
            target=self._watch, name="chronq-reader-watch", daemon=True
        )
        self._worker.start()

    def _watch(self) -> None:
        while not self._stop.wait(_RESCAN_INTERVAL):
            try:
                self._rescan()
            except OSError:
                continue

    def _rescan(self) -> None:
        current: dict[str, tuple[int, int, int]] = {}
        with os.scandir(self._readers_dir) as entries:
            for entry in entries:
                if not entry.name.endswith(EFD_SUFFIX):
                    continue
                name = entry.name[: -len(EFD_SUFFIX)]
                if not name:
                    continue
                try:
                    info = entry.stat()
                except FileNotFoundError:
                    continue
                current[name] = (info.st_ino, info.st_mtime_ns, info.st_size)

        for name in self._signatures.keys() - current.keys():
            self._remove_reader(name)
        for name, signature in current.items():
            if self._signatures.get(name) == signature:
                continue
            path = self._readers_dir / f"{name}{EFD_SUFFIX}"
            try:
                self._add_reader(name, path)
            except (ChronicleError, OSError, ValueError):
                pass
        self._signatures = current

    def _add_reader(self, name: str, path: Path) -> None:
        pid, fd = _parse_efd_record(path)
        new_fd = _open_reader_fd(pid, fd)
        with self._lock:
            if self._stop.is_set():
                os.close(new_fd)
                return
            old_fd = self._readers.get(name)
            self._readers[name] = new_fd
        if old_fd is not None:
            os.close(old_fd)

    def _remove_reader(self, name: str) -> None:
        with self._lock:
            fd = self._readers.pop(name, None)
        if fd is not None:
            os.close(fd)

    def notify_all(self) -> None:
        """Signal every known reader; readers that cannot be reached are dropped."""
        with self._lock:
            entries = list(self._readers.items())
        stale = []
        for name, fd in entries:
            try:
                os.eventfd_write(fd, 1)
            except BlockingIOError:
                pass
            except OSError:
                stale.append((name, fd))
        if not stale:
            return
        with self._lock:
            for name, fd in stale:
                if self._readers.get(name) == fd:
                    del self._readers[name]
                    os.close(fd)

    def close(self) -> None:
        self._stop.set()
        if self._worker is not None:
            self._worker.join()
            self._worker = None
        with self._lock:
            fds = list(self._readers.values())
            self._readers.clear()
        for fd in fds:
            os.close(fd)

    def __enter__(self) -> "WriterNotifier":
        return self

    def __exit__(self, *args) -> None:
        self.close()