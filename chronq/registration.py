"""Registration of a named reader in a queue's readers directory."""

from __future__ import annotations

import contextlib
from pathlib import Path


class ReaderRegistration:
    """Owns a reader's ``readers/<name>.meta`` path; closing removes the file."""

    def __init__(self, reader_name: str, meta_path: Path) -> None:
        self._reader_name = reader_name
        self._meta_path = meta_path

    @classmethod
    def register(cls, queue_dir, reader_name: str) -> "ReaderRegistration":
        if not reader_name:
            raise ValueError("reader name cannot be empty")
        readers_dir = Path(queue_dir) / "readers"
        readers_dir.mkdir(parents=True, exist_ok=True)
        return cls(reader_name, readers_dir / f"{reader_name}.meta")

    @property
    def meta_path(self) -> Path:
        return self._meta_path

    @property
    def reader_name(self) -> str:
        return self._reader_name

    def close(self) -> None:
        with contextlib.suppress(OSError):
            self._meta_path.unlink()

    def __enter__(self) -> "ReaderRegistration":
        return self

    def __exit__(self, *args) -> None:
        self.close()