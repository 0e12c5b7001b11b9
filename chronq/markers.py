"""Marker files that endpoints publish in their queue directories."""

from __future__ import annotations

import os
from pathlib import Path

READY_NAME = "READY"
LEASE_NAME = "LEASE"


def mark_ready(endpoint_dir) -> None:
    """Atomically create an empty ``READY`` file in ``endpoint_dir``."""
    endpoint_dir = Path(endpoint_dir)
    endpoint_dir.mkdir(parents=True, exist_ok=True)
    tmp_path = endpoint_dir / f"{READY_NAME}.tmp"
    tmp_path.write_bytes(b"")
    os.replace(tmp_path, endpoint_dir / READY_NAME)


def write_lease(endpoint_dir, payload) -> None:
    """Write ``payload`` to the ``LEASE`` file in ``endpoint_dir``."""
    endpoint_dir = Path(endpoint_dir)
    endpoint_dir.mkdir(parents=True, exist_ok=True)
    (endpoint_dir / LEASE_NAME).write_bytes(bytes(payload))