"""Discovery of strategies that have published a ready ``orders_out`` queue."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .layout import BusLayout, StrategyId
from .markers import READY_NAME

RESCAN_INTERVAL = 0.5


@dataclass(frozen=True)
class Added:
    """A strategy became ready."""

    strategy: StrategyId
    orders_out: Path


@dataclass(frozen=True)
class Removed:
    """A previously ready strategy went away."""

    strategy: StrategyId


DiscoveryEvent = Union[Added, Removed]


def _orders_root(layout: BusLayout) -> Path:
    return layout.root / "orders" / "queue"


class _DirectoryWatcher:
    """Reports whether entries were added to or removed from a directory."""

    def __init__(self, directory: Path) -> None:
        self._directory = directory
        self._stamp = self._read_stamp()

    def _read_stamp(self):
        try:
            info = os.stat(self._directory)
        except FileNotFoundError:
            return None
        return (info.st_ino, info.st_mtime_ns, info.st_nlink)

    def drain(self) -> bool:
        stamp = self._read_stamp()
        changed = stamp is None or stamp != self._stamp
        self._stamp = stamp
        return changed


def _is_ready(orders_out: Path) -> bool:
    return (orders_out / READY_NAME).is_file()


def _scan_ready_strategies(layout: BusLayout) -> set[StrategyId]:
    root = _orders_root(layout)
    root.mkdir(parents=True, exist_ok=True)
    found: set[StrategyId] = set()
    try:
        entries = list(os.scandir(root))
    except FileNotFoundError:
        return found
    for entry in entries:
        try:
            if not entry.is_dir():
                continue
        except OSError:
            continue
        if not entry.name:
            continue
        strategy = StrategyId(entry.name)
        if _is_ready(layout.strategy_endpoints(strategy).orders_out):
            found.add(strategy)
    return found


class RouterDiscovery:
    """Tracks ready strategies under a bus and reports changes on :meth:`poll`."""

    def __init__(self, layout: BusLayout) -> None:
        self._layout = layout
        root = _orders_root(layout)
        root.mkdir(parents=True, exist_ok=True)
        self._watcher = _DirectoryWatcher(root)
        self._initialized = False
        self._known: set[StrategyId] = set()
        self._last_scan: float | None = None

    @property
    def layout(self) -> BusLayout:
        return self._layout

    def poll(self) -> list[DiscoveryEvent]:
        """Rescan if due and return added strategies, then removed ones."""
        should_scan = not self._initialized
        self._initialized = True
        if self._watcher.drain():
            should_scan = True
        now = time.monotonic()
        if self._last_scan is None or now - self._last_scan >= RESCAN_INTERVAL:
            should_scan = True
        if not should_scan:
            return []

        current = _scan_ready_strategies(self._layout)
        events: list[DiscoveryEvent] = [
            Added(strategy, self._layout.strategy_endpoints(strategy).orders_out)
            for strategy in sorted(current - self._known)
        ]
        events.extend(Removed(strategy) for strategy in sorted(self._known - current))
        self._known = current
        self._last_scan = now
        return events