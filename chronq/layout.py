"""Directory layout of a message bus."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from . import markers


@dataclass(frozen=True, order=True)
class StrategyId:
    """Name of a strategy endpoint on the bus."""

    name: str

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class StrategyEndpoints:
    """Queue directories a strategy writes to and reads from."""

    orders_out: Path
    orders_in: Path


class BusLayout:
    """Resolves bus paths relative to a root directory."""

    def __init__(self, root) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"BusLayout(root={str(self.root)!r})"

    def strategy_endpoints(self, strategy) -> StrategyEndpoints:
        name = strategy.name if isinstance(strategy, StrategyId) else str(strategy)
        base = self.root / "orders" / "queue" / name
        return StrategyEndpoints(
            orders_out=base / "orders_out",
            orders_in=base / "orders_in",
        )

    def mark_ready(self, endpoint_dir) -> None:
        markers.mark_ready(endpoint_dir)

    def write_lease(self, endpoint_dir, payload) -> None:
        markers.write_lease(endpoint_dir, payload)