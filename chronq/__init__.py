"""Memory-mapped queue primitives: record headers, control block, reader wake-ups, fan-in merging and bus discovery."""

__version__ = "0.1.0"

__all__ = [
    "control",
    "discovery",
    "errors",
    "header",
    "layout",
    "markers",
    "merge",
    "mmapfile",
    "notifier",
    "registration",
]