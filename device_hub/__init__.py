"""Top-level package for the device rendezvous hub."""

from __future__ import annotations

import asyncio
from importlib import metadata
from typing import Optional, Sequence

from .app.master import main

try:
    __version__ = metadata.version("device-hub")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def run(argv: Optional[Sequence[str]] = None) -> None:
    """Convenience wrapper that runs the async hub entry point."""
    try:
        asyncio.run(main(list(argv) if argv is not None else None))
    except KeyboardInterrupt:
        pass


__all__ = ["__version__", "main", "run"]
