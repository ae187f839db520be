"""Top-level package for the AutoCDN control plane."""

from __future__ import annotations

from importlib import metadata
from typing import Optional, Sequence

from .app.main import main

try:
    __version__ = metadata.version("autocdn")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def run(argv: Optional[Sequence[str]] = None) -> None:
    """Console-script entry point."""
    raise SystemExit(main(list(argv) if argv is not None else None))


__all__ = ["__version__", "main", "run"]
