"""Application entrypoints for AutoCDN."""

from .main import main, parse_args

__all__ = ["main", "parse_args"]
