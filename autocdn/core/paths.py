"""Centralized path constants for the AutoCDN control plane."""

from __future__ import annotations

import os
from pathlib import Path

# User-specific state (allows running from read-only project directories)
_USER_STATE_ENV = os.environ.get("AUTOCDN_STATE_DIR")
USER_STATE_DIR = Path(_USER_STATE_ENV).expanduser() if _USER_STATE_ENV else (Path.home() / ".autocdn")

# Application settings (key = value text file)
SETTINGS_PATH = USER_STATE_DIR / "autocdn.conf"

# Named configuration records live in the working directory by default,
# next to the candidate IP files the engine reads.
DEFAULT_CONFIG_DIR = Path.cwd()

LOGS_DIR = USER_STATE_DIR / "logs"
CONTROL_LOG_FILE = LOGS_DIR / "control.log"


__all__ = [
    "CONTROL_LOG_FILE",
    "DEFAULT_CONFIG_DIR",
    "LOGS_DIR",
    "SETTINGS_PATH",
    "USER_STATE_DIR",
]
