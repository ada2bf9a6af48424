"""Centralized path constants for the device hub."""

from __future__ import annotations

import os
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Configuration (override with DEVICE_HUB_CONFIG)
_CONFIG_ENV = os.environ.get("DEVICE_HUB_CONFIG")
CONFIG_PATH = Path(_CONFIG_ENV).expanduser() if _CONFIG_ENV else PROJECT_ROOT / "config.txt"

LOGS_DIR = PROJECT_ROOT / "logs"
HUB_LOG_FILE = LOGS_DIR / "hub.log"
