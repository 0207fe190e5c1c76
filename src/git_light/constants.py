import os
from pathlib import Path

"""Global constants and path definitions for GitLight.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the fixed values shared by the sync engine and its
notification surfaces.
"""

# --- Identity ---
APP_NAME = "git-light"
"""str: The human-readable application name (also the logger name)."""

APP_LABEL = "GitLight"
"""str: The prefix used in notifications and log lines."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-light"
"""Path: The directory for runtime state data (logs, pid)."""

# Ensure state directory exists immediately upon module import.
STATE_DIR.mkdir(parents=True, exist_ok=True)

LOG_FILE = STATE_DIR / "daemon.log"
"""Path: The file path for the daemon process logs."""

PID_FILE = STATE_DIR / "daemon.pid"
"""Path: The file path storing the daemon's process ID."""

# --- Configuration Paths ---
_XDG_CONFIG = os.environ.get("XDG_CONFIG_HOME")
CONFIG_DIR: Path = (
    Path(_XDG_CONFIG) if _XDG_CONFIG else Path.home() / ".config"
) / "git-light"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

# --- Sync Constants ---
DEFAULT_SYNC_INTERVAL = 3600
"""int: Seconds between automatic syncs when not configured."""

COMMIT_MESSAGE = "GitLight Sync"
"""str: The fixed message used for every sync commit."""

SUCCESS_NOTICE_SECONDS = 5
"""int: How long a success notification stays on screen."""

FAILURE_NOTICE_SECONDS = 24 * 3600
"""int: How long a failure notification stays on screen."""
