"""GitLight: Periodic git synchronization for a single working directory.

This package provides the command-line interface, background daemon, and the
sync engine that stages, commits, pulls and pushes a working directory on a
timer or on demand.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    notify,
    pipeline,
    runner,
    scheduler,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "notify",
    "pipeline",
    "runner",
    "scheduler",
]
