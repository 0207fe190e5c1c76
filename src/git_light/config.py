import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import APP_NAME, CONFIG_FILE, DEFAULT_SYNC_INTERVAL

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '30m') to seconds.

    Raises:
        ValueError: If the format is unknown or the value is negative.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"Interval must not be negative, got {value}")
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)?s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2) or "s"
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


@dataclass
class SyncConfig:
    """Sync engine settings.

    Attributes:
        interval (int): Seconds between automatic syncs. 0 disables the timer.
        working_dir (str): Absolute path of the git working directory to sync.
            An empty string means the engine is unconfigured.
    """

    interval: int = DEFAULT_SYNC_INTERVAL
    working_dir: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.working_dir.strip())


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        sync (SyncConfig): Sync engine settings.
        limits (LimitsConfig): Resource limits.
    """

    sync: SyncConfig = field(default_factory=SyncConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)

    @classmethod
    def load(cls, path: Path | None = None) -> "Config":
        """Loads configuration from disk, applying defaults where necessary.

        The file is re-read on every call so that a running daemon picks up
        edits on reload.

        Args:
            path (Path | None): Config file to read. Defaults to CONFIG_FILE.

        Returns:
            Config: The populated configuration object.
        """
        instance = cls()
        source = path or CONFIG_FILE
        if source.exists():
            instance._merge_from_file(source)
        return instance

    def _merge_from_file(self, path: Path) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            unknown = set(data.keys()) - {"sync", "limits"}
            if unknown:
                logger.warning(
                    f"Unknown config sections in {path.name}: "
                    f"{', '.join(sorted(unknown))}. Ignoring."
                )

            if "sync" in data:
                self.sync = self._update_dataclass("sync", self.sync, data["sync"])
            if "limits" in data:
                self.limits = self._update_dataclass(
                    "limits", self.limits, data["limits"]
                )

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: "
                f"{', '.join(sorted(invalid_keys))}. Ignoring."
            )

        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "interval":
                    filtered_updates[k] = parse_time(v)
                elif k == "working_dir":
                    if not isinstance(v, str):
                        raise ValueError(f"Expected a path string, got {v!r}")
                    filtered_updates[k] = str(Path(v).expanduser()) if v else ""
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
