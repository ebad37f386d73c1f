"""Loader settings management for the auto-loader.

Provides LoaderSettings dataclass and SettingsManager for persistence.
"""

import json
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional, Tuple


MIB = 1024 * 1024


@dataclass
class LoaderSettings:
    """Tunable settings read from the data directory on each run."""

    # HTTP
    user_agent: str = "Gmod-Auto-Loader"
    metadata_timeout: int = 30
    download_timeout: int = 120

    # Download size envelopes
    binary_min_bytes: int = 1024
    binary_max_bytes: int = 64 * MIB
    archive_min_bytes: int = 22  # Smallest valid zip (end of central directory only)
    archive_max_bytes: int = 256 * MIB

    # Behaviour
    check_updates: bool = True
    write_update_signal: bool = True
    write_run_marker: bool = True

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = True

    @property
    def binary_size_limits(self) -> Tuple[int, int]:
        """Accepted (min, max) byte size for binary downloads."""
        return self.binary_min_bytes, self.binary_max_bytes

    @property
    def archive_size_limits(self) -> Tuple[int, int]:
        """Accepted (min, max) byte size for archive downloads."""
        return self.archive_min_bytes, self.archive_max_bytes

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "LoaderSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)


class SettingsManager:
    """Manages loader settings persistence."""

    def __init__(self, config_path: Path):
        """
        Initialize settings manager.

        Args:
            config_path: Path of the settings JSON file
        """
        self._config_path = config_path
        self._settings: Optional[LoaderSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> LoaderSettings:
        """
        Load settings from disk.

        Returns:
            LoaderSettings instance (defaults if file not found)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("settings file is not a JSON object")
                self._settings = LoaderSettings.from_dict(data)
            except (ValueError, TypeError, OSError):
                # Invalid or unreadable file, use defaults
                self._settings = LoaderSettings()
        else:
            self._settings = LoaderSettings()

        return self._settings

    def save(self, settings: LoaderSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        # Ensure parent directory exists
        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def reset(self) -> LoaderSettings:
        """
        Reset to default settings.

        Returns:
            Default LoaderSettings instance
        """
        self._settings = LoaderSettings()

        if self._config_path.exists():
            self._config_path.unlink()

        return self._settings

    def update(self, **kwargs) -> LoaderSettings:
        """
        Update specific settings fields.

        Args:
            **kwargs: Field names and new values

        Returns:
            Updated LoaderSettings instance
        """
        if self._settings is None:
            self.load()

        valid_fields = set(LoaderSettings.__dataclass_fields__)
        for key, value in kwargs.items():
            if key in valid_fields:
                setattr(self._settings, key, value)

        self.save(self._settings)
        return self._settings
