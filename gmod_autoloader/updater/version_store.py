"""Installed-version persistence for the auto-loader.

The version cache maps component name to the release tag last installed
for it. It is the single source of truth for "what is installed now",
but may be stale relative to disk, so callers re-check artifacts.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict

logger = logging.getLogger("gmod_autoloader.version_store")


# Component name -> installed release tag
VersionCache = Dict[str, str]


class VersionStore:
    """Loads and saves the version cache JSON file."""

    def __init__(self, path: Path):
        """
        Initialize the version store.

        Args:
            path: Path of the version cache file
        """
        self._path = path

    @property
    def path(self) -> Path:
        """Path to the version cache file."""
        return self._path

    def load(self) -> VersionCache:
        """
        Load the version cache.

        Returns:
            Mapping of component name to tag; empty if the file is
            missing, unreadable or malformed
        """
        if not self._path.exists():
            return {}

        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (ValueError, OSError) as e:
            logger.warning(f"Ignoring unreadable version cache {self._path}: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring malformed version cache {self._path}")
            return {}

        return {
            str(name): tag
            for name, tag in data.items()
            if isinstance(tag, str) and tag
        }

    def save(self, cache: VersionCache) -> bool:
        """
        Persist the version cache.

        A failed write only costs a redundant download next run, so errors
        are logged and not raised.

        Args:
            cache: Mapping to save

        Returns:
            True if written, False otherwise
        """
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(cache, f, indent=2, sort_keys=True)
            os.replace(tmp_path, self._path)
        except OSError as e:
            logger.error(f"Failed to save version cache {self._path}: {e}")
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                pass
            return False

        logger.debug(f"Saved version cache: {cache}")
        return True
