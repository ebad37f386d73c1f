"""Asset installer for the auto-loader.

Downloads a single asset next to its destination, validates it and
publishes it with one atomic rename, replacing any prior file.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Tuple

from gmod_autoloader.updater.exceptions import (
    EmptyDownloadError,
    FilesystemError,
    InvalidFormatError,
    SizeOutOfBoundsError,
)
from gmod_autoloader.updater.github_client import ReleaseClient
from gmod_autoloader.utils.validators import (
    read_signature,
    validate_archive_signature,
    validate_size,
)

logger = logging.getLogger("gmod_autoloader.installer")


TEMP_SUFFIX = ".tmp"


def temp_path_for(destination: Path) -> Path:
    """Temp file colocated with the destination (same filesystem)."""
    return destination.with_name(destination.name + TEMP_SUFFIX)


class AssetInstaller:
    """Downloads, validates and atomically publishes single files."""

    def __init__(self, client: ReleaseClient):
        """
        Initialize the installer.

        Args:
            client: Release client used for downloads
        """
        self._client = client

    def install(
        self,
        url: str,
        destination: Path,
        expect_archive: bool = False,
        size_limits: Optional[Tuple[int, int]] = None,
    ) -> Path:
        """
        Download a file and publish it at the destination.

        Args:
            url: Download URL
            destination: Final path of the file
            expect_archive: Require the zip signature
            size_limits: Optional inclusive (min_bytes, max_bytes)

        Returns:
            The destination path

        Raises:
            NetworkError: If the download fails or times out
            HttpStatusError: If the server answered with an error status
            IntegrityError: If the download fails validation
            FilesystemError: If the temp file cannot be written or published
        """
        destination = Path(destination)
        tmp_path = temp_path_for(destination)

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FilesystemError(destination.parent, "create directory", e)

        logger.debug(f"Writing to temporary file: {tmp_path}")
        try:
            try:
                with open(tmp_path, "wb") as f:
                    size = self._client.download_to(url, f)
            except OSError as e:
                raise FilesystemError(tmp_path, "write", e)

            self._validate(url, tmp_path, size, expect_archive, size_limits)

            try:
                os.replace(tmp_path, destination)
            except OSError as e:
                raise FilesystemError(destination, "publish", e)
        except Exception:
            self._discard(tmp_path)
            raise

        logger.info(f"Installed {destination.name} ({size} bytes)")
        return destination

    def _validate(
        self,
        url: str,
        tmp_path: Path,
        size: int,
        expect_archive: bool,
        size_limits: Optional[Tuple[int, int]],
    ) -> None:
        """Run structural checks on the downloaded temp file."""
        if size == 0:
            raise EmptyDownloadError(url)

        if expect_archive:
            try:
                header = read_signature(tmp_path)
            except OSError as e:
                raise FilesystemError(tmp_path, "read", e)
            is_valid, error = validate_archive_signature(header)
            if not is_valid:
                raise InvalidFormatError(url, error)

        is_valid, _ = validate_size(size, size_limits)
        if not is_valid:
            min_bytes, max_bytes = size_limits
            raise SizeOutOfBoundsError(url, size, min_bytes, max_bytes)

    def _discard(self, tmp_path: Path) -> None:
        """Remove a temp file, never leaving partial downloads behind."""
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Failed to remove temporary file {tmp_path}: {e}")
