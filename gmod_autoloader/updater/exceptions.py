"""Updater exceptions for the auto-loader.

Custom exception hierarchy for fetching, installing and loading
components, so the orchestrator can decide per failure whether to skip
a component, abandon the update or report the run as failed.
"""

from pathlib import Path
from typing import Optional, Union


class UpdaterError(Exception):
    """Base exception for all updater errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


class FetchError(UpdaterError):
    """Release metadata could not be obtained."""
    pass


class NetworkError(FetchError):
    """Transport failure or timeout talking to the release host."""

    def __init__(self, url: str, original_error: Exception = None):
        self.url = url
        message = f"Network error requesting {url}"
        super().__init__(message, original_error)


class HttpStatusError(FetchError):
    """The release host answered with a non-success status."""

    def __init__(self, url: str, status_code: int, detail: str = ""):
        self.url = url
        self.status_code = status_code
        message = f"HTTP {status_code} from {url}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class DecodeError(FetchError):
    """Release metadata is not in the expected JSON shape."""

    def __init__(self, url: str, reason: str, original_error: Exception = None):
        self.url = url
        self.reason = reason
        message = f"Malformed release metadata from {url}: {reason}"
        super().__init__(message, original_error)


class InvalidReleaseError(FetchError):
    """Release metadata parsed but is unusable (empty tag or assets)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        message = f"Invalid release from {url}: {reason}"
        super().__init__(message)


class AssetNotFoundError(UpdaterError):
    """No release asset matches the current platform."""

    def __init__(self, asset_name: str, tag: str = ""):
        self.asset_name = asset_name
        self.tag = tag
        message = f"No asset named '{asset_name}'"
        if tag:
            message = f"{message} in release {tag}"
        super().__init__(message)


class IntegrityError(UpdaterError):
    """Downloaded content failed a structural sanity check."""
    pass


class EmptyDownloadError(IntegrityError):
    """Download produced zero bytes."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Empty download from {url}")


class InvalidFormatError(IntegrityError):
    """Download does not start with the expected file signature."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Unexpected content from {url}: {reason}")


class SizeOutOfBoundsError(IntegrityError):
    """Download size falls outside the accepted envelope."""

    def __init__(self, url: str, size: int, min_size: int, max_size: int):
        self.url = url
        self.size = size
        self.min_size = min_size
        self.max_size = max_size
        message = (
            f"Download from {url} is {size} bytes, "
            f"expected between {min_size} and {max_size}"
        )
        super().__init__(message)


class FilesystemError(UpdaterError):
    """Creating, writing, renaming or removing a path failed."""

    def __init__(
        self,
        path: Union[str, Path],
        operation: str,
        original_error: Exception = None
    ):
        self.path = Path(path)
        self.operation = operation
        message = f"Failed to {operation} '{path}'"
        super().__init__(message, original_error)


class UnsafePathError(UpdaterError):
    """Archive entry would be written outside the target directory."""

    def __init__(self, entry_name: str):
        self.entry_name = entry_name
        super().__init__(f"Unsafe archive entry rejected: '{entry_name}'")


class ArchiveCorruptError(UpdaterError):
    """Archive structure cannot be read."""

    def __init__(self, archive_path: Union[str, Path], original_error: Exception = None):
        self.archive_path = Path(archive_path)
        message = f"Corrupt archive '{archive_path}'"
        super().__init__(message, original_error)


class ModuleUnavailableError(UpdaterError):
    """The installed module file does not exist."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(f"Module not installed: '{path}'")


class ModuleLoadError(UpdaterError):
    """The module exists but could not be loaded or lacks the symbol."""

    def __init__(
        self,
        path: Union[str, Path],
        symbol: Optional[str] = None,
        original_error: Exception = None
    ):
        self.path = Path(path)
        self.symbol = symbol
        if symbol:
            message = f"Cannot resolve '{symbol}' in '{path}'"
        else:
            message = f"Cannot load module '{path}'"
        super().__init__(message, original_error)
