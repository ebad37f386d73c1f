"""Updater module for release feeds and installation.

This module handles fetching and installing components:
- ReleaseClient: Release feed metadata and streamed downloads
- VersionStore: Persisted component -> installed tag mapping
- AssetInstaller: Temp-file download, validation and atomic publish
- ArchiveExtractor: Safe zip extraction with wrapper flattening
- Release models: ReleaseInfo, AssetInfo dataclasses
- Exceptions: Updater error taxonomy
"""

from .release import AssetInfo, ReleaseInfo
from .github_client import ReleaseClient
from .version_store import VersionStore
from .installer import AssetInstaller
from .extractor import ArchiveExtractor, ExtractionResult
from .exceptions import (
    UpdaterError,
    FetchError,
    NetworkError,
    HttpStatusError,
    DecodeError,
    InvalidReleaseError,
    AssetNotFoundError,
    IntegrityError,
    EmptyDownloadError,
    InvalidFormatError,
    SizeOutOfBoundsError,
    FilesystemError,
    UnsafePathError,
    ArchiveCorruptError,
    ModuleUnavailableError,
    ModuleLoadError,
)

__all__ = [
    # Release models
    "AssetInfo",
    "ReleaseInfo",
    # Components
    "ReleaseClient",
    "VersionStore",
    "AssetInstaller",
    "ArchiveExtractor",
    "ExtractionResult",
    # Exceptions
    "UpdaterError",
    "FetchError",
    "NetworkError",
    "HttpStatusError",
    "DecodeError",
    "InvalidReleaseError",
    "AssetNotFoundError",
    "IntegrityError",
    "EmptyDownloadError",
    "InvalidFormatError",
    "SizeOutOfBoundsError",
    "FilesystemError",
    "UnsafePathError",
    "ArchiveCorruptError",
    "ModuleUnavailableError",
    "ModuleLoadError",
]
