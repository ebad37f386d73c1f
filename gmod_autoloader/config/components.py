"""Tracked components and their release feeds.

Each component is installed from the latest release of its own feed.
Dependencies are single native binaries placed in the bin directory; the
primary component is the addon, installed from its tag source archive.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from gmod_autoloader.config.platform_key import PlatformKey


GITHUB_API_BASE = "https://api.github.com"


def latest_release_url(owner: str, repo: str) -> str:
    """Build the GitHub "latest release" API URL for a repository."""
    return f"{GITHUB_API_BASE}/repos/{owner}/{repo}/releases/latest"


AUTO_LOADER_FEED = latest_release_url("gmod-integration", "auto-loader")
ADDON_FEED = latest_release_url("gmod-integration", "gmod-integration")
ADDON_ARCHIVE_URL = "https://github.com/gmod-integration/gmod-integration/archive/refs/tags/{tag}.zip"

# Real module the loader delegates to, and its lifecycle symbols
DELEGATE_MODULE = "gmsv_gmod_integration_loader"
START_SYMBOL = "gmod13_open"
STOP_SYMBOL = "gmod13_close"


class ArtifactKind(Enum):
    """How a component's download is installed."""
    BINARY = "binary"    # Single file published into the bin directory
    ARCHIVE = "archive"  # Zip extracted into an addon directory


@dataclass
class ComponentSpec:
    """A component tracked by the version store."""
    name: str
    feed_url: str
    kind: ArtifactKind = ArtifactKind.BINARY
    asset_prefix: str = ""
    asset_extension: str = "dll"
    install_name: Optional[str] = None
    use_source_archive: bool = False
    source_archive_url: Optional[str] = None
    renames: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def is_archive(self) -> bool:
        """True if the download is a zip to extract."""
        return self.kind == ArtifactKind.ARCHIVE

    def asset_name(self, platform: PlatformKey) -> str:
        """
        Build the expected asset filename for a platform.

        Args:
            platform: Target platform key

        Returns:
            Filename of the form <prefix>_<name>_<suffix>.<ext>
        """
        parts = [self.asset_prefix, self.name, platform.suffix]
        stem = "_".join(p for p in parts if p)
        if self.asset_extension:
            return f"{stem}.{self.asset_extension}"
        return stem

    def archive_url_for(self, tag: str, zipball_url: Optional[str] = None) -> Optional[str]:
        """
        Get the source archive URL for a release tag.

        Prefers the feed-provided zipball URL, then the configured template.
        """
        if zipball_url:
            return zipball_url
        if self.source_archive_url:
            return self.source_archive_url.format(tag=tag)
        return None

    @property
    def directory_name(self) -> str:
        """Directory name used for archive installs."""
        return self.install_name or self.name


DEFAULT_DEPENDENCIES: List[ComponentSpec] = [
    ComponentSpec(
        name="gmod_integration",
        feed_url=AUTO_LOADER_FEED,
    ),
    ComponentSpec(
        name="gmod_integration_loader",
        feed_url=AUTO_LOADER_FEED,
        asset_prefix="gmsv",
    ),
]

DEFAULT_PRIMARY = ComponentSpec(
    name="gmod_integration_addon",
    feed_url=ADDON_FEED,
    kind=ArtifactKind.ARCHIVE,
    asset_extension="zip",
    install_name="gmod_integration_latest",
    use_source_archive=True,
    source_archive_url=ADDON_ARCHIVE_URL,
)
