"""Release data models for the auto-loader.

Defines the dataclasses parsed from a release feed. Releases are fetched
fresh on every run and never persisted as-is.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from gmod_autoloader.config.components import ComponentSpec
from gmod_autoloader.config.platform_key import PlatformKey


@dataclass
class AssetInfo:
    """A downloadable file belonging to a release."""
    name: str
    download_url: str
    size: int = 0
    content_type: str = ""

    @classmethod
    def from_api_response(cls, data: dict) -> "AssetInfo":
        """Create AssetInfo from a release feed asset object."""
        return cls(
            name=data.get("name") or "",
            download_url=data.get("browser_download_url") or "",
            size=data.get("size") or 0,
            content_type=data.get("content_type") or "",
        )


@dataclass
class ReleaseInfo:
    """Latest published version of a remote component."""
    tag: str
    assets: List[AssetInfo] = field(default_factory=list)
    zipball_url: Optional[str] = None
    name: str = ""
    published_at: Optional[datetime] = None

    def get_asset(self, name: str) -> Optional[AssetInfo]:
        """Get asset by exact name."""
        for asset in self.assets:
            if asset.name == name:
                return asset
        return None

    def find_platform_asset(
        self,
        component: ComponentSpec,
        platform: PlatformKey
    ) -> Optional[AssetInfo]:
        """
        Find the asset built for a component on a platform.

        Args:
            component: Component whose asset name to build
            platform: Target platform

        Returns:
            Matching AssetInfo, or None if the release has no build for it
        """
        return self.get_asset(component.asset_name(platform))

    @classmethod
    def from_api_response(cls, data: dict) -> "ReleaseInfo":
        """Create ReleaseInfo from a release feed response object."""
        published_at = None
        if data.get("published_at"):
            try:
                published_at = datetime.fromisoformat(
                    data["published_at"].replace("Z", "+00:00")
                )
            except (ValueError, TypeError, AttributeError):
                pass

        assets = [
            AssetInfo.from_api_response(a)
            for a in data.get("assets") or []
        ]

        tag = data.get("tag_name") or ""
        return cls(
            tag=tag.strip() if isinstance(tag, str) else "",
            assets=assets,
            zipball_url=data.get("zipball_url") or None,
            name=data.get("name") or "",
            published_at=published_at,
        )
