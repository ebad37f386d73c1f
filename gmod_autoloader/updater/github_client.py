"""Release feed client for the auto-loader.

Fetches release metadata from GitHub-style release feeds and streams
asset downloads. Every request carries the fixed User-Agent and an
explicit timeout; a timeout is reported the same way as any other
transport failure.
"""

import logging
import time
from typing import BinaryIO, Optional

import requests

from gmod_autoloader.config.components import ComponentSpec
from gmod_autoloader.config.platform_key import PlatformKey
from gmod_autoloader.updater.exceptions import (
    DecodeError,
    HttpStatusError,
    InvalidReleaseError,
    NetworkError,
)
from gmod_autoloader.updater.release import AssetInfo, ReleaseInfo

logger = logging.getLogger("gmod_autoloader.github_client")


DEFAULT_USER_AGENT = "Gmod-Auto-Loader"

# Request timeouts in seconds
METADATA_TIMEOUT = 30
DOWNLOAD_TIMEOUT = 120

CHUNK_SIZE = 64 * 1024


class ReleaseClient:
    """Client for release feeds and asset downloads."""

    def __init__(
        self,
        user_agent: str = DEFAULT_USER_AGENT,
        metadata_timeout: int = METADATA_TIMEOUT,
        download_timeout: int = DOWNLOAD_TIMEOUT,
        token: Optional[str] = None,
    ):
        """
        Initialize the release client.

        Args:
            user_agent: User-Agent sent with every request
            metadata_timeout: Timeout for release metadata requests
            download_timeout: Timeout for asset and archive downloads
            token: Optional API token sent with metadata requests
        """
        self._metadata_timeout = metadata_timeout
        self._download_timeout = download_timeout
        self._token = token
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": user_agent})

    def _metadata_headers(self) -> dict:
        headers = {"Accept": "application/vnd.github+json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _get(self, url: str, timeout: int, **kwargs) -> requests.Response:
        """
        Issue a GET request and check the status.

        Raises:
            NetworkError: On transport failure or timeout
            HttpStatusError: On a non-success status
        """
        try:
            logger.debug(f"Making request to: {url}")
            response = self._session.get(url, timeout=timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"Request timed out: {url}")
            raise NetworkError(url, e)
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {url}: {e}")
            raise NetworkError(url, e)

        if not 200 <= response.status_code < 300:
            detail = ""
            if response.status_code == 403 and "rate limit" in (response.text or "").lower():
                detail = "API rate limit exceeded"
                logger.warning("GitHub API rate limit exceeded")
            response.close()
            raise HttpStatusError(url, response.status_code, detail)

        return response

    def fetch_latest(self, feed_url: str, require_assets: bool = True) -> ReleaseInfo:
        """
        Fetch the latest release from a feed.

        Args:
            feed_url: Release feed URL
            require_assets: Reject releases without any asset

        Returns:
            ReleaseInfo for the latest release

        Raises:
            NetworkError: If unable to connect or the request timed out
            HttpStatusError: If the feed answered with an error status
            DecodeError: If the body is not a release object
            InvalidReleaseError: If the tag or asset list is empty
        """
        logger.info(f"Fetching latest release from {feed_url}")
        response = self._get(feed_url, self._metadata_timeout, headers=self._metadata_headers())

        try:
            data = response.json()
        except ValueError as e:
            raise DecodeError(feed_url, "body is not JSON", e)

        if not isinstance(data, dict):
            raise DecodeError(feed_url, "expected a JSON object")
        if not isinstance(data.get("tag_name", ""), str):
            raise DecodeError(feed_url, "tag_name is not a string")
        assets = data.get("assets", [])
        if not isinstance(assets, list) or not all(isinstance(a, dict) for a in assets):
            raise DecodeError(feed_url, "assets is not a list of objects")

        release = ReleaseInfo.from_api_response(data)

        if not release.tag:
            raise InvalidReleaseError(feed_url, "empty tag")
        if require_assets and not release.assets:
            raise InvalidReleaseError(feed_url, "no assets")

        logger.info(f"Found latest release: {release.tag} ({len(release.assets)} assets)")
        return release

    def resolve_asset(
        self,
        release: ReleaseInfo,
        component: ComponentSpec,
        platform: PlatformKey
    ) -> Optional[AssetInfo]:
        """
        Select the platform asset for a component.

        Returns:
            Matching AssetInfo, or None when the release has no build for
            this platform
        """
        expected = component.asset_name(platform)
        asset = release.find_platform_asset(component, platform)
        if asset is None:
            logger.info(f"Release {release.tag} has no asset named {expected}")
        return asset

    def download_to(
        self,
        url: str,
        fileobj: BinaryIO,
    ) -> int:
        """
        Stream a download into an open binary file.

        The requests timeout bounds each read. The whole transfer is
        bounded by the same download timeout.

        Args:
            url: URL to download
            fileobj: Writable binary file object

        Returns:
            Number of bytes written

        Raises:
            NetworkError: If the transfer fails or times out
            HttpStatusError: If the server answered with an error status
            OSError: If writing to the file fails
        """
        logger.info(f"Downloading {url}")
        deadline = time.monotonic() + self._download_timeout
        response = self._get(url, self._download_timeout, stream=True)

        downloaded = 0
        try:
            for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                if chunk:
                    fileobj.write(chunk)
                    downloaded += len(chunk)
                if time.monotonic() > deadline:
                    raise requests.exceptions.Timeout(
                        f"Download exceeded {self._download_timeout}s"
                    )
        except requests.exceptions.RequestException as e:
            logger.error(f"Download interrupted after {downloaded} bytes: {e}")
            raise NetworkError(url, e)
        finally:
            response.close()

        logger.info(f"Downloaded {downloaded} bytes from {url}")
        return downloaded

    def close(self) -> None:
        """Close the HTTP session."""
        self._session.close()

    def __enter__(self) -> "ReleaseClient":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()
