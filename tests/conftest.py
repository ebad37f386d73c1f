"""Pytest configuration and shared fixtures for auto-loader tests."""

import io
import zipfile
from pathlib import Path
from types import SimpleNamespace
from typing import Callable, Dict, List, Optional

import pytest

from gmod_autoloader.config.settings import LoaderSettings


# Test constants
TEST_FEED_URL = "https://api.github.com/repos/example/loader/releases/latest"
TEST_ADDON_FEED_URL = "https://api.github.com/repos/example/addon/releases/latest"


def make_zip(entries: Dict[str, bytes], directories: Optional[List[str]] = None) -> bytes:
    """Build a zip archive in memory from name -> content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name in directories or []:
            zf.writestr(zipfile.ZipInfo(name), b"")
        for name, content in entries.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def release_payload(tag: str, asset_names: List[str], zipball_url: Optional[str] = None) -> dict:
    """Build a release feed JSON body."""
    payload = {
        "tag_name": tag,
        "name": f"Release {tag}",
        "published_at": "2024-01-15T10:30:00Z",
        "assets": [
            {
                "name": name,
                "browser_download_url": f"https://example.com/download/{tag}/{name}",
                "size": 4096,
                "content_type": "application/octet-stream",
            }
            for name in asset_names
        ],
    }
    if zipball_url:
        payload["zipball_url"] = zipball_url
    return payload


class FakeLibraryFactory:
    """Stands in for ctypes.CDLL, recording every load."""

    def __init__(self, exports: Optional[Dict[str, Callable]] = None, error: Exception = None):
        self.exports = exports or {}
        self.error = error
        self.loaded: List[str] = []

    def __call__(self, path: str):
        self.loaded.append(path)
        if self.error:
            raise self.error
        return SimpleNamespace(**self.exports)


@pytest.fixture
def make_zip_bytes() -> Callable[..., bytes]:
    """Provide the in-memory zip builder."""
    return make_zip


@pytest.fixture
def make_release_payload() -> Callable[..., dict]:
    """Provide the release feed body builder."""
    return release_payload


@pytest.fixture
def library_factory_cls() -> type:
    """Provide the fake ctypes.CDLL class."""
    return FakeLibraryFactory


@pytest.fixture
def test_settings() -> LoaderSettings:
    """Settings with small size envelopes and no run markers."""
    return LoaderSettings(
        binary_min_bytes=1,
        archive_min_bytes=22,
        write_run_marker=False,
    )


@pytest.fixture
def game_root(tmp_path: Path) -> Path:
    """Provide an empty game root directory."""
    root = tmp_path / "server"
    root.mkdir()
    return root


@pytest.fixture
def sample_module(tmp_path: Path) -> Path:
    """Create a mock installed native module file."""
    module = tmp_path / "bin" / "gmsv_x_linux64.dll"
    module.parent.mkdir(parents=True)
    module.write_bytes(b"\x7fELF" + b"\x00" * 100)  # Mock ELF header
    return module
