"""Unit tests for settings, credentials, paths and platform detection."""

import json
import pytest
from pathlib import Path
from unittest.mock import patch

from gmod_autoloader.config import paths
from gmod_autoloader.config.components import (
    ArtifactKind,
    ComponentSpec,
    DEFAULT_DEPENDENCIES,
    DEFAULT_PRIMARY,
)
from gmod_autoloader.config.credentials import CredentialManager
from gmod_autoloader.config.platform_key import PlatformKey, detect_platform
from gmod_autoloader.config.settings import LoaderSettings, SettingsManager


class TestLoaderSettings:
    """Tests for LoaderSettings dataclass."""

    def test_default_values(self):
        """Test default settings values."""
        settings = LoaderSettings()
        assert settings.user_agent == "Gmod-Auto-Loader"
        assert settings.metadata_timeout == 30
        assert settings.download_timeout == 120
        assert settings.check_updates is True
        assert settings.write_update_signal is True
        assert settings.log_level == "INFO"

    def test_size_limits(self):
        """Test size envelope properties."""
        settings = LoaderSettings(binary_min_bytes=10, binary_max_bytes=20)
        assert settings.binary_size_limits == (10, 20)
        assert settings.archive_size_limits == (22, 256 * 1024 * 1024)

    def test_from_dict_ignores_unknown_keys(self):
        """Test that from_dict ignores unknown keys."""
        settings = LoaderSettings.from_dict({
            "download_timeout": 300,
            "unknown_field": "should be ignored",
        })

        assert settings.download_timeout == 300
        assert not hasattr(settings, "unknown_field")

    def test_from_dict_with_missing_keys(self):
        """Test that from_dict uses defaults for missing keys."""
        settings = LoaderSettings.from_dict({"log_level": "DEBUG"})

        assert settings.log_level == "DEBUG"
        assert settings.metadata_timeout == 30


class TestSettingsManager:
    """Tests for SettingsManager class."""

    @pytest.fixture
    def temp_settings_path(self, tmp_path):
        """Create a temporary settings path."""
        return tmp_path / "data" / "autoloader_settings.json"

    @pytest.fixture
    def manager(self, temp_settings_path):
        """Create a SettingsManager with temp path."""
        return SettingsManager(config_path=temp_settings_path)

    def test_load_returns_defaults_when_file_missing(self, manager):
        """Test loading settings when file doesn't exist."""
        settings = manager.load()
        assert settings == LoaderSettings()

    def test_save_and_load_roundtrip(self, manager, temp_settings_path):
        """Test saved settings are loaded back."""
        manager.save(LoaderSettings(download_timeout=60, write_run_marker=False))

        assert temp_settings_path.exists()
        loaded = SettingsManager(temp_settings_path).load()
        assert loaded.download_timeout == 60
        assert loaded.write_run_marker is False

    def test_load_invalid_json_returns_defaults(self, manager, temp_settings_path):
        """Test loading a corrupt file falls back to defaults."""
        temp_settings_path.parent.mkdir(parents=True)
        temp_settings_path.write_text("{ not json")

        assert manager.load() == LoaderSettings()

    def test_load_non_object_returns_defaults(self, manager, temp_settings_path):
        """Test loading a JSON list falls back to defaults."""
        temp_settings_path.parent.mkdir(parents=True)
        temp_settings_path.write_text(json.dumps([1, 2, 3]))

        assert manager.load() == LoaderSettings()

    def test_reset_removes_file(self, manager, temp_settings_path):
        """Test reset deletes the file and returns defaults."""
        manager.save(LoaderSettings(log_level="DEBUG"))

        settings = manager.reset()

        assert settings.log_level == "INFO"
        assert not temp_settings_path.exists()

    def test_update_ignores_unknown_and_derived_fields(self, manager):
        """Test update only touches real fields."""
        updated = manager.update(
            log_level="WARNING",
            nonexistent_field="ignored",
            binary_size_limits=(1, 2),
        )

        assert updated.log_level == "WARNING"
        assert updated.binary_size_limits == (1024, 64 * 1024 * 1024)


class TestCredentialManager:
    """Tests for CredentialManager class."""

    @pytest.fixture
    def credential_manager(self):
        """Create a CredentialManager instance."""
        return CredentialManager()

    def test_make_key(self, credential_manager):
        """Test _make_key namespaces the account."""
        assert credential_manager._make_key("default") == "github:default"

    @patch("keyring.get_password")
    def test_get_token_found(self, mock_get, credential_manager):
        """Test retrieving an existing token."""
        mock_get.return_value = "ghp_example"

        assert credential_manager.get_token() == "ghp_example"
        mock_get.assert_called_once_with(CredentialManager.SERVICE_NAME, "github:default")

    @patch("keyring.get_password")
    def test_get_token_missing(self, mock_get, credential_manager):
        """Test a missing token is None."""
        mock_get.return_value = None

        assert credential_manager.get_token("ci") is None
        mock_get.assert_called_once_with(CredentialManager.SERVICE_NAME, "github:ci")

    @patch("keyring.get_password")
    def test_get_token_error(self, mock_get, credential_manager):
        """Test get_token degrades to None when the keyring is unusable."""
        from keyring.errors import KeyringError
        mock_get.side_effect = KeyringError("No backend")

        assert credential_manager.get_token() is None


class TestPaths:
    """Tests for host path helpers."""

    def test_paths_are_relative_to_game_root(self, tmp_path):
        """Test every path lives under the given game root."""
        assert paths.get_bin_dir(tmp_path) == tmp_path / "garrysmod" / "lua" / "bin"
        assert paths.get_addons_dir(tmp_path) == tmp_path / "garrysmod" / "addons"
        assert paths.get_version_cache_path(tmp_path).name == "versions.json"
        assert paths.get_update_signal_path(tmp_path).parent == tmp_path / paths.DATA_DIR

    def test_paths_do_not_create_directories(self, tmp_path):
        """Test computing paths leaves the game root untouched."""
        paths.get_version_cache_path(tmp_path)
        paths.get_update_signal_path(tmp_path)
        paths.get_settings_path(tmp_path)
        paths.get_log_file_path(tmp_path)

        assert list(tmp_path.iterdir()) == []

    def test_paths_under_unusable_data_dir(self, tmp_path):
        """Test paths can be computed when garrysmod/data is a file."""
        (tmp_path / "garrysmod").mkdir()
        (tmp_path / "garrysmod" / "data").write_text("not a directory")

        settings_path = paths.get_settings_path(tmp_path)

        assert settings_path.parent == tmp_path / paths.DATA_DIR
        assert not settings_path.exists()

    def test_bin_dir_not_created(self, tmp_path):
        """Test the bin directory is left to the installer."""
        assert not paths.get_bin_dir(tmp_path).exists()

    def test_default_root_is_cwd(self, tmp_path, monkeypatch):
        """Test the working directory is the default game root."""
        monkeypatch.chdir(tmp_path)
        assert paths.get_game_root() == Path(tmp_path)


class TestPlatformKey:
    """Tests for platform detection."""

    @pytest.mark.parametrize("system,machine,expected", [
        ("Windows", "AMD64", PlatformKey.WIN64),
        ("Windows", "x86", PlatformKey.WIN32),
        ("Linux", "x86_64", PlatformKey.LINUX64),
        ("Linux", "i686", PlatformKey.LINUX),
        ("Darwin", "x86_64", PlatformKey.LINUX64),
    ])
    def test_detect_platform(self, system, machine, expected):
        """Test the four-way platform mapping."""
        assert detect_platform(system, machine) is expected


class TestComponentSpec:
    """Tests for component definitions."""

    def test_asset_name_with_prefix(self):
        """Test <prefix>_<name>_<suffix>.<ext>."""
        component = ComponentSpec(name="x", feed_url="", asset_prefix="gmsv")
        assert component.asset_name(PlatformKey.LINUX64) == "gmsv_x_linux64.dll"

    def test_asset_name_without_prefix(self):
        """Test the prefix is omitted when empty."""
        component = ComponentSpec(name="gmod_integration", feed_url="")
        assert component.asset_name(PlatformKey.WIN32) == "gmod_integration_win32.dll"

    def test_archive_url_prefers_zipball(self):
        """Test the feed zipball URL wins over the template."""
        component = ComponentSpec(
            name="addon",
            feed_url="",
            kind=ArtifactKind.ARCHIVE,
            source_archive_url="https://example.com/{tag}.zip",
        )
        assert component.archive_url_for("v1", "https://api/zipball/v1") == "https://api/zipball/v1"
        assert component.archive_url_for("v1") == "https://example.com/v1.zip"

    def test_defaults_match_deployment(self):
        """Test the default components and their unique names."""
        names = [c.name for c in DEFAULT_DEPENDENCIES] + [DEFAULT_PRIMARY.name]
        assert len(names) == len(set(names))
        assert DEFAULT_DEPENDENCIES[1].asset_name(PlatformKey.WIN64) == (
            "gmsv_gmod_integration_loader_win64.dll"
        )
        assert DEFAULT_PRIMARY.is_archive
        assert DEFAULT_PRIMARY.directory_name == "gmod_integration_latest"
