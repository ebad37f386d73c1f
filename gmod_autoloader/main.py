"""Host entry points for the auto-loader.

The host calls ``gmod13_open`` once at startup and ``gmod13_close`` once
at shutdown, each with its opaque context. Both build a fresh
orchestrator from the on-disk settings and the default components.
"""

import logging
import sys
from pathlib import Path
from typing import Any, Optional, Union

from gmod_autoloader.config.components import (
    DEFAULT_DEPENDENCIES,
    DEFAULT_PRIMARY,
    DELEGATE_MODULE,
    START_SYMBOL,
    STOP_SYMBOL,
)
from gmod_autoloader.config.credentials import CredentialManager
from gmod_autoloader.config.paths import (
    get_addons_dir,
    get_bin_dir,
    get_log_file_path,
    get_settings_path,
    get_update_signal_path,
    get_version_cache_path,
)
from gmod_autoloader.config.platform_key import current_platform
from gmod_autoloader.config.settings import LoaderSettings, SettingsManager
from gmod_autoloader.loader.delegation import DelegationLoader, module_path_for
from gmod_autoloader.orchestrator import (
    EXIT_MODULE_LOAD_ERROR,
    EXIT_OK,
    UpdateOrchestrator,
    exit_code_for,
)
from gmod_autoloader.updater.extractor import ArchiveExtractor
from gmod_autoloader.updater.github_client import ReleaseClient
from gmod_autoloader.updater.installer import AssetInstaller
from gmod_autoloader.updater.version_store import VersionStore
from gmod_autoloader.utils.logging import setup_logging

logger = logging.getLogger("gmod_autoloader.main")

_logging_configured = False


def load_settings(game_root: Optional[Union[str, Path]] = None) -> LoaderSettings:
    """Load settings from the data directory (defaults if absent or unusable)."""
    try:
        return SettingsManager(get_settings_path(game_root)).load()
    except Exception as e:
        logger.warning(f"Cannot load settings, using defaults: {e}")
        return LoaderSettings()


def load_token() -> Optional[str]:
    """Read the optional API token (None if the keyring cannot be used)."""
    try:
        return CredentialManager().get_token()
    except Exception as e:
        logger.warning(f"Keyring unavailable, continuing without API token: {e}")
        return None


def configure_logging(
    settings: LoaderSettings,
    game_root: Optional[Union[str, Path]] = None
) -> None:
    """Configure logging once per process."""
    global _logging_configured
    if _logging_configured:
        return
    log_file = get_log_file_path(game_root) if settings.log_to_file else None
    setup_logging(level=settings.log_level, log_file=log_file)
    _logging_configured = True


def build_loader(game_root: Optional[Union[str, Path]] = None) -> DelegationLoader:
    """Delegation loader for the installed real module."""
    module_path = module_path_for(get_bin_dir(game_root), DELEGATE_MODULE, current_platform())
    return DelegationLoader(module_path)


def build_orchestrator(
    game_root: Optional[Union[str, Path]] = None,
    settings: Optional[LoaderSettings] = None,
) -> UpdateOrchestrator:
    """
    Wire an orchestrator with the default components.

    Args:
        game_root: Game root directory (default: working directory)
        settings: Loader settings (default: loaded from disk)

    Returns:
        Ready-to-run UpdateOrchestrator
    """
    settings = settings or load_settings(game_root)
    platform = current_platform()
    bin_dir = get_bin_dir(game_root)

    client = ReleaseClient(
        user_agent=settings.user_agent,
        metadata_timeout=settings.metadata_timeout,
        download_timeout=settings.download_timeout,
        token=load_token(),
    )

    return UpdateOrchestrator(
        client=client,
        installer=AssetInstaller(client),
        extractor=ArchiveExtractor(),
        version_store=VersionStore(get_version_cache_path(game_root)),
        loader=build_loader(game_root),
        dependencies=DEFAULT_DEPENDENCIES,
        primary=DEFAULT_PRIMARY,
        platform=platform,
        bin_dir=bin_dir,
        addons_dir=get_addons_dir(game_root),
        signal_path=get_update_signal_path(game_root),
        marker_dir=bin_dir,
        settings=settings,
    )


def _prepare(game_root: Optional[Union[str, Path]]) -> UpdateOrchestrator:
    settings = load_settings(game_root)
    try:
        configure_logging(settings, game_root)
    except Exception as e:
        logger.warning(f"Cannot configure logging: {e}")
    return build_orchestrator(game_root, settings)


def gmod13_open(context: Any = None, game_root: Optional[Union[str, Path]] = None) -> int:
    """
    Host startup hook.

    If the update machinery cannot be set up, the installed module is
    still invoked directly.

    Returns:
        The real module's return code, or EXIT_MODULE_UNAVAILABLE /
        EXIT_MODULE_LOAD_ERROR if it could not be invoked
    """
    try:
        orchestrator = _prepare(game_root)
    except Exception as e:
        logger.critical(f"Auto-loader failed to initialise, delegating without updates: {e}", exc_info=True)
        try:
            return exit_code_for(build_loader(game_root).invoke(START_SYMBOL, context))
        except Exception as err:
            logger.critical(f"Delegation failed: {err}", exc_info=True)
            return EXIT_MODULE_LOAD_ERROR

    with orchestrator:
        return orchestrator.on_start(context)


def gmod13_close(context: Any = None, game_root: Optional[Union[str, Path]] = None) -> int:
    """
    Host shutdown hook. Always returns 0.
    """
    try:
        orchestrator = _prepare(game_root)
    except Exception as e:
        logger.error(f"Auto-loader failed to initialise for shutdown, delegating directly: {e}", exc_info=True)
        try:
            build_loader(game_root).invoke(STOP_SYMBOL, context)
        except Exception as err:
            logger.error(f"Shutdown delegation failed: {err}", exc_info=True)
        return EXIT_OK

    with orchestrator:
        return orchestrator.on_stop(context)


def main() -> int:
    """
    Manual entry point: one startup cycle with a null host context.

    Returns:
        Exit code (0 for success)
    """
    return gmod13_open(None)


if __name__ == "__main__":
    sys.exit(main())
