"""Update orchestrator for the auto-loader.

Drives one startup run as an explicit state machine:

    START -> CHECKING_DEPENDENCIES -> CHECKING_PRIMARY
          -> (UP_TO_DATE | UPDATING) -> DELEGATING -> DONE

Dependency failures only skip that dependency. Primary update failures
abandon the update and fall through to delegation with whatever is
already installed. Only a failure to delegate at all produces a non-zero
result of our own; shutdown never does.
"""

import json
import logging
import platform as host_platform
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from gmod_autoloader import __version__
from gmod_autoloader.config.components import (
    ComponentSpec,
    START_SYMBOL,
    STOP_SYMBOL,
)
from gmod_autoloader.config.platform_key import PlatformKey
from gmod_autoloader.config.settings import LoaderSettings
from gmod_autoloader.loader.delegation import (
    DelegationLoader,
    DelegationResult,
    DelegationStatus,
)
from gmod_autoloader.updater.exceptions import (
    AssetNotFoundError,
    InvalidReleaseError,
    UpdaterError,
)
from gmod_autoloader.updater.extractor import ArchiveExtractor
from gmod_autoloader.updater.github_client import ReleaseClient
from gmod_autoloader.updater.installer import AssetInstaller
from gmod_autoloader.updater.release import ReleaseInfo
from gmod_autoloader.updater.version_store import VersionCache, VersionStore

logger = logging.getLogger("gmod_autoloader.orchestrator")


# Result codes of our own, distinct from a delegated module's return code
EXIT_OK = 0
EXIT_MODULE_UNAVAILABLE = 2
EXIT_MODULE_LOAD_ERROR = 3


def exit_code_for(result: DelegationResult) -> int:
    """
    Map a startup delegation result to the code returned to the host.

    Args:
        result: Result of invoking the real module's start symbol

    Returns:
        The module's own code, or EXIT_MODULE_UNAVAILABLE /
        EXIT_MODULE_LOAD_ERROR when it could not be invoked
    """
    if result.invoked:
        return result.code
    if result.unavailable:
        logger.error(f"Real loader is not installed: {result.path}")
        return EXIT_MODULE_UNAVAILABLE
    logger.error(f"Real loader could not be loaded: {result.error}")
    return EXIT_MODULE_LOAD_ERROR


class UpdateState(Enum):
    """States of a startup run."""
    START = "start"
    CHECKING_DEPENDENCIES = "checking_dependencies"
    CHECKING_PRIMARY = "checking_primary"
    UP_TO_DATE = "up_to_date"
    UPDATING = "updating"
    DELEGATING = "delegating"
    DONE = "done"


class ComponentStatus(Enum):
    """Per-component outcome of a run."""
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    NO_ASSET = "no_asset"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ComponentResult:
    """Outcome of checking/updating one component."""
    name: str
    status: ComponentStatus
    version: Optional[str] = None
    error: Optional[str] = None


@dataclass
class RunReport:
    """Everything a startup run did, for logging and tests."""
    transitions: List[UpdateState] = field(default_factory=list)
    components: List[ComponentResult] = field(default_factory=list)
    primary_updated: bool = False
    cache_saved: bool = False
    delegation: Optional[DelegationResult] = None
    exit_code: Optional[int] = None

    def result_for(self, name: str) -> Optional[ComponentResult]:
        """Get the result recorded for a component."""
        for result in self.components:
            if result.name == name:
                return result
        return None


@dataclass
class RunContext:
    """State carried between the steps of one run."""
    cache: VersionCache
    context: Any = None
    original_cache: VersionCache = field(default_factory=dict)
    releases: Dict[str, ReleaseInfo] = field(default_factory=dict)
    primary_release: Optional[ReleaseInfo] = None
    primary_url: Optional[str] = None
    update_finished: bool = False
    report: RunReport = field(default_factory=RunReport)


class UpdateOrchestrator:
    """Checks, installs and delegates on host startup and shutdown."""

    def __init__(
        self,
        client: ReleaseClient,
        installer: AssetInstaller,
        extractor: ArchiveExtractor,
        version_store: VersionStore,
        loader: DelegationLoader,
        dependencies: List[ComponentSpec],
        primary: ComponentSpec,
        platform: PlatformKey,
        bin_dir: Path,
        addons_dir: Path,
        signal_path: Optional[Path] = None,
        marker_dir: Optional[Path] = None,
        settings: Optional[LoaderSettings] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: Release feed client
            installer: Single-file installer
            extractor: Archive extractor
            version_store: Installed-version persistence
            loader: Delegation loader for the real module
            dependencies: Auxiliary binaries, checked in order
            primary: Primary component
            platform: Current platform key
            bin_dir: Binary module directory
            addons_dir: Addon install directory
            signal_path: Update-signal file, or None to never write one
            marker_dir: Directory for dated run markers, or None
            settings: Loader settings (defaults if None)
        """
        self._client = client
        self._installer = installer
        self._extractor = extractor
        self._version_store = version_store
        self._loader = loader
        self._dependencies = list(dependencies)
        self._primary = primary
        self._platform = platform
        self._bin_dir = Path(bin_dir)
        self._addons_dir = Path(addons_dir)
        self._signal_path = signal_path
        self._marker_dir = marker_dir
        self._settings = settings or LoaderSettings()
        self._last_report: Optional[RunReport] = None

        names = [c.name for c in self._dependencies] + [primary.name]
        if len(set(names)) != len(names):
            raise ValueError(f"Component names must be unique: {names}")

        self._handlers: Dict[UpdateState, Callable[[RunContext], UpdateState]] = {
            UpdateState.START: self._start,
            UpdateState.CHECKING_DEPENDENCIES: self._check_dependencies,
            UpdateState.CHECKING_PRIMARY: self._check_primary,
            UpdateState.UP_TO_DATE: self._up_to_date,
            UpdateState.UPDATING: self._update_primary,
            UpdateState.DELEGATING: self._delegate,
        }

    @property
    def last_report(self) -> Optional[RunReport]:
        """Report of the most recent startup run."""
        return self._last_report

    def close(self) -> None:
        """Release the HTTP session."""
        self._client.close()

    def __enter__(self) -> "UpdateOrchestrator":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        self.close()

    # Artifact locations

    def artifact_path(self, component: ComponentSpec) -> Path:
        """Final on-disk location of a component's install."""
        if component.is_archive:
            return self._addons_dir / component.directory_name
        return self._bin_dir / component.asset_name(self._platform)

    def archive_download_path(self, component: ComponentSpec) -> Path:
        """Where a component's archive is downloaded before extraction."""
        return self._addons_dir / f"{component.directory_name}.zip"

    def _artifact_present(self, component: ComponentSpec) -> bool:
        path = self.artifact_path(component)
        if component.is_archive:
            return path.is_dir() and any(path.iterdir())
        return path.is_file()

    # Entry points

    def on_start(self, context: Any = None) -> int:
        """
        Host startup hook: update, then delegate to the real module.

        Args:
            context: Opaque host context forwarded to the real module

        Returns:
            The real module's return code, or EXIT_MODULE_UNAVAILABLE /
            EXIT_MODULE_LOAD_ERROR if it could not be invoked
        """
        ctx = RunContext(cache={}, context=context)
        self._last_report = ctx.report
        state = UpdateState.START

        while state is not UpdateState.DONE:
            ctx.report.transitions.append(state)
            try:
                state = self._handlers[state](ctx)
            except Exception as e:
                logger.error(f"Unexpected error in state {state.value}: {e}", exc_info=True)
                if state is UpdateState.DELEGATING:
                    ctx.report.exit_code = EXIT_MODULE_LOAD_ERROR
                    state = UpdateState.DONE
                else:
                    # Never let the update phase prevent delegation
                    self._finish_update_phase(ctx)
                    state = UpdateState.DELEGATING

        ctx.report.transitions.append(UpdateState.DONE)
        return ctx.report.exit_code

    def on_stop(self, context: Any = None) -> int:
        """
        Host shutdown hook: delegate the shutdown call.

        Shutdown must never disrupt host teardown, so this always returns
        EXIT_OK and only logs problems.
        """
        try:
            result = self._loader.invoke(STOP_SYMBOL, context)
        except Exception as e:
            logger.error(f"Shutdown delegation failed: {e}", exc_info=True)
            return EXIT_OK

        if result.status == DelegationStatus.UNAVAILABLE:
            logger.info("No installed module to shut down")
        elif result.status == DelegationStatus.LOAD_ERROR:
            logger.warning(f"Shutdown skipped: {result.error}")
        elif result.code != 0:
            logger.warning(f"{STOP_SYMBOL} returned {result.code}, ignoring")
        return EXIT_OK

    # States

    def _start(self, ctx: RunContext) -> UpdateState:
        ctx.cache = self._version_store.load()
        ctx.original_cache = dict(ctx.cache)
        logger.info(f"Auto-loader {__version__} starting on {self._platform.suffix}")

        if not self._settings.check_updates:
            logger.info("Update checks disabled, delegating directly")
            for component in self._dependencies + [self._primary]:
                ctx.report.components.append(
                    ComponentResult(component.name, ComponentStatus.SKIPPED, ctx.cache.get(component.name))
                )
            return UpdateState.DELEGATING
        return UpdateState.CHECKING_DEPENDENCIES

    def _check_dependencies(self, ctx: RunContext) -> UpdateState:
        for component in self._dependencies:
            try:
                result = self._update_dependency(ctx, component)
            except UpdaterError as e:
                logger.error(f"Failed to update {component.name}: {e}")
                result = ComponentResult(component.name, ComponentStatus.FAILED, error=str(e))
            ctx.report.components.append(result)
        return UpdateState.CHECKING_PRIMARY

    def _update_dependency(self, ctx: RunContext, component: ComponentSpec) -> ComponentResult:
        release = self._fetch(ctx, component)
        asset = self._client.resolve_asset(release, component, self._platform)
        if asset is None:
            logger.warning(
                f"No {self._platform.suffix} build of {component.name} in {release.tag}, skipping"
            )
            return ComponentResult(component.name, ComponentStatus.NO_ASSET, release.tag)

        if ctx.cache.get(component.name) == release.tag and self._artifact_present(component):
            logger.info(f"{component.name} is up to date ({release.tag})")
            return ComponentResult(component.name, ComponentStatus.UP_TO_DATE, release.tag)

        logger.info(
            f"Updating {component.name}: {ctx.cache.get(component.name, 'none')} -> {release.tag}"
        )
        self._installer.install(
            asset.download_url,
            self.artifact_path(component),
            expect_archive=False,
            size_limits=self._settings.binary_size_limits,
        )
        ctx.cache[component.name] = release.tag
        return ComponentResult(component.name, ComponentStatus.UPDATED, release.tag)

    def _check_primary(self, ctx: RunContext) -> UpdateState:
        component = self._primary
        try:
            release = self._fetch(ctx, component)
            ctx.primary_url = self._primary_download_url(component, release)
        except UpdaterError as e:
            logger.error(f"Cannot check {component.name}, using installed version: {e}")
            ctx.report.components.append(
                ComponentResult(component.name, ComponentStatus.FAILED, error=str(e))
            )
            self._finish_update_phase(ctx)
            return UpdateState.DELEGATING

        ctx.primary_release = release
        cached = ctx.cache.get(component.name)
        present = self._artifact_present(component)

        if cached == release.tag and present:
            return UpdateState.UP_TO_DATE
        if cached == release.tag:
            logger.info(f"{component.name} {cached} is recorded but missing on disk, reinstalling")
        else:
            logger.info(f"Updating {component.name}: {cached or 'none'} -> {release.tag}")
        return UpdateState.UPDATING

    def _primary_download_url(self, component: ComponentSpec, release: ReleaseInfo) -> str:
        """Pick the primary download: platform asset first, then source archive."""
        asset = self._client.resolve_asset(release, component, self._platform)
        if asset is not None:
            return asset.download_url

        if component.use_source_archive:
            url = component.archive_url_for(release.tag, release.zipball_url)
            if url:
                return url

        raise AssetNotFoundError(component.asset_name(self._platform), release.tag)

    def _up_to_date(self, ctx: RunContext) -> UpdateState:
        tag = ctx.primary_release.tag
        logger.info(f"{self._primary.name} is up to date ({tag})")
        ctx.report.components.append(
            ComponentResult(self._primary.name, ComponentStatus.UP_TO_DATE, tag)
        )
        self._finish_update_phase(ctx)
        return UpdateState.DELEGATING

    def _update_primary(self, ctx: RunContext) -> UpdateState:
        component = self._primary
        tag = ctx.primary_release.tag
        try:
            self._install_primary(ctx, component, ctx.primary_url)
        except UpdaterError as e:
            logger.error(f"Update of {component.name} to {tag} failed, keeping installed version: {e}")
            ctx.report.components.append(
                ComponentResult(component.name, ComponentStatus.FAILED, tag, str(e))
            )
            self._finish_update_phase(ctx)
            return UpdateState.DELEGATING

        ctx.cache[component.name] = tag
        ctx.report.primary_updated = True
        ctx.report.components.append(ComponentResult(component.name, ComponentStatus.UPDATED, tag))
        logger.info(f"{component.name} updated to {tag}")

        self._finish_update_phase(ctx)
        if self._settings.write_update_signal:
            self._write_update_signal()
        return UpdateState.DELEGATING

    def _install_primary(self, ctx: RunContext, component: ComponentSpec, url: str) -> None:
        if not component.is_archive:
            self._installer.install(
                url,
                self.artifact_path(component),
                expect_archive=False,
                size_limits=self._settings.binary_size_limits,
            )
            return

        archive_path = self.archive_download_path(component)
        self._installer.install(
            url,
            archive_path,
            expect_archive=True,
            size_limits=self._settings.archive_size_limits,
        )
        # A half-extracted tree must not pass as installed on the next run
        self._forget_installed(ctx, component)
        self._extractor.extract(archive_path, self.artifact_path(component), component.renames)

    def _delegate(self, ctx: RunContext) -> UpdateState:
        logger.info("Delegating to the real loader module")
        result = self._loader.invoke(START_SYMBOL, ctx.context)
        ctx.report.delegation = result
        ctx.report.exit_code = exit_code_for(result)
        return UpdateState.DONE

    # Helpers

    def _forget_installed(self, ctx: RunContext, component: ComponentSpec) -> None:
        """Drop a component's recorded tag and persist that right away."""
        if ctx.cache.pop(component.name, None) is None:
            return
        logger.debug(f"Clearing recorded version of {component.name} before extraction")
        if self._version_store.save(ctx.cache):
            ctx.original_cache = dict(ctx.cache)

    def _fetch(self, ctx: RunContext, component: ComponentSpec) -> ReleaseInfo:
        """Fetch a feed's latest release, at most once per feed per run."""
        require_assets = not component.use_source_archive
        release = ctx.releases.get(component.feed_url)
        if release is None:
            release = self._client.fetch_latest(component.feed_url, require_assets=require_assets)
            ctx.releases[component.feed_url] = release
        elif require_assets and not release.assets:
            raise InvalidReleaseError(component.feed_url, "no assets")
        return release

    def _finish_update_phase(self, ctx: RunContext) -> None:
        """Persist the cache once and write the run marker."""
        if ctx.update_finished:
            return
        ctx.update_finished = True
        if ctx.cache != ctx.original_cache:
            ctx.report.cache_saved = self._version_store.save(ctx.cache)
        if self._settings.write_run_marker and self._marker_dir is not None:
            self._write_run_marker()

    def _write_update_signal(self) -> None:
        if self._signal_path is None:
            return
        try:
            self._signal_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self._signal_path, "w", encoding="utf-8") as f:
                json.dump({"updated": True}, f)
            logger.info(f"Wrote update signal: {self._signal_path}")
        except OSError as e:
            logger.warning(f"Failed to write update signal {self._signal_path}: {e}")

    def _write_run_marker(self) -> None:
        today = date.today().isoformat()
        marker_path = self._marker_dir / f"gmi_success_{today}.txt"
        content = (
            f"Auto-loader run: {today}\n"
            f"Loader version: {__version__}\n"
            f"Platform: {host_platform.system().lower()}/{host_platform.machine().lower()}\n"
        )
        try:
            self._marker_dir.mkdir(parents=True, exist_ok=True)
            marker_path.write_text(content, encoding="utf-8")
            logger.debug(f"Wrote run marker: {marker_path}")
        except OSError as e:
            logger.warning(f"Failed to write run marker {marker_path}: {e}")
