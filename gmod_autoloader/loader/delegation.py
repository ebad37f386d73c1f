"""Delegation / hot-swap loader for the installed native module.

Loads the real module by path and calls one of its exported lifecycle
entry points with the host context, unchanged. The module is loaded on
every call and never cached, so a file replaced earlier in the same run
is the one that gets invoked.
"""

import ctypes
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from gmod_autoloader.config.platform_key import PlatformKey
from gmod_autoloader.updater.exceptions import (
    ModuleLoadError,
    ModuleUnavailableError,
    UpdaterError,
)

logger = logging.getLogger("gmod_autoloader.delegation")


# Opens a shared library by path; ctypes.CDLL in production
LibraryFactory = Callable[[str], Any]


class DelegationStatus(Enum):
    """Outcome of a delegated lifecycle call."""
    UNAVAILABLE = "unavailable"  # Module file is not installed
    LOAD_ERROR = "load_error"    # File exists but load/symbol lookup failed
    INVOKED = "invoked"          # Entry point ran; see code


@dataclass
class DelegationResult:
    """Result of invoking an entry point in the installed module."""
    status: DelegationStatus
    path: Path
    symbol: str
    code: Optional[int] = None
    error: Optional[UpdaterError] = None

    @property
    def invoked(self) -> bool:
        """True if the entry point was called."""
        return self.status == DelegationStatus.INVOKED

    @property
    def unavailable(self) -> bool:
        """True if the module file was missing."""
        return self.status == DelegationStatus.UNAVAILABLE


def module_path_for(bin_dir: Path, base_name: str, platform: PlatformKey) -> Path:
    """
    Build the installed module path for a platform.

    Args:
        bin_dir: Binary module directory
        base_name: Module name without platform suffix
        platform: Target platform

    Returns:
        Path like <bin_dir>/<base_name>_<suffix>.dll
    """
    return Path(bin_dir) / f"{base_name}_{platform.suffix}.dll"


class DelegationLoader:
    """Invokes lifecycle entry points of the installed module."""

    def __init__(
        self,
        module_path: Path,
        library_factory: Optional[LibraryFactory] = None,
    ):
        """
        Initialize the loader.

        Args:
            module_path: Path of the installed module
            library_factory: Callable opening a library by path
                (default: ctypes.CDLL)
        """
        self._module_path = Path(module_path)
        self._library_factory = library_factory or ctypes.CDLL

    @property
    def module_path(self) -> Path:
        """Path of the delegated module."""
        return self._module_path

    def _resolve(self, entry_point: str) -> Callable:
        """
        Load the module and look up an exported function.

        Raises:
            ModuleUnavailableError: If the module file does not exist
            ModuleLoadError: If loading or symbol resolution fails
        """
        if not self._module_path.is_file():
            raise ModuleUnavailableError(self._module_path)

        logger.debug(f"Loading library: {self._module_path}")
        try:
            library = self._library_factory(str(self._module_path))
        except OSError as e:
            raise ModuleLoadError(self._module_path, original_error=e)

        try:
            func = getattr(library, entry_point)
        except AttributeError as e:
            raise ModuleLoadError(self._module_path, entry_point, e)

        func.restype = ctypes.c_int
        func.argtypes = [ctypes.c_void_p]
        return func

    def invoke(self, entry_point: str, context: Any = None) -> DelegationResult:
        """
        Call an entry point of the installed module once.

        Args:
            entry_point: Exported symbol name
            context: Opaque host context, passed through unchanged

        Returns:
            DelegationResult; INVOKED carries the entry point's return code
        """
        try:
            func = self._resolve(entry_point)
        except ModuleUnavailableError as e:
            logger.warning(str(e))
            return DelegationResult(
                status=DelegationStatus.UNAVAILABLE,
                path=self._module_path,
                symbol=entry_point,
                error=e,
            )
        except ModuleLoadError as e:
            return self._load_error(entry_point, e)

        logger.info(f"Calling {entry_point} in {self._module_path.name}")
        try:
            code = int(func(context))
        except ctypes.ArgumentError as e:
            # Context not convertible to the entry point's pointer argument
            return self._load_error(entry_point, ModuleLoadError(self._module_path, entry_point, e))

        logger.info(f"{entry_point} returned {code}")
        return DelegationResult(
            status=DelegationStatus.INVOKED,
            path=self._module_path,
            symbol=entry_point,
            code=code,
        )

    def _load_error(self, entry_point: str, error: ModuleLoadError) -> DelegationResult:
        logger.error(str(error))
        return DelegationResult(
            status=DelegationStatus.LOAD_ERROR,
            path=self._module_path,
            symbol=entry_point,
            error=error,
        )
