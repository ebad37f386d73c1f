"""Platform detection for asset selection.

Maps the running (os, architecture) pair onto the suffix tokens used in
published asset names, e.g. ``gmsv_gmod_integration_loader_win64.dll``.
"""

import platform
from enum import Enum
from functools import lru_cache
from typing import Optional


class PlatformKey(Enum):
    """Platform suffix token used in asset filenames."""
    WIN64 = "win64"
    WIN32 = "win32"
    LINUX64 = "linux64"
    LINUX = "linux"

    @property
    def suffix(self) -> str:
        """Suffix as it appears in asset names."""
        return self.value


# Machine identifiers reported by platform.machine() for 64-bit x86
_X86_64_MACHINES = {"x86_64", "amd64", "x64"}


def detect_platform(
    system: Optional[str] = None,
    machine: Optional[str] = None
) -> PlatformKey:
    """
    Derive the platform key from the OS name and machine architecture.

    Args:
        system: OS name (default: platform.system())
        machine: Machine architecture (default: platform.machine())

    Returns:
        PlatformKey for the given pair

    Every non-Windows OS uses the linux builds.
    """
    system = (system if system is not None else platform.system()).lower()
    machine = (machine if machine is not None else platform.machine()).lower()
    is_64bit = machine in _X86_64_MACHINES

    if system.startswith("win"):
        return PlatformKey.WIN64 if is_64bit else PlatformKey.WIN32
    return PlatformKey.LINUX64 if is_64bit else PlatformKey.LINUX


@lru_cache(maxsize=1)
def current_platform() -> PlatformKey:
    """Platform key of the running process, computed once."""
    return detect_platform()
