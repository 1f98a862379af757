"""Host platform information."""

import sys
from dataclasses import dataclass
from pathlib import Path

from kernelpaths.types import OSFamily


def detect_os_family(platform: str | None = None) -> OSFamily:
    """Map a sys.platform string to its OS family."""
    platform = sys.platform if platform is None else platform
    if platform.startswith(("win32", "cygwin")):
        return OSFamily.WINDOWS
    if platform == "darwin":
        return OSFamily.MACOS
    return OSFamily.OTHER_UNIX


def _home_dir() -> Path | None:
    try:
        return Path.home()
    except (KeyError, RuntimeError):
        return None


@dataclass(frozen=True, slots=True)
class PlatformInfo:
    """OS family and home directory of the host."""

    os_family: OSFamily
    home_dir: Path | None

    @classmethod
    def current(cls) -> "PlatformInfo":
        return cls(os_family=detect_os_family(), home_dir=_home_dir())

    @property
    def is_windows(self) -> bool:
        return self.os_family is OSFamily.WINDOWS

    @property
    def is_mac(self) -> bool:
        return self.os_family is OSFamily.MACOS
