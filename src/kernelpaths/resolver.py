"""DirectoryResolver - Jupyter's documented directories for one platform.

Each OS family maps to a _Layout in _LAYOUTS; the resolver itself only
combines a layout with the home directory and an environment snapshot.
See https://docs.jupyter.org/en/latest/use/jupyter-directories.html
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from kernelpaths.fs import FileSystemProbe
from kernelpaths.platform import PlatformInfo
from kernelpaths.types import OSFamily, unique_paths

logger = logging.getLogger(__name__)

Env = Mapping[str, str]


def env_path(env: Env, name: str) -> Path | None:
    """Normalized path held by an environment variable, None if unset or empty."""
    value = env.get(name)
    return Path(os.path.normpath(value)) if value else None


# -----------------------------------------------------------------------------
# Per-OS rules
# -----------------------------------------------------------------------------


def _windows_runtime_dir(home: Path, env: Env) -> Path:
    return home.joinpath("AppData", "Roaming", "jupyter", "runtime")


def _mac_runtime_dir(home: Path, env: Env) -> Path:
    return home.joinpath("Library", "Jupyter", "runtime")


def _unix_runtime_dir(home: Path, env: Env) -> Path:
    xdg_runtime = env.get("XDG_RUNTIME_DIR")
    if xdg_runtime:
        return Path(xdg_runtime, "jupyter", "runtime")
    return home.joinpath(".local", "share", "jupyter", "runtime")


def _windows_data_dir(home: Path, env: Env, config_dir: Path | None) -> Path:
    app_data = env_path(env, "APPDATA")
    if app_data:
        return app_data / "jupyter"
    if config_dir:
        return config_dir / "data"
    return home.joinpath("Library", "Jupyter")


def _mac_data_dir(home: Path, env: Env, config_dir: Path | None) -> Path:
    return home.joinpath("Library", "Jupyter")


def _unix_data_dir(home: Path, env: Env, config_dir: Path | None) -> Path:
    xdg_data_home = env_path(env, "XDG_DATA_HOME") or home.joinpath(".local", "share")
    return xdg_data_home / "jupyter"


def _windows_system_data_dirs(env: Env) -> list[Path]:
    program_data = env_path(env, "PROGRAMDATA")
    return [program_data / "jupyter"] if program_data else []


def _unix_system_data_dirs(env: Env) -> list[Path]:
    return [Path("/usr/local/share/jupyter"), Path("/usr/share/jupyter")]


def _windows_system_kernel_dirs(env: Env) -> list[Path]:
    program_data = env.get("PROGRAMDATA")
    return [Path(program_data, "jupyter", "kernels")] if program_data else []


def _unix_system_kernel_dirs(env: Env) -> list[Path]:
    return [Path("/usr/share/jupyter/kernels"), Path("/usr/local/share/jupyter/kernels")]


@dataclass(frozen=True, slots=True)
class _Layout:
    kernels_subpath: tuple[str, ...]
    # naive joins on Windows can name a path that cannot be read back
    resolve_real_path: bool
    path_separator: str
    runtime_dir: Callable[[Path, Env], Path]
    data_dir: Callable[[Path, Env, Path | None], Path]
    system_data_dirs: Callable[[Env], list[Path]]
    system_kernel_dirs: Callable[[Env], list[Path]]
    user_kernels_first: bool


_LAYOUTS: dict[OSFamily, _Layout] = {
    OSFamily.WINDOWS: _Layout(
        kernels_subpath=("AppData", "Roaming", "jupyter", "kernels"),
        resolve_real_path=True,
        path_separator=";",
        runtime_dir=_windows_runtime_dir,
        data_dir=_windows_data_dir,
        system_data_dirs=_windows_system_data_dirs,
        system_kernel_dirs=_windows_system_kernel_dirs,
        user_kernels_first=True,
    ),
    OSFamily.MACOS: _Layout(
        kernels_subpath=("Library", "Jupyter", "kernels"),
        resolve_real_path=False,
        path_separator=":",
        runtime_dir=_mac_runtime_dir,
        data_dir=_mac_data_dir,
        system_data_dirs=_unix_system_data_dirs,
        system_kernel_dirs=_unix_system_kernel_dirs,
        user_kernels_first=False,
    ),
    OSFamily.OTHER_UNIX: _Layout(
        kernels_subpath=(".local", "share", "jupyter", "kernels"),
        resolve_real_path=False,
        path_separator=":",
        runtime_dir=_unix_runtime_dir,
        data_dir=_unix_data_dir,
        system_data_dirs=_unix_system_data_dirs,
        system_kernel_dirs=_unix_system_kernel_dirs,
        user_kernels_first=False,
    ),
}


class DirectoryResolver:
    """Computes single canonical Jupyter directories.

    Every method returns None (or an empty list) when the answer cannot be
    determined, e.g. without a home directory; that is not an error.
    """

    def __init__(self, platform: PlatformInfo, fs: FileSystemProbe) -> None:
        self._platform = platform
        self._fs = fs
        self._layout = _LAYOUTS[platform.os_family]

    @property
    def platform(self) -> PlatformInfo:
        return self._platform

    async def kernel_spec_root(self) -> Path | None:
        """The writable per-user kernelspec directory."""
        home = self._platform.home_dir
        if home is None:
            return None
        return await self._maybe_real_path(home.joinpath(*self._layout.kernels_subpath))

    async def runtime_dir(self, env: Env) -> Path | None:
        """JUPYTER_RUNTIME_DIR, or the OS default runtime directory."""
        explicit = env_path(env, "JUPYTER_RUNTIME_DIR")
        if explicit:
            return explicit
        home = self._platform.home_dir
        if home is None:
            return None
        return await self._maybe_real_path(self._layout.runtime_dir(home, env))

    def jupyter_config_dir(self, env: Env) -> Path | None:
        explicit = env_path(env, "JUPYTER_CONFIG_DIR")
        if explicit:
            return explicit
        home = self._platform.home_dir
        return home / ".jupyter" if home else None

    def jupyter_data_dir(self, env: Env) -> Path | None:
        """The per-user data directory (JUPYTER_DATA_DIR or OS default)."""
        explicit = env_path(env, "JUPYTER_DATA_DIR")
        if explicit:
            return explicit
        home = self._platform.home_dir
        if home is None:
            return None
        return self._layout.data_dir(home, env, self.jupyter_config_dir(env))

    def system_data_dirs(self, env: Env) -> list[Path]:
        return self._layout.system_data_dirs(env)

    async def system_kernel_spec_roots(
        self, env: Env, writable_root: Path | None = None
    ) -> list[Path]:
        """Kernelspec roots searched besides JUPYTER_PATH, in search order.

        writable_root saves recomputing kernel_spec_root() where the layout
        lists it.
        """
        system_dirs = self._layout.system_kernel_dirs(env)
        if self._layout.user_kernels_first:
            root = writable_root or await self.kernel_spec_root()
            return unique_paths([root, *system_dirs])
        home = self._platform.home_dir
        user_dir = home.joinpath(*self._layout.kernels_subpath) if home else None
        return unique_paths([*system_dirs, user_dir])

    async def jupyter_path_entries(self, env: Env, subdir: str | None = None) -> list[Path]:
        """Real paths of the JUPYTER_PATH entries, in order.

        Entries that do not resolve are dropped.
        """
        raw = env.get("JUPYTER_PATH", "")
        entries = [
            Path(entry, subdir) if subdir else Path(entry)
            for entry in raw.split(self._layout.path_separator)
            if entry
        ]
        resolved = await asyncio.gather(*(self._fs.real_path(entry) for entry in entries))
        paths = unique_paths(list(resolved))
        logger.debug("JUPYTER_PATH %s entries: %s", subdir or "root", [str(p) for p in paths])
        return paths

    async def _maybe_real_path(self, path: Path) -> Path | None:
        if not self._layout.resolve_real_path:
            return path
        return await self._fs.real_path(path)
