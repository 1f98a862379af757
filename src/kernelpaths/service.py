"""KernelSearchPathService - cached answers to "where do kernels live?".

Cache tiers:
- kernelspec root path: process lifetime, mirrored to the durable store
- JUPYTER_PATH entries (plain and `kernels`): cleared when the environment changes
- data dirs: one aggregation per interpreter
- kernelspec root paths: TTL (60s by default), evicted when the creating
  call's token is cancelled
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import tempfile
import time
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

from kernelpaths.aggregator import DataDirAggregator
from kernelpaths.cache import MemoizedAsyncCache
from kernelpaths.cancellation import CancellationToken
from kernelpaths.env import EnvironmentProvider, EnvironmentVariablesProvider
from kernelpaths.fs import FileSystem, FileSystemProbe
from kernelpaths.interpreter import InterpreterExecutor, SubprocessInterpreterExecutor
from kernelpaths.platform import PlatformInfo
from kernelpaths.resolver import DirectoryResolver
from kernelpaths.stores import DurableStore, MemoryStore
from kernelpaths.types import Duration, SearchContext, unique_paths

logger = logging.getLogger(__name__)

ROOT_PATH_STATE_KEY = "kernelpaths.kernelspec_root_path"
KERNEL_PATHS_STATE_KEY = "kernelpaths.jupyter_path_kernel_paths"

_SINGLE = ""
_KERNELS_SUBDIR = "kernels"


class KernelSearchPathService:
    """Finds the locations to search for Jupyter kernels and data files.

    Usage:
        service = create_search_path_service()
        root = await service.get_kernel_spec_root_path()
        roots = await service.get_kernel_spec_root_paths(token)
        data_dirs = await service.get_data_dirs(SearchContext(interpreter=env))
    """

    def __init__(
        self,
        *,
        platform: PlatformInfo,
        env_provider: EnvironmentProvider,
        store: DurableStore,
        fs: FileSystemProbe,
        executor: InterpreterExecutor,
        temp_dir: str | os.PathLike[str],
        process_env: Mapping[str, str] | None = None,
        root_paths_ttl: Duration = "60s",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._platform = platform
        self._env_provider = env_provider
        self._store = store
        self._fs = fs
        self._temp_dir = Path(temp_dir)
        self._env = os.environ if process_env is None else process_env
        self._resolver = DirectoryResolver(platform, fs)
        self._aggregator = DataDirAggregator(
            resolver=self._resolver,
            fs=fs,
            executor=executor,
            jupyter_paths=lambda: self._jupyter_paths(None),
            process_env=self._env,
        )

        self._root_path_cache: MemoizedAsyncCache[str, Path | None] = MemoizedAsyncCache(
            clock=clock, name="kernelspec root path"
        )
        self._jupyter_path_cache: MemoizedAsyncCache[str, list[Path]] = MemoizedAsyncCache(
            clock=clock, name="JUPYTER_PATH"
        )
        self._data_dir_cache: MemoizedAsyncCache[str, list[Path]] = MemoizedAsyncCache(
            clock=clock, name="data dirs"
        )
        self._root_paths_cache: MemoizedAsyncCache[str, list[Path]] = MemoizedAsyncCache(
            ttl=root_paths_ttl, clock=clock, name="kernelspec root paths"
        )

        self._writable_runtime_dirs: set[Path] = set()
        self._background_tasks: set[asyncio.Future[Any]] = set()
        self._release_root_paths_token: Callable[[], None] = lambda: None
        self._unsubscribe = env_provider.changed.subscribe(self._on_environment_changed)

    @property
    def resolver(self) -> DirectoryResolver:
        return self._resolver

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def get_kernel_spec_root_path(self) -> Path | None:
        """The WRITABLE directory Jupyter searches for user kernelspecs.

        A value persisted by an earlier process is returned straight away
        while the path is recomputed in the background.
        https://jupyter-client.readthedocs.io/en/stable/kernels.html#kernel-specs
        """
        if _SINGLE not in self._root_path_cache:
            persisted = await self._read_state(ROOT_PATH_STATE_KEY)
            if _SINGLE not in self._root_path_cache and isinstance(persisted, str) and persisted:
                self._track(self._root_path_cache.lookup(_SINGLE, self._compute_root_path))
                return Path(persisted)
        return await self._root_path_cache.get(_SINGLE, self._compute_root_path)

    async def get_kernel_spec_temp_registration_folder(self) -> Path:
        """Scratch directory for kernelspecs registered on behalf of a Jupyter server.

        Keeps such registrations out of the global kernelspec directories.
        """
        folder = self._temp_dir / "jupyter" / "kernels"
        await self._fs.create_directory(folder)
        return folder

    async def get_runtime_dir(self) -> Path:
        """Writable directory for kernel connection files.

        Falls back to a temp directory when the Jupyter runtime dir is
        unknown or not writable.
        """
        runtime_dir = await self._writable_runtime_dir()
        if runtime_dir is not None:
            return runtime_dir

        fallback = self._temp_dir / "jupyter" / "runtime"
        await self._fs.create_directory(fallback)
        logger.debug("Using fallback runtime directory %s", fallback)
        return fallback

    async def get_data_dirs(self, context: SearchContext | None = None) -> list[Path]:
        """Ordered Jupyter data directories for the context's interpreter.

        Source for priority & paths: jupyter_path() in jupyter_core/paths.py
        https://docs.jupyter.org/en/latest/use/jupyter-directories.html#data-files
        """
        context = context or SearchContext()
        return await self._data_dir_cache.get(
            context.cache_key, lambda: self._aggregator.aggregate(context)
        )

    def invalidate_data_dirs(self, interpreter_id: str | None = None) -> None:
        """Forget aggregated data dirs for one interpreter, or for all."""
        if interpreter_id is None:
            self._data_dir_cache.invalidate()
        else:
            self._data_dir_cache.invalidate(interpreter_id)

    async def get_kernel_spec_root_paths(
        self, token: CancellationToken | None = None
    ) -> list[Path]:
        """Every directory to search for kernelspecs, JUPYTER_PATH entries first.

        Cancelling token makes this call return [] and drops the cache record
        it created, so the next caller recomputes. Other callers sharing the
        record still get its result.
        """
        token = token or CancellationToken.none()
        created = False

        def compute() -> Awaitable[list[Path]]:
            nonlocal created
            created = True
            return self._compute_root_paths()

        task = self._root_paths_cache.lookup(_SINGLE, compute)
        if created:
            # only the newest record keeps a subscription on its creator's token
            self._release_root_paths_token()
            self._release_root_paths_token = token.on_cancel(
                lambda _: self._root_paths_cache.evict(_SINGLE, task)
            )
        result = await asyncio.shield(task)
        return [] if token.is_cancelled else result

    async def last_known_kernel_search_paths(self) -> list[Path]:
        """JUPYTER_PATH kernel dirs persisted by the last successful lookup.

        Display only: get_kernel_spec_root_paths() always recomputes from
        the live environment and never answers from this record.
        """
        persisted = await self._read_state(KERNEL_PATHS_STATE_KEY)
        if not isinstance(persisted, list):
            return []
        return [Path(p) for p in persisted if isinstance(p, str)]

    async def dispose(self) -> None:
        """Stop listening for environment changes and drop background work."""
        self._unsubscribe()
        self._release_root_paths_token()
        tasks = list(self._background_tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _on_environment_changed(self, *_: object) -> None:
        logger.debug("Environment changed, clearing JUPYTER_PATH caches")
        self._jupyter_path_cache.invalidate()

    async def _compute_root_path(self) -> Path | None:
        root = await self._resolver.kernel_spec_root()
        logger.debug("Jupyter kernelspec root path %s", root)
        self._persist(ROOT_PATH_STATE_KEY, str(root) if root else None)
        return root

    async def _compute_root_paths(self) -> list[Path]:
        # JUPYTER_PATH entries come first in the search
        try:
            jupyter_paths = await self._jupyter_paths(_KERNELS_SUBDIR)
        except Exception:
            logger.warning("Failed to read JUPYTER_PATH kernel dirs", exc_info=True)
            jupyter_paths = []

        writable_root = None
        if self._platform.is_windows:
            writable_root = await self.get_kernel_spec_root_path()
        system_roots = await self._resolver.system_kernel_spec_roots(self._env, writable_root)

        paths = unique_paths([*jupyter_paths, *system_roots])
        logger.debug("Kernelspec root paths: %s", ", ".join(str(p) for p in paths))
        return paths

    def _jupyter_paths(self, subdir: str | None) -> Awaitable[list[Path]]:
        return self._jupyter_path_cache.get(
            subdir or _SINGLE, lambda: self._compute_jupyter_paths(subdir)
        )

    async def _compute_jupyter_paths(self, subdir: str | None) -> list[Path]:
        env = await self._env_provider.get_environment_variables(None)
        paths = await self._resolver.jupyter_path_entries(env, subdir)
        if subdir == _KERNELS_SUBDIR and paths:
            self._persist(KERNEL_PATHS_STATE_KEY, [str(p) for p in paths])
        return paths

    async def _writable_runtime_dir(self) -> Path | None:
        try:
            runtime_dir = await self._resolver.runtime_dir(self._env)
        except Exception:
            logger.error("Failed to resolve the Jupyter runtime directory", exc_info=True)
            return None
        if runtime_dir is None:
            logger.error("Failed to determine Jupyter runtime directory")
            return None

        try:
            await self._fs.create_directory(runtime_dir)
            if runtime_dir not in self._writable_runtime_dirs:
                # existing runtime dirs are not always writable
                probe = runtime_dir / f"temp-test-write-access-{secrets.token_hex(20)}.txt"
                await self._fs.write_file(probe, b"")
                try:
                    await self._fs.delete_file(probe)
                except OSError:
                    logger.debug("Could not remove write probe %s", probe, exc_info=True)
                self._writable_runtime_dirs.add(runtime_dir)
            return runtime_dir
        except Exception:
            logger.error(
                "Failed to create or verify write access to runtime directory %s",
                runtime_dir,
                exc_info=True,
            )
            return None

    async def _read_state(self, key: str) -> Any:
        try:
            return await self._store.get(key)
        except Exception:
            logger.warning("Failed to read %s from the state store", key, exc_info=True)
            return None

    async def _write_state(self, key: str, value: str | list[str] | None) -> None:
        try:
            if await self._store.get(key) != value:
                await self._store.set(key, value)
        except Exception:
            logger.warning("Failed to persist %s", key, exc_info=True)

    def _persist(self, key: str, value: str | list[str] | None) -> None:
        # store latency stays off the lookup path
        self._track(asyncio.ensure_future(self._write_state(key, value)))

    def _track(self, task: asyncio.Future[Any]) -> None:
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)


def create_search_path_service(
    *,
    platform: PlatformInfo | None = None,
    env_provider: EnvironmentProvider | None = None,
    store: DurableStore | None = None,
    fs: FileSystemProbe | None = None,
    executor: InterpreterExecutor | None = None,
    temp_dir: str | os.PathLike[str] | None = None,
    process_env: Mapping[str, str] | None = None,
    root_paths_ttl: Duration = "60s",
) -> KernelSearchPathService:
    """Create a service wired to the local machine.

    Args:
        platform: Host platform (default: detected)
        env_provider: Environment snapshots (default: process env, no .env file)
        store: Durable state (default: in-memory, not persisted)
        fs: Filesystem probe (default: local disk)
        executor: Interpreter executor (default: subprocesses)
        temp_dir: Temp area owned by the caller (default: <tempdir>/kernelpaths)
        process_env: Environment for non-JUPYTER_PATH variables (default: os.environ)
        root_paths_ttl: Lifetime of cached kernelspec root paths

    Returns:
        KernelSearchPathService
    """
    return KernelSearchPathService(
        platform=platform or PlatformInfo.current(),
        env_provider=env_provider or EnvironmentVariablesProvider(),
        store=store or MemoryStore(),
        fs=fs or FileSystem(),
        executor=executor or SubprocessInterpreterExecutor(),
        temp_dir=temp_dir or Path(tempfile.gettempdir()) / "kernelpaths",
        process_env=process_env,
        root_paths_ttl=root_paths_ttl,
    )


__all__ = ["KernelSearchPathService", "create_search_path_service"]
