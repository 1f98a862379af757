"""Environment variable snapshots with an optional .env overlay."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from dotenv import dotenv_values

from kernelpaths.cache import MemoizedAsyncCache
from kernelpaths.events import EventEmitter

logger = logging.getLogger(__name__)

EnvFile = Union[str, "os.PathLike[str]", Callable[[str | None], "Path | None"], None]


@runtime_checkable
class EnvironmentProvider(Protocol):
    """Source of environment snapshots plus a change signal."""

    changed: EventEmitter

    async def get_environment_variables(self, resource: str | None = None) -> Mapping[str, str]:
        """Environment variables that apply to resource."""
        ...


class EnvironmentVariablesProvider:
    """Process environment overlaid with the variables of a .env file.

    env_file is a path, or a function mapping a resource to its .env path.
    Snapshots are cached per resource until refresh() is called; refresh()
    fires `changed` when any snapshot that was handed out differs.
    """

    def __init__(
        self,
        *,
        env_file: EnvFile = None,
        base: Mapping[str, str] | None = None,
    ) -> None:
        self.changed = EventEmitter("environment variables changed")
        self._env_file = env_file
        self._base = base
        self._snapshots: MemoizedAsyncCache[str, dict[str, str]] = MemoizedAsyncCache(
            name="environment"
        )
        self._last: dict[str, dict[str, str]] = {}

    async def get_environment_variables(self, resource: str | None = None) -> Mapping[str, str]:
        key = resource or ""
        return await self._snapshots.get(key, lambda: self._load(key))

    async def refresh(self) -> bool:
        """Re-read every known snapshot. Returns True if `changed` fired."""
        previous = dict(self._last)
        self._snapshots.invalidate()
        different = False
        for key, old in previous.items():
            if await self.get_environment_variables(key or None) != old:
                different = True
        if different:
            logger.debug("Environment variables changed")
            self.changed.fire()
        return different

    def _env_file_for(self, key: str) -> Path | None:
        if self._env_file is None:
            return None
        if callable(self._env_file):
            return self._env_file(key or None)
        return Path(self._env_file)

    async def _load(self, key: str) -> dict[str, str]:
        env = dict(os.environ if self._base is None else self._base)
        env_file = self._env_file_for(key)
        if env_file is not None:
            try:
                values = await asyncio.to_thread(dotenv_values, env_file)
            except (OSError, ValueError):
                logger.warning("Failed to read env file %s", env_file, exc_info=True)
            else:
                env.update({name: value for name, value in values.items() if value is not None})
        self._last[key] = dict(env)
        return env
