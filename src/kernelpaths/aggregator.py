"""DataDirAggregator - merge data-directory sources by Jupyter's precedence.

Order (first occurrence of a path wins):
1. JUPYTER_PATH entries
2. the interpreter's user-site data dir (probe script)
3. user data dir and environment-prefix dir, ordered by JUPYTER_PREFER_ENV_PATH
4. system data dirs

Mirrors jupyter_path() in jupyter_core/paths.py.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path

from kernelpaths.fs import FileSystemProbe
from kernelpaths.interpreter import DATA_DIR_PROBE_SCRIPT, InterpreterExecutor
from kernelpaths.resolver import DirectoryResolver
from kernelpaths.types import Interpreter, SearchContext, path_key, unique_paths

logger = logging.getLogger(__name__)

# jupyter_core treats these (case-insensitive) as "not set"
FALSY_ENV_VALUES = frozenset({"no", "n", "false", "off", "0", "0.0"})


def prefers_env_path(env: Mapping[str, str]) -> bool:
    """Whether environment-level dirs take priority over user-level dirs."""
    return (env.get("JUPYTER_PREFER_ENV_PATH") or "no").lower() not in FALSY_ENV_VALUES


class DataDirAggregator:
    """Builds the ordered data-dir list for one search context."""

    def __init__(
        self,
        *,
        resolver: DirectoryResolver,
        fs: FileSystemProbe,
        executor: InterpreterExecutor,
        jupyter_paths: Callable[[], Awaitable[list[Path]]],
        process_env: Mapping[str, str],
    ) -> None:
        self._resolver = resolver
        self._fs = fs
        self._executor = executor
        self._jupyter_paths = jupyter_paths
        self._env = process_env

    async def aggregate(self, context: SearchContext) -> list[Path]:
        candidates: list[Path | None] = []

        # 1. JUPYTER_PATH
        candidates.extend(await self._from_jupyter_path())

        # 2. user site data dir of the interpreter
        if context.interpreter is not None:
            candidates.append(await self._from_interpreter(context.interpreter))

        # 3. user and environment data dirs
        system_dirs = self._resolver.system_data_dirs(self._env)
        env_dir = self._env_prefix_dir(context.interpreter, system_dirs)
        user_dir = self._resolver.jupyter_data_dir(self._env)
        if prefers_env_path(self._env):
            candidates.extend([env_dir, user_dir])
        else:
            candidates.extend([user_dir, env_dir])

        # 4. system data dirs
        candidates.extend(system_dirs)

        result = unique_paths(candidates)
        logger.debug(
            "Data dirs for %s: %s",
            context.interpreter.id if context.interpreter else "<no interpreter>",
            [str(p) for p in result],
        )
        return result

    async def _from_jupyter_path(self) -> list[Path]:
        try:
            return await self._jupyter_paths()
        except Exception:
            logger.warning("Failed to read JUPYTER_PATH", exc_info=True)
            return []

    async def _from_interpreter(self, interpreter: Interpreter) -> Path | None:
        try:
            result = await self._executor.execute(interpreter, DATA_DIR_PROBE_SCRIPT, [])
            output = result.stdout.strip()
            if not output:
                logger.debug(
                    "Empty Jupyter data dir from %s, stderr = %s", interpreter.id, result.stderr
                )
                return None
            site_dir = Path(output)
            if not await self._fs.exists(site_dir):
                return None
            return site_dir
        except Exception:
            logger.warning(
                "Failed to get the user site data dir for %s", interpreter.id, exc_info=True
            )
            return None

    @staticmethod
    def _env_prefix_dir(interpreter: Interpreter | None, system_dirs: list[Path]) -> Path | None:
        if interpreter is None or interpreter.sys_prefix is None:
            return None
        candidate = interpreter.sys_prefix / "share" / "jupyter"
        if path_key(candidate) in {path_key(p) for p in system_dirs}:
            return None
        return candidate
