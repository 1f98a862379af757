"""Tests for data-dir aggregation precedence."""

from pathlib import Path

import pytest
from conftest import HOME, FakeExecutor, FakeFileSystem

from kernelpaths import (
    DataDirAggregator,
    DirectoryResolver,
    Interpreter,
    InterpreterExecutionError,
    OSFamily,
    PlatformInfo,
    SearchContext,
    prefers_env_path,
)
from kernelpaths.interpreter import DATA_DIR_PROBE_SCRIPT

USER_DIR = HOME / ".local/share/jupyter"
SYSTEM_DIRS = [Path("/usr/local/share/jupyter"), Path("/usr/share/jupyter")]
ENV_INTERPRETER = Interpreter(
    id="/envs/py/bin/python",
    executable=Path("/envs/py/bin/python"),
    sys_prefix=Path("/envs/py"),
)


def make_aggregator(
    fs: FakeFileSystem,
    executor: FakeExecutor,
    *,
    jupyter_paths: list[Path] | Exception | None = None,
    env: dict[str, str] | None = None,
) -> DataDirAggregator:
    async def read_jupyter_paths() -> list[Path]:
        if isinstance(jupyter_paths, Exception):
            raise jupyter_paths
        return list(jupyter_paths or [])

    resolver = DirectoryResolver(PlatformInfo(os_family=OSFamily.OTHER_UNIX, home_dir=HOME), fs)
    return DataDirAggregator(
        resolver=resolver,
        fs=fs,
        executor=executor,
        jupyter_paths=read_jupyter_paths,
        process_env=env or {},
    )


class TestPreferEnvPath:
    """JUPYTER_PREFER_ENV_PATH parsing."""

    @pytest.mark.parametrize("value", ["no", "N", "false", "OFF", "0", "0.0", ""])
    def test_falsy_values(self, value: str) -> None:
        assert prefers_env_path({"JUPYTER_PREFER_ENV_PATH": value}) is False

    @pytest.mark.parametrize("value", ["1", "yes", "true", "anything"])
    def test_other_values(self, value: str) -> None:
        assert prefers_env_path({"JUPYTER_PREFER_ENV_PATH": value}) is True

    def test_unset_defaults_to_no(self) -> None:
        assert prefers_env_path({}) is False


class TestPrecedence:
    """Merge order and deduplication."""

    async def test_no_interpreter_linux(self, fs: FakeFileSystem, executor: FakeExecutor) -> None:
        aggregator = make_aggregator(fs, executor)
        assert await aggregator.aggregate(SearchContext()) == [USER_DIR, *SYSTEM_DIRS]
        assert executor.calls == []

    async def test_jupyter_path_first_and_deduplicated(
        self, fs: FakeFileSystem, executor: FakeExecutor
    ) -> None:
        aggregator = make_aggregator(
            fs, executor, jupyter_paths=[Path("/usr/share/jupyter"), Path("/b")]
        )
        assert await aggregator.aggregate(SearchContext()) == [
            Path("/usr/share/jupyter"),
            Path("/b"),
            USER_DIR,
            Path("/usr/local/share/jupyter"),
        ]

    async def test_user_dir_before_env_dir_by_default(
        self, fs: FakeFileSystem, executor: FakeExecutor
    ) -> None:
        aggregator = make_aggregator(fs, executor)
        result = await aggregator.aggregate(SearchContext(interpreter=ENV_INTERPRETER))
        assert result == [USER_DIR, Path("/envs/py/share/jupyter"), *SYSTEM_DIRS]

    async def test_env_dir_first_when_preferred(
        self, fs: FakeFileSystem, executor: FakeExecutor
    ) -> None:
        aggregator = make_aggregator(fs, executor, env={"JUPYTER_PREFER_ENV_PATH": "1"})
        result = await aggregator.aggregate(SearchContext(interpreter=ENV_INTERPRETER))
        assert result == [Path("/envs/py/share/jupyter"), USER_DIR, *SYSTEM_DIRS]

    async def test_env_dir_skipped_when_it_is_a_system_dir(
        self, fs: FakeFileSystem, executor: FakeExecutor
    ) -> None:
        system_python = Interpreter(
            id="/usr/bin/python3", executable=Path("/usr/bin/python3"), sys_prefix=Path("/usr")
        )
        aggregator = make_aggregator(fs, executor, env={"JUPYTER_PREFER_ENV_PATH": "yes"})
        result = await aggregator.aggregate(SearchContext(interpreter=system_python))
        assert result == [USER_DIR, *SYSTEM_DIRS]


class TestInterpreterProbe:
    """Source 2: the interpreter's user site data dir."""

    async def test_existing_probe_output_comes_second(self, fs: FakeFileSystem) -> None:
        fs.add("/home/u/.local/site/share/jupyter")
        executor = FakeExecutor(stdout="/home/u/.local/site/share/jupyter\n")
        aggregator = make_aggregator(fs, executor, jupyter_paths=[Path("/jp")])
        result = await aggregator.aggregate(SearchContext(interpreter=ENV_INTERPRETER))
        assert result[:2] == [Path("/jp"), Path("/home/u/.local/site/share/jupyter")]
        assert executor.calls == [(ENV_INTERPRETER.id, DATA_DIR_PROBE_SCRIPT)]

    async def test_missing_probe_output_is_ignored(self, fs: FakeFileSystem) -> None:
        executor = FakeExecutor(stdout="/does/not/exist\n")
        aggregator = make_aggregator(fs, executor)
        result = await aggregator.aggregate(SearchContext(interpreter=ENV_INTERPRETER))
        assert Path("/does/not/exist") not in result

    async def test_empty_probe_output(self, fs: FakeFileSystem) -> None:
        aggregator = make_aggregator(fs, FakeExecutor(stdout="  \n"))
        result = await aggregator.aggregate(SearchContext(interpreter=ENV_INTERPRETER))
        assert result == [USER_DIR, Path("/envs/py/share/jupyter"), *SYSTEM_DIRS]


class TestSourceFailures:
    """A failing source contributes nothing."""

    async def test_executor_failure(self, fs: FakeFileSystem) -> None:
        executor = FakeExecutor(
            error=InterpreterExecutionError(ENV_INTERPRETER, "exited with code 1")
        )
        aggregator = make_aggregator(fs, executor, jupyter_paths=[Path("/jp")])
        result = await aggregator.aggregate(SearchContext(interpreter=ENV_INTERPRETER))
        assert result == [Path("/jp"), USER_DIR, Path("/envs/py/share/jupyter"), *SYSTEM_DIRS]

    async def test_jupyter_path_failure(self, fs: FakeFileSystem, executor: FakeExecutor) -> None:
        aggregator = make_aggregator(fs, executor, jupyter_paths=OSError("env unavailable"))
        assert await aggregator.aggregate(SearchContext()) == [USER_DIR, *SYSTEM_DIRS]
