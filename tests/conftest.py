"""Shared pytest fixtures and fakes."""

import asyncio
from collections.abc import Callable
from pathlib import Path

import pytest

from kernelpaths import (
    EventEmitter,
    ExecResult,
    Interpreter,
    KernelSearchPathService,
    MemoryStore,
    OSFamily,
    PlatformInfo,
)
from kernelpaths.types import path_key

HOME = Path("/home/u")


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFileSystem:
    """In-memory filesystem probe.

    Only paths in `existing` resolve; directories under `read_only` reject writes.
    """

    def __init__(self, existing: list[str] | None = None) -> None:
        self.existing: set[str] = {path_key(p) for p in existing or []}
        self.read_only: set[str] = set()
        self.created: list[Path] = []
        self.written: list[Path] = []
        self.deleted: list[Path] = []
        self.real_path_calls = 0

    def add(self, *paths: str | Path) -> None:
        self.existing.update(path_key(p) for p in paths)

    async def create_directory(self, path: Path) -> None:
        self.created.append(path)
        self.existing.add(path_key(path))

    async def exists(self, path: Path) -> bool:
        return path_key(path) in self.existing

    async def write_file(self, path: Path, data: bytes) -> None:
        if path_key(path.parent) in self.read_only:
            raise PermissionError(f"read-only: {path.parent}")
        self.written.append(path)
        self.existing.add(path_key(path))

    async def delete_file(self, path: Path) -> None:
        self.deleted.append(path)
        self.existing.discard(path_key(path))

    async def real_path(self, path: Path) -> Path | None:
        self.real_path_calls += 1
        return path if path_key(path) in self.existing else None


class FakeExecutor:
    """Interpreter executor returning canned output."""

    def __init__(self, stdout: str = "", error: Exception | None = None) -> None:
        self.stdout = stdout
        self.error = error
        self.calls: list[tuple[str, Path]] = []

    async def execute(self, interpreter: Interpreter, script: Path, args: list[str]) -> ExecResult:
        self.calls.append((interpreter.id, script))
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return ExecResult(stdout=self.stdout, stderr="")


class FakeEnvProvider:
    """Environment provider with a call counter and an optional gate."""

    def __init__(self, env: dict[str, str] | None = None) -> None:
        self.env = dict(env or {})
        self.changed = EventEmitter("environment variables changed")
        self.calls = 0
        self.gate: asyncio.Event | None = None

    async def get_environment_variables(self, resource: str | None = None) -> dict[str, str]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return dict(self.env)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fs() -> FakeFileSystem:
    return FakeFileSystem()


@pytest.fixture
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def env_provider() -> FakeEnvProvider:
    return FakeEnvProvider()


@pytest.fixture
def store() -> MemoryStore:
    """Create a fresh MemoryStore for each test."""
    return MemoryStore()


@pytest.fixture
def unix_platform() -> PlatformInfo:
    return PlatformInfo(os_family=OSFamily.OTHER_UNIX, home_dir=HOME)


@pytest.fixture
def make_service(
    unix_platform: PlatformInfo,
    env_provider: FakeEnvProvider,
    store: MemoryStore,
    fs: FakeFileSystem,
    executor: FakeExecutor,
    clock: FakeClock,
) -> Callable[..., KernelSearchPathService]:
    """Factory for services wired to the fakes; keyword arguments override."""

    def factory(**overrides: object) -> KernelSearchPathService:
        options: dict[str, object] = {
            "platform": unix_platform,
            "env_provider": env_provider,
            "store": store,
            "fs": fs,
            "executor": executor,
            "temp_dir": Path("/tmp/kernelpaths-test"),
            "process_env": {},
            "clock": clock,
        }
        options.update(overrides)
        return KernelSearchPathService(**options)  # type: ignore[arg-type]

    return factory
