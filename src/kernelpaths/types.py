"""Core types for kernelpaths."""

import asyncio
import enum
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Generic, TypeVar

T = TypeVar("T")


class OSFamily(enum.Enum):
    """Operating system families with distinct Jupyter directory layouts."""

    WINDOWS = "windows"
    MACOS = "macos"
    OTHER_UNIX = "unix"


@dataclass(frozen=True, slots=True)
class Interpreter:
    """A Python environment that can run the data-dir probe script."""

    id: str
    executable: Path
    sys_prefix: Path | None = None


@dataclass(frozen=True, slots=True)
class SearchContext:
    """Selects the cache key for a data-dir query."""

    resource: str | None = None
    interpreter: Interpreter | None = None

    @property
    def cache_key(self) -> str:
        # "" doubles as the "no interpreter" sentinel
        return self.interpreter.id if self.interpreter else ""


@dataclass(frozen=True, slots=True)
class ExecResult:
    """Captured output of an interpreter execution."""

    stdout: str
    stderr: str


@dataclass(frozen=True, slots=True)
class CacheRecord(Generic[T]):
    """A cached computation: Pending until its task is done, then Resolved."""

    task: "asyncio.Task[T]"
    created_at: float
    resolved_at: float | None = None

    @property
    def pending(self) -> bool:
        return not self.task.done()


def path_key(path: Path | str) -> str:
    """Identity used when deduplicating path entries."""
    return os.path.normcase(os.path.normpath(str(path)))


def unique_paths(paths: "list[Path | None]") -> list[Path]:
    """Drop empty and repeated entries, keeping first-seen order."""
    seen: dict[str, Path] = {}
    for path in paths:
        if path is not None and path_key(path) not in seen:
            seen[path_key(path)] = path
    return list(seen.values())


# Duration type alias
Duration = str | int | float  # "60s", "5m", "250ms" or seconds
