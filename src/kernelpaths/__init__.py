"""kernelpaths - where Jupyter kernels, runtime files and data files live."""

from contextlib import suppress

from kernelpaths.aggregator import DataDirAggregator, prefers_env_path

# Caching
from kernelpaths.cache import MemoizedAsyncCache
from kernelpaths.cancellation import CancellationToken

# Duration parsing
from kernelpaths.duration import parse_duration
from kernelpaths.env import EnvironmentProvider, EnvironmentVariablesProvider
from kernelpaths.events import EventEmitter
from kernelpaths.fs import FileSystem, FileSystemProbe
from kernelpaths.interpreter import (
    InterpreterExecutionError,
    InterpreterExecutor,
    SubprocessInterpreterExecutor,
)
from kernelpaths.platform import PlatformInfo
from kernelpaths.resolver import DirectoryResolver

# Service API
from kernelpaths.service import KernelSearchPathService, create_search_path_service

# Stores
from kernelpaths.stores import DurableStore, JsonFileStore, MemoryStore

# Core types
from kernelpaths.types import (
    Duration,
    ExecResult,
    Interpreter,
    OSFamily,
    SearchContext,
)

# Optional store imports - only available when dependencies are installed
with suppress(ImportError):
    from kernelpaths.stores import RedisStore

__version__ = "0.1.0"

__all__ = [
    "CancellationToken",
    "DataDirAggregator",
    "DirectoryResolver",
    "DurableStore",
    "Duration",
    "EnvironmentProvider",
    "EnvironmentVariablesProvider",
    "EventEmitter",
    "ExecResult",
    "FileSystem",
    "FileSystemProbe",
    "Interpreter",
    "InterpreterExecutionError",
    "InterpreterExecutor",
    "JsonFileStore",
    "KernelSearchPathService",
    "MemoizedAsyncCache",
    "MemoryStore",
    "OSFamily",
    "PlatformInfo",
    "RedisStore",
    "SearchContext",
    "SubprocessInterpreterExecutor",
    "create_search_path_service",
    "parse_duration",
    "prefers_env_path",
]
