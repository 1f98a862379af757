"""Async filesystem probe."""

import asyncio
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

import aiofiles
import aiofiles.os


@runtime_checkable
class FileSystemProbe(Protocol):
    """Filesystem operations the path engine needs."""

    async def create_directory(self, path: Path) -> None:
        """Create path and missing parents; existing directories are fine."""
        ...

    async def exists(self, path: Path) -> bool:
        """Whether path exists."""
        ...

    async def write_file(self, path: Path, data: bytes) -> None:
        """Write data to path, replacing any previous content."""
        ...

    async def delete_file(self, path: Path) -> None:
        """Delete the file at path."""
        ...

    async def real_path(self, path: Path) -> Path | None:
        """Canonical form of an existing path, None if it cannot be resolved."""
        ...


def _resolve(path: Path) -> Path | None:
    try:
        resolved = Path(os.path.realpath(path, strict=True))
    except (OSError, ValueError):
        return None
    return resolved


class FileSystem:
    """FileSystemProbe backed by the local disk."""

    async def create_directory(self, path: Path) -> None:
        await aiofiles.os.makedirs(path, exist_ok=True)

    async def exists(self, path: Path) -> bool:
        return await aiofiles.os.path.exists(path)

    async def write_file(self, path: Path, data: bytes) -> None:
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

    async def delete_file(self, path: Path) -> None:
        await aiofiles.os.remove(path)

    async def real_path(self, path: Path) -> Path | None:
        return await asyncio.to_thread(_resolve, path)
