"""
Filesystem Access

Async wrappers around the few filesystem calls the resize pipeline needs.
Blocking calls run in a worker thread so the event loop keeps serving other
requests while a stat or mkdir is pending.
"""

import asyncio
import os
import stat as stat_module
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union

PathLike = Union[str, Path]


@dataclass(frozen=True)
class FileStat:
    """Metadata snapshot of a filesystem entry."""
    exists: bool
    is_file: bool
    mtime_ns: int = 0

    @classmethod
    def missing(cls) -> "FileStat":
        return cls(exists=False, is_file=False, mtime_ns=0)

    @classmethod
    def from_os(cls, result: os.stat_result) -> "FileStat":
        return cls(
            exists=True,
            is_file=stat_module.S_ISREG(result.st_mode),
            mtime_ns=result.st_mtime_ns,
        )


class Filesystem(Protocol):
    """What the orchestrator and dispatcher need from a filesystem."""

    async def stat(self, path: PathLike) -> FileStat:
        """Raise OSError (FileNotFoundError included) when the entry can't be read."""
        ...

    async def ensure_dir(self, path: PathLike) -> None:
        ...


class LocalFilesystem:
    """Filesystem backed by the local disk."""

    async def stat(self, path: PathLike) -> FileStat:
        result = await asyncio.to_thread(os.stat, path)
        return FileStat.from_os(result)

    async def ensure_dir(self, path: PathLike) -> None:
        # exist_ok keeps concurrent fills into the same tree from failing
        await asyncio.to_thread(os.makedirs, path, exist_ok=True)
