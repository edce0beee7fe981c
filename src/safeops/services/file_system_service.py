"""
File system capability.

Defines the protocol the atomic writer, the backup service and the
downloader use for every filesystem access, plus the local-disk
implementation built on aiofiles.
"""

import asyncio
import os
import logging
import shutil
from dataclasses import dataclass
from typing import List, Protocol

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirEntry:
    """Single directory listing entry."""

    name: str
    is_directory: bool


class FileSystemService(Protocol):
    """
    Protocol defining the filesystem operations the core relies on.

    Every operation raises OSError (or a subclass) on I/O failure. Paths are
    plain strings so in-memory or remote implementations can be injected.
    """

    async def read_file(self, path: str) -> bytes:
        """Read the whole file as bytes."""
        ...

    async def write_file(self, path: str, data: bytes) -> None:
        """Create or truncate the file and write data in one go."""
        ...

    async def append_file(self, path: str, data: bytes) -> None:
        """Append data, creating the file if needed."""
        ...

    async def exists(self, path: str) -> bool:
        ...

    async def is_folder(self, path: str) -> bool:
        ...

    async def get_size(self, path: str) -> int:
        ...

    async def mkdir(self, path: str, recursive: bool = False) -> None:
        """Create a directory. With recursive=True, parents are created and an existing path is fine."""
        ...

    async def rm(self, path: str, recursive: bool = False, force: bool = False) -> None:
        """Remove a file or (with recursive=True) a directory tree. force=True ignores a missing path."""
        ...

    async def rename(self, old_path: str, new_path: str) -> None:
        """Move old_path onto new_path, replacing an existing file."""
        ...

    async def readdir(self, path: str) -> List[DirEntry]:
        ...


class LocalFileSystemService:
    """FileSystemService backed by the local disk."""

    async def read_file(self, path: str) -> bytes:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def write_file(self, path: str, data: bytes) -> None:
        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

    async def append_file(self, path: str, data: bytes) -> None:
        async with aiofiles.open(path, "ab") as f:
            await f.write(data)
            await f.flush()

    async def exists(self, path: str) -> bool:
        return await aiofiles.os.path.exists(path)

    async def is_folder(self, path: str) -> bool:
        return await aiofiles.os.path.isdir(path)

    async def get_size(self, path: str) -> int:
        return await aiofiles.os.path.getsize(path)

    async def mkdir(self, path: str, recursive: bool = False) -> None:
        if recursive:
            await aiofiles.os.makedirs(path, exist_ok=True)
        else:
            await aiofiles.os.mkdir(path)

    async def rm(self, path: str, recursive: bool = False, force: bool = False) -> None:
        try:
            if await aiofiles.os.path.isdir(path) and not await aiofiles.os.path.islink(path):
                if not recursive:
                    raise IsADirectoryError(f"Is a directory (use recursive=True): {path}")
                await asyncio.to_thread(shutil.rmtree, path)
            else:
                await aiofiles.os.remove(path)
        except FileNotFoundError:
            if not force:
                raise
            logger.debug(f"Nothing to remove at {path}")

    async def rename(self, old_path: str, new_path: str) -> None:
        # os.replace semantics: overwrite the target in a single directory update
        await aiofiles.os.replace(old_path, new_path)

    async def readdir(self, path: str) -> List[DirEntry]:
        names = await aiofiles.os.listdir(path)
        entries = []
        for name in sorted(names):
            child = os.path.join(path, name)
            entries.append(DirEntry(name=name, is_directory=await aiofiles.os.path.isdir(child)))
        return entries
