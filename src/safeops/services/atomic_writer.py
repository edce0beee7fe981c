"""
Atomic Writer for whole-file replacement.

Writes go to a sibling temp file which is then renamed over the target, so
readers only ever see the previous content or the complete new content.
"""

import itertools
import logging
import os
import time
from typing import Union

from safeops.common.constants import TEMP_FILE_INFIX

logger = logging.getLogger(__name__)

_temp_counter = itertools.count()


def make_temp_path(path: str) -> str:
    """
    Build the temp path for path: a sibling named <path>.tmp-<token>.

    The token combines a millisecond timestamp with a process-wide counter
    so two writes within the same millisecond never collide.
    """
    token = f"{int(time.time() * 1000)}-{next(_temp_counter)}"
    return f"{path}{TEMP_FILE_INFIX}{token}"


class AtomicWriter:
    """Write files atomically using the temp-file-then-rename pattern."""

    def __init__(self, fs, dry_run: bool = False):
        """
        Initialize atomic writer.

        Args:
            fs: FileSystemService used for all filesystem access
            dry_run: If True, writes are reported as successful without touching the disk
        """
        self.fs = fs
        self.dry_run = dry_run

    async def write_file_atomic(self, path: str, content: Union[bytes, str]) -> None:
        """
        Replace path with content atomically.

        Args:
            path: Target file path
            content: Full replacement content (str is encoded as UTF-8)

        Raises:
            OSError: If creating directories, writing or renaming fails. The
                temp file is removed first and the target is left untouched.
        """
        if self.dry_run:
            logger.debug(f"Dry run: skipping write of {path}")
            return

        data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
        temp_path = make_temp_path(path)

        parent = os.path.dirname(path)
        if parent:
            await self.fs.mkdir(parent, recursive=True)

        try:
            await self.fs.write_file(temp_path, data)
            await self.fs.rename(temp_path, path)
        except BaseException:
            await self._discard(temp_path)
            raise

        logger.debug(f"Atomically wrote {len(data)} bytes to {path}")

    async def _discard(self, temp_path: str) -> None:
        try:
            await self.fs.rm(temp_path, force=True)
        except Exception as e:
            logger.debug(f"Could not remove temp file {temp_path}: {e}")
