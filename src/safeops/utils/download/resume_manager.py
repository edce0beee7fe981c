"""
Resume Manager for partial download state.

Owns the <destination>.part file of one download: how large it is, whether
the next attempt can continue from it, and how it is finally committed to
the destination.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

from safeops.common.constants import PARTIAL_FILE_SUFFIX

logger = logging.getLogger(__name__)


@dataclass
class ResumeDecision:
    should_resume: bool
    resume_from: int = 0


@dataclass
class DownloadContext:
    """Per-hop view of a download: where it comes from, where it goes, where it resumes."""

    url: str
    destination: str
    part_path: str
    has_partial: bool = False
    resume_from: int = 0
    total_bytes: int = 0

    @property
    def is_resuming(self) -> bool:
        return self.resume_from > 0


def part_file_for(destination: str) -> str:
    return f"{destination}{PARTIAL_FILE_SUFFIX}"


async def probe_total_bytes(http, url: str, headers: Optional[Dict[str, str]] = None) -> int:
    """
    Ask the server for the full size of url with a HEAD request.

    Returns:
        content-length of a 2xx answer, 0 when unknown or when the probe fails
    """
    try:
        response = await http.head(url, headers=headers)
    except Exception as e:
        logger.debug(f"HEAD probe failed for {url}: {e}")
        return 0

    if not 200 <= response.status_code < 300:
        logger.debug(f"HEAD probe for {url} answered HTTP {response.status_code}")
        return 0
    return response.content_length or 0


class ResumeManager:
    """Manage the part file of a single destination."""

    def __init__(self, destination: str, fs):
        """
        Initialize resume manager.

        Args:
            destination: Final destination file path
            fs: FileSystemService used for all part-file access
        """
        self.destination = destination
        self.fs = fs
        self.part_file = part_file_for(destination)

    async def has_partial(self) -> bool:
        try:
            return await self.fs.exists(self.part_file)
        except OSError as e:
            logger.debug(f"Could not check {self.part_file}: {e}")
            return False

    async def partial_size(self) -> int:
        """Size of the part file, 0 if it is missing or unreadable."""
        try:
            if not await self.fs.exists(self.part_file):
                return 0
            return await self.fs.get_size(self.part_file)
        except OSError as e:
            logger.debug(f"Could not stat {self.part_file}: {e}")
            return 0

    async def plan(self, total_bytes: int) -> ResumeDecision:
        """
        Decide whether the next attempt continues from the part file.

        Resumes only when the full size is known and the partial is
        non-empty but shorter than it. A partial at or past the full size is
        stale and will be overwritten.
        """
        if total_bytes <= 0:
            return ResumeDecision(should_resume=False)

        size = await self.partial_size()
        if 0 < size < total_bytes:
            logger.info(f"Resuming download of {self.destination} from byte {size} of {total_bytes}")
            return ResumeDecision(should_resume=True, resume_from=size)

        if size >= total_bytes:
            logger.warning(f"Discarding stale partial {self.part_file} ({size} bytes, expected {total_bytes})")
        return ResumeDecision(should_resume=False)

    async def reset(self) -> None:
        """Start the part file over as an empty file."""
        await self.fs.write_file(self.part_file, b"")

    async def cleanup(self) -> None:
        """Remove the part file. Failures are logged, never raised."""
        try:
            await self.fs.rm(self.part_file, force=True)
        except Exception as e:
            logger.debug(f"Could not remove {self.part_file}: {e}")

    async def finalize(self, writer) -> None:
        """
        Commit the part file to the destination through an AtomicWriter.

        Args:
            writer: AtomicWriter performing the replacement of the destination
        """
        content = await self.fs.read_file(self.part_file)
        await writer.write_file_atomic(self.destination, content)
        await self.cleanup()
        logger.debug(f"Committed {len(content)} bytes to {self.destination}")
