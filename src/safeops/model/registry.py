"""
Registry classification.

A registry is a caller-named file or directory tree that is backed up and
restored as a unit. Whether it is file-like or directory-like is decided
once, here, and carried around as an explicit tag.
"""

import logging
import re
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)

# Has an extension and the dot is preceded by a real name character:
# matches test.md, docs/AGENTS.md but not .github or .pair
_FILE_EXTENSION_PATTERN = re.compile(r"[^./]\.[a-z0-9]+$", re.IGNORECASE)


@dataclass(frozen=True)
class FileRegistry:
    path: str


@dataclass(frozen=True)
class DirectoryRegistry:
    path: str


Registry = Union[FileRegistry, DirectoryRegistry]


def looks_like_file(path: str) -> bool:
    """Return True if the path name alone identifies a file."""
    return bool(_FILE_EXTENSION_PATTERN.search(path))


async def classify_registry_path(fs, path: str) -> Registry:
    """
    Decide whether path should be handled as a single file or a directory tree.

    Falls back to the filesystem when the name is inconclusive. A missing
    path, or any error while probing, is treated as a file: backups run
    before risky mutations and must not be blocked by a failed probe.

    Args:
        fs: FileSystemService used for the existence/folder probe
        path: Registry path

    Returns:
        FileRegistry or DirectoryRegistry
    """
    if looks_like_file(path):
        return FileRegistry(path)

    try:
        if not await fs.exists(path):
            return FileRegistry(path)
        if await fs.is_folder(path):
            return DirectoryRegistry(path)
        return FileRegistry(path)
    except Exception as e:
        logger.warning(f"Could not inspect {path}, treating it as a file: {e}")
        return FileRegistry(path)
