"""
Chunk Writer for part-file appends with hash verification.

Appends streamed chunks to the part file and keeps a running SHA-256 over
the whole artifact, including the portion resumed from a previous attempt.
"""

import hashlib
import logging

logger = logging.getLogger(__name__)


class ChunkWriter:
    """Append chunks to a part file and hash them on the way through."""

    def __init__(self, fs, file_path: str, resume_from_byte: int = 0):
        """
        Initialize chunk writer.

        Call open() before writing so an existing partial is folded into the hash.

        Args:
            fs: FileSystemService used for appends
            file_path: Part file to append to
            resume_from_byte: Byte position to resume from (for hash calculation)
        """
        self.fs = fs
        self.file_path = file_path
        self.hasher = hashlib.sha256()
        self.bytes_written = 0
        self._resume_from_byte = resume_from_byte

    async def open(self) -> "ChunkWriter":
        if self._resume_from_byte > 0 and await self.fs.exists(self.file_path):
            await self._update_hash_from_existing()
        return self

    async def _update_hash_from_existing(self):
        """Update hash from existing partial file."""
        existing = await self.fs.read_file(self.file_path)
        existing = existing[: self._resume_from_byte]
        self.hasher.update(existing)
        self.bytes_written = len(existing)

    async def write_chunk(self, chunk: bytes):
        """
        Append chunk and update hash.

        Args:
            chunk: Bytes to write
        """
        await self.fs.append_file(self.file_path, chunk)
        self.hasher.update(chunk)
        self.bytes_written += len(chunk)

    def hexdigest(self) -> str:
        return self.hasher.hexdigest()

    def verify(self, expected_sha256: str) -> bool:
        """
        Verify final hash.

        Args:
            expected_sha256: Expected SHA-256 checksum (hex, any case)

        Returns:
            True if hash matches, False otherwise
        """
        actual_hash = self.hasher.hexdigest()
        matches = actual_hash == expected_sha256.lower()

        if not matches:
            logger.warning(f"Hash mismatch: expected {expected_sha256}, got {actual_hash}")

        return matches

    def get_bytes_written(self) -> int:
        """
        Get total bytes written.

        Returns:
            Total bytes written (including resumed portion)
        """
        return self.bytes_written
