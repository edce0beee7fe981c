"""
File system stub with failure injection.

Wraps the local-disk implementation so tests run against real files under
tmp_path while individual operations can be made to fail on demand.
"""

from typing import Dict, List, Optional, Tuple

from safeops.services.file_system_service import LocalFileSystemService


class FailingFileSystemService(LocalFileSystemService):
    """LocalFileSystemService that raises injected errors and records calls."""

    def __init__(self):
        self.failures: Dict[str, Tuple[Optional[str], Exception, Optional[int]]] = {}
        self.calls: List[Tuple[str, str]] = []

    def fail(self, operation: str, error: Optional[Exception] = None, match: Optional[str] = None, after: int = 0):
        """
        Make operation fail.

        Args:
            operation: Method name, e.g. "write_file" or "rename"
            error: Exception to raise (an OSError by default)
            match: Only fail for paths containing this substring
            after: Let this many matching calls succeed first
        """
        self.failures[operation] = (match, error or OSError(f"Injected {operation} failure"), after)

    def clear(self, operation: str):
        self.failures.pop(operation, None)

    def _check(self, operation: str, path: str):
        self.calls.append((operation, path))
        if operation not in self.failures:
            return
        match, error, after = self.failures[operation]
        if match is not None and match not in path:
            return
        if after > 0:
            self.failures[operation] = (match, error, after - 1)
            return
        raise error

    def called(self, operation: str) -> List[str]:
        return [path for name, path in self.calls if name == operation]

    async def read_file(self, path):
        self._check("read_file", path)
        return await super().read_file(path)

    async def write_file(self, path, data):
        self._check("write_file", path)
        await super().write_file(path, data)

    async def append_file(self, path, data):
        self._check("append_file", path)
        await super().append_file(path, data)

    async def exists(self, path):
        self._check("exists", path)
        return await super().exists(path)

    async def is_folder(self, path):
        self._check("is_folder", path)
        return await super().is_folder(path)

    async def mkdir(self, path, recursive=False):
        self._check("mkdir", path)
        await super().mkdir(path, recursive=recursive)

    async def rm(self, path, recursive=False, force=False):
        self._check("rm", path)
        await super().rm(path, recursive=recursive, force=force)

    async def rename(self, old_path, new_path):
        self._check("rename", old_path)
        await super().rename(old_path, new_path)
