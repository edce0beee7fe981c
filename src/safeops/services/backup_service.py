"""
Backup Service for registry-level backup and rollback.

One BackupService instance owns one session: every registry backed up
through it lands under <backup_root>/<session_id>/, mirroring the original
path so restoring is a straight copy back.

Usage:
    service = BackupService(fs)
    await service.backup_all_registries({"github": ".github", "agents": "AGENTS.md"})
    try:
        ...  # mutate registries
    except Exception as e:
        await service.rollback(e)  # restores, then re-raises e
    await service.commit()
"""

import itertools
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import PurePath
from typing import Dict, Optional

from safeops.common.constants import DEFAULT_BACKUP_ROOT
from safeops.model.backup import BackupSession
from safeops.model.registry import DirectoryRegistry, FileRegistry, Registry, classify_registry_path

logger = logging.getLogger(__name__)

_session_counter = itertools.count()


def generate_session_id(now: Optional[datetime] = None) -> str:
    """
    Sortable session id unique per run, e.g. root-20240131-235959-123456-0.

    Microseconds plus a process-wide counter keep sessions started within the
    same second apart.
    """
    now = now or datetime.now()
    return f"{now.strftime('root-%Y%m%d-%H%M%S')}-{now.microsecond:06d}-{next(_session_counter)}"


class BackupService:
    """Backup, restore and rollback of registries for a single session."""

    def __init__(self, fs, backup_root: str = DEFAULT_BACKUP_ROOT, session_id: Optional[str] = None):
        """
        Initialize backup service and start a new session.

        Args:
            fs: FileSystemService used for all filesystem access
            backup_root: Directory holding one subdirectory per session
            session_id: Explicit session id (defaults to a time-derived id)
        """
        self.fs = fs
        self.backup_root = backup_root
        self.session = BackupSession(id=session_id or generate_session_id())

    @property
    def current_session(self) -> BackupSession:
        return self.session

    @property
    def session_root(self) -> str:
        return os.path.join(self.backup_root, self.session.id)

    def backup_location(self, registry_path: str) -> str:
        """
        Map a registry path to its location inside the session root.

        Absolute paths are re-rooted under the session root. Paths that climb
        out with '..' are rejected.
        """
        relative = PurePath(registry_path)
        if relative.is_absolute():
            relative = relative.relative_to(relative.anchor)
        if ".." in relative.parts:
            raise ValueError(f"Registry path must not contain '..': {registry_path}")
        return os.path.join(self.session_root, str(relative))

    async def create_registry_backup(self, registry_name: str, registry_path: str) -> str:
        """
        Back up one registry.

        Args:
            registry_name: Name of the registry (e.g. 'github', 'knowledge')
            registry_path: File or directory to back up (e.g. '.github', 'AGENTS.md')

        Returns:
            Path to the backup location
        """
        backup_path = self.backup_location(registry_path)
        target = await classify_registry_path(self.fs, registry_path)

        if isinstance(target, DirectoryRegistry):
            await self._copy_directory(registry_path, backup_path)
        else:
            await self._copy_file(registry_path, backup_path)

        self.session.track(registry_name, target, backup_path)
        logger.debug(f"Backed up registry '{registry_name}' ({registry_path}) to {backup_path}")
        return backup_path

    async def backup_all_registries(self, config: Dict[str, str]) -> Dict[str, str]:
        """
        Back up every registry in config, skipping paths that don't exist.

        Args:
            config: Mapping of registry names to paths

        Returns:
            Mapping of backed-up registry names to their backup paths
        """
        backup_paths = {}
        for registry_name, registry_path in config.items():
            if not await self.fs.exists(registry_path):
                logger.debug(f"Skipping registry '{registry_name}': {registry_path} does not exist")
                continue
            backup_paths[registry_name] = await self.create_registry_backup(registry_name, registry_path)

        logger.info(f"Backed up {len(backup_paths)} of {len(config)} registries to {self.session_root}")
        return backup_paths

    async def restore_registry(self, backup_path: str, original_path: str) -> None:
        """Copy a backup over its original location, replacing directory trees wholesale."""
        backup = await classify_registry_path(self.fs, backup_path)
        await self._restore(backup, original_path)

    async def rollback(self, original_error: Optional[BaseException] = None, keep_backup: bool = False) -> None:
        """
        Restore every registry of this session, then re-raise original_error.

        Args:
            original_error: Error that triggered the rollback, raised again once
                restoration has completed
            keep_backup: If True, keep the session's backups after restoring

        Raises:
            original_error, when given
        """
        for registry_name in self.session.registries:
            backup_path = self.session.backup_paths[registry_name]
            target = self.session.targets[registry_name]
            backup = (
                DirectoryRegistry(backup_path)
                if isinstance(target, DirectoryRegistry)
                else FileRegistry(backup_path)
            )
            await self._restore(backup, target.path)
            logger.debug(f"Restored registry '{registry_name}' to {target.path}")

        logger.info(f"Rolled back {len(self.session.registries)} registries from session {self.session.id}")

        if not keep_backup:
            await self.clear_backups(self.session.id)

        if original_error is not None:
            raise original_error

    async def commit(self, persist: bool = False) -> None:
        """Finish the session successfully, removing its backups unless persist is set."""
        if persist:
            logger.info(f"Keeping backups of session {self.session.id} at {self.session_root}")
            return
        await self.clear_backups(self.session.id)

    async def clear_backups(self, session_id: str) -> None:
        """Remove the backup root of session_id. A missing root is not an error."""
        session_root = os.path.join(self.backup_root, session_id)
        await self.fs.rm(session_root, recursive=True, force=True)
        logger.debug(f"Cleared backups at {session_root}")

    async def _restore(self, backup: Registry, original_path: str) -> None:
        if isinstance(backup, DirectoryRegistry):
            await self._restore_directory(backup.path, original_path)
        else:
            await self._copy_file(backup.path, original_path)

    async def _restore_directory(self, backup_dir: str, original_dir: str) -> None:
        try:
            await self.fs.rm(original_dir, recursive=True, force=True)
        except FileNotFoundError:
            pass
        await self._copy_directory(backup_dir, original_dir)

    async def _copy_file(self, source_path: str, dest_path: str) -> None:
        content = await self.fs.read_file(source_path)
        parent = os.path.dirname(dest_path)
        if parent:
            await self.fs.mkdir(parent, recursive=True)
        await self.fs.write_file(dest_path, content)

    async def _copy_directory(self, source_dir: str, dest_dir: str) -> None:
        await self.fs.mkdir(dest_dir, recursive=True)

        for entry in await self.fs.readdir(source_dir):
            source_path = os.path.join(source_dir, entry.name)
            dest_path = os.path.join(dest_dir, entry.name)
            if entry.is_directory:
                await self._copy_directory(source_path, dest_path)
            else:
                content = await self.fs.read_file(source_path)
                await self.fs.write_file(dest_path, content)


async def handle_backup_rollback(
    service: BackupService,
    error: Exception,
    auto_rollback: bool = True,
    keep_backup: bool = False,
) -> bool:
    """
    Roll back after error when auto_rollback is enabled.

    For callers that report error themselves: the rollback's re-raise of
    error is absorbed here, and a failing restore is logged rather than
    raised so it cannot mask error.

    Returns:
        True if all registries were restored
    """
    if not auto_rollback:
        return False

    try:
        await service.rollback(error, keep_backup)
    except Exception as rollback_error:
        if rollback_error is error:
            return True
        logger.error(f"Rollback failed: {rollback_error}")
        return False
    return True


@asynccontextmanager
async def backup_session(
    fs,
    registries: Dict[str, str],
    backup_root: str = DEFAULT_BACKUP_ROOT,
    keep_backup: bool = False,
    persist: bool = False,
):
    """
    Back up registries, run the block, then commit or roll back.

    Usage:
        async with backup_session(fs, {"github": ".github"}) as service:
            await writer.write_file_atomic(".github/agents/config.md", content)

    Any exception raised inside the block, cancellation included, restores every registry before it
    propagates.
    """
    service = BackupService(fs, backup_root=backup_root)
    await service.backup_all_registries(registries)
    try:
        yield service
    except BaseException as e:
        logger.warning(f"Rolling back session {service.session.id}: {e}")
        await service.rollback(e, keep_backup=keep_backup)
    await service.commit(persist=persist)
