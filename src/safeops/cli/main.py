"""
Command-line entry point for manual use of the SafeOps primitives.

    safeops download URL DEST [--label TEXT] [--sha256 HEX] [--retries N]
    safeops write PATH SOURCE [--dry-run] [--backup] [--keep-backup]
    safeops clear-backups SESSION_ID
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional, Sequence

from safeops import __version__
from safeops.common.config import Config
from safeops.common.constants import APP_DESCRIPTION, APP_LOG_FILENAME, APP_NAME
from safeops.common.utils.async_logging import setup_async_logging, shutdown_async_logging
from safeops.services.atomic_writer import AtomicWriter
from safeops.services.backup_service import BackupService, backup_session
from safeops.services.file_system_service import LocalFileSystemService
from safeops.utils.download import DownloadError, DownloadOptions, HttpClient, RetryPolicy, download_with_retry
from safeops.utils.logging_utils import TimingSpan, flush_logs

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[Sequence[str]] = None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(prog="safeops", description=f"{APP_NAME} - {APP_DESCRIPTION}")

    parser.add_argument("--version", action="store_true", help="Show version information and exit")
    parser.add_argument("--config", type=str, metavar="PATH", help="Use a custom config.ini")
    parser.add_argument("--verbose", action="store_true", help="Log debug output")

    subparsers = parser.add_subparsers(dest="command")

    download = subparsers.add_parser("download", help="Download URL to DEST, resuming a previous attempt")
    download.add_argument("url")
    download.add_argument("dest")
    download.add_argument("--label", default="Downloading", help="Prefix of progress lines")
    download.add_argument("--sha256", metavar="HEX", help="Expected SHA-256 of the complete file")
    download.add_argument("--retries", type=int, default=0, help="Retries on transient network errors")

    write = subparsers.add_parser("write", help="Atomically replace PATH with the bytes of SOURCE")
    write.add_argument("path")
    write.add_argument("source")
    write.add_argument("--dry-run", action="store_true", help="Report the write without touching the disk")
    write.add_argument("--backup", action="store_true", help="Back up PATH first and restore it on failure")
    write.add_argument("--keep-backup", action="store_true", help="Keep the backup after a successful write")

    clear = subparsers.add_parser("clear-backups", help="Remove the backups of a session")
    clear.add_argument("session_id")

    return parser, parser.parse_args(argv)


def print_version_info():
    """Print version information"""
    print(f"{APP_NAME} {__version__}")
    print(f"Python: {sys.version.split()[0]}")


def _setup_logging(config: Config, verbose: bool):
    log_level = logging.DEBUG if verbose else config.log_level
    log_file_path = os.path.join(os.path.dirname(os.path.abspath(config.config_path)), APP_LOG_FILENAME)
    setup_async_logging(log_level=log_level, log_file_path=log_file_path)
    logger.debug(f"{APP_NAME} {__version__} started with log level: {logging.getLevelName(log_level)}")


async def run_download(args, config: Config) -> None:
    options = DownloadOptions(
        http=HttpClient(timeout=config.timeout, user_agent=config.user_agent, chunk_size=config.chunk_size),
        fs=LocalFileSystemService(),
        progress_writer=sys.stdout,
        label=args.label,
        progress_interval=config.progress_interval,
        max_redirects=config.max_redirects,
        expected_sha256=args.sha256,
    )
    await download_with_retry(args.url, args.dest, options, policy=RetryPolicy(max_retries=max(args.retries, 0)))


async def run_write(args, config: Config) -> None:
    fs = LocalFileSystemService()
    content = await fs.read_file(args.source)
    writer = AtomicWriter(fs, dry_run=args.dry_run or config.dry_run)

    if not args.backup:
        await writer.write_file_atomic(args.path, content)
        return

    async with backup_session(
        fs, {"target": args.path}, backup_root=config.backup_root, persist=args.keep_backup
    ) as service:
        logger.info(f"Backup session {service.current_session.id} started")
        await writer.write_file_atomic(args.path, content)


async def run_clear_backups(args, config: Config) -> None:
    service = BackupService(LocalFileSystemService(), backup_root=config.backup_root)
    await service.clear_backups(args.session_id)


COMMANDS = {
    "download": run_download,
    "write": run_write,
    "clear-backups": run_clear_backups,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the safeops command"""
    parser, args = parse_arguments(argv)

    if args.version:
        print_version_info()
        return 0
    if not args.command:
        parser.print_help()
        return 1

    config = Config(args.config)
    _setup_logging(config, args.verbose)

    try:
        with TimingSpan(args.command):
            asyncio.run(COMMANDS[args.command](args, config))
        return 0
    except (DownloadError, OSError, ValueError) as e:
        flush_logs()
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        flush_logs()
        print("Interrupted", file=sys.stderr)
        return 130
    finally:
        shutdown_async_logging(close_handlers=False)


if __name__ == "__main__":
    sys.exit(main())
