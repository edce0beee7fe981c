"""
Application-wide constants for SafeOps.

Centralizes app name, on-disk naming conventions and tunables shared by
the atomic writer, the backup service and the downloader.
"""

from safeops import __version__

# Application display name (user-facing)
APP_NAME = "SafeOps"

# Application full description
APP_DESCRIPTION = "Atomic writes, backup/rollback sessions and resumable downloads"

# Technical identifiers (for paths, files - DO NOT change without migration)
APP_FOLDER_NAME = "SafeOps"
APP_CONFIG_FILENAME = "config.ini"
APP_LOG_FILENAME = "safeops.log"

# Backups live under <backup_root>/<session_id>/<original relative path>
DEFAULT_BACKUP_ROOT = ".safeops/backups"

# Sibling naming used for in-flight artifacts
TEMP_FILE_INFIX = ".tmp-"
PARTIAL_FILE_SUFFIX = ".part"

# Download defaults
DEFAULT_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_MAX_REDIRECTS = 10
DEFAULT_USER_AGENT = f"{APP_NAME}/{__version__}"

# Progress output is redrawn at most every 100ms (10Hz)
PROGRESS_INTERVAL_MS = 100
