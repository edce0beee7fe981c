import os
import sys
import logging

from safeops.common.constants import APP_FOLDER_NAME

logger = logging.getLogger(__name__)


def get_localappdata_dir():
    """
    Get platform-appropriate application data directory for SafeOps.

    This is where the default config.ini and log file live. Follows platform
    conventions and respects XDG Base Directory Specification on Linux.

    Returns:
        str: Path to application data directory

    Platform paths:
        Windows: %LOCALAPPDATA%/SafeOps/
        Linux:   ~/.local/share/SafeOps/ (respects XDG_DATA_HOME)
        macOS:   ~/Library/Application Support/SafeOps/
    """
    # Windows: Use LOCALAPPDATA
    if sys.platform == "win32":
        local_app_data = os.getenv("LOCALAPPDATA")
        if local_app_data:
            app_data_dir = os.path.join(local_app_data, APP_FOLDER_NAME)
            os.makedirs(app_data_dir, exist_ok=True)
            return app_data_dir
        logger.warning("LOCALAPPDATA not found, using home directory")
        app_data_dir = os.path.join(os.path.expanduser("~"), APP_FOLDER_NAME)
        os.makedirs(app_data_dir, exist_ok=True)
        return app_data_dir

    # macOS: Use Application Support
    elif sys.platform == "darwin":
        app_support = os.path.expanduser(f"~/Library/Application Support/{APP_FOLDER_NAME}")
        os.makedirs(app_support, exist_ok=True)
        return app_support

    # Linux and other Unix-like: Use XDG standard
    else:
        xdg_data = os.getenv("XDG_DATA_HOME")
        if xdg_data:
            app_data_dir = os.path.join(xdg_data, APP_FOLDER_NAME)
        else:
            app_data_dir = os.path.expanduser(f"~/.local/share/{APP_FOLDER_NAME}")
        os.makedirs(app_data_dir, exist_ok=True)
        return app_data_dir
