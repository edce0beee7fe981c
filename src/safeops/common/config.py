import os
import configparser
import logging

from safeops.common.constants import (
    APP_CONFIG_FILENAME,
    DEFAULT_BACKUP_ROOT,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_MAX_REDIRECTS,
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    PROGRESS_INTERVAL_MS,
)
from safeops.utils.files import get_localappdata_dir

logger = logging.getLogger(__name__)


class Config:
    def __init__(self, custom_config_path: str | None = None):
        """Initialize Config from file.

        Args:
            custom_config_path: Optional path to custom config file.
                               Useful for testing different parameter sets.
                               If None, uses system config location.
        """
        # Determine config path
        if custom_config_path:
            self.config_path = custom_config_path
            logger.debug(f"Using custom config: {self.config_path}")
        else:
            # In test mode, use temp config to avoid polluting user's real config
            if "PYTEST_CURRENT_TEST" in os.environ:
                import tempfile

                test_config_dir = os.path.join(tempfile.gettempdir(), "safeops_test")
                os.makedirs(test_config_dir, exist_ok=True)
                self.config_path = os.path.join(test_config_dir, APP_CONFIG_FILENAME)
                logger.debug(f"Test mode detected, using temp config: {self.config_path}")
            else:
                self.config_path = os.path.join(get_localappdata_dir(), APP_CONFIG_FILENAME)

        self._config = configparser.ConfigParser()

        if os.path.exists(self.config_path):
            # Existing config: Load without injecting defaults
            logger.debug(f"Loading existing config from: {self.config_path}")
            self._config.read(self.config_path, encoding="utf-8-sig")
        else:
            logger.info(f"Config file not found. Creating default config at: {self.config_path}")
            self._set_defaults()

            config_dir = os.path.dirname(self.config_path)
            if config_dir:
                os.makedirs(config_dir, exist_ok=True)
            with open(self.config_path, "w", encoding="utf-8") as configfile:
                self._config.write(configfile)
            logger.info(f"Default {APP_CONFIG_FILENAME} created successfully")

        # Initialize properties from config values (using fallbacks for missing keys)
        self._initialize_properties()

    def _get_defaults(self):
        """Get default configuration values as a dictionary structure."""
        return {
            "Paths": {
                "backup_root": DEFAULT_BACKUP_ROOT,
            },
            "Download": {
                "timeout": DEFAULT_TIMEOUT,
                "chunk_size": DEFAULT_CHUNK_SIZE,
                "max_redirects": DEFAULT_MAX_REDIRECTS,
                "user_agent": DEFAULT_USER_AGENT,
            },
            "Progress": {
                "interval_ms": PROGRESS_INTERVAL_MS,
            },
            "General": {
                "dry_run": False,
                "log_level": "INFO",
            },
        }

    def _set_defaults(self):
        """Set default configuration values in the ConfigParser object."""
        self._populate(self._config, self._get_defaults())

    @staticmethod
    def _populate(parser: configparser.ConfigParser, values_by_section: dict):
        for section, values in values_by_section.items():
            parser[section] = {}
            for key, value in values.items():
                # Convert all values to strings for ConfigParser
                if isinstance(value, bool):
                    parser[section][key] = "true" if value else "false"
                else:
                    parser[section][key] = str(value)

    def _initialize_properties(self):
        """Initialize class properties from config values with fallbacks."""
        defaults = self._get_defaults()

        self.backup_root = self._config.get("Paths", "backup_root", fallback=defaults["Paths"]["backup_root"])

        d = defaults["Download"]
        self.timeout = self._getint("Download", "timeout", d["timeout"])
        self.chunk_size = self._getint("Download", "chunk_size", d["chunk_size"])
        self.max_redirects = self._getint("Download", "max_redirects", d["max_redirects"])
        self.user_agent = self._config.get("Download", "user_agent", fallback=d["user_agent"])

        self.progress_interval_ms = self._getint("Progress", "interval_ms", defaults["Progress"]["interval_ms"])

        g = defaults["General"]
        self.dry_run = self._getboolean("General", "dry_run", g["dry_run"])
        self.log_level_str = self._config.get("General", "log_level", fallback=g["log_level"])
        self.log_level = self._get_log_level(self.log_level_str)

        logger.debug("Configuration loaded: %s", self.config_path)

    def _getint(self, section: str, key: str, fallback: int) -> int:
        try:
            return self._config.getint(section, key, fallback=fallback)
        except ValueError:
            logger.warning(f"Invalid integer for [{section}] {key}, using default {fallback}")
            return fallback

    def _getboolean(self, section: str, key: str, fallback: bool) -> bool:
        try:
            return self._config.getboolean(section, key, fallback=fallback)
        except ValueError:
            logger.warning(f"Invalid boolean for [{section}] {key}, using default {fallback}")
            return fallback

    @property
    def progress_interval(self) -> float:
        """Progress redraw interval in seconds."""
        return max(self.progress_interval_ms, 0) / 1000.0

    def _get_log_level(self, level_str):
        """Convert string log level to logging level constant"""
        levels = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        return levels.get(level_str.upper(), logging.INFO)  # Default to INFO if invalid

    def _managed_values(self) -> dict:
        return {
            "Paths": {"backup_root": self.backup_root},
            "Download": {
                "timeout": self.timeout,
                "chunk_size": self.chunk_size,
                "max_redirects": self.max_redirects,
                "user_agent": self.user_agent,
            },
            "Progress": {"interval_ms": self.progress_interval_ms},
            "General": {"dry_run": self.dry_run, "log_level": self.log_level_str},
        }

    def save(self):
        """Save current configuration to file with minimal mutation.

        Re-reads the existing config file, updates ONLY managed keys and
        preserves all unrelated sections/keys.
        """
        current = configparser.ConfigParser()

        if os.path.exists(self.config_path):
            try:
                current.read(self.config_path, encoding="utf-8-sig")
                logger.debug(f"Re-read existing config from {self.config_path}")
            except configparser.Error as e:
                logger.warning(f"Failed to re-read config file: {e}. Will create fresh config.")
                current = configparser.ConfigParser()

        for section, values in self._managed_values().items():
            if not current.has_section(section):
                current.add_section(section)
            for key, value in values.items():
                if isinstance(value, bool):
                    current[section][key] = "true" if value else "false"
                else:
                    current[section][key] = str(value)

        try:
            with open(self.config_path, "w", encoding="utf-8") as configfile:
                current.write(configfile)
            logger.debug(f"Configuration saved to {self.config_path}")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")
            raise
