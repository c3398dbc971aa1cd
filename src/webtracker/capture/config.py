# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management for the web tracker.

Values are resolved in order: built-in defaults, ``config.yaml`` in the
config directory, environment variables, then command-line arguments
(applied by the caller).
"""

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".webtracker"
DEFAULT_DB_PATH = DEFAULT_CONFIG_DIR / "web-tracker.db"
DEFAULT_INTERVAL = 5.0

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    """Tracker configuration container."""

    # Tracker settings
    interval: float = DEFAULT_INTERVAL  # seconds

    # Browser settings
    application: str = "Google Chrome"
    browser_timeout: float = 10.0  # seconds

    # Storage
    db_path: Path = DEFAULT_DB_PATH

    # Logging
    log_level: str = "INFO"

    # Config directory (holds config.yaml)
    config_dir: Optional[Path] = None

    _raw: Dict[str, Any] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self):
        if self.config_dir is None:
            self.config_dir = Path(os.environ.get("WEBTRACKER_CONFIG_DIR", DEFAULT_CONFIG_DIR))
        self.config_dir = Path(self.config_dir).expanduser()
        self.db_path = Path(self.db_path).expanduser()

        if self.config_path.exists():
            self.load_from_file()

        self.load_from_env()

    @property
    def config_path(self) -> Path:
        return self.config_dir / "config.yaml"

    def load_from_file(self) -> None:
        """Load configuration from YAML file. Bad files and sections fall back to defaults."""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_path}: top level is not a mapping")
            return
        self._raw = data

        tracker = self._section(data, "tracker")
        self.interval = self._number(tracker, "interval", self.interval)

        browser = self._section(data, "browser")
        self.application = str(browser.get("application", self.application))
        self.browser_timeout = self._number(browser, "timeout", self.browser_timeout)

        paths = self._section(data, "paths")
        if paths.get("database"):
            self.db_path = Path(str(paths["database"])).expanduser()

        logging_section = self._section(data, "logging")
        self.log_level = str(logging_section.get("level", self.log_level)).upper()

    @staticmethod
    def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
        section = data.get(name, {})
        if not isinstance(section, dict):
            logger.warning(f"Config section '{name}' is not a mapping, using defaults")
            return {}
        return section

    @staticmethod
    def _number(section: Dict[str, Any], key: str, default: float) -> float:
        if key not in section:
            return default
        try:
            return float(section[key])
        except (TypeError, ValueError):
            logger.warning(f"Config value '{key}' is not a number: {section[key]!r}")
            return default

    def load_from_env(self) -> None:
        """Load configuration from environment variables."""
        if env_interval := os.environ.get("WEBTRACKER_INTERVAL"):
            try:
                self.interval = float(env_interval)
            except ValueError:
                logger.warning(f"WEBTRACKER_INTERVAL is not a number: {env_interval!r}")

        if env_db := os.environ.get("WEBTRACKER_DB"):
            self.db_path = Path(env_db).expanduser()

        if env_level := os.environ.get("WEBTRACKER_LOG_LEVEL"):
            self.log_level = env_level.upper()

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw value from the config file by dot-notation key."""
        value: Any = self._raw
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value

    def save_to_file(self) -> None:
        """Save current configuration to YAML file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        data = {
            "tracker": {"interval": self.interval},
            "browser": {"application": self.application, "timeout": self.browser_timeout},
            "paths": {"database": str(self.db_path)},
            "logging": {"level": self.log_level},
        }

        with open(self.config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def validate(self) -> List[str]:
        """Return a list of configuration problems (empty when valid)."""
        errors = []

        if not math.isfinite(self.interval) or self.interval <= 0:
            errors.append("interval must be a positive number of seconds")

        if not math.isfinite(self.browser_timeout) or self.browser_timeout <= 0:
            errors.append("browser timeout must be a positive number of seconds")

        if self.log_level not in LOG_LEVELS:
            errors.append(f"log level must be one of {', '.join(LOG_LEVELS)}")

        return errors
