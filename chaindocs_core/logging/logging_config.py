"""Logging configuration for chaindocs-core.

Loggers come from Prefect's ``get_logger`` so library output lands in the same
handlers as a surrounding Prefect deployment. Configuration is a dictConfig
mapping, either read from YAML or built from per-component defaults.

Environment variables:
    CHAINDOCS_LOGGING_CONFIG: Path to a YAML dictConfig file
    PREFECT_LOGGING_SETTINGS_PATH: Fallback config path shared with Prefect
    CHAINDOCS_LOG_LEVEL: Level of the chaindocs_core loggers (default INFO)
"""

import logging.config
import os
from pathlib import Path
from typing import Any

import yaml
from prefect.logging import get_logger

ROOT_LOGGER = "chaindocs_core"

# A scan issues dozens of RPC calls; httpx logs each one at INFO.
COMPONENT_LEVELS: dict[str, str] = {
    "chaindocs_core.ledger": "INFO",
    "chaindocs_core.discovery": "INFO",
    "chaindocs_core.cache": "WARNING",
    "httpx": "WARNING",
    "httpcore": "WARNING",
}

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)-7s | %(name)s - %(message)s"


class LoggingConfig:
    """Resolve and apply the logging configuration.

    The config file is taken from ``config_path``, then
    CHAINDOCS_LOGGING_CONFIG, then PREFECT_LOGGING_SETTINGS_PATH. Without a
    readable file the built-in defaults are used. ``level`` overrides the
    chaindocs_core level in either case.
    """

    def __init__(self, config_path: Path | None = None, level: str | None = None):
        self.config_path = config_path or self._config_path_from_env()
        self.level = level.upper() if level else None

    @staticmethod
    def _config_path_from_env() -> Path | None:
        for variable in ("CHAINDOCS_LOGGING_CONFIG", "PREFECT_LOGGING_SETTINGS_PATH"):
            if value := os.environ.get(variable):
                return Path(value)
        return None

    def load_config(self) -> dict[str, Any]:
        """Return the dictConfig mapping.

        Raises:
            ValueError: the YAML file does not hold a mapping.
        """
        if self.config_path is None or not self.config_path.exists():
            return self.default_config(self.level)
        with open(self.config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f)
        if not isinstance(config, dict):
            raise ValueError(f"Logging config {self.config_path} must be a mapping, got {type(config).__name__}")
        if self.level:
            config.setdefault("loggers", {}).setdefault(ROOT_LOGGER, {})["level"] = self.level
        return config

    @staticmethod
    def default_config(level: str | None = None) -> dict[str, Any]:
        """Console logging with one entry per chaindocs component."""
        root_level = level or os.environ.get("CHAINDOCS_LOG_LEVEL", "INFO").upper()
        loggers: dict[str, Any] = {
            ROOT_LOGGER: {"level": root_level, "handlers": ["console"], "propagate": False},
        }
        for name, component_level in COMPONENT_LEVELS.items():
            # An explicit level wins over the component defaults inside the package
            if level and name.startswith(ROOT_LOGGER):
                component_level = level
            loggers[name] = {"level": component_level}
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": LOG_FORMAT, "datefmt": "%H:%M:%S"}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": loggers,
            "root": {"level": "WARNING", "handlers": ["console"]},
        }

    def apply(self) -> None:
        logging.config.dictConfig(self.load_config())


_logging_config: LoggingConfig | None = None


def setup_logging(config_path: Path | None = None, level: str | None = None) -> LoggingConfig:
    """Configure logging for chaindocs-core and return the applied config.

    Example:
        >>> setup_logging(level="DEBUG")
    """
    global _logging_config

    _logging_config = LoggingConfig(config_path, level)
    _logging_config.apply()
    return _logging_config


def get_chaindocs_logger(name: str):
    """Get a Prefect-integrated logger, configuring logging on first use."""
    if _logging_config is None:
        setup_logging()
    return get_logger(name)
