"""Logging setup for SoundSync.

Every module obtains its logger through ``get_logger(__name__)``. The
application entry point calls ``initialize_logging`` once, optionally with a
YAML ``dictConfig`` file.

Typical usage example:
    from soundsync.core.logging_system import get_logger, initialize_logging

    initialize_logging("config/logging.yaml")
    logger = get_logger(__name__)
    logger.info("Sound manager ready")
"""

import logging
import logging.config
from pathlib import Path
from typing import Any

import yaml

ROOT_LOGGER_NAME = "soundsync"

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_initialized = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        Logger instance.
    """
    return logging.getLogger(name)


def _default_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": DEFAULT_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stderr",
            }
        },
        "loggers": {ROOT_LOGGER_NAME: {"level": level, "handlers": ["console"]}},
    }


def initialize_logging(config_path: str | Path | None = None, level: str | None = None) -> None:
    """Configure logging from a YAML file or from defaults.

    Args:
        config_path: Path to a YAML ``dictConfig`` file. Falls back to a
            console configuration when missing or unreadable.
        level: Optional level override for the ``soundsync`` logger.
    """
    global _initialized

    config: dict[str, Any] | None = None
    if config_path is not None:
        path = Path(config_path)
        if path.exists():
            try:
                with open(path, encoding="utf-8") as f:
                    config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logging.getLogger(__name__).error("Failed to read logging config %s: %s", path, e)
                config = None

    if not isinstance(config, dict):
        config = _default_config((level or "INFO").upper())

    logging.config.dictConfig(config)

    if level is not None:
        logging.getLogger(ROOT_LOGGER_NAME).setLevel(level.upper())

    _initialized = True
    get_logger(__name__).debug("Logging initialized (config=%s)", config_path)


def is_initialized() -> bool:
    """Check whether ``initialize_logging`` has run."""
    return _initialized
