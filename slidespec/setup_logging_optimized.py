import logging
from typing import Optional

from slidespec.config.logging_config import apply_logging_config, get_logging_config


def setup_logging(level: Optional[str] = None) -> None:
    """Apply the environment logging profile (production/development/debug).

    `level` forces the root level over the profile default; an unknown level
    name falls back to INFO.
    """
    config = get_logging_config()
    if level:
        config["default_level"] = level.upper()
    apply_logging_config(config)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger, configuring logging on first use."""
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
