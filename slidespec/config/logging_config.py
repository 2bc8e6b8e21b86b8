"""
Environment-specific logging configuration
"""
import logging
import os
from typing import Dict, Any, Optional


# Modules that chatter at INFO on every request
_PIPELINE_MODULES = [
    "slidespec.agents.ai.structured_output",
    "slidespec.services.prompt_sanitizer",
    "slidespec.agents.generation.enhancer",
    "slidespec.agents.generation.layout_repair",
]


def get_logging_config() -> Dict[str, Any]:
    """Get logging configuration based on environment"""

    is_production = os.getenv("ENV") == "production"
    is_debug = os.getenv("DEBUG", "false").lower() == "true"

    config = {
        "production": {
            "default_level": "WARNING",
            "console_format": "%(levelname)s - %(message)s",
            "suppress_modules": list(_PIPELINE_MODULES),
        },
        "development": {
            "default_level": "INFO",
            "console_format": "%(asctime)s - %(levelname)s - %(message)s",
            "suppress_modules": [],
        },
        "debug": {
            "default_level": "DEBUG",
            "console_format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
            "suppress_modules": [],
        },
    }

    if is_debug:
        selected = dict(config["debug"])
        selected["environment"] = "debug"
    elif is_production:
        selected = dict(config["production"])
        selected["environment"] = "production"
    else:
        selected = dict(config["development"])
        selected["environment"] = "development"

    # Explicit level wins over the profile default
    level_override = os.getenv("LOG_LEVEL")
    if level_override:
        selected["default_level"] = level_override.upper()

    return selected


def apply_logging_config(config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Apply logging configuration to Python's logging system"""
    if config is None:
        config = get_logging_config()

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config["default_level"], logging.INFO))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(config["console_format"]))
    root_logger.handlers = [console_handler]

    for module in config.get("suppress_modules", []):
        logging.getLogger(module).setLevel(logging.WARNING)

    # httpx logs every request line at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return config
