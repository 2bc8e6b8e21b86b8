"""
Configuration package
"""
from .logging_config import get_logging_config, apply_logging_config

__all__ = ["get_logging_config", "apply_logging_config"]
