"""Core module - business logic, models, and utilities."""

from core.core_config import load_config
from core.exceptions import ConfigurationError
from core.logger import get_full_log_path, get_loggers

__all__ = [
    "ConfigurationError",
    "get_full_log_path",
    "get_loggers",
    "load_config",
]
