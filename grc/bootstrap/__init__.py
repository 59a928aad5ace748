"""
bootstrap/ - Configuration and logging setup
"""

from .config import (
    GRCConfig,
    LLMConfig,
    LoggingConfig,
    get_config,
    load_config,
    reset_config,
)
from .logs import JSONFormatter, setup_logging, setup_logging_from_config

__all__ = [
    "GRCConfig",
    "LLMConfig",
    "LoggingConfig",
    "get_config",
    "load_config",
    "reset_config",
    "JSONFormatter",
    "setup_logging",
    "setup_logging_from_config",
]
