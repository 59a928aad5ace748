"""
bootstrap/config.py - Application configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from pathlib import Path
import os
import json
import logging

logger = logging.getLogger("bootstrap.config")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class LLMConfig:
    """LLM layer configuration: vendor keys, retry policy, health and monitoring."""

    # Vendor credentials
    gemini_api_key: str = field(default="", repr=False)
    claude_api_key: str = field(default="", repr=False)

    # Retry policy, applied to every provider
    max_retries: int = 3
    retry_delay_ms: int = 1000  # Base for exponential backoff
    timeout_ms: int = 30000  # Per attempt

    # Health
    enable_health_checks: bool = True
    health_check_interval_seconds: int = 300
    error_rate_threshold: float = 0.05

    # Monitoring
    max_recent_calls: int = 1000
    cost_alert_usd: float = 0.01  # Mean cost per call that triggers a suggestion

    @classmethod
    def from_env(cls) -> "LLMConfig":
        return cls(
            # Vendor credentials
            gemini_api_key=(
                os.getenv("GRC_GEMINI_API_KEY")
                or os.getenv("GOOGLE_API_KEY")
                or os.getenv("GEMINI_API_KEY", "")
            ),
            claude_api_key=os.getenv("GRC_CLAUDE_API_KEY") or os.getenv("ANTHROPIC_API_KEY", ""),
            # Retry policy
            max_retries=int(os.getenv("GRC_LLM_MAX_RETRIES", "3")),
            retry_delay_ms=int(os.getenv("GRC_LLM_RETRY_DELAY_MS", "1000")),
            timeout_ms=int(os.getenv("GRC_LLM_TIMEOUT_MS", "30000")),
            # Health
            enable_health_checks=_env_bool("GRC_LLM_HEALTH_CHECKS", "true"),
            health_check_interval_seconds=int(os.getenv("GRC_LLM_HEALTH_INTERVAL", "300")),
            error_rate_threshold=float(os.getenv("GRC_LLM_ERROR_RATE_THRESHOLD", "0.05")),
            # Monitoring
            max_recent_calls=int(os.getenv("GRC_LLM_MAX_RECENT_CALLS", "1000")),
            cost_alert_usd=float(os.getenv("GRC_LLM_COST_ALERT_USD", "0.01")),
        )

    def missing_keys(self) -> List[str]:
        """Names of vendor keys that are not set."""
        missing = []
        if not self.gemini_api_key:
            missing.append("GRC_GEMINI_API_KEY")
        if not self.claude_api_key:
            missing.append("GRC_CLAUDE_API_KEY")
        return missing


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("GRC_LOG_LEVEL", "INFO"),
            format=os.getenv("GRC_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("GRC_LOG_FILE"),
            json_logs=_env_bool("GRC_JSON_LOGS", "false"),
        )


@dataclass
class GRCConfig:
    """Root configuration for the GRC LLM layer."""

    environment: str = "development"
    debug: bool = False
    version: str = "0.1.0"

    llm: LLMConfig = field(default_factory=LLMConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Additional settings
    settings: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "GRCConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=os.getenv("GRC_ENVIRONMENT", "development"),
            debug=_env_bool("GRC_DEBUG", "false"),
            llm=LLMConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "GRCConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "GRCConfig":
        """Create config from dictionary. File values override the environment."""
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]
        if "debug" in data:
            config.debug = data["debug"]

        if "llm" in data:
            for key, value in data["llm"].items():
                if hasattr(config.llm, key):
                    setattr(config.llm, key, value)
                else:
                    logger.warning(f"Unknown llm config key ignored: {key}")

        if "logging" in data:
            for key, value in data["logging"].items():
                if hasattr(config.logging, key):
                    setattr(config.logging, key, value)

        if "settings" in data:
            config.settings.update(data["settings"])

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary. API keys are never included."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "llm": {
                "max_retries": self.llm.max_retries,
                "retry_delay_ms": self.llm.retry_delay_ms,
                "timeout_ms": self.llm.timeout_ms,
                "enable_health_checks": self.llm.enable_health_checks,
                "health_check_interval_seconds": self.llm.health_check_interval_seconds,
                "error_rate_threshold": self.llm.error_rate_threshold,
                "max_recent_calls": self.llm.max_recent_calls,
                "cost_alert_usd": self.llm.cost_alert_usd,
                "missing_keys": self.llm.missing_keys(),
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


# Global config instance
_config: Optional[GRCConfig] = None


def load_config(filepath: Optional[str] = None) -> GRCConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        GRCConfig instance
    """
    global _config

    if filepath:
        _config = GRCConfig.from_file(filepath)
    else:
        # Try default locations
        default_paths = [
            "./grc.json",
            "./config/grc.json",
            os.path.expanduser("~/.grc/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = GRCConfig.from_file(path)
                return _config

        # Fall back to environment
        _config = GRCConfig.from_env()

    logger.info(f"Configuration loaded: environment={_config.environment}")
    return _config


def get_config() -> GRCConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the loaded configuration so the next get_config() reloads it."""
    global _config
    _config = None
