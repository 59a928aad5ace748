"""
tests/unit/test_config.py - Configuration and logging setup tests
"""

import json
import logging
import sys

import pytest

from grc.bootstrap.config import (
    GRCConfig,
    LLMConfig,
    LoggingConfig,
    get_config,
    load_config,
)
from grc.bootstrap.logs import JSONFormatter, setup_logging, setup_logging_from_config
from grc.llm.exceptions import ConfigurationError
from grc.llm.factory import create_llm_service


class TestLLMConfig:
    """Test LLM configuration."""

    def test_defaults(self):
        config = LLMConfig()
        assert config.max_retries == 3
        assert config.retry_delay_ms == 1000
        assert config.timeout_ms == 30000
        assert config.enable_health_checks is True
        assert config.health_check_interval_seconds == 300
        assert config.error_rate_threshold == 0.05
        assert config.max_recent_calls == 1000
        assert config.cost_alert_usd == 0.01

    def test_from_env(self, clean_env):
        clean_env.setenv("GRC_GEMINI_API_KEY", "g")
        clean_env.setenv("GRC_CLAUDE_API_KEY", "c")
        clean_env.setenv("GRC_LLM_MAX_RETRIES", "4")
        clean_env.setenv("GRC_LLM_RETRY_DELAY_MS", "250")
        clean_env.setenv("GRC_LLM_TIMEOUT_MS", "10000")
        clean_env.setenv("GRC_LLM_HEALTH_CHECKS", "false")
        clean_env.setenv("GRC_LLM_HEALTH_INTERVAL", "60")
        clean_env.setenv("GRC_LLM_ERROR_RATE_THRESHOLD", "0.2")
        clean_env.setenv("GRC_LLM_MAX_RECENT_CALLS", "50")
        clean_env.setenv("GRC_LLM_COST_ALERT_USD", "0.05")

        config = LLMConfig.from_env()

        assert config.gemini_api_key == "g"
        assert config.claude_api_key == "c"
        assert config.max_retries == 4
        assert config.retry_delay_ms == 250
        assert config.timeout_ms == 10000
        assert config.enable_health_checks is False
        assert config.health_check_interval_seconds == 60
        assert config.error_rate_threshold == 0.2
        assert config.max_recent_calls == 50
        assert config.cost_alert_usd == 0.05

    def test_vendor_key_fallbacks(self, clean_env):
        clean_env.setenv("GOOGLE_API_KEY", "google")
        clean_env.setenv("ANTHROPIC_API_KEY", "anthropic")

        config = LLMConfig.from_env()

        assert config.gemini_api_key == "google"
        assert config.claude_api_key == "anthropic"

    def test_gemini_api_key_fallback(self, clean_env):
        clean_env.setenv("GEMINI_API_KEY", "gemini")
        assert LLMConfig.from_env().gemini_api_key == "gemini"

    def test_grc_keys_take_precedence(self, clean_env):
        clean_env.setenv("GRC_CLAUDE_API_KEY", "grc")
        clean_env.setenv("ANTHROPIC_API_KEY", "anthropic")
        assert LLMConfig.from_env().claude_api_key == "grc"

    def test_missing_keys(self, clean_env):
        assert LLMConfig.from_env().missing_keys() == ["GRC_GEMINI_API_KEY", "GRC_CLAUDE_API_KEY"]
        assert LLMConfig(gemini_api_key="g", claude_api_key="c").missing_keys() == []

    def test_repr_hides_keys(self):
        config = LLMConfig(gemini_api_key="secret-g", claude_api_key="secret-c")
        assert "secret-g" not in repr(config)
        assert "secret-c" not in repr(config)


class TestGRCConfig:
    """Test root configuration."""

    def test_from_env(self, clean_env):
        clean_env.setenv("GRC_ENVIRONMENT", "production")
        clean_env.setenv("GRC_DEBUG", "true")
        clean_env.setenv("GRC_LOG_LEVEL", "DEBUG")

        config = GRCConfig.from_env()

        assert config.environment == "production"
        assert config.debug is True
        assert config.logging.level == "DEBUG"

    def test_from_file_overrides_env(self, clean_env, tmp_path):
        clean_env.setenv("GRC_LLM_MAX_RETRIES", "4")
        clean_env.setenv("GRC_CLAUDE_API_KEY", "from-env")
        path = tmp_path / "grc.json"
        path.write_text(json.dumps({
            "environment": "staging",
            "llm": {"max_retries": 2, "timeout_ms": 5000, "unknown_key": 1},
            "logging": {"json_logs": True},
            "settings": {"tenant": "acme"},
        }))

        config = GRCConfig.from_file(str(path))

        assert config.environment == "staging"
        assert config.llm.max_retries == 2
        assert config.llm.timeout_ms == 5000
        assert config.llm.claude_api_key == "from-env"
        assert not hasattr(config.llm, "unknown_key")
        assert config.logging.json_logs is True
        assert config.settings == {"tenant": "acme"}

    def test_missing_file_uses_env(self, clean_env, tmp_path):
        clean_env.setenv("GRC_ENVIRONMENT", "ci")
        config = GRCConfig.from_file(str(tmp_path / "absent.json"))
        assert config.environment == "ci"

    def test_to_dict_never_contains_keys(self):
        config = GRCConfig(llm=LLMConfig(gemini_api_key="secret-g", claude_api_key="secret-c"))

        data = config.to_dict()

        serialized = json.dumps(data)
        assert "secret-g" not in serialized
        assert "secret-c" not in serialized
        assert data["llm"]["max_retries"] == 3
        assert data["llm"]["missing_keys"] == []

    def test_load_and_get_config(self, clean_env, tmp_path):
        path = tmp_path / "grc.json"
        path.write_text(json.dumps({"environment": "test"}))

        loaded = load_config(str(path))

        assert loaded.environment == "test"
        assert get_config() is loaded

    def test_get_config_loads_from_env(self, clean_env):
        clean_env.setenv("GRC_ENVIRONMENT", "dev-box")
        assert get_config().environment == "dev-box"

    def test_mistyped_file_value_raises_configuration_error(self, clean_env, tmp_path):
        clean_env.setenv("GRC_GEMINI_API_KEY", "g")
        clean_env.setenv("GRC_CLAUDE_API_KEY", "c")
        path = tmp_path / "grc.json"
        path.write_text(json.dumps({"llm": {"max_retries": "2"}}))

        config = GRCConfig.from_file(str(path))

        with pytest.raises(ConfigurationError) as exc_info:
            create_llm_service(config.llm)

        assert "retry policy" in str(exc_info.value)

    def test_invalid_file_value_raises_configuration_error(self, clean_env, tmp_path):
        clean_env.setenv("GRC_GEMINI_API_KEY", "g")
        clean_env.setenv("GRC_CLAUDE_API_KEY", "c")
        path = tmp_path / "grc.json"
        path.write_text(json.dumps({"llm": {"timeout_ms": 0}}))

        with pytest.raises(ConfigurationError):
            create_llm_service(GRCConfig.from_file(str(path)).llm)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestLogging:
    """Test logging setup."""

    def test_setup_logging_sets_level_and_handler(self, restore_root_logger):
        before = len(restore_root_logger.handlers)

        setup_logging(level="debug")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == before + 1

    def test_file_handler(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "llm.log"

        setup_logging(level="INFO", log_file=str(log_file), json_format=True)
        logging.getLogger("llm.test").info("routed to gemini")
        for handler in restore_root_logger.handlers:
            handler.flush()

        line = log_file.read_text().strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["logger"] == "llm.test"
        assert payload["level"] == "INFO"
        assert payload["message"] == "routed to gemini"

    def test_json_formatter_includes_exception(self):
        formatter = JSONFormatter()
        try:
            raise RuntimeError("probe failed")
        except RuntimeError:
            record = logging.LogRecord("llm.failover", logging.ERROR, __file__, 1, "oops", None, sys.exc_info())

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "oops"
        assert "probe failed" in payload["exception"]

    def test_setup_from_config(self, restore_root_logger):
        setup_logging_from_config(LoggingConfig(level="WARNING"))
        assert restore_root_logger.level == logging.WARNING
