"""
GRC LLM Test Configuration and Fixtures

Provides a scripted fake adapter built on BaseProvider and zero-backoff
provider configs so retry and failover run without network or delays.
"""

from typing import Any, Dict, List, Optional, Sequence

import pytest

from grc.llm.providers.base import BaseProvider, Completion
from grc.llm.types import LLMResponse, Provider, ProviderConfig, TokenUsage


class FakeProvider(BaseProvider):
    """
    Adapter whose vendor call is scripted.

    Each call consumes the next outcome; the last outcome repeats. An outcome
    is either completion text or an exception instance to raise.
    """

    def __init__(
        self,
        config: ProviderConfig,
        outcomes: Optional[Sequence[Any]] = None,
        input_tokens: int = 100,
        output_tokens: int = 50,
    ):
        super().__init__(config)
        self.outcomes: List[Any] = list(outcomes) if outcomes else ["ok"]
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    @property
    def model_name(self) -> str:
        return f"fake-{self.provider.value}"

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def _raw_generate(self, task, system_prompt, json_mode):
        self.calls.append(
            {"task": task, "system_prompt": system_prompt, "json_mode": json_mode}
        )
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, BaseException):
            raise outcome
        return Completion(
            text=outcome,
            model=self.model_name,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )

    async def aclose(self) -> None:
        self.closed = True


def provider_config(provider: Provider, **overrides: Any) -> ProviderConfig:
    """ProviderConfig with no backoff and a short timeout."""
    options = {
        "api_key": "test-key",
        "max_retries": 3,
        "retry_delay_ms": 0,
        "timeout_ms": 1000,
    }
    options.update(overrides)
    return ProviderConfig(provider=provider, **options)


def make_response(
    provider: Provider = Provider.GEMINI_FLASH,
    cost: float = 0.001,
    latency_ms: int = 100,
    timestamp: Optional[str] = None,
    used_fallback: bool = False,
) -> LLMResponse:
    """Successful envelope with the given cost and latency."""
    kwargs = {}
    if timestamp is not None:
        kwargs["timestamp"] = timestamp
    return LLMResponse(
        result="ok",
        provider=provider,
        model=provider.value,
        usage=TokenUsage(input_tokens=100, output_tokens=50, total_tokens=150, cost_usd=cost),
        latency_ms=latency_ms,
        used_fallback=used_fallback,
        **kwargs,
    )


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""

    def _make(provider: Provider, outcomes: Optional[Sequence[Any]] = None, **config_overrides):
        return FakeProvider(provider_config(provider, **config_overrides), outcomes)

    return _make


@pytest.fixture
def healthy_adapters():
    """One always-succeeding FakeProvider per provider identity."""
    return {p: FakeProvider(provider_config(p), [f"{p.value} says ok"]) for p in Provider}


LLM_ENV_VARS = [
    "GRC_GEMINI_API_KEY",
    "GOOGLE_API_KEY",
    "GEMINI_API_KEY",
    "GRC_CLAUDE_API_KEY",
    "ANTHROPIC_API_KEY",
    "GRC_LLM_MAX_RETRIES",
    "GRC_LLM_RETRY_DELAY_MS",
    "GRC_LLM_TIMEOUT_MS",
    "GRC_LLM_HEALTH_CHECKS",
    "GRC_LLM_HEALTH_INTERVAL",
    "GRC_LLM_ERROR_RATE_THRESHOLD",
    "GRC_LLM_MAX_RECENT_CALLS",
    "GRC_LLM_COST_ALERT_USD",
    "GRC_LOG_LEVEL",
    "GRC_LOG_FORMAT",
    "GRC_LOG_FILE",
    "GRC_JSON_LOGS",
    "GRC_ENVIRONMENT",
    "GRC_DEBUG",
]


@pytest.fixture
def clean_env(monkeypatch):
    """Environment without any GRC or vendor key variables."""
    for name in LLM_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    from grc.bootstrap.config import reset_config
    reset_config()
    yield monkeypatch
    reset_config()
