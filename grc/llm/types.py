"""
grc/llm/types.py - Vendor-agnostic LLM types

Provider identities, task categories, the task request model, and the
response envelope shared by every adapter, the failover layer and monitoring.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict, Field


T = TypeVar("T")


class Vendor(str, Enum):
    """Upstream API vendor."""

    GEMINI = "gemini"
    ANTHROPIC = "anthropic"


class Provider(str, Enum):
    """A (vendor, capability tier) pair; the unit the router assigns."""

    GEMINI_FLASH_LITE = "gemini-2.5-flash-lite"
    GEMINI_FLASH = "gemini-2.5-flash"
    GEMINI_PRO = "gemini-2.5-pro"
    CLAUDE_SONNET = "claude-sonnet-4-5"

    @property
    def vendor(self) -> Vendor:
        return _PROVIDER_VENDORS[self]

    @property
    def label(self) -> str:
        """Human-readable tier name for logs and suggestions."""
        return _PROVIDER_LABELS[self]


_PROVIDER_VENDORS: Dict[Provider, Vendor] = {
    Provider.GEMINI_FLASH_LITE: Vendor.GEMINI,
    Provider.GEMINI_FLASH: Vendor.GEMINI,
    Provider.GEMINI_PRO: Vendor.GEMINI,
    Provider.CLAUDE_SONNET: Vendor.ANTHROPIC,
}

_PROVIDER_LABELS: Dict[Provider, str] = {
    Provider.GEMINI_FLASH_LITE: "Gemini Flash-Lite",
    Provider.GEMINI_FLASH: "Gemini Flash",
    Provider.GEMINI_PRO: "Gemini Pro",
    Provider.CLAUDE_SONNET: "Claude Sonnet",
}


class TaskType(str, Enum):
    """Request category by shape and stakes. Drives routing."""

    FAST_AGENTIC = "fast-agentic"            # discovery, scanning
    VISION = "vision"                        # screenshot / document images
    COMPLEX_REASONING = "complex-reasoning"  # gap analysis
    POLICY_GENERATION = "policy-generation"  # long-form documents
    CODE_ANALYSIS = "code-analysis"          # SAST-style review
    CONVERSATIONAL = "conversational"        # copilot chat


class LLMTask(BaseModel):
    """
    A single LLM request.

    Immutable; created fresh by the caller for each invocation.
    """

    model_config = ConfigDict(frozen=True)

    task_type: TaskType
    prompt: str = Field(min_length=1)
    system_prompt: Optional[str] = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=4096, ge=1, le=100_000)
    output_schema: Optional[Any] = None
    force_provider: Optional[Provider] = None


@dataclass(frozen=True)
class TokenUsage:
    """Token counts and their derived cost in USD."""

    input_tokens: int
    output_tokens: int
    total_tokens: int
    cost_usd: float

    @classmethod
    def zero(cls) -> "TokenUsage":
        return cls(input_tokens=0, output_tokens=0, total_tokens=0, cost_usd=0.0)


@dataclass(frozen=True)
class FailedAttempt:
    """A provider that exhausted its retries during one call."""

    provider: Provider
    error: str
    latency_ms: int = 0


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class LLMResponse(Generic[T]):
    """Response envelope returned to callers and fed to monitoring."""

    result: T
    provider: Provider
    model: str
    usage: TokenUsage
    latency_ms: int
    used_fallback: bool = False
    timestamp: str = field(default_factory=utc_now_iso)
    failed_attempts: Tuple[FailedAttempt, ...] = ()

    @property
    def timestamp_dt(self) -> datetime:
        """Timestamp as an aware datetime."""
        parsed = datetime.fromisoformat(self.timestamp)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    def as_fallback(self, *attempts: FailedAttempt) -> "LLMResponse[T]":
        """Copy of this envelope marked as served by the fallback provider."""
        return dataclasses.replace(
            self,
            used_fallback=True,
            failed_attempts=self.failed_attempts + tuple(attempts),
        )

    @classmethod
    def failure(cls, attempt: FailedAttempt, model: str = "") -> "LLMResponse[None]":
        """Metrics record for a provider attempt that produced no result."""
        return cls(
            result=None,
            provider=attempt.provider,
            model=model,
            usage=TokenUsage.zero(),
            latency_ms=attempt.latency_ms,
        )


@dataclass(frozen=True)
class ProviderConfig:
    """Credentials and retry policy for one provider identity."""

    provider: Provider
    api_key: str = field(repr=False)
    max_retries: int = 3
    retry_delay_ms: int = 1000
    timeout_ms: int = 30000

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms must be >= 0, got {self.retry_delay_ms}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {self.timeout_ms}")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000


@dataclass
class ProviderHealth:
    """Rolling reliability estimate for one provider."""

    provider: Provider
    healthy: bool = True
    error_rate: float = 0.0
    avg_latency_ms: float = 0.0
    last_checked_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "healthy": self.healthy,
            "error_rate": round(self.error_rate, 4),
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "last_checked_at": self.last_checked_at.isoformat(),
        }
