"""
grc/llm/monitoring.py - LLM cost and performance monitoring

Aggregates per (task type, provider) and per provider, keeps a rolling
window of recent calls for windowed cost queries and latency percentiles,
and produces advisory cost-optimization suggestions.

Recording never raises: observability must not fail a request.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Tuple

from .router import cheapest_provider, get_pricing
from .types import LLMResponse, Provider, TaskType

logger = logging.getLogger("llm.monitoring")


@dataclass
class TaskMetrics:
    """Cumulative metrics for one (task type, provider) pair."""

    task_type: TaskType
    provider: Provider
    count: int = 0
    total_cost: float = 0.0
    avg_latency_ms: float = 0.0
    success_count: int = 0
    error_count: int = 0

    @property
    def avg_cost(self) -> float:
        return self.total_cost / self.count if self.count else 0.0

    @property
    def avg_success_cost(self) -> float:
        """Mean cost of the calls that were billed; failed attempts cost nothing."""
        return self.total_cost / self.success_count if self.success_count else 0.0

    @property
    def error_rate(self) -> float:
        return self.error_count / self.count if self.count else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_type": self.task_type.value,
            "provider": self.provider.value,
            "count": self.count,
            "total_cost_usd": round(self.total_cost, 6),
            "avg_cost_usd": round(self.avg_cost, 6),
            "avg_success_cost_usd": round(self.avg_success_cost, 6),
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "success_count": self.success_count,
            "error_count": self.error_count,
            "error_rate": round(self.error_rate, 3),
        }


@dataclass
class ProviderMetrics:
    """Cumulative metrics for one provider across all task types."""

    provider: Provider
    total_calls: int = 0
    total_cost: float = 0.0
    avg_latency_ms: float = 0.0
    success_count: int = 0
    error_count: int = 0

    @property
    def error_rate(self) -> float:
        return self.error_count / self.total_calls if self.total_calls else 0.0

    @property
    def uptime(self) -> float:
        """Successful calls as a percentage; 100 before any call."""
        return self.success_count / self.total_calls * 100 if self.total_calls else 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider.value,
            "total_calls": self.total_calls,
            "total_cost_usd": round(self.total_cost, 6),
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "success_count": self.success_count,
            "error_count": self.error_count,
            "error_rate": round(self.error_rate, 3),
            "uptime": round(self.uptime, 2),
        }


@dataclass
class CallRecord:
    """One recorded call in the recent-calls window."""

    timestamp: datetime
    task_type: TaskType
    provider: Provider
    model: str
    success: bool
    latency_ms: int
    cost_usd: float
    input_tokens: int = 0
    output_tokens: int = 0
    used_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "task_type": self.task_type.value,
            "provider": self.provider.value,
            "model": self.model,
            "success": self.success,
            "latency_ms": self.latency_ms,
            "cost_usd": self.cost_usd,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "used_fallback": self.used_fallback,
        }


@dataclass
class CostBreakdown:
    """
    Cost report for a time window.

    `total_cost` and `by_provider` cover only calls inside the window;
    `by_task_type` is cumulative since start (or the last reset).
    """

    total_cost: float
    by_provider: Dict[Provider, float]
    by_task_type: Dict[TaskType, float]
    period_start: datetime
    period_end: datetime
    call_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cost_usd": round(self.total_cost, 6),
            "by_provider": {p.value: round(c, 6) for p, c in self.by_provider.items()},
            "by_task_type": {t.value: round(c, 6) for t, c in self.by_task_type.items()},
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "call_count": self.call_count,
        }


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LLMMonitoring:
    """
    Collects and aggregates LLM call metrics.

    Maintains cumulative aggregates plus a rolling window of recent calls.
    """

    def __init__(
        self,
        max_recent_calls: int = 1000,
        cost_threshold_usd: float = 0.01,
        error_rate_threshold: float = 0.1,
    ):
        """
        Initialize the monitoring sink.

        Args:
            max_recent_calls: Size of the recent-calls window
            cost_threshold_usd: Mean cost per call above which a cheaper
                tier is suggested
            error_rate_threshold: Error rate above which a provider switch
                is suggested
        """
        self.max_recent_calls = max_recent_calls
        self.cost_threshold_usd = cost_threshold_usd
        self.error_rate_threshold = error_rate_threshold

        self._task_metrics: Dict[Tuple[TaskType, Provider], TaskMetrics] = {}
        self._provider_metrics: Dict[Provider, ProviderMetrics] = {}
        self._recent_calls: Deque[CallRecord] = deque(maxlen=max_recent_calls)

    def record_call(self, response: LLMResponse, task_type: TaskType, success: bool) -> None:
        """
        Record one provider call.

        Never raises; internal errors are logged.

        Args:
            response: Envelope of the call (zero usage for failures)
            task_type: Task category the call served
            success: Whether the provider produced a result
        """
        try:
            self._record(response, task_type, success)
        except Exception:
            logger.exception("Failed to record LLM call metrics")

    def _record(self, response: LLMResponse, task_type: TaskType, success: bool) -> None:
        provider = response.provider
        cost = response.usage.cost_usd
        latency = response.latency_ms

        key = (task_type, provider)
        task_metric = self._task_metrics.get(key)
        if task_metric is None:
            task_metric = TaskMetrics(task_type=task_type, provider=provider)
            self._task_metrics[key] = task_metric

        task_metric.count += 1
        task_metric.total_cost += cost
        task_metric.avg_latency_ms += (latency - task_metric.avg_latency_ms) / task_metric.count
        if success:
            task_metric.success_count += 1
        else:
            task_metric.error_count += 1

        provider_metric = self._provider_metrics.get(provider)
        if provider_metric is None:
            provider_metric = ProviderMetrics(provider=provider)
            self._provider_metrics[provider] = provider_metric

        provider_metric.total_calls += 1
        provider_metric.total_cost += cost
        provider_metric.avg_latency_ms += (
            latency - provider_metric.avg_latency_ms
        ) / provider_metric.total_calls
        if success:
            provider_metric.success_count += 1
        else:
            provider_metric.error_count += 1

        self._recent_calls.append(
            CallRecord(
                timestamp=response.timestamp_dt,
                task_type=task_type,
                provider=provider,
                model=response.model,
                success=success,
                latency_ms=latency,
                cost_usd=cost,
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                used_fallback=response.used_fallback,
            )
        )

        if success:
            logger.debug(
                f"LLM call {task_type.value} on {provider.value}: "
                f"latency={latency}ms, "
                f"tokens={response.usage.total_tokens}, "
                f"cost=${cost:.6f}, "
                f"fallback={response.used_fallback}"
            )
        else:
            logger.warning(
                f"LLM call {task_type.value} on {provider.value} failed: latency={latency}ms"
            )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_task_metrics(self, task_type: TaskType, provider: Provider) -> Optional[TaskMetrics]:
        return self._task_metrics.get((task_type, provider))

    def get_all_task_metrics(self) -> List[TaskMetrics]:
        return list(self._task_metrics.values())

    def get_provider_metrics(self, provider: Provider) -> Optional[ProviderMetrics]:
        return self._provider_metrics.get(provider)

    def get_all_provider_metrics(self) -> List[ProviderMetrics]:
        return list(self._provider_metrics.values())

    def get_cost_breakdown(self, start: datetime, end: datetime) -> CostBreakdown:
        """
        Cost report for calls between start and end (inclusive).

        Naive datetimes are treated as UTC.

        Args:
            start: Window start
            end: Window end

        Returns:
            CostBreakdown; by_task_type is cumulative, not windowed
        """
        start = _as_utc(start)
        end = _as_utc(end)

        in_window = [c for c in self._recent_calls if start <= c.timestamp <= end]

        by_provider: Dict[Provider, float] = {}
        for call in in_window:
            by_provider[call.provider] = by_provider.get(call.provider, 0.0) + call.cost_usd

        by_task_type: Dict[TaskType, float] = {}
        for metric in self._task_metrics.values():
            by_task_type[metric.task_type] = (
                by_task_type.get(metric.task_type, 0.0) + metric.total_cost
            )

        return CostBreakdown(
            total_cost=sum(c.cost_usd for c in in_window),
            by_provider=by_provider,
            by_task_type=by_task_type,
            period_start=start,
            period_end=end,
            call_count=len(in_window),
        )

    def get_cost_optimization_suggestions(self) -> List[str]:
        """
        Advisory suggestions derived from the cumulative task metrics.

        Returns:
            Human-readable suggestion strings
        """
        suggestions: List[str] = []
        cheapest = cheapest_provider()
        cheapest_input_price = get_pricing(cheapest).input

        for metric in self._task_metrics.values():
            if metric.count == 0:
                continue

            if metric.avg_success_cost > self.cost_threshold_usd and metric.provider != cheapest:
                suggestions.append(
                    f'Task type "{metric.task_type.value}" using {metric.provider.value} '
                    f"costs ${metric.avg_success_cost:.4f} per call. "
                    f"Consider testing with {cheapest.label} "
                    f"(${cheapest_input_price:.2f}/1M tokens)."
                )

            if metric.error_rate > self.error_rate_threshold:
                suggestions.append(
                    f'Task type "{metric.task_type.value}" on {metric.provider.value} '
                    f"has {metric.error_rate * 100:.1f}% error rate. "
                    f"Consider switching to a different provider."
                )

        return suggestions

    def get_recent_calls(self, limit: int = 100) -> List[CallRecord]:
        """Most recent calls, oldest first."""
        if limit <= 0:
            return []
        return list(self._recent_calls)[-limit:]

    def get_latency_percentiles(self) -> Dict[str, int]:
        """
        Calculate latency percentiles from successful recent calls.

        Returns:
            Dict with p50, p90, p95, p99 latencies in ms
        """
        latencies = sorted(c.latency_ms for c in self._recent_calls if c.success)

        if not latencies:
            return {"p50": 0, "p90": 0, "p95": 0, "p99": 0}

        def percentile(data: List[int], p: float) -> int:
            idx = int(len(data) * p)
            return data[min(idx, len(data) - 1)]

        return {
            "p50": percentile(latencies, 0.50),
            "p90": percentile(latencies, 0.90),
            "p95": percentile(latencies, 0.95),
            "p99": percentile(latencies, 0.99),
        }

    def get_stats(self) -> Dict[str, Any]:
        """
        Get aggregated statistics.

        Returns:
            Dict with totals and per-provider metrics
        """
        providers = list(self._provider_metrics.values())
        total_calls = sum(p.total_calls for p in providers)
        total_errors = sum(p.error_count for p in providers)

        return {
            "total_calls": total_calls,
            "total_errors": total_errors,
            "total_cost_usd": round(sum(p.total_cost for p in providers), 6),
            "error_rate": round(total_errors / total_calls if total_calls else 0.0, 3),
            "fallback_calls": sum(1 for c in self._recent_calls if c.used_fallback),
            "recent_window_size": len(self._recent_calls),
            "latency_percentiles": self.get_latency_percentiles(),
            "providers": {p.provider.value: p.to_dict() for p in providers},
        }

    def reset(self) -> None:
        """Reset all metrics."""
        self._task_metrics.clear()
        self._provider_metrics.clear()
        self._recent_calls.clear()
        logger.info("LLM metrics reset")
