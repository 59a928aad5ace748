"""
grc/llm/failover.py - Primary/fallback orchestration and provider health

Runs each task against the routed primary provider, falls back to the
secondary on exhaustion, and keeps a rolling health estimate per provider.
Health is advisory: an unhealthy provider is still attempted when routed.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Type, TypeVar

from .exceptions import (
    AllProvidersFailedError,
    ProviderExhaustedError,
    ProviderUnavailableError,
    error_message,
)
from .protocol import ProviderAdapterProtocol
from .providers import ADAPTERS
from .router import route_task
from .types import FailedAttempt, LLMResponse, LLMTask, Provider, ProviderConfig, ProviderHealth

logger = logging.getLogger("llm.failover")

T = TypeVar("T")

AdapterCall = Callable[[ProviderAdapterProtocol], Awaitable[LLMResponse]]


class LLMFailover:
    """
    Failover orchestrator.

    One adapter and one ProviderHealth per configured provider. All health
    mutations happen synchronously between awaits on a single event loop,
    so concurrent calls never interleave inside an update.
    """

    ERROR_RATE_INCREMENT = 0.1
    ERROR_RATE_DECAY = 0.95
    LATENCY_SMOOTHING = 0.1

    def __init__(
        self,
        configs: Sequence[ProviderConfig],
        adapters: Optional[Mapping[Provider, ProviderAdapterProtocol]] = None,
        error_rate_threshold: float = 0.05,
        health_check_interval_seconds: float = 300,
    ):
        """
        Initialize the orchestrator.

        Args:
            configs: One ProviderConfig per provider identity to serve
            adapters: Pre-built adapters by provider; overrides the adapter
                that would be built from the matching config
            error_rate_threshold: Providers at or above this error rate are
                reported unhealthy
            health_check_interval_seconds: Background probe interval
        """
        self.error_rate_threshold = error_rate_threshold
        self.health_check_interval_seconds = health_check_interval_seconds

        injected = dict(adapters or {})
        self._adapters: Dict[Provider, ProviderAdapterProtocol] = {}

        for config in configs:
            if config.provider in injected:
                self._adapters[config.provider] = injected.pop(config.provider)
            else:
                adapter_cls = ADAPTERS[config.provider.vendor]
                self._adapters[config.provider] = adapter_cls(config)

        # Adapters injected without a config
        self._adapters.update(injected)

        self._health: Dict[Provider, ProviderHealth] = {
            provider: ProviderHealth(provider=provider) for provider in self._adapters
        }
        self._health_task: Optional[asyncio.Task] = None

        logger.info(
            f"Failover initialized with providers: {[p.value for p in self._adapters]}"
        )

    @property
    def providers(self) -> List[Provider]:
        return list(self._adapters)

    def get_adapter(self, provider: Provider) -> ProviderAdapterProtocol:
        """
        Get the adapter serving a provider.

        Raises:
            ProviderUnavailableError: If the provider is not configured
        """
        adapter = self._adapters.get(provider)
        if adapter is None:
            raise ProviderUnavailableError(
                provider.value,
                f"Provider '{provider.value}' is not configured",
            )
        return adapter

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def execute_text(self, task: LLMTask) -> LLMResponse[str]:
        """
        Run a text task with automatic failover.

        Args:
            task: The task to run

        Returns:
            LLMResponse from the primary, or from the fallback with
            used_fallback set

        Raises:
            AllProvidersFailedError: If both providers failed
        """
        return await self._execute(task, lambda adapter: adapter.generate_text(task))

    async def execute_structured(self, task: LLMTask, schema: Type[T]) -> LLMResponse[T]:
        """
        Run a structured task with automatic failover.

        Args:
            task: The task to run
            schema: Pydantic model (or any type pydantic can validate)

        Returns:
            LLMResponse whose result is the validated object

        Raises:
            AllProvidersFailedError: If both providers failed
        """
        return await self._execute(
            task, lambda adapter: adapter.generate_structured(task, schema)
        )

    async def _execute(self, task: LLMTask, call: AdapterCall) -> LLMResponse:
        route = route_task(task.task_type, task.force_provider)
        primary, fallback = route.primary, route.fallback

        logger.debug(
            f"Routing {task.task_type.value}: primary={primary.value}, fallback={fallback.value}"
        )

        primary_result = await self._attempt(primary, call)
        if isinstance(primary_result, LLMResponse):
            return primary_result

        primary_error, primary_attempt = primary_result
        logger.warning(
            f"Primary provider {primary.value} failed for {task.task_type.value}, "
            f"falling back to {fallback.value}: {primary_attempt.error}"
        )

        fallback_result = await self._attempt(fallback, call)
        if isinstance(fallback_result, LLMResponse):
            return fallback_result.as_fallback(primary_attempt)

        fallback_error, fallback_attempt = fallback_result
        logger.error(
            f"All providers failed for {task.task_type.value}: "
            f"{primary.value} and {fallback.value}"
        )
        raise AllProvidersFailedError(
            task_type=task.task_type,
            primary=primary,
            fallback=fallback,
            primary_error=primary_error,
            fallback_error=fallback_error,
            attempts=(primary_attempt, fallback_attempt),
        ) from fallback_error

    async def _attempt(self, provider: Provider, call: AdapterCall):
        """
        Call one provider and feed the outcome into its health.

        Returns:
            The LLMResponse on success, or (error, FailedAttempt) on failure
        """
        start_time = time.monotonic()
        try:
            adapter = self.get_adapter(provider)
            response = await call(adapter)

        except Exception as e:
            if isinstance(e, ProviderExhaustedError):
                latency_ms = e.latency_ms
            else:
                latency_ms = int((time.monotonic() - start_time) * 1000)

            self.record_error(provider)
            return e, FailedAttempt(provider=provider, error=error_message(e), latency_ms=latency_ms)

        self.record_success(provider, response.latency_ms)
        return response

    # -------------------------------------------------------------------------
    # Health signal
    # -------------------------------------------------------------------------

    def record_success(self, provider: Provider, latency_ms: float) -> None:
        """Decay the error rate and smooth the latency average."""
        health = self._health.get(provider)
        if health is None:
            return

        health.error_rate *= self.ERROR_RATE_DECAY
        health.avg_latency_ms = (
            health.avg_latency_ms * (1 - self.LATENCY_SMOOTHING)
            + latency_ms * self.LATENCY_SMOOTHING
        )
        self._refresh(health)

    def record_error(self, provider: Provider) -> None:
        """Increase the error rate by a fixed step, clamped to 1.0."""
        health = self._health.get(provider)
        if health is None:
            logger.warning(f"No health entry for unconfigured provider {provider.value}")
            return

        health.error_rate = min(1.0, health.error_rate + self.ERROR_RATE_INCREMENT)
        self._refresh(health)

    def record_probe(self, provider: Provider, ok: bool) -> None:
        """
        Feed a health probe result into the error rate.

        A successful probe brings the error rate back under the threshold,
        so one good probe restores a provider that recovered between calls.
        """
        health = self._health.get(provider)
        if health is None:
            return

        if ok:
            health.error_rate = min(
                health.error_rate * self.ERROR_RATE_DECAY,
                self.error_rate_threshold * self.ERROR_RATE_DECAY,
            )
        else:
            health.error_rate = min(1.0, health.error_rate + self.ERROR_RATE_INCREMENT)
        self._refresh(health)

    def _refresh(self, health: ProviderHealth) -> None:
        was_healthy = health.healthy
        health.healthy = health.error_rate < self.error_rate_threshold
        health.last_checked_at = datetime.now(timezone.utc)

        if was_healthy and not health.healthy:
            logger.error(
                f"Provider {health.provider.value} marked unhealthy "
                f"(error_rate={health.error_rate:.3f})"
            )
        elif not was_healthy and health.healthy:
            logger.info(
                f"Provider {health.provider.value} recovered "
                f"(error_rate={health.error_rate:.3f})"
            )

    def get_health_status(self) -> List[ProviderHealth]:
        """Health of every provider, in configuration order."""
        return list(self._health.values())

    def get_provider_health(self, provider: Provider) -> Optional[ProviderHealth]:
        return self._health.get(provider)

    # -------------------------------------------------------------------------
    # Background probes
    # -------------------------------------------------------------------------

    async def check_health(self) -> Dict[Provider, bool]:
        """
        Probe every adapter concurrently and update health.

        Never raises; a probe that errors counts as a failed probe.

        Returns:
            Probe outcome by provider
        """
        providers = list(self._adapters)
        results = await asyncio.gather(
            *(self._adapters[p].health_check() for p in providers),
            return_exceptions=True,
        )

        outcome: Dict[Provider, bool] = {}
        for provider, result in zip(providers, results):
            if isinstance(result, BaseException):
                logger.error(f"Health probe for {provider.value} raised: {result}")
                ok = False
            else:
                ok = bool(result)

            outcome[provider] = ok
            self.record_probe(provider, ok)

        logger.debug(f"Health probes: {dict((p.value, ok) for p, ok in outcome.items())}")
        return outcome

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.health_check_interval_seconds)
            try:
                await self.check_health()
            except Exception:
                logger.exception("Health check cycle failed")

    def start_health_checks(self) -> None:
        """Start the periodic probe task on the running event loop."""
        if self._health_task is not None and not self._health_task.done():
            return

        self._health_task = asyncio.create_task(self._health_loop())
        logger.info(
            f"Health checks started (interval={self.health_check_interval_seconds}s)"
        )

    async def stop_health_checks(self) -> None:
        """Cancel the periodic probe task, if running."""
        task, self._health_task = self._health_task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Health checks stopped")

    @property
    def health_checks_running(self) -> bool:
        return self._health_task is not None and not self._health_task.done()

    async def aclose(self) -> None:
        """Stop probes and close every adapter."""
        await self.stop_health_checks()
        for adapter in self._adapters.values():
            try:
                await adapter.aclose()
            except Exception as e:
                logger.warning(f"Failed to close {adapter.name()}: {e}")
