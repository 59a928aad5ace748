"""
grc/llm/service.py - LLM service facade

Single entry point for callers: routes through the failover orchestrator and
always records monitoring, on success and on terminal failure alike.
Constructed explicitly and passed to callers; see factory.create_llm_service.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar

from .exceptions import AllProvidersFailedError, error_message
from .failover import LLMFailover
from .monitoring import LLMMonitoring
from .router import estimate_cost, route_task
from .types import FailedAttempt, LLMResponse, LLMTask, Provider, ProviderHealth, TaskType

logger = logging.getLogger("llm.service")

T = TypeVar("T")


class LLMService:
    """
    Facade over failover and monitoring.

    Example:
        service = create_llm_service()
        async with service:
            response = await service.execute_text(
                LLMTask(task_type=TaskType.FAST_AGENTIC, prompt="...")
            )
    """

    def __init__(
        self,
        failover: LLMFailover,
        monitoring: Optional[LLMMonitoring] = None,
        enable_health_checks: bool = False,
    ):
        """
        Initialize the service.

        Args:
            failover: Orchestrator holding the provider adapters
            monitoring: Metrics sink (a fresh one if not given)
            enable_health_checks: Start background probes on start()
        """
        self.failover = failover
        self._monitoring = monitoring if monitoring is not None else LLMMonitoring()
        self.enable_health_checks = enable_health_checks

    @property
    def monitoring(self) -> LLMMonitoring:
        return self._monitoring

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    async def execute_text(self, task: LLMTask) -> LLMResponse[str]:
        """
        Run a text task.

        Raises:
            AllProvidersFailedError: If primary and fallback both failed
        """
        return await self._run(task, lambda: self.failover.execute_text(task))

    async def execute_structured(
        self,
        task: LLMTask,
        schema: Optional[Type[T]] = None,
    ) -> LLMResponse[T]:
        """
        Run a structured task.

        Args:
            task: The task to run
            schema: Output type; defaults to task.output_schema

        Raises:
            ValueError: If neither schema nor task.output_schema is set
            AllProvidersFailedError: If primary and fallback both failed
        """
        output_schema = schema if schema is not None else task.output_schema
        if output_schema is None:
            raise ValueError("execute_structured requires a schema or task.output_schema")

        return await self._run(
            task, lambda: self.failover.execute_structured(task, output_schema)
        )

    async def _run(self, task: LLMTask, call: Callable[[], Awaitable[LLMResponse]]) -> LLMResponse:
        response: Optional[LLMResponse] = None
        error: Optional[Exception] = None
        try:
            response = await call()
            return response
        except Exception as e:
            error = e
            raise
        finally:
            self._record(task, response, error)

    def _record(
        self,
        task: LLMTask,
        response: Optional[LLMResponse],
        error: Optional[Exception],
    ) -> None:
        task_type = task.task_type

        if response is not None:
            for attempt in response.failed_attempts:
                self._monitoring.record_call(LLMResponse.failure(attempt), task_type, success=False)
            self._monitoring.record_call(response, task_type, success=True)
            return

        if isinstance(error, AllProvidersFailedError):
            attempts = error.attempts
        elif error is not None:
            primary = route_task(task_type, task.force_provider).primary
            attempts = (FailedAttempt(provider=primary, error=error_message(error)),)
        else:
            # Cancelled before completing; nothing was attempted to completion
            return

        for attempt in attempts:
            self._monitoring.record_call(LLMResponse.failure(attempt), task_type, success=False)

    async def generate_text(self, task_type: TaskType, prompt: str, **options: Any) -> str:
        """
        Shorthand for execute_text returning only the text.

        Args:
            task_type: Task category
            prompt: User prompt
            **options: Other LLMTask fields (system_prompt, temperature, ...)
        """
        task = LLMTask(task_type=task_type, prompt=prompt, **options)
        response = await self.execute_text(task)
        return response.result

    async def generate_structured(
        self,
        task_type: TaskType,
        prompt: str,
        schema: Type[T],
        **options: Any,
    ) -> T:
        """Shorthand for execute_structured returning only the validated object."""
        task = LLMTask(task_type=task_type, prompt=prompt, **options)
        response = await self.execute_structured(task, schema)
        return response.result

    # -------------------------------------------------------------------------
    # Cost and health
    # -------------------------------------------------------------------------

    def estimate_cost(self, task_type: TaskType, input_tokens: int, output_tokens: int) -> float:
        """Cost of a call priced at the task type's primary provider."""
        primary = route_task(task_type).primary
        return estimate_cost(primary, input_tokens, output_tokens)

    def get_health_status(self) -> List[ProviderHealth]:
        return self.failover.get_health_status()

    async def check_health(self) -> Dict[Provider, bool]:
        """Probe every provider now."""
        return await self.failover.check_health()

    def get_usage_stats(self) -> Dict[str, Any]:
        """Get combined usage statistics."""
        return {
            "monitoring": self._monitoring.get_stats(),
            "health": [h.to_dict() for h in self.get_health_status()],
            "suggestions": self._monitoring.get_cost_optimization_suggestions(),
        }

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start background health probes if enabled. Needs a running loop."""
        if self.enable_health_checks:
            self.failover.start_health_checks()

    async def close(self) -> None:
        """Stop probes and close the vendor clients."""
        await self.failover.aclose()
        logger.info("LLM service closed")

    async def __aenter__(self) -> "LLMService":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
