"""
grc/agents/base.py - Base agent

Common LLM access for compliance agents. Agents name a task type and a
system prompt and call the shared LLMService; retry and failover happen
inside the service, never in the agent.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type, TypeVar

from grc.llm import LLMResponse, LLMService, LLMTask, TaskType

T = TypeVar("T")


@dataclass
class AgentConfig:
    """Static configuration of one agent."""

    agent_name: str
    task_type: TaskType
    system_prompt: str
    temperature: float = 0.7
    max_tokens: int = 4096


@dataclass
class AgentExecutionContext:
    """Inputs for one agent run."""

    user_id: str
    company_id: str
    audit_id: Optional[str] = None
    input: Dict[str, Any] = field(default_factory=dict)


class BaseAgent(ABC):
    """
    Abstract base class for agents.

    Subclasses implement `execute`; callers use `run`, which times the
    execution and logs its outcome.
    """

    def __init__(self, config: AgentConfig, llm: LLMService):
        """
        Initialize the agent.

        Args:
            config: Agent configuration
            llm: Shared LLM service
        """
        self.config = config
        self.llm = llm
        self.last_response: Optional[LLMResponse] = None
        self.logger = logging.getLogger(f"agents.{config.agent_name}")

    @abstractmethod
    async def execute(self, context: AgentExecutionContext) -> Any:
        """Main execution logic; each agent implements this differently."""
        ...

    async def run(self, context: AgentExecutionContext) -> Any:
        """
        Execute the agent and log start, completion or failure.

        Raises:
            Whatever `execute` raises
        """
        start_time = time.monotonic()
        self.logger.info(
            f"Execution started (company={context.company_id}, audit={context.audit_id})"
        )

        try:
            output = await self.execute(context)
        except Exception as e:
            duration_ms = int((time.monotonic() - start_time) * 1000)
            self.logger.error(f"Execution failed after {duration_ms}ms: {e}")
            raise

        duration_ms = int((time.monotonic() - start_time) * 1000)
        self.logger.info(f"Execution completed in {duration_ms}ms")
        return output

    def _build_task(self, prompt: str, **overrides: Any) -> LLMTask:
        options: Dict[str, Any] = {
            "task_type": self.config.task_type,
            "system_prompt": self.config.system_prompt,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        options.update(overrides)
        return LLMTask(prompt=prompt, **options)

    async def call_llm(self, prompt: str, **overrides: Any) -> str:
        """
        Generate text with the agent's task type and system prompt.

        Args:
            prompt: User prompt
            **overrides: LLMTask fields to override (temperature, force_provider, ...)

        Returns:
            Completion text
        """
        response = await self.llm.execute_text(self._build_task(prompt, **overrides))
        self._track(response)
        return response.result

    async def call_llm_structured(self, prompt: str, schema: Type[T], **overrides: Any) -> T:
        """
        Generate a structured object with the agent's task type and system prompt.

        Args:
            prompt: User prompt
            schema: Pydantic model (or any type pydantic can validate)
            **overrides: LLMTask fields to override

        Returns:
            Validated object
        """
        response = await self.llm.execute_structured(self._build_task(prompt, **overrides), schema)
        self._track(response)
        return response.result

    def _track(self, response: LLMResponse) -> None:
        self.last_response = response
        self.logger.debug(
            f"LLM call served by {response.provider.value} "
            f"(fallback={response.used_fallback}, cost=${response.usage.cost_usd:.6f})"
        )
