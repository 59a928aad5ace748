"""
grc/llm/providers/base.py - Base Provider with Retry

Abstract base class for vendor adapters with built-in:
- Retry with exponential backoff
- Per-attempt timeout
- Structured output parsing and validation
- Token usage and cost accounting
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Type, TypeVar

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from ..exceptions import (
    LLMError,
    LLMTimeoutError,
    ProviderExhaustedError,
    ValidationError,
)
from ..router import estimate_cost
from ..types import LLMResponse, LLMTask, Provider, ProviderConfig, TaskType, TokenUsage

logger = logging.getLogger("llm.provider")

T = TypeVar("T")
R = TypeVar("R")

HEALTH_CHECK_PROMPT = "Reply with the single word: ok"
HEALTH_CHECK_MAX_TOKENS = 10

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504, 529}

TRANSIENT_PATTERNS = (
    "rate limit",
    "overloaded",
    "timeout",
    "connection",
    "temporarily unavailable",
    "resource exhausted",
    "503",
    "529",
)


@dataclass
class Completion:
    """Raw vendor output before it is wrapped in an LLMResponse."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class BaseProvider(ABC):
    """
    Abstract base class for vendor adapters.

    Implements retry, timeout and usage accounting and delegates the actual
    API call to subclasses via `_raw_generate`.
    """

    def __init__(self, config: ProviderConfig):
        """
        Initialize the base provider.

        Args:
            config: Credentials and retry policy for the provider identity
        """
        self.config = config

    @property
    def provider(self) -> Provider:
        return self.config.provider

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Vendor model id for the configured provider."""
        ...

    @abstractmethod
    async def _raw_generate(
        self,
        task: LLMTask,
        system_prompt: Optional[str],
        json_mode: bool,
    ) -> Completion:
        """
        Make the actual API call. Implemented by subclasses.

        Args:
            task: The task (prompt, temperature, max_tokens)
            system_prompt: System instructions, already augmented for JSON mode
            json_mode: Ask the vendor for a JSON-only response

        Returns:
            Completion with text and token counts
        """
        ...

    def name(self) -> str:
        return f"{self.__class__.__name__}({self.provider.value})"

    async def aclose(self) -> None:
        """Release vendor clients. Nothing to release by default."""
        return None

    async def generate_text(self, task: LLMTask) -> LLMResponse[str]:
        """
        Generate a text completion with retry.

        Args:
            task: The task to run

        Returns:
            LLMResponse with the completion text

        Raises:
            ProviderExhaustedError: If every attempt failed
        """
        start_time = time.monotonic()

        async def attempt() -> Completion:
            return await self._raw_generate(task, task.system_prompt, False)

        completion = await self._with_retry(attempt, "Generate text", start_time)
        return self._build_response(completion.text, completion, start_time)

    async def generate_structured(self, task: LLMTask, schema: Type[T]) -> LLMResponse[T]:
        """
        Generate a JSON completion and validate it against a schema.

        Parse and validation failures count as failed attempts, so they are
        retried and, once retries run out, surface as ProviderExhaustedError.

        Args:
            task: The task to run
            schema: Pydantic model (or any type pydantic can validate)

        Returns:
            LLMResponse whose result is the validated object

        Raises:
            ProviderExhaustedError: If every attempt failed
        """
        start_time = time.monotonic()
        adapter = TypeAdapter(schema)
        system_prompt = _with_json_instruction(task.system_prompt, adapter.json_schema())

        async def attempt() -> Any:
            completion = await self._raw_generate(task, system_prompt, True)
            return completion, _parse_structured(completion.text, adapter)

        completion, result = await self._with_retry(attempt, "Generate structured", start_time)
        return self._build_response(result, completion, start_time)

    async def health_check(self) -> bool:
        """
        Probe the vendor with a minimal generation.

        Returns:
            True if the probe succeeded; False on any error
        """
        probe = LLMTask(
            task_type=TaskType.CONVERSATIONAL,
            prompt=HEALTH_CHECK_PROMPT,
            max_tokens=HEALTH_CHECK_MAX_TOKENS,
        )
        try:
            await asyncio.wait_for(
                self._raw_generate(probe, None, False),
                timeout=self.config.timeout_seconds,
            )
            return True
        except Exception as e:
            logger.error(f"{self.name()} health check failed: {e}")
            return False

    async def _with_retry(
        self,
        operation: Callable[[], Awaitable[R]],
        context: str,
        start_time: Optional[float] = None,
    ) -> R:
        """
        Run an operation with per-attempt timeout and exponential backoff.

        Args:
            operation: Zero-arg coroutine factory, called once per attempt
            context: Operation name for logs and the final error
            start_time: monotonic() of the first attempt, for latency

        Returns:
            The operation's result

        Raises:
            ProviderExhaustedError: After max_retries failed attempts, or
                after the first non-recoverable LLMError
        """
        if start_time is None:
            start_time = time.monotonic()

        max_retries = self.config.max_retries
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 1):
            try:
                return await asyncio.wait_for(operation(), timeout=self.config.timeout_seconds)

            except asyncio.TimeoutError:
                last_error = LLMTimeoutError(self.config.timeout_seconds)
                logger.warning(
                    f"{self.name()} {context} timed out (attempt {attempt}/{max_retries})"
                )

            except Exception as e:
                last_error = e
                logger.warning(
                    f"{self.name()} {context} failed (attempt {attempt}/{max_retries}): {e}"
                )
                if isinstance(e, LLMError) and not e.recoverable:
                    break

            if attempt < max_retries:
                delay = self.config.retry_delay_ms * (2 ** (attempt - 1)) / 1000
                await asyncio.sleep(delay)

        latency_ms = int((time.monotonic() - start_time) * 1000)
        raise ProviderExhaustedError(
            provider=self.provider,
            adapter_name=self.name(),
            operation=context,
            attempts=attempt,
            last_error=last_error,
            latency_ms=latency_ms,
        ) from last_error

    def _is_transient_error(self, error: Exception) -> bool:
        """
        Check if a vendor error is transient (rate limit, overload, 5xx).

        Args:
            error: The exception to check

        Returns:
            True if the error is transient
        """
        error_str = str(error).lower()

        for pattern in TRANSIENT_PATTERNS:
            if pattern in error_str:
                return True

        # anthropic exposes status_code, google-genai exposes code
        status = getattr(error, "status_code", None) or getattr(error, "code", None)
        return status in TRANSIENT_STATUS_CODES

    def _build_response(self, result: T, completion: Completion, start_time: float) -> LLMResponse[T]:
        latency_ms = int((time.monotonic() - start_time) * 1000)
        input_tokens = completion.input_tokens
        output_tokens = completion.output_tokens

        usage = TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            cost_usd=estimate_cost(self.provider, input_tokens, output_tokens),
        )

        return LLMResponse(
            result=result,
            provider=self.provider,
            model=completion.model or self.model_name,
            usage=usage,
            latency_ms=latency_ms,
            used_fallback=False,
        )


def _with_json_instruction(system_prompt: Optional[str], json_schema: dict) -> str:
    json_instruction = (
        f"You must respond with valid JSON matching this schema:\n"
        f"{json.dumps(json_schema)}\n"
        f"Only output the JSON object, no other text."
    )
    return f"{system_prompt}\n\n{json_instruction}" if system_prompt else json_instruction


def _strip_code_fence(content: str) -> str:
    content = content.strip()
    # Handle markdown code blocks
    if content.startswith("```"):
        content = content.split("```")[1]
        if content.startswith("json"):
            content = content[4:]
        content = content.strip()
    return content


def _parse_structured(text: str, adapter: TypeAdapter) -> Any:
    """
    Parse a JSON completion and validate it.

    Raises:
        ValidationError: If the text is not JSON or doesn't match the schema
    """
    try:
        data = json.loads(_strip_code_fence(text))
        return adapter.validate_python(data)

    except json.JSONDecodeError as e:
        raise ValidationError(
            f"Response is not valid JSON: {e}",
            raw_response=text,
        ) from e
    except PydanticValidationError as e:
        raise ValidationError(
            f"Response doesn't match schema: {e}",
            raw_response=text,
        ) from e
