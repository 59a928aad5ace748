"""
grc/llm/protocol.py - Provider Adapter Protocol Definition

Defines the uniform call signature every vendor adapter offers to the
failover layer, enabling easy swapping and testing with mocks.
"""

from __future__ import annotations

from typing import Any, Protocol, Type, TypeVar, runtime_checkable

from .types import LLMResponse, LLMTask, Provider


T = TypeVar("T")


@runtime_checkable
class ProviderAdapterProtocol(Protocol):
    """
    Protocol for provider adapters.

    All adapters must implement these methods to be interchangeable.
    """

    @property
    def provider(self) -> Provider:
        """Provider identity this adapter serves."""
        ...

    async def generate_text(self, task: LLMTask) -> LLMResponse[str]:
        """
        Generate a text completion for the task.

        Args:
            task: The task to run

        Returns:
            LLMResponse with the completion text and usage

        Raises:
            ProviderExhaustedError: If every retry failed
        """
        ...

    async def generate_structured(self, task: LLMTask, schema: Type[T]) -> LLMResponse[T]:
        """
        Generate a structured completion validated against a schema.

        Args:
            task: The task to run
            schema: Pydantic model (or any type pydantic can validate)

        Returns:
            LLMResponse whose result is the validated object

        Raises:
            ProviderExhaustedError: If every retry failed
        """
        ...

    async def health_check(self) -> bool:
        """
        Probe the vendor with a minimal generation.

        Returns:
            True if the call succeeded. Never raises.
        """
        ...

    def name(self) -> str:
        """Adapter name for logging."""
        ...

    async def aclose(self) -> Any:
        """Release vendor clients."""
        ...
