"""
grc/llm/providers/anthropic.py - Anthropic Claude Provider

Adapter for the Claude tier behind the Anthropic messages API.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..exceptions import ProviderUnavailableError, TransientError
from ..types import LLMTask, Provider, ProviderConfig
from .base import BaseProvider, Completion

logger = logging.getLogger("llm.anthropic")

# Provider identity -> Anthropic model id
MODEL_NAMES: Dict[Provider, str] = {
    Provider.CLAUDE_SONNET: "claude-sonnet-4-5-20250929",
}

# Anthropic rejects temperatures above 1.0; LLMTask allows the Gemini range
MAX_TEMPERATURE = 1.0


class ClaudeProvider(BaseProvider):
    """
    Claude provider using the Anthropic API.

    Requires the `anthropic` package to be installed:
        pip install anthropic
    """

    def __init__(self, config: ProviderConfig, client: Optional[Any] = None):
        """
        Initialize the Claude provider.

        Args:
            config: Provider config; the provider must be a Claude tier
            client: Pre-built AsyncAnthropic client (tests inject a mock)
        """
        if config.provider not in MODEL_NAMES:
            raise ValueError(f"ClaudeProvider cannot serve {config.provider.value}")

        super().__init__(config)
        self._client: Optional[Any] = client

    @property
    def model_name(self) -> str:
        return MODEL_NAMES[self.provider]

    def _get_client(self) -> Any:
        """
        Get or create the Anthropic client.

        Lazy initialization to avoid import errors if package not installed.
        """
        if self._client is not None:
            return self._client

        try:
            import anthropic
        except ImportError as e:
            raise ProviderUnavailableError(
                self.provider.value,
                "anthropic package not installed. Run: pip install anthropic",
            ) from e

        try:
            self._client = anthropic.AsyncAnthropic(
                api_key=self.config.api_key,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
            return self._client

        except Exception as e:
            raise ProviderUnavailableError(
                self.provider.value,
                f"Failed to initialize Anthropic client: {e}",
            ) from e

    async def _raw_generate(
        self,
        task: LLMTask,
        system_prompt: Optional[str],
        json_mode: bool,
    ) -> Completion:
        """
        Make the actual Claude API call.

        Claude has no JSON response mode; structured calls rely on the
        schema instruction already in the system prompt.
        """
        client = self._get_client()

        request: Dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": task.max_tokens,
            "temperature": min(task.temperature, MAX_TEMPERATURE),
            "messages": [{"role": "user", "content": task.prompt}],
        }
        if system_prompt:
            request["system"] = system_prompt

        try:
            response = await client.messages.create(**request)

        except Exception as e:
            if self._is_transient_error(e):
                raise TransientError(str(e), e) from e
            raise

        # Extract content
        content = ""
        if response.content:
            for block in response.content:
                if getattr(block, "type", "text") == "text" and hasattr(block, "text"):
                    content += block.text

        return Completion(
            text=content,
            model=getattr(response, "model", None) or self.model_name,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
