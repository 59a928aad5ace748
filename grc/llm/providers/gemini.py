"""
grc/llm/providers/gemini.py - Google Gemini Provider

Adapter for the Gemini tiers (Flash-Lite, Flash, Pro) behind the
google-genai async client.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..exceptions import ProviderUnavailableError, TransientError
from ..types import LLMTask, Provider, ProviderConfig, Vendor
from .base import BaseProvider, Completion

logger = logging.getLogger("llm.gemini")

# Gemini provider identities are the vendor model ids
MODEL_NAMES: Dict[Provider, str] = {
    p: p.value for p in Provider if p.vendor == Vendor.GEMINI
}


class GeminiProvider(BaseProvider):
    """
    Gemini provider using the google-genai SDK.

    Requires the `google-genai` package to be installed:
        pip install google-genai
    """

    def __init__(self, config: ProviderConfig, client: Optional[Any] = None):
        """
        Initialize the Gemini provider.

        Args:
            config: Provider config; the provider must be a Gemini tier
            client: Pre-built genai.Client (tests inject a mock)
        """
        if config.provider not in MODEL_NAMES:
            raise ValueError(f"GeminiProvider cannot serve {config.provider.value}")

        super().__init__(config)
        self._client: Optional[Any] = client

    @property
    def model_name(self) -> str:
        return MODEL_NAMES[self.provider]

    def _get_client(self) -> Any:
        """
        Get or create the genai client.

        Lazy initialization to avoid import errors if package not installed.
        """
        if self._client is not None:
            return self._client

        try:
            from google import genai
        except ImportError as e:
            raise ProviderUnavailableError(
                self.provider.value,
                "google-genai package not installed. Run: pip install google-genai",
            ) from e

        try:
            self._client = genai.Client(api_key=self.config.api_key)
            return self._client

        except Exception as e:
            raise ProviderUnavailableError(
                self.provider.value,
                f"Failed to initialize Gemini client: {e}",
            ) from e

    async def _raw_generate(
        self,
        task: LLMTask,
        system_prompt: Optional[str],
        json_mode: bool,
    ) -> Completion:
        """Make the actual Gemini API call."""
        client = self._get_client()

        config: Dict[str, Any] = {
            "temperature": task.temperature,
            "max_output_tokens": task.max_tokens,
        }
        if system_prompt:
            config["system_instruction"] = system_prompt
        if json_mode:
            config["response_mime_type"] = "application/json"

        try:
            response = await client.aio.models.generate_content(
                model=self.model_name,
                contents=task.prompt,
                config=config,
            )

        except Exception as e:
            if self._is_transient_error(e):
                raise TransientError(str(e), e) from e
            raise

        usage = getattr(response, "usage_metadata", None)
        input_tokens = (getattr(usage, "prompt_token_count", 0) or 0) if usage else 0
        output_tokens = (getattr(usage, "candidates_token_count", 0) or 0) if usage else 0

        return Completion(
            text=response.text or "",
            model=self.model_name,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
        )
