"""
grc/llm/providers - Vendor Adapter Implementations

Available providers:
- GeminiProvider: Gemini Flash-Lite / Flash / Pro (google-genai)
- ClaudeProvider: Claude Sonnet (anthropic)
"""

from typing import Mapping, Type

from ..types import Vendor
from .base import BaseProvider, Completion
from .anthropic import ClaudeProvider
from .gemini import GeminiProvider

# Vendor -> adapter class
ADAPTERS: Mapping[Vendor, Type[BaseProvider]] = {
    Vendor.GEMINI: GeminiProvider,
    Vendor.ANTHROPIC: ClaudeProvider,
}

__all__ = [
    "ADAPTERS",
    "BaseProvider",
    "ClaudeProvider",
    "Completion",
    "GeminiProvider",
]
