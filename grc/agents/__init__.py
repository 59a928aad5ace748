"""
grc/agents - Compliance agents built on the LLM service
"""

from .base import AgentConfig, AgentExecutionContext, BaseAgent

__all__ = [
    "AgentConfig",
    "AgentExecutionContext",
    "BaseAgent",
]
