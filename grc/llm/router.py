"""
grc/llm/router.py - Task routing and cost estimation

Routes each task category to the cheapest capable provider, with a fallback
on a different vendor or tier, and prices token usage from a static table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .types import Provider, TaskType


@dataclass(frozen=True)
class RouteDecision:
    """Ordered provider pair for one task."""

    primary: Provider
    fallback: Provider


@dataclass(frozen=True)
class ModelPricing:
    """USD per 1M tokens."""

    input: float
    output: float


# Task routing matrix (cost & capability tiered)
TASK_ROUTING: Mapping[TaskType, RouteDecision] = {
    TaskType.FAST_AGENTIC: RouteDecision(
        primary=Provider.GEMINI_FLASH_LITE,  # cheapest, fastest
        fallback=Provider.GEMINI_FLASH,
    ),
    TaskType.VISION: RouteDecision(
        primary=Provider.GEMINI_FLASH,
        fallback=Provider.CLAUDE_SONNET,
    ),
    TaskType.COMPLEX_REASONING: RouteDecision(
        primary=Provider.GEMINI_PRO,
        fallback=Provider.CLAUDE_SONNET,
    ),
    TaskType.POLICY_GENERATION: RouteDecision(
        primary=Provider.CLAUDE_SONNET,  # long-form strength
        fallback=Provider.GEMINI_PRO,
    ),
    TaskType.CODE_ANALYSIS: RouteDecision(
        primary=Provider.GEMINI_PRO,
        fallback=Provider.CLAUDE_SONNET,
    ),
    TaskType.CONVERSATIONAL: RouteDecision(
        primary=Provider.GEMINI_FLASH,
        fallback=Provider.GEMINI_FLASH_LITE,
    ),
}

PRICING: Mapping[Provider, ModelPricing] = {
    Provider.GEMINI_FLASH_LITE: ModelPricing(input=0.10, output=0.40),
    Provider.GEMINI_FLASH: ModelPricing(input=0.30, output=2.50),
    Provider.GEMINI_PRO: ModelPricing(input=1.25, output=10.00),
    Provider.CLAUDE_SONNET: ModelPricing(input=3.00, output=15.00),
}


def _check_tables() -> None:
    missing_routes = [t.value for t in TaskType if t not in TASK_ROUTING]
    if missing_routes:
        raise RuntimeError(f"No route defined for task types: {missing_routes}")

    for task_type, route in TASK_ROUTING.items():
        if route.primary == route.fallback:
            raise RuntimeError(f"Route for {task_type.value} falls back to its own primary")

    missing_prices = [p.value for p in Provider if p not in PRICING]
    if missing_prices:
        raise RuntimeError(f"No pricing defined for providers: {missing_prices}")


_check_tables()


def route_task(task_type: TaskType, force_provider: Optional[Provider] = None) -> RouteDecision:
    """
    Determine which providers to use for a task.

    Args:
        task_type: Task category
        force_provider: Optional override; becomes the primary and the
            category's natural primary becomes the fallback

    Returns:
        RouteDecision with primary and fallback
    """
    route = TASK_ROUTING[TaskType(task_type)]

    if force_provider is not None:
        return RouteDecision(primary=Provider(force_provider), fallback=route.primary)

    return route


def estimate_cost(provider: Provider, input_tokens: int, output_tokens: int) -> float:
    """
    Calculate the USD cost of a call.

    Args:
        provider: Provider identity
        input_tokens: Prompt tokens
        output_tokens: Completion tokens

    Returns:
        Cost in USD

    Raises:
        KeyError: If the provider has no pricing entry
        ValueError: If a token count is negative
    """
    if input_tokens < 0 or output_tokens < 0:
        raise ValueError(
            f"Token counts must be non-negative (input={input_tokens}, output={output_tokens})"
        )

    pricing = PRICING.get(provider)
    if pricing is None:
        raise KeyError(f"No pricing for provider: {provider!r}")

    input_cost = (input_tokens / 1_000_000) * pricing.input
    output_cost = (output_tokens / 1_000_000) * pricing.output
    return input_cost + output_cost


def cheapest_provider() -> Provider:
    """Provider with the lowest combined input + output unit price."""
    return min(PRICING, key=lambda p: PRICING[p].input + PRICING[p].output)


def get_pricing(provider: Provider) -> ModelPricing:
    return PRICING[provider]


class LLMRouter:
    """Class-style access to the routing functions."""

    route_task = staticmethod(route_task)
    estimate_cost = staticmethod(estimate_cost)
    cheapest_provider = staticmethod(cheapest_provider)
