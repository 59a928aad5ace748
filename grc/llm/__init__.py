"""
grc/llm - Multi-provider LLM Layer

Routes each task category to a (vendor, tier) provider with a fallback,
retries each provider with exponential backoff, tracks provider health,
and records cost and latency for every call.

Usage:
    from grc.llm import LLMTask, TaskType, create_llm_service

    service = create_llm_service()
    async with service:
        response = await service.execute_text(
            LLMTask(task_type=TaskType.FAST_AGENTIC, prompt="List the controls in scope")
        )
        print(response.result, response.usage.cost_usd)
"""

from .types import (
    FailedAttempt,
    LLMResponse,
    LLMTask,
    Provider,
    ProviderConfig,
    ProviderHealth,
    TaskType,
    TokenUsage,
    Vendor,
)
from .exceptions import (
    AllProvidersFailedError,
    ConfigurationError,
    LLMError,
    LLMTimeoutError,
    ProviderExhaustedError,
    ProviderUnavailableError,
    TransientError,
    ValidationError,
)
from .protocol import ProviderAdapterProtocol
from .router import (
    PRICING,
    TASK_ROUTING,
    LLMRouter,
    ModelPricing,
    RouteDecision,
    cheapest_provider,
    estimate_cost,
    route_task,
)
from .providers import ADAPTERS, BaseProvider, ClaudeProvider, GeminiProvider
from .failover import LLMFailover
from .monitoring import CostBreakdown, LLMMonitoring, ProviderMetrics, TaskMetrics
from .service import LLMService
from .factory import build_provider_configs, create_llm_service, get_available_providers

__all__ = [
    # Types
    "FailedAttempt",
    "LLMResponse",
    "LLMTask",
    "Provider",
    "ProviderConfig",
    "ProviderHealth",
    "TaskType",
    "TokenUsage",
    "Vendor",
    # Exceptions
    "AllProvidersFailedError",
    "ConfigurationError",
    "LLMError",
    "LLMTimeoutError",
    "ProviderExhaustedError",
    "ProviderUnavailableError",
    "TransientError",
    "ValidationError",
    # Protocol
    "ProviderAdapterProtocol",
    # Router
    "PRICING",
    "TASK_ROUTING",
    "LLMRouter",
    "ModelPricing",
    "RouteDecision",
    "cheapest_provider",
    "estimate_cost",
    "route_task",
    # Providers
    "ADAPTERS",
    "BaseProvider",
    "ClaudeProvider",
    "GeminiProvider",
    # Orchestration
    "LLMFailover",
    "CostBreakdown",
    "LLMMonitoring",
    "ProviderMetrics",
    "TaskMetrics",
    "LLMService",
    # Factory
    "build_provider_configs",
    "create_llm_service",
    "get_available_providers",
]
