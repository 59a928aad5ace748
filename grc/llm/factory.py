"""
grc/llm/factory.py - LLM Service Factory

Builds the provider configs, failover orchestrator and monitoring sink from
LLMConfig and wires them into an LLMService.
"""

from __future__ import annotations

import importlib.util
import logging
from typing import Dict, List, Optional

from ..bootstrap.config import LLMConfig, get_config
from .exceptions import ConfigurationError
from .failover import LLMFailover
from .monitoring import LLMMonitoring
from .service import LLMService
from .types import Provider, ProviderConfig, Vendor

logger = logging.getLogger("llm.factory")

# Vendor -> module that must be importable for its adapter
VENDOR_PACKAGES: Dict[Vendor, str] = {
    Vendor.GEMINI: "google.genai",
    Vendor.ANTHROPIC: "anthropic",
}


def _vendor_key(config: LLMConfig, vendor: Vendor) -> str:
    if vendor == Vendor.GEMINI:
        return config.gemini_api_key
    return config.claude_api_key


def build_provider_configs(config: LLMConfig) -> List[ProviderConfig]:
    """
    Build one ProviderConfig per provider identity.

    Args:
        config: LLM configuration

    Returns:
        ProviderConfigs in Provider declaration order

    Raises:
        ConfigurationError: If a vendor key is missing or the retry policy
            is invalid
    """
    missing = config.missing_keys()
    if missing:
        raise ConfigurationError(f"Missing LLM API keys: {', '.join(missing)}")

    try:
        return [
            ProviderConfig(
                provider=provider,
                api_key=_vendor_key(config, provider.vendor),
                max_retries=config.max_retries,
                retry_delay_ms=config.retry_delay_ms,
                timeout_ms=config.timeout_ms,
            )
            for provider in Provider
        ]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid LLM retry policy: {e}") from e


def create_llm_service(config: Optional[LLMConfig] = None) -> LLMService:
    """
    Create an LLM service from configuration.

    Args:
        config: LLM configuration (defaults to get_config().llm)

    Returns:
        Configured LLMService; call start() (or use it as an async context
        manager) to begin background health checks

    Raises:
        ConfigurationError: If the configuration is incomplete

    Examples:
        service = create_llm_service()

        service = create_llm_service(
            LLMConfig(gemini_api_key="...", claude_api_key="...", max_retries=2)
        )
    """
    resolved = config if config is not None else get_config().llm
    provider_configs = build_provider_configs(resolved)

    failover = LLMFailover(
        provider_configs,
        error_rate_threshold=resolved.error_rate_threshold,
        health_check_interval_seconds=resolved.health_check_interval_seconds,
    )
    monitoring = LLMMonitoring(
        max_recent_calls=resolved.max_recent_calls,
        cost_threshold_usd=resolved.cost_alert_usd,
    )

    logger.info(
        f"Creating LLM service with {len(provider_configs)} providers "
        f"(max_retries={resolved.max_retries}, timeout_ms={resolved.timeout_ms})"
    )

    return LLMService(
        failover,
        monitoring,
        enable_health_checks=resolved.enable_health_checks,
    )


def get_available_providers(config: Optional[LLMConfig] = None) -> Dict[Provider, bool]:
    """
    Check which providers could serve calls.

    A provider is available when its vendor SDK is installed and its
    vendor key is set.

    Returns:
        Dict mapping providers to availability
    """
    resolved = config if config is not None else get_config().llm
    availability = {}

    for provider in Provider:
        vendor = provider.vendor
        installed = _is_installed(VENDOR_PACKAGES[vendor])
        availability[provider] = installed and bool(_vendor_key(resolved, vendor))

    return availability


def _is_installed(module: str) -> bool:
    try:
        return importlib.util.find_spec(module) is not None
    except ModuleNotFoundError:
        return False
