# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: ProviderFactory
# -----------------------------------------------------------------------------
from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence, Type

from config.Config import Config
from embedding.CohereProvider import CohereProvider
from embedding.EmbeddingProvider import EmbeddingProvider
from embedding.LMStudioProvider import LMStudioProvider
from embedding.NomicProvider import NomicProvider
from embedding.OpenAIProvider import OpenAIProvider
from embedding.RateLimiter import RateLimiter
from utility.errors import ConfigurationError
from utility.logging_utils import get_logger

logger = get_logger("embedding.ProviderFactory")

PROVIDERS: Dict[str, Type[EmbeddingProvider]] = {
    "nomic": NomicProvider,
    "openai": OpenAIProvider,
    "lmstudio": LMStudioProvider,
    "cohere": CohereProvider,
}

DEFAULT_PROVIDER = "nomic"


def create_embedding_provider(
    provider_name: str,
    rate_limiter: RateLimiter,
    cfg: Optional[Config] = None,
    **kwargs: Any,
) -> EmbeddingProvider:
    """
    Resolve a provider name to a constructed adapter.

    Raises ConfigurationError for unknown names (listing the valid ones) and,
    from the adapter itself, for missing credentials.
    """
    key = (provider_name or "").strip().lower()
    provider_cls = PROVIDERS.get(key)
    if provider_cls is None:
        raise ConfigurationError(
            f"Unknown embedding provider: {provider_name}. Available: {', '.join(PROVIDERS)}"
        )

    if key == "nomic" and cfg is not None:
        kwargs.setdefault("task_type", cfg.task_type)

    provider = provider_cls(rate_limiter, **kwargs)
    logger.info("Created embedding provider: %s", provider.describe())
    return provider


def get_default_provider(rate_limiter: RateLimiter, cfg: Config) -> EmbeddingProvider:
    return create_embedding_provider(cfg.embedding_provider or DEFAULT_PROVIDER, rate_limiter, cfg)


async def compare_providers(texts: List[str], providers: Sequence[EmbeddingProvider]) -> Dict[str, Dict[str, Any]]:
    """
    Embed the same texts with every provider. A failing provider is recorded
    and the comparison moves on.
    """
    logger.info("Comparing %d embedding providers...", len(providers))
    results: Dict[str, Dict[str, Any]] = {}

    for provider in providers:
        logger.info("Testing %s...", provider.name)
        start = time.perf_counter()
        try:
            result = await provider.embed(texts)
            duration_ms = (time.perf_counter() - start) * 1000.0
            results[provider.name] = {
                "success": True,
                "dimensions": result.dimensions,
                "model": result.model,
                "duration_ms": duration_ms,
                "usage": result.usage.to_dict(),
                "cost": (result.usage.total_tokens / 1_000_000) * provider.get_cost(),
                "embeddings": result.embeddings,
            }
            logger.info("%s: %dd in %.0f ms (%s)", provider.name, result.dimensions, duration_ms, result.model)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000.0
            results[provider.name] = {"success": False, "error": str(e), "duration_ms": duration_ms}
            logger.warning("%s failed: %s", provider.name, e)

    return results
