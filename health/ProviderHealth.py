# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-12
# Description: ProviderHealth
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

from config.Config import Config
from embedding.EmbeddingProvider import EmbeddingProvider
from embedding.ProviderFactory import PROVIDERS, compare_providers, create_embedding_provider
from embedding.RateLimiter import RateLimiter
from utility.errors import ConfigurationError
from utility.logging_utils import get_class_logger

SAMPLE_TEXTS = [
    "Mulholland Dr. - A love story in the city of dreams, directed by David Lynch",
    "Seven Samurai - Akira Kurosawa's epic tale of honor and sacrifice in feudal Japan",
    "8½ - Federico Fellini's surreal meditation on creativity and artistic inspiration",
]


class ProviderHealth:
    """
    Smoke test for one embedding provider.

    Verifies:
      - The embed call completes successfully
      - The response contains one vector
      - The vector dimension matches the provider's reported dimensions
    """

    def __init__(self, provider: EmbeddingProvider, logger: Optional[logging.Logger] = None):
        self.provider = provider
        self.logger = logger or get_class_logger(self.__class__)

    async def run(self, text: str = SAMPLE_TEXTS[0]) -> bool:
        p = self.provider
        self.logger.info(
            "Testing %s: dimensions=%d max_tokens=%d cost/1M=$%s",
            p.name, p.get_dimensions(), p.get_max_tokens(), p.get_cost(),
        )
        try:
            start = time.time()
            result = await p.embed([text])
            elapsed_ms = (time.time() - start) * 1000.0

            if not result.embeddings or not result.embeddings[0]:
                self.logger.error("%s returned no embedding data.", p.name)
                return False

            dim = len(result.embeddings[0])
            self.logger.info(
                "%s succeeded in %.1f ms (model=%s, dim=%d, usage=%s, first 5=%s)",
                p.name, elapsed_ms, result.model, dim, result.usage.to_dict(),
                [round(v, 4) for v in result.embeddings[0][:5]],
            )

            if dim != p.get_dimensions():
                self.logger.warning("Dimension mismatch: expected %d, got %d.", p.get_dimensions(), dim)
                return False

            return True

        except Exception as e:
            self.logger.error("%s healthcheck FAILED: %s", p.name, e)
            return False


class ProviderHealthRunner:
    """Checks every known provider, then compares the ones that work."""

    def __init__(
        self,
        cfg: Config,
        rate_limiter: RateLimiter,
        logger: Optional[logging.Logger] = None,
    ):
        self.cfg = cfg
        self.rate_limiter = rate_limiter
        self.logger = logger or get_class_logger(self.__class__)

    async def run_all(self, names: Iterable[str] | None = None) -> Dict[str, Any]:
        results: Dict[str, bool] = {}
        working: List[EmbeddingProvider] = []

        for name in names or PROVIDERS:
            try:
                provider = create_embedding_provider(name, self.rate_limiter, self.cfg)
            except ConfigurationError as e:
                self.logger.warning("Skipping %s: %s", name, e)
                results[name] = False
                continue

            ok = await ProviderHealth(provider).run()
            results[name] = ok
            if ok:
                working.append(provider)
            self.logger.info("%s: %s", name.upper(), "Working" if ok else "Failed")

        comparison: Dict[str, Dict[str, Any]] = {}
        if len(working) > 1:
            comparison = await compare_providers([SAMPLE_TEXTS[0]], working)
            for name, res in comparison.items():
                if res["success"]:
                    self.logger.info(
                        "%s: %dd, %.0f ms, $%.6f", name, res["dimensions"], res["duration_ms"], res["cost"]
                    )

        return {"results": results, "comparison": comparison}
