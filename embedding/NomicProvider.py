# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: NomicProvider
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from embedding.EmbeddingProvider import EmbeddingProvider, EmbeddingResult, EmbeddingUsage, ProviderConfig, estimate_usage
from embedding.RateLimiter import RateLimiter
from settings import _env, _env_int
from utility.errors import ConfigurationError, ProviderCallError

NOMIC_API_URL = "https://api-atlas.nomic.ai/v1/embedding/text"
NOMIC_MODEL = "nomic-embed-text-v1.5"


class NomicProvider(EmbeddingProvider):
    """
    Nomic Atlas embeddings (nomic-embed-text-v1.5).

    Free tier; Matryoshka dimensionality (768 by default, 256 also common)
    is fixed per run via NOMIC_DIMENSIONALITY.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        *,
        api_key: Optional[str] = None,
        dimensions: Optional[int] = None,
        task_type: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.api_key = api_key or _env("NOMIC_API_KEY")
        if not self.api_key:
            raise ConfigurationError("NOMIC_API_KEY is required")

        self.task_type = task_type or _env("TASK_TYPE", "search_document")
        super().__init__(
            ProviderConfig(
                name="nomic",
                api_url=NOMIC_API_URL,
                model=NOMIC_MODEL,
                dimensions=dimensions or _env_int("NOMIC_DIMENSIONALITY", 768),
                max_tokens=8192,
                cost_per_1m_tokens=0.0,
            ),
            rate_limiter,
            http_client=http_client,
            logger=logger,
        )

    async def embed(self, texts: List[str]) -> EmbeddingResult:
        self._require_texts(texts)

        data = await self._post_json(
            self.config.api_url,
            {
                "model": self.config.model,
                "texts": texts,
                "task_type": self.task_type,
                "max_tokens_per_text": self.config.max_tokens,
                "dimensionality": self.config.dimensions,
            },
            {"Authorization": f"Bearer {self.api_key}"},
        )

        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list):
            raise ProviderCallError("Invalid response format from Nomic (no 'embeddings')", provider=self.name)

        usage = data.get("usage") or {}
        if "total_tokens" in usage:
            total = int(usage["total_tokens"])
            result_usage = EmbeddingUsage(prompt_tokens=int(usage.get("prompt_tokens", total)), total_tokens=total)
        else:
            result_usage = estimate_usage(texts)

        return EmbeddingResult(
            embeddings=embeddings,
            model=f"{self.config.model}-{self.config.dimensions}d",
            dimensions=self.config.dimensions,
            usage=result_usage,
        )
