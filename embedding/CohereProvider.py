# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: CohereProvider
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from embedding.EmbeddingProvider import EmbeddingProvider, EmbeddingResult, EmbeddingUsage, ProviderConfig, estimate_usage
from embedding.RateLimiter import RateLimiter
from settings import _env
from utility.errors import ConfigurationError, ProviderCallError

COHERE_API_URL = "https://api.cohere.ai/v1/embed"
DEFAULT_MODEL = "embed-multilingual-v3.0"


class CohereProvider(EmbeddingProvider):
    """Cohere v3 embeddings (multilingual by default), fixed 1024 dimensions."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        input_type: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.api_key = api_key or _env("COHERE_API_KEY")
        if not self.api_key:
            raise ConfigurationError("COHERE_API_KEY is required")

        # search_document | search_query | classification | clustering
        self.input_type = input_type or _env("COHERE_INPUT_TYPE", "search_document")
        super().__init__(
            ProviderConfig(
                name="cohere",
                api_url=COHERE_API_URL,
                model=model or _env("COHERE_MODEL", DEFAULT_MODEL),
                dimensions=1024,
                max_tokens=512,
                cost_per_1m_tokens=0.10,
            ),
            rate_limiter,
            http_client=http_client,
            logger=logger,
        )

    async def embed(self, texts: List[str]) -> EmbeddingResult:
        self._require_texts(texts)

        data = await self._post_json(
            self.config.api_url,
            {"texts": texts, "model": self.config.model, "input_type": self.input_type},
            {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"},
        )

        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list):
            raise ProviderCallError("Invalid response format from Cohere (no 'embeddings')", provider=self.name)

        billed = ((data.get("meta") or {}).get("billed_units") or {}).get("input_tokens")
        if billed is not None:
            usage = EmbeddingUsage(prompt_tokens=int(billed), total_tokens=int(billed))
        else:
            usage = estimate_usage(texts)

        return EmbeddingResult(
            embeddings=embeddings,
            model=self.config.model,
            dimensions=self.config.dimensions,
            usage=usage,
        )
