# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Updated: 2026-02-06
# Description: OpenAIProvider
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI

from embedding.EmbeddingProvider import (
    DEFAULT_TIMEOUT_SECONDS,
    EmbeddingProvider,
    EmbeddingResult,
    EmbeddingUsage,
    ProviderConfig,
    estimate_usage,
)
from embedding.RateLimiter import RateLimiter
from settings import _env, _env_optional_int
from utility.errors import ConfigurationError, ProviderCallError, RequestRejected, TransientProviderError

OPENAI_API_URL = "https://api.openai.com/v1/embeddings"
DEFAULT_MODEL = "text-embedding-3-small"

MODEL_DIMENSIONS = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}

# $ per 1M tokens
MODEL_COSTS = {
    "text-embedding-3-small": 0.02,
    "text-embedding-3-large": 0.13,
    "text-embedding-ada-002": 0.10,
}


def supports_dimension_reduction(model: str) -> bool:
    return "text-embedding-3" in model


class OpenAIProvider(EmbeddingProvider):
    """
    OpenAI embeddings via the official SDK.

    Dimensions come from OPENAI_DIMENSIONS (text-embedding-3 models only)
    or from the static model table. SDK retries are disabled: a failed
    batch halts the run and is retried by the next invocation.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        *,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        api_key = api_key or _env("OPENAI_API_KEY")
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY is required")

        model = model or _env("OPENAI_EMBEDDING_MODEL", DEFAULT_MODEL)
        requested_dims = dimensions or _env_optional_int("OPENAI_DIMENSIONS")

        super().__init__(
            ProviderConfig(
                name="openai",
                api_url=OPENAI_API_URL,
                model=model,
                dimensions=MODEL_DIMENSIONS.get(model, 1536),
                max_tokens=8191,
                cost_per_1m_tokens=MODEL_COSTS.get(model, 0.02),
            ),
            rate_limiter,
            http_client=http_client,
            logger=logger,
        )

        self._request_dimensions: Optional[int] = None
        if requested_dims:
            if supports_dimension_reduction(model):
                self._request_dimensions = requested_dims
                self.config = ProviderConfig(
                    name=self.config.name,
                    api_url=self.config.api_url,
                    model=self.config.model,
                    dimensions=requested_dims,
                    max_tokens=self.config.max_tokens,
                    cost_per_1m_tokens=self.config.cost_per_1m_tokens,
                )
            else:
                self.logger.warning(
                    "OPENAI_DIMENSIONS=%d ignored: model '%s' does not support dimension reduction",
                    requested_dims,
                    model,
                )

        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url or _env("OPENAI_BASE_URL") or None,
            max_retries=0,
            timeout=DEFAULT_TIMEOUT_SECONDS,
            http_client=http_client,
        )
        self.logger.info(
            "OpenAIProvider initialised (model=%s, dimensions=%d)", self.config.model, self.config.dimensions
        )

    async def embed(self, texts: List[str]) -> EmbeddingResult:
        self._require_texts(texts)

        params: Dict[str, Any] = {"model": self.config.model, "input": texts}
        if self._request_dimensions:
            params["dimensions"] = self._request_dimensions

        try:
            resp = await self.rate_limiter.schedule(self.client.embeddings.create, **params)
        except openai.APITimeoutError as e:
            raise TransientProviderError(f"openai request timed out: {e}", provider=self.name) from e
        except openai.APIConnectionError as e:
            raise TransientProviderError(f"openai network error: {e}", provider=self.name) from e
        except (openai.BadRequestError, openai.UnprocessableEntityError) as e:
            raise RequestRejected(f"openai rejected request: {e}", provider=self.name) from e
        except openai.APIError as e:
            raise ProviderCallError(f"openai API error: {e}", provider=self.name) from e

        items = sorted(resp.data, key=lambda d: d.index)
        embeddings = [list(d.embedding) for d in items]

        if resp.usage is not None:
            usage = EmbeddingUsage(
                prompt_tokens=int(resp.usage.prompt_tokens),
                total_tokens=int(resp.usage.total_tokens),
            )
        else:
            usage = estimate_usage(texts)

        return EmbeddingResult(
            embeddings=embeddings,
            model=self.config.model,
            dimensions=self.config.dimensions,
            usage=usage,
        )
