# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-04
# Description: LMStudioProvider
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
from typing import List, Optional

import httpx

from embedding.EmbeddingProvider import (
    DEFAULT_TIMEOUT_SECONDS,
    EmbeddingProvider,
    EmbeddingResult,
    ProviderConfig,
    estimate_usage,
)
from embedding.RateLimiter import RateLimiter
from settings import _env, _env_int
from utility.errors import ProviderCallError, ProviderConnectionError, TransientProviderError

DEFAULT_BASE_URL = "http://localhost:1234/v1/embeddings"
CONNECTION_TIMEOUT_SECONDS = 5.0

# LM Studio accepts any bearer value but expects the header to be present
LMSTUDIO_HEADERS = {"Authorization": "Bearer lm-studio", "Content-Type": "application/json"}


class LMStudioProvider(EmbeddingProvider):
    """
    Local embeddings served by LM Studio's OpenAI-compatible endpoint.

    No credential, no cost. Dimensions must be configured to match the
    loaded model (LMSTUDIO_DIMENSIONS, default 384). Texts are embedded one
    request at a time since several local models reject multi-input calls.
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        *,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        max_tokens: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        super().__init__(
            ProviderConfig(
                name="lmstudio",
                api_url=base_url or _env("LMSTUDIO_BASE_URL", DEFAULT_BASE_URL),
                model=model or _env("LMSTUDIO_MODEL", "model-identifier"),
                dimensions=dimensions or _env_int("LMSTUDIO_DIMENSIONS", 384),
                max_tokens=max_tokens or _env_int("LMSTUDIO_MAX_TOKENS", 512),
                cost_per_1m_tokens=0.0,
            ),
            rate_limiter,
            http_client=http_client,
            logger=logger,
        )

    @property
    def models_url(self) -> str:
        return self.config.api_url.replace("/embeddings", "/models")

    def _unreachable(self) -> ProviderConnectionError:
        return ProviderConnectionError(
            f"Cannot connect to LM Studio at {self.config.api_url}. "
            "Make sure LM Studio is running, a model is loaded and the local server is started.",
            provider=self.name,
        )

    async def test_connection(self, client: httpx.AsyncClient) -> None:
        try:
            resp = await client.get(self.models_url, headers=LMSTUDIO_HEADERS, timeout=CONNECTION_TIMEOUT_SECONDS)
        except httpx.HTTPError as e:
            raise self._unreachable() from e
        if resp.status_code != 200:
            raise self._unreachable()

    async def embed(self, texts: List[str]) -> EmbeddingResult:
        self._require_texts(texts)
        embeddings = await self.rate_limiter.schedule(self._embed_sequentially, texts)
        return EmbeddingResult(
            embeddings=embeddings,
            model=self.config.model,
            dimensions=self.config.dimensions,
            usage=estimate_usage(texts),
        )

    async def _embed_sequentially(self, texts: List[str]) -> List[List[float]]:
        client = self._http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS)
        try:
            await self.test_connection(client)

            embeddings: List[List[float]] = []
            for text in texts:
                clean_text = text.replace("\n", " ")
                try:
                    resp = await client.post(
                        self.config.api_url,
                        json={"input": [clean_text], "model": self.config.model},
                        headers=LMSTUDIO_HEADERS,
                    )
                except httpx.ConnectError as e:
                    raise self._unreachable() from e
                except httpx.TimeoutException as e:
                    raise TransientProviderError(f"lmstudio request timed out: {e}", provider=self.name) from e
                except httpx.TransportError as e:
                    raise TransientProviderError(f"lmstudio network error: {e}", provider=self.name) from e

                data = self._check_response(resp)
                items = data.get("data") or []
                if not items or "embedding" not in items[0]:
                    raise ProviderCallError("Invalid response format from LM Studio", provider=self.name)
                embeddings.append(items[0]["embedding"])

            return embeddings
        finally:
            if self._http_client is None:
                await client.aclose()
