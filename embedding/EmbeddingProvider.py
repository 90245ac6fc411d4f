# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-03
# Description: EmbeddingProvider
# -----------------------------------------------------------------------------
"""
Uniform contract for every embedding backend (Nomic, OpenAI, LM Studio, Cohere).

The batch pipeline only ever talks to EmbeddingProvider; adding a backend means
adding a subclass plus one entry in ProviderFactory.PROVIDERS.
"""
from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from embedding.RateLimiter import RateLimiter
from settings import CHARS_PER_TOKEN
from utility.errors import ProviderCallError, RequestRejected, TransientProviderError
from utility.logging_utils import get_class_logger

DEFAULT_TIMEOUT_SECONDS = 30.0

# Status codes treated as "the upstream refused this input"
REJECTED_STATUS_CODES = (400, 413, 422)


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    api_url: str
    model: str
    dimensions: int
    max_tokens: int = 8192
    cost_per_1m_tokens: float = 0.0


@dataclass(frozen=True)
class EmbeddingUsage:
    prompt_tokens: int
    total_tokens: int

    def to_dict(self) -> Dict[str, int]:
        return {"prompt_tokens": self.prompt_tokens, "total_tokens": self.total_tokens}


@dataclass(frozen=True)
class EmbeddingResult:
    """One vector per input text, in submission order."""
    embeddings: List[List[float]]
    model: str
    dimensions: int
    usage: EmbeddingUsage = field(default_factory=lambda: EmbeddingUsage(0, 0))


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text or "") / CHARS_PER_TOKEN)


def estimate_usage(texts: List[str]) -> EmbeddingUsage:
    tokens = sum(estimate_tokens(t) for t in texts)
    return EmbeddingUsage(prompt_tokens=tokens, total_tokens=tokens)


class EmbeddingProvider(ABC):
    """
    Abstract embedding generation interface.

    Contract for embed():
      - texts must be non-empty
      - each text should fit within get_max_tokens() (caller responsibility;
        providers do not truncate, the upstream rejects oversize input)
      - the returned embeddings are in the same order as texts
    """

    def __init__(
        self,
        config: ProviderConfig,
        rate_limiter: RateLimiter,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.rate_limiter = rate_limiter
        self._http_client = http_client
        self.logger = logger or get_class_logger(self.__class__)

    @property
    def name(self) -> str:
        return self.config.name

    @abstractmethod
    async def embed(self, texts: List[str]) -> EmbeddingResult:
        ...

    def get_dimensions(self) -> int:
        return self.config.dimensions

    def get_max_tokens(self) -> int:
        return self.config.max_tokens

    def get_cost(self) -> float:
        """Cost in $ per 1M tokens."""
        return self.config.cost_per_1m_tokens

    def describe(self) -> Dict[str, Any]:
        return {
            "provider": self.name,
            "model": self.config.model,
            "dimensions": self.get_dimensions(),
            "max_tokens": self.get_max_tokens(),
            "cost_per_1m_tokens": self.get_cost(),
        }

    # ------------------------------------------------------------------
    # helpers for httpx-based adapters
    # ------------------------------------------------------------------
    @staticmethod
    def _require_texts(texts: List[str]) -> None:
        if not texts:
            raise ValueError("texts must be non-empty.")

    def _client(self) -> httpx.AsyncClient:
        return self._http_client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT_SECONDS)

    async def _post_json(self, url: str, payload: Dict[str, Any], headers: Dict[str, str]) -> Dict[str, Any]:
        """
        POST through the shared rate limiter, mapping transport and HTTP
        failures onto the provider error taxonomy.
        """
        client = self._client()
        try:
            response = await self.rate_limiter.schedule(client.post, url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise TransientProviderError(f"{self.name} request timed out: {e}", provider=self.name) from e
        except httpx.TransportError as e:
            raise TransientProviderError(f"{self.name} network error: {e}", provider=self.name) from e
        finally:
            if self._http_client is None:
                await client.aclose()

        return self._check_response(response)

    def _check_response(self, response: httpx.Response) -> Dict[str, Any]:
        if response.status_code in REJECTED_STATUS_CODES:
            raise RequestRejected(
                f"{self.name} rejected request ({response.status_code}): {response.text[:500]}",
                provider=self.name,
            )
        if response.status_code != 200:
            raise ProviderCallError(
                f"{self.name} API error ({response.status_code}): {response.text[:500]}",
                provider=self.name,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderCallError(f"{self.name} returned invalid JSON: {e}", provider=self.name) from e
