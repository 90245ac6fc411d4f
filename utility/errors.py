# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Description: errors.py
# -----------------------------------------------------------------------------
"""
Error taxonomy for the embedding pipeline.

  - ConfigurationError: missing credential / unknown provider (startup, before any I/O)
  - InputReadError: movie CSV unreadable or malformed
  - ProviderCallError: any failure from EmbeddingProvider.embed() (fatal to the run,
    recoverable across runs because progress is checkpointed per batch)
  - EnrichmentLookupError: Wikipedia lookup failure (never fatal)
"""


class ConfigurationError(ValueError):
    pass


class InputReadError(RuntimeError):
    pass


class ProviderCallError(RuntimeError):
    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message)
        self.provider = provider


class TransientProviderError(ProviderCallError):
    """Network failure or timeout talking to the provider."""


class RequestRejected(ProviderCallError):
    """Upstream refused the request (e.g. text over the token ceiling)."""


class ProviderConnectionError(ProviderCallError, ConnectionError):
    """Local / self-hosted provider is not reachable."""


class EnrichmentLookupError(RuntimeError):
    pass
