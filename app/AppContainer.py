# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-13
# Description: AppContainer.py
# -----------------------------------------------------------------------------
from __future__ import annotations

from typing import Optional

from config.Config import Config
from embedding.EmbeddingProvider import EmbeddingProvider
from embedding.ProviderFactory import get_default_provider
from embedding.RateLimiter import RateLimiter
from enrichment.WikipediaEnricher import WikipediaCache, WikipediaEnricher
from ingestion.SnapshotFileLoader import SnapshotFileLoader
from loader.MovieCSVLoader import MovieCSVLoader
from progress.ProgressStore import ProgressStore
from services.MovieEmbeddingService import MovieEmbeddingService
from usage.UsageAccountant import UsageAccountant
from utility.logging_utils import get_class_logger


class AppContainer:
    """
    Owns object instantiation and wiring for one CLI run.

    The embedding provider is only built when the run embeds, so a
    Wikipedia-only run does not need provider credentials.
    """

    def __init__(self, cfg: Optional[Config] = None, *, with_provider: bool = True) -> None:
        self.logger = get_class_logger(self.__class__)

        # Configuration
        self.cfg = cfg or Config.from_env()
        self.logger.info("Configuration: %s", self.cfg.summary())

        # Single limiter shared by every provider call in the process
        self.rate_limiter = RateLimiter(self.cfg.rate_limit_min_interval_ms)

        # Input
        self.csv_loader = MovieCSVLoader(
            self.cfg.input_file,
            required_fields=(self.cfg.id_field, self.cfg.title_field, self.cfg.description_field),
        )

        # Optional Wikipedia enrichment
        self.enricher: Optional[WikipediaEnricher] = None
        if self.cfg.enable_wikipedia or self.cfg.wikipedia_only:
            cache = WikipediaCache(self.cfg.wikipedia_cache_file)
            cache.load()
            self.enricher = WikipediaEnricher(
                cache=cache,
                title_field=self.cfg.title_field,
                year_field=self.cfg.year_field,
                director_field=self.cfg.director_field,
                verify=self.cfg.wikipedia_verify,
                delay_seconds=self.cfg.wikipedia_delay_seconds,
            )

        self.provider: Optional[EmbeddingProvider] = None
        self.embedding_service: Optional[MovieEmbeddingService] = None
        if not with_provider:
            return

        # Provider (raises ConfigurationError before any I/O)
        self.provider = get_default_provider(self.rate_limiter, self.cfg)

        # Persistence
        self.progress_store = ProgressStore(
            self.cfg.output_file,
            output_format=self.cfg.output_format,
            snapshot_loader=self._build_snapshot_loader(),
        )
        self.usage_accountant = UsageAccountant(self.cfg.usage_log_file)

        self.embedding_service = MovieEmbeddingService(
            provider=self.provider,
            progress_store=self.progress_store,
            usage_accountant=self.usage_accountant,
            batch_size=self.cfg.batch_size,
            id_field=self.cfg.id_field,
            title_field=self.cfg.title_field,
            description_field=self.cfg.description_field,
            enricher=self.enricher if self.cfg.enable_wikipedia else None,
        )

    def _build_snapshot_loader(self) -> Optional[SnapshotFileLoader]:
        if not self.cfg.snapshot_enabled:
            return None
        try:
            return SnapshotFileLoader(self.cfg)
        except Exception as e:
            self.logger.warning("Snapshot download disabled: %s", e)
            return None

    async def aclose(self) -> None:
        if self.enricher is not None:
            await self.enricher.client.aclose()
