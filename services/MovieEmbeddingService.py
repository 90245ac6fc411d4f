# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-11
# Updated: 2026-02-16
# Description: MovieEmbeddingService.py
# -----------------------------------------------------------------------------
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from embedding.EmbeddingProvider import EmbeddingProvider, EmbeddingResult, estimate_tokens
from embedding.EmbeddingRecord import METADATA_FIELD, EmbeddingMetadata, EnrichedRecord, Record, build_enriched_record
from enrichment.WikipediaEnricher import EnrichmentResult, WikipediaEnricher, WikipediaSection
from progress.ProgressStore import ProgressState, ProgressStore
from settings import MAX_ENRICHMENT_CHARS, REPRESENTATIVE_SECTION_PATTERN
from usage.UsageAccountant import UsageAccountant, UsageStats
from utility.errors import ProviderCallError
from utility.logging_utils import get_class_logger

TITLE_EMBEDDING = "title_embedding"
DESCRIPTION_EMBEDDING = "description_embedding"
SUMMARY_EMBEDDING = "wikipedia_summary_embedding"
SECTION_EMBEDDING = "wikipedia_section_embedding"
SECTION_TITLE = "wikipedia_section_title"

_SECTION_RE = re.compile(REPRESENTATIVE_SECTION_PATTERN, re.IGNORECASE)


class PipelineState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    FILTERING = "filtering"
    PREPARING = "preparing"
    CALLING = "calling"
    ZIPPING = "zipping"
    PERSISTING = "persisting"
    DONE = "done"
    HALTED = "halted"


@dataclass(frozen=True)
class PreparedRecord:
    """
    One record's slice of the flat text list. fields[i] is the attribute
    that receives the embedding of texts[i].
    """
    record: Record
    texts: List[str]
    fields: List[str]
    section_title: Optional[str] = None
    enrichment: Optional[EnrichmentResult] = None

    @property
    def expected_embeddings(self) -> int:
        return len(self.texts)


@dataclass(frozen=True)
class BatchOutcome:
    records: List[EnrichedRecord]
    texts: int
    tokens: int


def representative_section(sections: Sequence[WikipediaSection]) -> Optional[WikipediaSection]:
    """First plot/synopsis section, else the first section."""
    for section in sections:
        if _SECTION_RE.search(section.title):
            return section
    return sections[0] if sections else None


def prepare_record(
    record: Record,
    *,
    title_field: str,
    description_field: str,
    enrichment: Optional[EnrichmentResult] = None,
) -> PreparedRecord:
    texts = [str(record.get(title_field) or ""), str(record.get(description_field) or "")]
    fields = [TITLE_EMBEDDING, DESCRIPTION_EMBEDDING]
    section_title = None

    if enrichment is not None and enrichment.found:
        if enrichment.summary:
            texts.append(enrichment.summary[:MAX_ENRICHMENT_CHARS])
            fields.append(SUMMARY_EMBEDDING)
        section = representative_section(enrichment.sections)
        if section is not None:
            texts.append(section.content[:MAX_ENRICHMENT_CHARS])
            fields.append(SECTION_EMBEDDING)
            section_title = section.title

    return PreparedRecord(
        record=record,
        texts=texts,
        fields=fields,
        section_title=section_title,
        enrichment=enrichment,
    )


def zip_embeddings(
    prepared: Sequence[PreparedRecord],
    embeddings: Sequence[Sequence[float]],
    metadata: EmbeddingMetadata,
) -> List[EnrichedRecord]:
    """
    Walk the provider output with a running cursor, consuming exactly
    expected_embeddings vectors per record.
    """
    expected_total = sum(p.expected_embeddings for p in prepared)
    if len(embeddings) != expected_total:
        raise ProviderCallError(
            f"Provider returned {len(embeddings)} embeddings for {expected_total} texts",
            provider=metadata.provider,
        )

    out: List[EnrichedRecord] = []
    cursor = 0
    for p in prepared:
        attached = {}
        for field_name in p.fields:
            vector = list(embeddings[cursor])
            if len(vector) != metadata.dimensions:
                raise ProviderCallError(
                    f"Embedding {cursor} has {len(vector)} dimensions, expected {metadata.dimensions}",
                    provider=metadata.provider,
                )
            attached[field_name] = vector
            cursor += 1
        if p.section_title is not None:
            attached[SECTION_TITLE] = p.section_title
        if p.enrichment is not None:
            attached["wikipedia"] = p.enrichment.record_block()
        out.append(build_enriched_record(p.record, attached, metadata))

    return out


class MovieEmbeddingService:
    """
    Owns the resumable batch pipeline:
      - load progress, filter out movies already embedded (by id)
      - slice the rest into batches; optional Wikipedia enrichment per batch
      - embed each batch through the provider (one call in flight)
      - zip vectors back onto records and rewrite the progress file
      - keep usage counters; checkpoint on completion, failure and shutdown

    A failed batch is never saved: the run halts after persisting the batches
    before it, and the next run starts again at that batch.
    """

    def __init__(
        self,
        *,
        provider: EmbeddingProvider,
        progress_store: ProgressStore,
        usage_accountant: UsageAccountant,
        batch_size: int = 10,
        id_field: str = "ID",
        title_field: str = "Title (Data retrieved 2019-06-21)",
        description_field: str = "Description",
        enricher: Optional[WikipediaEnricher] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.provider = provider
        self.progress_store = progress_store
        self.usage_accountant = usage_accountant
        self.batch_size = batch_size
        self.id_field = id_field
        self.title_field = title_field
        self.description_field = description_field
        self.enricher = enricher
        self.logger = logger or get_class_logger(self.__class__)

        self.state = PipelineState.IDLE
        self.progress: Optional[ProgressState] = None
        self.usage: Optional[UsageStats] = None

    @property
    def resume_offset(self) -> int:
        return self.progress.resume_offset if self.progress else 0

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    def load_progress(self) -> ProgressState:
        if self.usage is None:
            self.usage = self.usage_accountant.start()
        if self.progress is None:
            self.state = PipelineState.LOADING
            self.progress = self.progress_store.load()
        return self.progress

    def check_loaded_dimensions(self) -> int:
        """Warn when saved records were embedded at a different dimensionality than the active provider."""
        expected = self.provider.get_dimensions()
        mismatched = [
            r for r in self.load_progress().results
            if (r.get(METADATA_FIELD) or {}).get("dimensions") not in (None, expected)
        ]
        if mismatched:
            self.logger.warning(
                "%d saved records have embedding dimensions other than %s's %d; the output will mix vector lengths",
                len(mismatched),
                self.provider.name,
                expected,
            )
        return len(mismatched)

    def filter_unprocessed(self, records: Sequence[Record]) -> List[Record]:
        self.state = PipelineState.FILTERING
        processed = self.load_progress().processed_ids(self.id_field)
        return [r for r in records if str(r.get(self.id_field)) not in processed]

    async def run(self, records: Sequence[Record]) -> ProgressState:
        self.load_progress()
        self.logger.info("Parsed %d movies; %d already embedded.", len(records), len(self.progress.results))
        self.check_loaded_dimensions()

        unprocessed = self.filter_unprocessed(records)
        total = len(unprocessed)
        self.logger.info(
            "Starting embedding generation for %d unprocessed movies with %s (batch=%d)",
            total,
            self.provider.name,
            self.batch_size,
        )

        cursor = 0
        while cursor < total:
            batch = unprocessed[cursor:cursor + self.batch_size]
            batch_no = cursor // self.batch_size + 1

            try:
                outcome = await self.process_batch(batch)
                self._persist(outcome)
            except Exception as e:
                self.state = PipelineState.HALTED
                self.usage.record_error()
                self.logger.error("Error processing batch %d starting at %d: %s", batch_no, cursor, e)
                self.checkpoint()
                raise

            cursor += len(batch)
            self.logger.info(
                "Processed batch %d (%d/%d): %d texts, %d tokens",
                batch_no,
                cursor,
                total,
                outcome.texts,
                outcome.tokens,
            )

        self.state = PipelineState.DONE
        self.usage_accountant.write(self.usage)
        self.logger.info("All embeddings generated successfully! (%d records)", len(self.progress.results))
        return self.progress

    def _persist(self, outcome: BatchOutcome) -> None:
        """Save the batch; in-memory progress only advances once the save succeeded."""
        self.state = PipelineState.PERSISTING
        results = self.progress.results + outcome.records
        self.progress_store.save(ProgressState(results=results, resume_offset=len(results)))
        self.progress.results = results
        self.progress.resume_offset = len(results)
        self.usage.record_batch(texts=outcome.texts, tokens=outcome.tokens)

    def checkpoint(self) -> None:
        """Persist current results/offset and flush usage stats (usage is written even if the save fails)."""
        try:
            if self.progress is not None:
                self.progress_store.save(self.progress)
        finally:
            if self.usage is not None:
                self.usage_accountant.write(self.usage)

    # ------------------------------------------------------------------
    # one batch: prepare -> call -> zip
    # ------------------------------------------------------------------
    async def process_batch(self, batch: Sequence[Record]) -> BatchOutcome:
        enrichments: List[Optional[EnrichmentResult]] = [None] * len(batch)
        if self.enricher is not None:
            enrichments = list(await self.enricher.enrich_batch(batch))

        self.state = PipelineState.PREPARING
        prepared = [
            prepare_record(
                record,
                title_field=self.title_field,
                description_field=self.description_field,
                enrichment=enrichment,
            )
            for record, enrichment in zip(batch, enrichments)
        ]
        texts = [t for p in prepared for t in p.texts]
        self._warn_oversize(texts)

        self.state = PipelineState.CALLING
        result = await self._embed(texts)

        self.state = PipelineState.ZIPPING
        metadata = EmbeddingMetadata(
            provider=self.provider.name,
            model=result.model,
            dimensions=self.provider.get_dimensions(),
        )
        records = zip_embeddings(prepared, result.embeddings, metadata)
        return BatchOutcome(records=records, texts=len(texts), tokens=result.usage.total_tokens)

    async def _embed(self, texts: List[str]) -> EmbeddingResult:
        try:
            return await self.provider.embed(texts)
        except ProviderCallError:
            raise
        except Exception as e:
            raise ProviderCallError(f"{self.provider.name} embed failed: {e}", provider=self.provider.name) from e

    def _warn_oversize(self, texts: Sequence[str]) -> None:
        limit = self.provider.get_max_tokens()
        for i, text in enumerate(texts):
            tokens = estimate_tokens(text)
            if tokens > limit:
                self.logger.warning(
                    "Text %d is ~%d tokens, over %s's %d-token limit; the request may be rejected",
                    i,
                    tokens,
                    self.provider.name,
                    limit,
                )
