# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-05
# Description: EmbeddingRecord
# -----------------------------------------------------------------------------
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

Record = Dict[str, str]
EnrichedRecord = Dict[str, Any]

METADATA_FIELD = "embedding_metadata"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class EmbeddingMetadata:
    """Provenance attached to every enriched movie record."""
    provider: str
    model: str
    dimensions: int
    generated_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "model": self.model,
            "dimensions": self.dimensions,
            "generated_at": self.generated_at,
        }


def build_enriched_record(
    record: Mapping[str, Any],
    embeddings: Mapping[str, Any],
    metadata: EmbeddingMetadata,
) -> EnrichedRecord:
    """Copy the source record and extend it; the source is never mutated."""
    out: EnrichedRecord = dict(record)
    out.update(embeddings)
    out[METADATA_FIELD] = metadata.to_dict()
    return out
