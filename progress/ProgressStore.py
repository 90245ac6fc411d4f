# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-06
# Description: ProgressStore
# -----------------------------------------------------------------------------
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError

from embedding.EmbeddingRecord import EnrichedRecord
from ingestion.SnapshotFileLoader import SnapshotFileLoader
from utility.logging_utils import get_class_logger


class ProgressDocument(BaseModel):
    """Shape of the single-document ('json') progress file."""
    embeddings: List[Dict[str, Any]] = []
    lastProcessedIndex: int = 0


@dataclass
class ProgressState:
    results: List[EnrichedRecord] = field(default_factory=list)
    resume_offset: int = 0

    def processed_ids(self, id_field: str) -> set[str]:
        return {str(r.get(id_field)) for r in self.results if r.get(id_field) is not None}


class ProgressStore:
    """
    Durable {results, resume offset}.

      - load(): missing file -> remote snapshot (if configured) -> empty state;
        a corrupt file is logged and treated as empty, never fatal
      - save(): full rewrite on every call (temp file + os.replace)

    'json' writes {"embeddings": [...], "lastProcessedIndex": n};
    'ndjson' writes one enriched record per line and no offset.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        output_format: str = "json",
        snapshot_loader: Optional[SnapshotFileLoader] = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if output_format not in ("json", "ndjson"):
            raise ValueError(f"Unsupported output format: {output_format!r}")
        self.path = Path(path)
        self.output_format = output_format
        self.snapshot_loader = snapshot_loader
        self.logger = logger or get_class_logger(self.__class__)

    # ------------------------------------------------------------------
    # load
    # ------------------------------------------------------------------
    def load(self) -> ProgressState:
        if not self.path.exists() and not self._fetch_snapshot():
            self.logger.info("No existing progress at %s; starting fresh.", self.path)
            return ProgressState()

        try:
            state = self._read()
        except (OSError, ValueError, ValidationError) as e:
            self.logger.error(
                "Progress file %s is unreadable or corrupt (%s); starting from empty state.", self.path, e
            )
            return ProgressState()

        self.logger.info(
            "Resuming from existing progress. Loaded %d embeddings (offset %d).",
            len(state.results),
            state.resume_offset,
        )
        return state

    def _fetch_snapshot(self) -> bool:
        if self.snapshot_loader is None:
            return False
        try:
            self.snapshot_loader.download_snapshot(self.path)
            return True
        except Exception as e:
            self.logger.warning("Snapshot download failed (%s); falling back to empty state.", e)
            return False

    def _read(self) -> ProgressState:
        if self.output_format == "ndjson":
            results = read_records(self.path, "ndjson")
        else:
            doc = ProgressDocument.model_validate_json(self.path.read_text(encoding="utf-8"))
            results = list(doc.embeddings)
            if doc.lastProcessedIndex != len(results):
                self.logger.warning(
                    "Stored lastProcessedIndex=%d disagrees with %d saved records; using the record count.",
                    doc.lastProcessedIndex,
                    len(results),
                )

        return ProgressState(results=results, resume_offset=len(results))

    # ------------------------------------------------------------------
    # save
    # ------------------------------------------------------------------
    def save(self, state: ProgressState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")

        with tmp.open("w", encoding="utf-8") as f:
            if self.output_format == "ndjson":
                for record in state.results:
                    f.write(json.dumps(record, ensure_ascii=False))
                    f.write("\n")
            else:
                json.dump(
                    {"embeddings": state.results, "lastProcessedIndex": state.resume_offset},
                    f,
                    indent=2,
                    ensure_ascii=False,
                )
        os.replace(tmp, self.path)
        self.logger.info("Progress saved to %s (%d records)", self.path, len(state.results))


def read_records(path: str | Path, output_format: str) -> List[EnrichedRecord]:
    """Read enriched records back from either on-disk format."""
    path = Path(path)
    if output_format == "ndjson":
        records: List[EnrichedRecord] = []
        with path.open("r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                obj = json.loads(line)
                if not isinstance(obj, dict):
                    raise ValueError(f"line {line_no}: expected a JSON object")
                records.append(obj)
        return records

    doc = ProgressDocument.model_validate_json(path.read_text(encoding="utf-8"))
    return list(doc.embeddings)
