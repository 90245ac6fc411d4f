# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-07
# Description: MovieCSVLoader.py
# -----------------------------------------------------------------------------

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

import pandas as pd

from embedding.EmbeddingRecord import Record
from utility.errors import InputReadError
from utility.logging_utils import get_class_logger


class MovieCSVLoader:
    """
    Reads the movie catalog CSV into ordered flat records (column order kept,
    every value a string, empty cells as "").
    """

    def __init__(
        self,
        path: str | Path,
        *,
        required_fields: Iterable[str],
        logger: logging.Logger | None = None,
    ) -> None:
        self.path = Path(path)
        self.required_fields = list(required_fields)
        self.logger = logger or get_class_logger(self.__class__)

    def load(self) -> List[Record]:
        try:
            df = pd.read_csv(self.path, dtype=str, keep_default_na=False)
        except FileNotFoundError as e:
            raise InputReadError(f"Input file not found: {self.path}") from e
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError) as e:
            raise InputReadError(f"Error reading CSV file {self.path}: {e}") from e

        missing = [c for c in self.required_fields if c not in df.columns]
        if missing:
            raise InputReadError(f"Input file {self.path} missing required columns: {missing}")

        records: List[Record] = df.to_dict(orient="records")
        self.logger.info("Parsed %d movies from %s", len(records), self.path)
        return records
