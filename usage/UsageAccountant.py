# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-07
# Description: UsageAccountant
# -----------------------------------------------------------------------------
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from settings import MONTHLY_TOKEN_QUOTA, TOKEN_OVERAGE_RATE
from utility.logging_utils import get_class_logger


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class UsageStats:
    """Running counters for one run. Observational only, never read back."""
    total_batches: int = 0
    total_texts: int = 0
    total_tokens: int = 0
    errors: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def record_batch(self, *, texts: int, tokens: int) -> None:
        self.total_batches += 1
        self.total_texts += texts
        self.total_tokens += tokens

    def record_error(self) -> None:
        self.errors += 1


class UsageAccountant:
    """
    Derives the usage summary (quota %, overage cost, duration) and writes it
    to the usage log. Called on completion, on fatal errors and on shutdown.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        monthly_token_quota: int = MONTHLY_TOKEN_QUOTA,
        overage_rate: float = TOKEN_OVERAGE_RATE,
        clock: Callable[[], datetime] = _now,
        logger: logging.Logger | None = None,
    ) -> None:
        self.path = Path(path)
        self.monthly_token_quota = monthly_token_quota
        self.overage_rate = overage_rate
        self.clock = clock
        self.logger = logger or get_class_logger(self.__class__)

    def start(self) -> UsageStats:
        return UsageStats(start_time=self.clock())

    def summarize(self, stats: UsageStats) -> Dict[str, Any]:
        start = stats.start_time or self.clock()
        end = stats.end_time or self.clock()
        duration_s = max(0.0, (end - start).total_seconds())

        overage_tokens = max(0, stats.total_tokens - self.monthly_token_quota)
        return {
            "totalBatches": stats.total_batches,
            "totalTexts": stats.total_texts,
            "totalTokens": stats.total_tokens,
            "estimatedCost": round(overage_tokens * self.overage_rate, 2),
            "quotaUsagePercent": round(stats.total_tokens / self.monthly_token_quota * 100, 2),
            "errors": stats.errors,
            "startTime": start.isoformat(),
            "endTime": end.isoformat(),
            "duration": f"{duration_s / 60:.2f} minutes",
        }

    def write(self, stats: UsageStats) -> Dict[str, Any]:
        """Stamp the end time, persist the summary and log it."""
        stats.end_time = self.clock()
        summary = self.summarize(stats)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_text(json.dumps(summary, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)

        self.logger.info(
            "Usage Summary:\n"
            "   - Processed %d texts in %d batches\n"
            "   - Total tokens: %s\n"
            "   - Monthly quota usage: %.2f%%\n"
            "   - Estimated overage cost: $%.2f\n"
            "   - Duration: %s\n"
            "   - Errors: %d",
            summary["totalTexts"],
            summary["totalBatches"],
            f"{summary['totalTokens']:,}",
            summary["quotaUsagePercent"],
            summary["estimatedCost"],
            summary["duration"],
            summary["errors"],
        )
        return summary
