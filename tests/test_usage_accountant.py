# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-09
# Description: test_usage_accountant
# -----------------------------------------------------------------------------
import json
from datetime import datetime, timedelta, timezone

from usage.UsageAccountant import UsageAccountant, UsageStats

T0 = datetime(2026, 2, 9, 12, 0, 0, tzinfo=timezone.utc)


class StepClock:
    """Each call advances by `step`."""

    def __init__(self, start=T0, step=timedelta(minutes=3)):
        self.now = start - step
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


def test_counters_accumulate():
    stats = UsageStats()
    stats.record_batch(texts=4, tokens=100)
    stats.record_batch(texts=2, tokens=50)
    stats.record_error()

    assert (stats.total_batches, stats.total_texts, stats.total_tokens, stats.errors) == (2, 6, 150, 1)


def test_summary_within_quota(tmp_path):
    accountant = UsageAccountant(tmp_path / "usage_log.json", clock=StepClock())
    stats = accountant.start()
    stats.record_batch(texts=20, tokens=1_000_000)

    summary = accountant.write(stats)

    assert summary["totalBatches"] == 1
    assert summary["totalTexts"] == 20
    assert summary["totalTokens"] == 1_000_000
    assert summary["quotaUsagePercent"] == 10.0
    assert summary["estimatedCost"] == 0
    assert summary["errors"] == 0
    assert summary["duration"] == "3.00 minutes"
    assert summary["startTime"] == T0.isoformat()

    on_disk = json.loads((tmp_path / "usage_log.json").read_text(encoding="utf-8"))
    assert on_disk == summary


def test_overage_is_charged_per_token_over_quota(tmp_path):
    accountant = UsageAccountant(tmp_path / "usage.json", monthly_token_quota=1000, overage_rate=0.01)
    stats = accountant.start()
    stats.record_batch(texts=1, tokens=1500)

    summary = accountant.summarize(stats)

    assert summary["estimatedCost"] == 5.0
    assert summary["quotaUsagePercent"] == 150.0


def test_write_overwrites_with_latest_counters(tmp_path):
    path = tmp_path / "usage.json"
    accountant = UsageAccountant(path)
    stats = accountant.start()

    accountant.write(stats)
    stats.record_error()
    accountant.write(stats)

    assert json.loads(path.read_text(encoding="utf-8"))["errors"] == 1
