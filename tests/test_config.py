# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-08
# Description: test_config
# -----------------------------------------------------------------------------
import pytest

from config.Config import Config
from utility.errors import ConfigurationError


def test_defaults_are_valid(clean_env):
    cfg = Config.from_env(load_env_file=False)

    assert cfg.embedding_provider == "nomic"
    assert cfg.output_format == "json"
    assert cfg.batch_size == 10
    assert cfg.rate_limit_min_interval_ms == 200
    assert cfg.id_field == "ID"
    assert cfg.enable_wikipedia is False
    assert cfg.snapshot_enabled is False


def test_env_values_are_applied(clean_env):
    clean_env.setenv("EMBEDDING_PROVIDER", " OpenAI ")
    clean_env.setenv("OUTPUT_FORMAT", "NDJSON")
    clean_env.setenv("BATCH_SIZE", "25")
    clean_env.setenv("ENABLE_WIKIPEDIA", "yes")
    clean_env.setenv("WIKIPEDIA_DELAY_SECONDS", "0.5")

    cfg = Config.from_env(load_env_file=False)

    assert cfg.embedding_provider == "openai"
    assert cfg.output_format == "ndjson"
    assert cfg.batch_size == 25
    assert cfg.enable_wikipedia is True
    assert cfg.wikipedia_delay_seconds == 0.5


@pytest.mark.parametrize(
    "name, value",
    [
        ("BATCH_SIZE", "ten"),
        ("BATCH_SIZE", "0"),
        ("OUTPUT_FORMAT", "csv"),
        ("ENABLE_WIKIPEDIA", "maybe"),
        ("RATE_LIMIT_MIN_INTERVAL_MS", "-1"),
    ],
)
def test_invalid_env_values_fail_fast(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ConfigurationError):
        Config.from_env(load_env_file=False)


def test_with_overrides_ignores_none():
    cfg = Config().with_overrides(batch_size=3, output_file=None, embedding_provider="cohere")

    assert cfg.batch_size == 3
    assert cfg.output_file == "embeddings.json"
    assert cfg.embedding_provider == "cohere"


def test_with_overrides_is_validated():
    with pytest.raises(ConfigurationError):
        Config().with_overrides(output_format="xml")


def test_snapshot_enabled_requires_all_azure_settings():
    partial = Config(storage_account="acct", storage_key="key", snapshot_container="snapshots")
    full = Config(
        storage_account="acct",
        storage_key="key",
        snapshot_container="snapshots",
        snapshot_blob="embeddings.json",
    )

    assert partial.snapshot_enabled is False
    assert full.snapshot_enabled is True
    assert full.summary()["snapshot"] == "snapshots/embeddings.json"
    assert "storage_key" not in full.summary()
