# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-08
# Description: conftest.py
# -----------------------------------------------------------------------------

import sys
from pathlib import Path

import pytest

# add project root to sys.path
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from config.Config import Config  # noqa: E402

CREDENTIAL_ENV_VARS = list(Config.PROVIDER_CREDENTIAL_ENV_VARS.values())


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every config / credential env var so tests see defaults only."""
    for name in list(Config.ENV_VARS.values()) + CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in (
        "NOMIC_DIMENSIONALITY",
        "OPENAI_EMBEDDING_MODEL",
        "OPENAI_DIMENSIONS",
        "OPENAI_BASE_URL",
        "LMSTUDIO_BASE_URL",
        "LMSTUDIO_MODEL",
        "LMSTUDIO_DIMENSIONS",
        "LMSTUDIO_MAX_TOKENS",
        "COHERE_MODEL",
        "COHERE_INPUT_TYPE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
