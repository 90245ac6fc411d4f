# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Updated: 2026-02-09
# Description: settings.py
# -----------------------------------------------------------------------------
import os

from utility.errors import ConfigurationError


def _env(name: str, default: str = "") -> str:
    """Read env var safely and strip whitespace."""
    return (os.getenv(name) or default).strip()


def _env_int(name: str, default: int) -> int:
    v = _env(name, "")
    if v == "":
        return default
    try:
        return int(v)
    except ValueError as e:
        raise ConfigurationError(f"Env var {name} must be an int, got {v!r}") from e


def _env_optional_int(name: str) -> int | None:
    v = _env(name, "")
    if v == "":
        return None
    return _env_int(name, 0)


def _env_float(name: str, default: float) -> float:
    v = _env(name, "")
    if v == "":
        return default
    try:
        return float(v)
    except ValueError as e:
        raise ConfigurationError(f"Env var {name} must be a float, got {v!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    v = _env(name, "")
    if v == "":
        return default
    v = v.lower()
    if v in ("1", "true", "t", "yes", "y", "on"):
        return True
    if v in ("0", "false", "f", "no", "n", "off"):
        return False
    raise ConfigurationError(f"Env var {name} must be a boolean, got {v!r}")


# -----------------------------------------------------------------------------
# Usage accounting (Nomic free tier)
# -----------------------------------------------------------------------------
MONTHLY_TOKEN_QUOTA = 10_000_000
TOKEN_OVERAGE_RATE = 0.0001  # $ per token over quota

# Rough token estimation: ~4 chars per token
CHARS_PER_TOKEN = 4


# -----------------------------------------------------------------------------
# Batch text preparation
# -----------------------------------------------------------------------------
# Wikipedia summary / section bodies are cut to this many characters
MAX_ENRICHMENT_CHARS = 1000

# Section titles preferred as the representative section
REPRESENTATIVE_SECTION_PATTERN = r"plot|synopsis"


# -----------------------------------------------------------------------------
# Wikipedia lookup
# -----------------------------------------------------------------------------
WIKIPEDIA_API_URL = "https://en.wikipedia.org/w/api.php"
WIKIPEDIA_SEARCH_LIMIT = 5
WIKIPEDIA_MAX_SECTIONS = 10
WIKIPEDIA_MIN_SECTION_WORDS = 20
WIKIPEDIA_VERIFY_MIN_CONFIDENCE = 70
WIKIPEDIA_TIMEOUT_SECONDS = 10.0
