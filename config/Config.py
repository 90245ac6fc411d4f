# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Description: Config
# -----------------------------------------------------------------------------

from dataclasses import dataclass, replace
from dotenv import load_dotenv, find_dotenv

from settings import _env, _env_bool, _env_float, _env_int
from utility.errors import ConfigurationError

OUTPUT_FORMATS = ("json", "ndjson")


@dataclass(frozen=True)
class Config:
    # Provider selection
    embedding_provider: str = "nomic"
    task_type: str = "search_document"

    # Input / output
    input_file: str = "criterion_movies.csv"
    output_file: str = "embeddings.json"
    output_format: str = "json"
    usage_log_file: str = "usage_log.json"

    # Batching + throttling
    batch_size: int = 10
    rate_limit_min_interval_ms: int = 200

    # CSV field names
    id_field: str = "ID"
    title_field: str = "Title (Data retrieved 2019-06-21)"
    description_field: str = "Description"
    year_field: str = "Year"
    director_field: str = "Director"

    # Wikipedia enrichment
    enable_wikipedia: bool = False
    wikipedia_only: bool = False
    wikipedia_verify: bool = False
    wikipedia_cache_file: str = "wikipedia_cache.json"
    wikipedia_output: str = "wikipedia_enriched.json"
    wikipedia_batch_size: int = 5
    wikipedia_delay_seconds: float = 1.0

    # Azure Storage (pre-built dataset snapshot, optional)
    storage_account: str = ""
    storage_key: str = ""
    snapshot_container: str = ""
    snapshot_blob: str = ""

    # ---- Single source of truth: field_name -> ENV VAR NAME ----
    ENV_VARS = {
        "embedding_provider": "EMBEDDING_PROVIDER",
        "task_type": "TASK_TYPE",

        "input_file": "INPUT_FILE",
        "output_file": "OUTPUT_FILE",
        "output_format": "OUTPUT_FORMAT",
        "usage_log_file": "USAGE_LOG_FILE",

        "batch_size": "BATCH_SIZE",
        "rate_limit_min_interval_ms": "RATE_LIMIT_MIN_INTERVAL_MS",

        "id_field": "ID_FIELD",
        "title_field": "TITLE_FIELD",
        "description_field": "DESCRIPTION_FIELD",
        "year_field": "YEAR_FIELD",
        "director_field": "DIRECTOR_FIELD",

        "enable_wikipedia": "ENABLE_WIKIPEDIA",
        "wikipedia_only": "WIKIPEDIA_ONLY",
        "wikipedia_verify": "WIKIPEDIA_VERIFY",
        "wikipedia_cache_file": "WIKIPEDIA_CACHE_FILE",
        "wikipedia_output": "WIKIPEDIA_OUTPUT",
        "wikipedia_batch_size": "WIKIPEDIA_BATCH_SIZE",
        "wikipedia_delay_seconds": "WIKIPEDIA_DELAY_SECONDS",

        "storage_account": "AZURE_STORAGE_ACCOUNT",
        "storage_key": "AZURE_STORAGE_KEY",
        "snapshot_container": "SNAPSHOT_CONTAINER",
        "snapshot_blob": "SNAPSHOT_BLOB",
    }

    # Provider credentials, read by the provider adapters themselves
    PROVIDER_CREDENTIAL_ENV_VARS = {
        "nomic": "NOMIC_API_KEY",
        "openai": "OPENAI_API_KEY",
        "cohere": "COHERE_API_KEY",
    }

    @staticmethod
    def from_env(*, load_env_file: bool = True) -> "Config":
        """Build Config object from environment variables (and .env if present)."""
        if load_env_file:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        defaults = Config()
        env = Config.ENV_VARS
        return Config(
            embedding_provider=_env(env["embedding_provider"], defaults.embedding_provider).lower(),
            task_type=_env(env["task_type"], defaults.task_type),
            input_file=_env(env["input_file"], defaults.input_file),
            output_file=_env(env["output_file"], defaults.output_file),
            output_format=_env(env["output_format"], defaults.output_format).lower(),
            usage_log_file=_env(env["usage_log_file"], defaults.usage_log_file),
            batch_size=_env_int(env["batch_size"], defaults.batch_size),
            rate_limit_min_interval_ms=_env_int(
                env["rate_limit_min_interval_ms"], defaults.rate_limit_min_interval_ms
            ),
            id_field=_env(env["id_field"], defaults.id_field),
            title_field=_env(env["title_field"], defaults.title_field),
            description_field=_env(env["description_field"], defaults.description_field),
            year_field=_env(env["year_field"], defaults.year_field),
            director_field=_env(env["director_field"], defaults.director_field),
            enable_wikipedia=_env_bool(env["enable_wikipedia"], defaults.enable_wikipedia),
            wikipedia_only=_env_bool(env["wikipedia_only"], defaults.wikipedia_only),
            wikipedia_verify=_env_bool(env["wikipedia_verify"], defaults.wikipedia_verify),
            wikipedia_cache_file=_env(env["wikipedia_cache_file"], defaults.wikipedia_cache_file),
            wikipedia_output=_env(env["wikipedia_output"], defaults.wikipedia_output),
            wikipedia_batch_size=_env_int(env["wikipedia_batch_size"], defaults.wikipedia_batch_size),
            wikipedia_delay_seconds=_env_float(
                env["wikipedia_delay_seconds"], defaults.wikipedia_delay_seconds
            ),
            storage_account=_env(env["storage_account"]),
            storage_key=_env(env["storage_key"]),
            snapshot_container=_env(env["snapshot_container"]),
            snapshot_blob=_env(env["snapshot_blob"]),
        )

    def __post_init__(self):
        """
        Fail fast on values the pipeline cannot run with.
        Provider credentials are checked when the provider is constructed.
        """
        if not self.embedding_provider:
            raise ConfigurationError(f"{self.ENV_VARS['embedding_provider']} resolved to empty value")

        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"{self.ENV_VARS['output_format']} must be one of {list(OUTPUT_FORMATS)}, "
                f"got {self.output_format!r}"
            )

        if self.batch_size < 1:
            raise ConfigurationError(f"{self.ENV_VARS['batch_size']} must be >= 1, got {self.batch_size}")

        if self.wikipedia_batch_size < 1:
            raise ConfigurationError(
                f"{self.ENV_VARS['wikipedia_batch_size']} must be >= 1, got {self.wikipedia_batch_size}"
            )

        if self.rate_limit_min_interval_ms < 0:
            raise ConfigurationError(
                f"{self.ENV_VARS['rate_limit_min_interval_ms']} must be >= 0, "
                f"got {self.rate_limit_min_interval_ms}"
            )

        missing = [k for k in ("id_field", "title_field", "description_field") if not getattr(self, k)]
        if missing:
            raise ConfigurationError(
                f"Missing required field names: {[self.ENV_VARS[k] for k in missing]}"
            )

    @property
    def snapshot_enabled(self) -> bool:
        return all((self.storage_account, self.storage_key, self.snapshot_container, self.snapshot_blob))

    def with_overrides(self, **kwargs) -> "Config":
        """Return a copy with CLI overrides applied (None values are ignored)."""
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})

    def summary(self) -> dict:
        """Return a safe, non-sensitive summary for logging."""
        return {
            "embedding_provider": self.embedding_provider,
            "input_file": self.input_file,
            "output_file": self.output_file,
            "output_format": self.output_format,
            "batch_size": self.batch_size,
            "rate_limit_min_interval_ms": self.rate_limit_min_interval_ms,
            "enable_wikipedia": self.enable_wikipedia,
            "wikipedia_only": self.wikipedia_only,
            "storage_account": self.storage_account,
            "snapshot": f"{self.snapshot_container}/{self.snapshot_blob}" if self.snapshot_enabled else None,
        }
