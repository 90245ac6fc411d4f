# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-13
# Updated: 2026-02-17
# Description: main.py
# -----------------------------------------------------------------------------
"""
Command line entry point.

  movie-embeddings                 # embed (default)
  movie-embeddings embed --provider openai --batch-size 20
  movie-embeddings enrich          # Wikipedia-only run, no embeddings
  movie-embeddings providers       # smoke test + compare providers

Exit codes: 0 on completion or graceful shutdown, 1 on configuration,
input, batch or file-system failure.
"""
from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

from app.AppContainer import AppContainer
from config.Config import OUTPUT_FORMATS, Config
from embedding.ProviderFactory import PROVIDERS
from embedding.RateLimiter import RateLimiter
from health.ProviderHealth import ProviderHealthRunner
from services.MovieEmbeddingService import MovieEmbeddingService
from utility.errors import ConfigurationError, InputReadError, ProviderCallError
from utility.logging_utils import get_logger, set_level

logger = get_logger("app.main")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Resumable movie embedding generation")
    parser.add_argument(
        "command",
        nargs="?",
        default="embed",
        choices=["embed", "enrich", "providers"],
        help="embed (default), enrich (Wikipedia only) or providers (smoke test)",
    )
    parser.add_argument("--provider", choices=sorted(PROVIDERS), help="Overrides EMBEDDING_PROVIDER")
    parser.add_argument("--input-file", help="Overrides INPUT_FILE")
    parser.add_argument("--output-file", help="Overrides OUTPUT_FILE")
    parser.add_argument("--output-format", choices=OUTPUT_FORMATS, help="Overrides OUTPUT_FORMAT")
    parser.add_argument("--batch-size", type=int, help="Overrides BATCH_SIZE")
    parser.add_argument(
        "--wikipedia",
        action="store_true",
        default=None,
        help="Enrich movies with Wikipedia content before embedding (ENABLE_WIKIPEDIA)",
    )
    parser.add_argument(
        "--only",
        nargs="+",
        choices=sorted(PROVIDERS),
        help="providers command: restrict to these providers",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Overrides MOVIE_LOG_LEVEL",
    )
    return parser


def install_signal_handlers(service: MovieEmbeddingService) -> None:
    """SIGINT/SIGTERM: checkpoint, then exit 0 without awaiting the in-flight call."""

    def _handler(signum, _frame):
        logger.warning("Received %s; gracefully shutting down...", signal.Signals(signum).name)
        service.checkpoint()
        sys.exit(0)

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


async def run_embed(container: AppContainer) -> None:
    service = container.embedding_service
    install_signal_handlers(service)

    service.load_progress()
    try:
        records = container.csv_loader.load()
    except InputReadError:
        service.checkpoint()
        raise

    try:
        await service.run(records)
    finally:
        await container.aclose()


async def run_enrich(container: AppContainer) -> None:
    records = container.csv_loader.load()
    try:
        await container.enricher.process_movies(
            records,
            output_path=container.cfg.wikipedia_output,
            batch_size=container.cfg.wikipedia_batch_size,
        )
    finally:
        await container.aclose()


async def run_providers(cfg: Config, names: Optional[List[str]]) -> bool:
    runner = ProviderHealthRunner(cfg, RateLimiter(cfg.rate_limit_min_interval_ms))
    summary = await runner.run_all(names)
    return any(summary["results"].values())


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.log_level:
        set_level(args.log_level)

    try:
        cfg = Config.from_env().with_overrides(
            embedding_provider=args.provider,
            input_file=args.input_file,
            output_file=args.output_file,
            output_format=args.output_format,
            batch_size=args.batch_size,
            enable_wikipedia=args.wikipedia,
        )

        if args.command == "providers":
            return 0 if asyncio.run(run_providers(cfg, args.only)) else 1

        if args.command == "enrich" or cfg.wikipedia_only:
            container = AppContainer(cfg.with_overrides(wikipedia_only=True), with_provider=False)
            asyncio.run(run_enrich(container))
            return 0

        container = AppContainer(cfg)
        asyncio.run(run_embed(container))
        return 0

    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        return 1
    except InputReadError as e:
        logger.error("Error reading input: %s", e)
        return 1
    except (ProviderCallError, OSError) as e:
        logger.error("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
