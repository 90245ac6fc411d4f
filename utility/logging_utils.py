# -----------------------------------------------------------------------------
# Author: Frank Campbell Bogle
# Created: 2026-02-02
# Updated: 2026-02-17
# Description: logging_utils.py
# -----------------------------------------------------------------------------
"""
Project loggers live under the "movie_embeddings" namespace and are
configured once, on first use:

  - colour console output on stderr
  - optional rotating log file (off unless MOVIE_LOG_TO_FILE is set)
  - level from MOVIE_LOG_LEVEL, changeable at runtime with set_level()

Loggers do not propagate to the root logger.
"""
from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Dict, Optional

import colorlog

from settings import _env

BASE_LOGGER_NAME = "movie_embeddings"

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
CONSOLE_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s%(reset)s %(name)s: %(message_log_color)s%(message)s"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}
MESSAGE_COLORS = {
    "WARNING": "yellow",
    "ERROR": "light_red",
    "CRITICAL": "red",
}

_loggers: Dict[str, logging.Logger] = {}
_level_override: Optional[int] = None


def _level(name: str, default: int = logging.INFO) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else default


def _int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class LogSettings:
    """Environment-driven logging options. Bad values fall back to defaults."""
    level: int = logging.INFO
    to_file: bool = False
    file: Path = Path("logs/movie_embeddings.log")
    max_bytes: int = 5 * 1024 * 1024
    backup_count: int = 5

    @staticmethod
    def from_env() -> "LogSettings":
        defaults = LogSettings()
        return LogSettings(
            level=_level(_env("MOVIE_LOG_LEVEL", "INFO")),
            to_file=_env("MOVIE_LOG_TO_FILE", "0").lower() in ("1", "true", "yes", "y", "on"),
            file=Path(_env("MOVIE_LOG_FILE", str(defaults.file))),
            max_bytes=_int(_env("MOVIE_LOG_MAX_BYTES"), defaults.max_bytes),
            backup_count=_int(_env("MOVIE_LOG_BACKUP_COUNT"), defaults.backup_count),
        )


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            fmt=CONSOLE_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors=LOG_COLORS,
            secondary_log_colors={"message": MESSAGE_COLORS},
        )
    )
    return handler


def _file_handler(settings: LogSettings) -> logging.Handler:
    settings.file.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        filename=str(settings.file),
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _configure(full_name: str) -> logging.Logger:
    logger = logging.getLogger(full_name)
    if not logger.handlers:
        settings = LogSettings.from_env()
        logger.addHandler(_console_handler())
        if settings.to_file:
            logger.addHandler(_file_handler(settings))
        logger.setLevel(settings.level if _level_override is None else _level_override)
        logger.propagate = False
    _loggers[full_name] = logger
    return logger


def get_logger(name: str | None = None) -> logging.Logger:
    """Module-level logger, e.g. get_logger("app.main") -> movie_embeddings.app.main."""
    return _configure(f"{BASE_LOGGER_NAME}.{name}" if name else BASE_LOGGER_NAME)


def get_class_logger(cls: type) -> logging.Logger:
    """
    Logger named after the class's module, plus the class name when the
    module holds more than one class:

      services.MovieEmbeddingService.MovieEmbeddingService -> movie_embeddings.services.MovieEmbeddingService
      enrichment.WikipediaEnricher.WikipediaCache          -> movie_embeddings.enrichment.WikipediaEnricher.WikipediaCache
    """
    module = getattr(cls, "__module__", "unknown_module")
    classname = getattr(cls, "__name__", "UnknownClass")
    name = module if module.rsplit(".", 1)[-1] == classname else f"{module}.{classname}"
    return _configure(f"{BASE_LOGGER_NAME}.{name}")


def set_level(level: str | int) -> int:
    """Apply a level to every project logger, including ones created later; returns the numeric level."""
    global _level_override
    numeric = level if isinstance(level, int) else _level(level)
    _level_override = numeric
    for logger in _loggers.values():
        logger.setLevel(numeric)
    return numeric
