"""
Full setup of the structured logging system.

Three independent pipelines:
1. File (JSON) — when config.file is set. Captures everything (DEBUG+).
2. Human handler (stderr) — HUMAN events only: what skil is doing.
3. Technical console (stderr) — WARNING by default, INFO/DEBUG with -v.
   Excludes HUMAN.

Default behaviour (no -v): the user sees the HUMAN progress lines and
warnings. With -v: adds INFO. With -vv: adds DEBUG. --quiet silences
pipelines 2 and 3.
"""

import logging
import sys
from pathlib import Path

import structlog

from ..config.schema import LoggingConfig
from .human import HumanLogHandler
from .levels import HUMAN


def configure_logging(config: LoggingConfig, quiet: bool = False) -> None:
    """Configure the three logging pipelines.

    Args:
        config: Logging configuration (level, file, verbose)
        quiet: Disable the human and console handlers
    """
    logging.root.handlers.clear()
    structlog.reset_defaults()

    # Root logger lets everything through; handlers filter by level
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[],
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    # ── Pipeline 1: JSON file ────────────────────────────────────────────
    if config.file:
        file_path = Path(config.file)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(str(file_path), encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.processors.JSONRenderer(),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(file_handler)

    if not quiet:
        # ── Pipeline 2: Human handler ────────────────────────────────────
        human_handler = HumanLogHandler(stream=sys.stderr)
        human_handler.setLevel(HUMAN)
        human_handler.addFilter(lambda record: record.levelno == HUMAN)
        logging.root.addHandler(human_handler)

        # ── Pipeline 3: Technical console ────────────────────────────────
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(_console_level(config))
        console_handler.addFilter(lambda record: record.levelno != HUMAN)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processor=structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(console_handler)

    # ── structlog ────────────────────────────────────────────────────────
    structlog.configure(
        processors=shared_processors + [
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _console_level(config: LoggingConfig) -> int:
    """Level for the technical console handler.

    -v raises verbosity over the configured level; without -v the
    configured level applies, but never below WARNING for "human"
    (human lines have their own handler).

    Args:
        config: Logging configuration

    Returns:
        Python logging level
    """
    if config.verbose >= 2:
        return logging.DEBUG
    if config.verbose == 1:
        return logging.INFO

    levels = {
        "debug": logging.DEBUG,
        "info": logging.INFO,
        "human": logging.WARNING,
        "warn": logging.WARNING,
        "error": logging.ERROR,
    }
    return levels.get(config.level, logging.WARNING)


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)
