"""Structured logging for comptable runs, CLI and API server alike."""

import sys
import logging
from typing import Optional

import structlog

# Held at WARNING; they log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(debug: bool = False, json_logs: Optional[bool] = None):
    """
    Configure structlog for comptable.

    Events go to stderr so CLI tables on stdout stay clean. Rendering is
    human-readable on a TTY and one JSON object per line otherwise; the API
    server passes json_logs=True to force JSON.

    Args:
        debug: Enable debug-level logging (per-model parse details, token counts)
        json_logs: Force JSON (True) or console (False) rendering
    """
    log_level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if json_logs is None:
        json_logs = not sys.stderr.isatty()

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_logger_name,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Named logger, e.g. get_logger("comptable.pipeline.normalizer")."""
    return structlog.get_logger(name)


def bind_analysis(target: str):
    """
    Bind the analysis target to every event logged inside the block.

    Usage:
        with bind_analysis("Uber"):
            logger.info("analysis_stage", stage="fetching")
    """
    return structlog.contextvars.bound_contextvars(target=target)
