"""
Structured logging configuration using structlog.

Provides JSON-formatted logging for production and colored console
output for development, shared by every adapter and by the session layer.
"""
import logging
import os
import sys
from typing import Any, Optional

import structlog


def setup_logging(level: str = "INFO", environment: Optional[str] = None) -> None:
    """
    Configure structured logging with structlog.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        environment: "development" for console output; defaults to $ENVIRONMENT

    Sets up:
        - JSON output format for production
        - Console output with colors for development
        - Context processors for timestamps and metadata
        - Integration with standard library logging
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
    )

    if environment is None:
        environment = os.getenv("ENVIRONMENT", "production")
    is_dev = environment == "development"

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of calling module)

    Returns:
        Configured structlog logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("reddit_fetch_started", subreddit="pics", sort="hot")
    """
    return structlog.get_logger(name)


def log_page_fetch(
    source: str,
    session_id: str,
    duration_ms: float,
    item_count: int,
    has_more: bool,
    error: str | None = None,
    **extra: Any,
) -> None:
    """
    Log the outcome of one page fetch driven by the aggregator.

    Args:
        source: Source type value ("reddit", "tag_index", "video_search")
        session_id: Session the page was fetched for
        duration_ms: Round-trip time in milliseconds
        item_count: Number of normalized items produced
        has_more: Whether the listing reported a further page
        error: Error message if the fetch failed
        **extra: Additional context to log

    Example:
        >>> log_page_fetch("reddit", "session_1", 412.5, 87, True, mode="browse")
    """
    logger = get_logger("page_fetch")

    log_data = {
        "source": source,
        "session_id": session_id,
        "duration_ms": round(duration_ms, 2),
        "item_count": item_count,
        "has_more": has_more,
        "error": error,
        **extra,
    }

    if error:
        logger.error("page_fetch_failed", **log_data)
    else:
        logger.info("page_fetch_success", **log_data)
