"""Loguru configuration for Daybook.

This module provides centralized loguru configuration with:
- Colored console output on stderr
- Structured JSONL file logging with rotation (optional)
- Component-bound loggers (core, rollups, ledger, pipeline, maintenance, cli)
- Context manager for timing operations
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "configure_loguru",
    "get_logger",
    "timing_context",
]


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "10 MB",
    retention: str = "10 days",
    enable_console: bool = True,
) -> None:
    """Configure loguru sinks.

    Parameters
    ----------
    log_dir
        Directory for JSONL log files. No file sinks are added when None.
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "10 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days", "1 week")
    enable_console
        Enable console output

    Example
    -------
    >>> from daybook.observability.loguru_config import configure_loguru
    >>> configure_loguru(log_dir=Path("logs"), level="DEBUG")
    """
    # Remove default handler
    logger.remove()

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "daybook.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            serialize=True,
            backtrace=True,
            diagnose=False,
        )

        # Timing records get their own file for quick inspection
        logger.add(
            log_dir / "timing.jsonl",
            format="{message}",
            level="DEBUG",
            rotation=rotation,
            retention=retention,
            serialize=True,
            filter=lambda record: record["extra"].get("timing", False),
        )

    logger.bind(component="core").debug("Loguru configured", log_dir=str(log_dir), level=level)


# Records logged before configure_loguru() still need the component key
logger.configure(extra={"component": "daybook"})


def get_logger(component: str = "daybook") -> Any:
    """Get logger instance bound to specific component.

    Parameters
    ----------
    component
        Component name (core, rollups, ledger, pipeline, maintenance, cli)

    Returns
    -------
    Logger
        Loguru logger bound to component
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "daybook",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Context manager for timing operations.

    Parameters
    ----------
    operation
        Name of the operation being timed
    component
        Component name for filtering logs
    **metadata
        Additional metadata to log

    Yields
    ------
    dict
        Context dictionary that can be updated with additional data

    Example
    -------
    >>> with timing_context("summary", component="pipeline", start="2025-01-01") as ctx:
    ...     summary = build()
    ...     ctx["days"] = summary.days
    """
    start_time = time.perf_counter()
    context: dict[str, Any] = dict(metadata)

    bound = logger.bind(component=component, timing=True, operation=operation)
    bound.debug(f"START: {operation}", phase="start", **metadata)

    try:
        yield context
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        bound.debug(f"END: {operation}", phase="end", duration_ms=duration_ms, **context)
