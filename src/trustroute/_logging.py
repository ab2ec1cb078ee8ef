"""Structured logging helpers.

Library modules only ask for a component logger; the CLI decides how events
are rendered by calling :func:`configure_logging` once at start-up.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def get_logger(component: str, logger: Any | None = None) -> Any:
    """Get a logger bound to a component name.

    Args:
        component: Component name (e.g., "CapabilityRegistry")
        logger: Optional injected logger. If None, uses a lazy structlog logger
            so later configure_logging() calls still apply.

    Returns:
        Logger bound to the component name
    """
    if logger is not None:
        return logger.bind(component=component)
    return structlog.get_logger(component=component)


def configure_logging(level: str = "WARNING", json_output: bool = False) -> None:
    """Configure structlog rendering for command-line use.

    Events are written to whatever ``sys.stderr`` is at emit time.
    """
    renderer: Any = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        cache_logger_on_first_use=False,
    )
