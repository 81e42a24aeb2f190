"""Structured logging.

All registry modules log through structlog with snake_case event names and
keyword context. configure_logging() routes structlog through the standard
library root logger so host applications keep control of handlers.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Optional

import structlog


def configure_logging(
    level: str = "INFO",
    fmt: str = "console",
    stream: Optional[Any] = None,
) -> None:
    """Configure structlog and the root logger.

    Args:
        level: Standard library level name.
        fmt: "json" for machine-readable output, "console" for humans.
        stream: Where to write (default stdout).
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))


def configure_from(config: dict[str, Any], stream: Optional[Any] = None) -> None:
    """Configure logging from a settings dict (see chainedin.config)."""
    configure_logging(
        level=config.get("log_level", "INFO"),
        fmt=config.get("log_format", "console"),
        stream=stream,
    )
