"""Structured logging configuration for HLSMux.

Job-scoped fields (``job_id``) are bound with ``structlog.contextvars`` by the
pipeline, so engine and generator log lines emitted from worker threads carry
them without every call site passing them along.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

from hlsmux.config import LoggingConfig


def _renderer(config: LoggingConfig):
    if config.format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def _handlers(config: LoggingConfig, level: int) -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if config.output:
        log_path = Path(config.output)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_path, mode="a", encoding="utf-8"))
        except OSError as e:
            print(f"Warning: Could not create log file {log_path}: {e}", file=sys.stderr)

    for handler in handlers:
        handler.setLevel(level)
    return handlers


def setup_logging(config: LoggingConfig) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        config: Logging configuration
    """
    level = getattr(logging, config.level.upper())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _renderer(config),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=level,
        handlers=_handlers(config, level),
        force=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a logger instance.

    Args:
        name: Logger name (defaults to caller's module name)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)
