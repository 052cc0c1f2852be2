"""structlog setup for the supervisor and its bore child's output."""

import logging
import sys

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

from .utils import sanitize_log_data

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def mask_secrets(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """structlog processor masking secret-looking keys in every event."""
    return sanitize_log_data(event_dict)


def build_processors(json_format: bool = False) -> list[Processor]:
    """Processor chain; secrets are masked before anything is rendered."""
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer()
    )
    return [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        mask_secrets,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ]


def _add_handler(handler: logging.Handler, level: int, fmt: str) -> None:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    logging.getLogger().addHandler(handler)


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: str | None = None,
) -> None:
    """Route structlog through stdlib logging, replacing any earlier handlers.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Render events as JSON instead of console text
        log_file: Also append records to this file
    """
    log_level = getattr(logging, level.upper())
    root_logger = logging.getLogger()
    root_logger.handlers = []
    root_logger.setLevel(log_level)

    # stdout belongs to the host program
    _add_handler(logging.StreamHandler(sys.stderr), log_level, "%(message)s")
    if log_file:
        _add_handler(logging.FileHandler(log_file), log_level, FILE_FORMAT)

    structlog.configure(
        processors=build_processors(json_format),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to ``name`` (usually ``__name__``)."""
    return structlog.get_logger(name)  # type: ignore[no-any-return]
