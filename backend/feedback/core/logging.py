"""Logging setup for the application.

structlog renders through a console renderer locally and JSON elsewhere;
stdlib loggers (core modules, SQLAlchemy, uvicorn) share the same level.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "INFO", *, use_json: bool = False) -> None:
    """Configure stdlib logging and structlog.

    Safe to call more than once; the last call wins.

    Args:
        level: Log level name, e.g. "INFO".
        use_json: Render structlog events as JSON lines.
    """
    level_value = logging.getLevelName(level.upper())
    if not isinstance(level_value, int):
        level_value = logging.INFO

    logging.basicConfig(
        level=level_value,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    logging.getLogger().setLevel(level_value)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if use_json:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )
