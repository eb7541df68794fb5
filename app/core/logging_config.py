"""Logging setup shared by stdlib loggers and structlog.

Service and core modules log through ``logging.getLogger(__name__)``;
the entry point and API layer use ``structlog.get_logger()``. Both filter
at ``settings.log_level``.
"""

import logging

import structlog

from app.core.config import settings

_configured = False


def configure_logging() -> None:
    """Configure stdlib logging and the structlog processor chain.

    Idempotent: create_app() may run several times in one process (tests).
    """
    global _configured
    if _configured:
        return

    level = logging.getLevelName(settings.log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if settings.environment == "production":
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )
    _configured = True
