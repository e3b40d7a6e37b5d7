import logging
import sys

import structlog

from boxtracker.core.config import settings

# These log full request URLs, and the geocoding/sheets keys travel in the query string
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging():
    """
    Configure structlog for the API process and the operator scripts.

    Production gets one JSON object per line; anything else gets the console
    renderer. Events below LOG_LEVEL are dropped before rendering.
    """
    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if settings.ENVIRONMENT == "production":
        processors += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    else:
        processors += [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )

    # uvicorn, sqlalchemy and alembic still log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
