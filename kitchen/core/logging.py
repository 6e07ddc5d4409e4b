"""Logging configuration.

Modules log through the standard library (logging.getLogger(__name__));
configure_logging() is called once by whichever entry point owns the process
(the API app factory or a client session).
"""

import logging

from kitchen.config import Settings


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(settings: Settings | None = None) -> None:
    """Set the root level and format from settings. Safe to call more than once."""
    settings = settings or Settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context: object,
) -> None:
    """Log a message with structured context fields.

    Usage:
        log_with_context(logger, "warning", "Rolled back remove", record_id="abc")
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra=context)
