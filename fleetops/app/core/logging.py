"""
Logging setup.

One stream handler on the ``fleetops`` logger namespace, configured at startup.
Every record carries the correlation id of the request it was logged in.
"""

import logging
import sys
from contextvars import ContextVar

LOGGER_NAME = "fleetops"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [%(correlation_id)s] %(message)s"

# Set by ObservabilityMiddleware for the duration of a request
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="-")


class CorrelationIdFilter(logging.Filter):
    """Stamp records with the current request's correlation id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = correlation_id_var.get()
        return True


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Configure the application logger.

    Safe to call more than once; the handler is only attached the first time.

    Args:
        level: Log level name (e.g. "INFO", "DEBUG")

    Returns:
        The configured ``fleetops`` logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper())

    if not any(getattr(h, "_fleetops", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(CorrelationIdFilter())
        handler._fleetops = True
        logger.addHandler(handler)

    logger.propagate = False
    return logger
