"""
Logging configuration.

WHAT: Configures the standard library root logger for the service.

WHY: Every module logs through `logging.getLogger(__name__)`; configuring the
root logger once at app creation gives all of them the same format and level.
The request id captured by RequestContextMiddleware is stamped onto each
record so log lines from one request can be correlated.
"""

import logging
from typing import Optional

from survey_analytics.core.config import settings
from survey_analytics.middleware.request_context import get_request_context


LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the current request id (or "-") to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_request_context()
        record.request_id = context.request_id if context else "-"
        return True


def configure_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger.

    Safe to call more than once: the handler installed here is replaced,
    not duplicated.

    Args:
        level: Log level name; defaults to settings.LOG_LEVEL
    """
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())

    for handler in list(root.handlers):
        if getattr(handler, "_survey_analytics", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler()
    handler._survey_analytics = True
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())
    root.addHandler(handler)
