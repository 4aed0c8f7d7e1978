"""
Logging setup for processes that host the subscription lifecycle.

Library modules only call ``logging.getLogger(__name__)``; the hosting
process calls ``configure_logging()`` once at startup.
"""

import logging

from mailsub.config import get_settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Configure root logging and quiet noisy third-party loggers.

    Args:
        level: Log level name (defaults to MAILSUB_LOG_LEVEL)
    """
    settings = get_settings()
    resolved = (level or settings.log_level).upper()

    logging.basicConfig(level=resolved, format=LOG_FORMAT)

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)

    if settings.debug:
        logging.getLogger("mailsub").setLevel(logging.DEBUG)
