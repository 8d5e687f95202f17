"""Logging for chaindocs-core.

Every module gets its logger from ``get_chaindocs_logger(__name__)``:

    >>> from chaindocs_core.logging import get_chaindocs_logger
    >>> logger = get_chaindocs_logger(__name__)
    >>> logger.info("Discovery started")
"""

from .logging_config import LoggingConfig, get_chaindocs_logger, setup_logging

__all__ = [
    "LoggingConfig",
    "get_chaindocs_logger",
    "setup_logging",
]
