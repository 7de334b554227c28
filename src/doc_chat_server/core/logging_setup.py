"""
Logging Setup

Installs a single console handler for the application loggers. All modules
log through named loggers under the ``docchat`` prefix
(e.g. ``docchat.indexer``) and never configure handlers themselves.
"""

from __future__ import annotations

import logging
import logging.config


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging for the server process.

    Parameters
    ----------
    level : str
        Log level name, e.g. "INFO" or "DEBUG". Unknown names fall back to INFO.
    """
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": resolved,
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "handlers": ["console"],
            "level": resolved,
        },
    })

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(
        logging.DEBUG if resolved <= logging.DEBUG else logging.WARNING
    )
