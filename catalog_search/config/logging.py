"""Logging setup for the search service. Read-only config; no business logic."""

import logging
import sys

from catalog_search.config.settings import get_settings

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("opensearch", "urllib3", "httpx")


def configure_logging(level_name: str | None = None) -> None:
    """Configure root logging once at startup. Debug mode forces DEBUG level."""
    settings = get_settings()
    name = "DEBUG" if settings.debug else (level_name or settings.log_level)
    level = getattr(logging, name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for the given module name."""
    return logging.getLogger(name)
