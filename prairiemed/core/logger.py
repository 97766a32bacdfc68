"""Logging configuration for the API process."""
import logging
import logging.config

from prairiemed.core.config import settings

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure root logging once per process.

    Uvicorn installs its own handlers; we only make sure application loggers
    (``prairiemed.*``) emit to stderr with a consistent format.
    """
    global _configured
    if _configured:
        return

    log_level = (level or settings.LOG_LEVEL or "INFO").upper()
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "prairiemed": {
                    "handlers": ["console"],
                    "level": log_level,
                    "propagate": False,
                },
            },
        }
    )
    _configured = True
