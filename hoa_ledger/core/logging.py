import logging
from logging.config import dictConfig
from typing import Literal

LogLevel = Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

JSON_FORMATTER_CLASS = "pythonjsonlogger.json.JsonFormatter"


def configure_logging(level: LogLevel = "INFO", structured: bool = True) -> None:
    """Configure structured logging across the app."""
    formatters = {
        "default": {
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        },
        "json": {
            "class": JSON_FORMATTER_CLASS,
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    }

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": formatters,
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if structured else "default",
                }
            },
            "root": {"handlers": ["console"], "level": level.upper()},
        }
    )

    logging.getLogger("uvicorn").handlers = []
    logging.getLogger("uvicorn.error").handlers = []
    logging.getLogger("uvicorn.access").handlers = []
