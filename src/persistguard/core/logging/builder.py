# src/persistguard/core/logging/builder.py
"""
Logging builder: create and apply a dictConfig logging configuration from Settings.

Configuration knobs (on the Settings object):
 - LOG_TO_STDOUT, LOG_DIR: console-only vs. rotating files (app + errors)
 - LOG_FORMAT: "json" (JsonFormatter) or "text" (ColorFormatter)
 - LOG_LEVEL: level of the root and `persistguard` loggers
 - ENABLE_SQL_LOGGING: DEBUG for `sqlalchemy.engine` (statements may contain sensitive data)
 - ENV: stamped on every JSON record
"""

from __future__ import annotations

from pathlib import Path
import logging
import logging.config

from persistguard.utils.logging import get_project_name

from .formatters import JsonFormatter, ColorFormatter
from .handlers import (
    get_console_handler,
    get_file_handler,
    get_error_file_handler,
    get_error_console_handler,
)

# Settings type (avoid calling get_settings() here to prevent import-time side effects)
from persistguard.config.settings import Settings


def _writes_files(settings: Settings) -> bool:
    return (not settings.LOG_TO_STDOUT) and bool(settings.LOG_DIR)


# -----------------------
# dictConfig builder
# -----------------------
def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping using the provided settings.

    The returned mapping includes:
      - formatters: "standard" (color or plain text) and "json"
      - handlers: console, plus file/error_file OR error_console depending on LOG_TO_STDOUT
      - loggers: root, persistguard, sqlalchemy.engine
    """
    formatters = {
        "standard": {
            "()": ColorFormatter if settings.LOG_FORMAT == "text" else logging.Formatter,
            "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        },
        "json": {
            "()": JsonFormatter,
            "env": settings.ENV,
            "service": get_project_name(default="persistguard"),
        },
    }

    handlers: dict[str, dict] = {"console": get_console_handler(settings)}

    if _writes_files(settings):
        handlers["file"] = get_file_handler(settings)
        handlers["error_file"] = get_error_file_handler(settings)
    else:
        handlers["error_console"] = get_error_console_handler(settings)

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": formatters,
        "handlers": handlers,
        "loggers": {
            "": {
                "handlers": list(handlers.keys()),
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            # Own loggers propagate to root; the level lets DEBUG classification diagnostics be enabled alone.
            "persistguard": {
                "level": settings.LOG_LEVEL,
                "propagate": True,
            },
            "sqlalchemy.engine": {
                "level": "DEBUG" if settings.ENABLE_SQL_LOGGING else "WARNING",
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }


# --------------------------
# Entrypoint
# --------------------------
def setup_logging(settings: Settings) -> None:
    """
    Initialize logging using settings.

    Steps:
      1. Ensure LOG_DIR exists when writing files.
      2. Apply dictConfig(make_dict_config(settings)).
    """
    if _writes_files(settings):
        Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(make_dict_config(settings))
