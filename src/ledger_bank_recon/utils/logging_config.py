"""
Logging setup driven by the ``logging`` section of the configuration.

The section is rendered into a ``logging.config.dictConfig`` document for the
package logger: a console handler at the configured level and, when a file is
configured, a rotating file handler that records everything.
"""

from pathlib import Path
from typing import TYPE_CHECKING, Any
import logging
import logging.config

if TYPE_CHECKING:
    from ..config import LoggingConfig

ROOT_LOGGER_NAME = "ledger_bank_recon"
FILE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(filename)s:%(lineno)d %(message)s"


def resolve_level(name: str) -> str:
    """Canonical level name for ``name``; unknown names fall back to INFO."""
    level = name.strip().upper()
    return level if isinstance(logging.getLevelName(level), int) else "INFO"


def build_logging_config(settings: "LoggingConfig", verbose: bool = False) -> dict[str, Any]:
    """
    Render the logging section as a dictConfig document.

    Args:
        settings: Logging section of the loaded configuration
        verbose: Force DEBUG on the console regardless of the configured level
    """
    level = "DEBUG" if verbose else resolve_level(settings.level)

    handlers: dict[str, dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "level": level,
        },
    }
    if settings.file:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": settings.file,
            "maxBytes": settings.file_max_bytes,
            "backupCount": settings.file_backup_count,
            "encoding": "utf8",
            "formatter": "detailed",
            "level": "DEBUG",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": settings.format},
            "detailed": {"format": FILE_FORMAT},
        },
        "handlers": handlers,
        "loggers": {
            ROOT_LOGGER_NAME: {
                # The file handler filters nothing out
                "level": "DEBUG" if settings.file else level,
                "handlers": list(handlers),
            },
        },
    }


def setup_logging(settings: "LoggingConfig", verbose: bool = False) -> logging.Logger:
    """Apply the logging section and return the package logger."""
    if settings.file:
        Path(settings.file).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(build_logging_config(settings, verbose))
    return logging.getLogger(ROOT_LOGGER_NAME)
