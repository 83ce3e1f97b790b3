"""Logging for the rubric service and the editing core.

Modules log through ``logging.getLogger(__name__)`` and never attach their
own handlers; ``create_app`` calls ``configure_logging`` once and everything
flows to a single stdout handler. HTTP client and SQL engine chatter is held
at WARNING so the ``rubric.*`` and ``edit_session.*`` events stay readable.
"""
from __future__ import annotations
import logging
from logging.config import dictConfig
from typing import Any, Dict

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def build_logging_config(level: str = "INFO") -> Dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "rubric": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "rubric",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
    }


def configure_logging(level: str = "INFO") -> bool:
    """Install the stdout handler unless the root logger already has one.

    Returns True when configuration was applied.
    """
    if logging.getLogger().handlers:
        return False
    dictConfig(build_logging_config(level.upper()))
    return True
