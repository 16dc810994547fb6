"""stdout logging for the Survey Engine process.

Module loggers propagate to one console handler on the root logger; the
level comes from LOG_LEVEL. Server loggers share the handler so request
lines and domain events interleave in one stream.
"""
from __future__ import annotations
import logging
import os
from logging.config import dictConfig


def _logging_dict(level: str) -> dict:
    server = {"level": "INFO", "handlers": ["stdout"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "plain",
                "level": level,
                "stream": "ext://sys.stdout",
            },
        },
        "root": {"handlers": ["stdout"], "level": level},
        "loggers": {
            "uvicorn": dict(server),
            "uvicorn.error": dict(server),
            "uvicorn.access": dict(server),
            # Statement echo is too chatty at INFO
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }


def configure_logging() -> None:
    """Install the console handler unless the root logger already has one.

    Reloaders and pytest's capture plugin install their own handlers first;
    adding ours as well would duplicate every line.
    """
    if logging.getLogger().handlers:
        return
    dictConfig(_logging_dict(os.getenv("LOG_LEVEL", "INFO").upper()))


__all__ = ["configure_logging"]
