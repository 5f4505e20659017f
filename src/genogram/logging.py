"""Structlog-based logging for the genogram engine.

Library code logs through structlog only; nothing here prints. Log lines go
to stderr as JSON so command output on stdout stays machine-readable.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Literal

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: LogLevel | str = "INFO") -> None:
    numeric = getattr(logging, str(level).upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=numeric, stream=sys.stderr)
    logging.getLogger().setLevel(numeric)
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.stdlib.LoggerFactory(),
        # Module loggers must pick up a level change made by the CLI
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "genogram"):
    return structlog.get_logger(name)


# Initialize default config
configure_logging(os.getenv("GENOGRAM_LOG_LEVEL", "INFO"))
