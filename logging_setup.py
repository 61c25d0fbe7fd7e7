"""Logging configuration.

A single function initializes the root logger with a consistent format for
both the web app and the CLI.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Literal, Optional

LogFormat = Literal["text", "json"]

_TEXT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
_JSON_FORMAT = (
    '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
    '"name": "%(name)s", "message": "%(message)s"}'
)


def configure_logging(
    level: str | int | None = None,
    log_format: Optional[LogFormat] = None,
) -> None:
    """Configure the root logger to write to stdout.

    ``level`` and ``log_format`` fall back to the LOG_LEVEL and LOG_FORMAT
    environment variables, resolved at call time.
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if log_format is None:
        log_format = "json" if os.environ.get("LOG_FORMAT", "text").lower() == "json" else "text"

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(_JSON_FORMAT if log_format == "json" else _TEXT_FORMAT)
    )
    root_logger.addHandler(handler)

    # urllib3 logs every retry/connection at DEBUG/WARNING; keep it quiet
    logging.getLogger("urllib3").setLevel(logging.ERROR)
