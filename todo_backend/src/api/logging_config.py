"""Loguru configuration for the todo service."""

from __future__ import annotations

import json
import sys
from typing import Any

from loguru import logger

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def _json_sink(message: Any) -> None:
    record = message.record
    payload = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["module"],
        "function": record["function"],
        "line": record["line"],
    }
    if record["exception"] is not None:
        exc_type = record["exception"].type
        payload["exception"] = {
            "type": exc_type.__name__ if exc_type else None,
            "value": str(record["exception"].value) if record["exception"].value else None,
        }
    payload.update(record["extra"])
    sys.stderr.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")


# PUBLIC_INTERFACE
def setup_logging(*, level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure loguru sinks for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_format: Emit one JSON object per line instead of coloured text.
    """
    logger.remove()
    if json_format:
        logger.add(_json_sink, level=level)
    else:
        logger.add(sys.stderr, format=_TEXT_FORMAT, level=level, colorize=True)
