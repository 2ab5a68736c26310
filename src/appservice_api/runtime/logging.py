"""
Logging setup for appservice-api.

Modules log through plain ``logging`` loggers below the ``appservice_api``
namespace. ``setup_logging`` installs one stdout handler (console lines or
JSONL) and, optionally, a rotating file that always receives JSONL.

Structured data travels on the record as ``context`` (see
``log_with_context``) and is rendered by both formatters.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

ROOT_LOGGER = "appservice_api"
LOG_FILE_NAME = "appservice.log"

_USE_COLOR = not os.environ.get("NO_COLOR") and sys.stdout.isatty()

_RESET = "\033[0m"
_DIM = "\033[2m"
_BLUE = "\033[34m"
_LEVEL_CODES = {
    logging.DEBUG: "\033[36m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}


def _paint(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}" if _USE_COLOR and code else text


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class JSONLFormatter(logging.Formatter):
    """
    One JSON object per record.

    Keys: ``timestamp`` (UTC, ``Z`` suffix), ``level``, ``logger``,
    ``message``; plus ``context`` when present, ``source`` from WARNING up,
    and ``exception`` when the record carries exc_info.
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, UTC)
        payload: dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if context := _context_of(record):
            payload["context"] = context
        if record.levelno >= logging.WARNING:
            payload["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info and record.exc_info[1] is not None:
            exc_type, exc, _ = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__ if exc_type else type(exc).__name__,
                "message": str(exc),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """``HH:MM:SS [component] LEVEL: message k=v`` (level omitted for INFO)."""

    def format(self, record: logging.LogRecord) -> str:
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        component = record.name.rsplit(".", 1)[-1]

        parts = [_paint(clock, _DIM), _paint(f"[{component}]", _BLUE)]
        if record.levelno != logging.INFO:
            parts.append(_paint(record.levelname, _LEVEL_CODES.get(record.levelno, "")) + ":")
        parts.append(record.getMessage())
        parts.extend(f"{key}={value}" for key, value in _context_of(record).items())

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def _level_number(level: int | str) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.strip().upper())
    return number if isinstance(number, int) else logging.INFO


def setup_logging(
    level: int | str = logging.INFO,
    json_output: bool = False,
    log_dir: Path | str | None = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the ``appservice_api`` logger and return it.

    Existing handlers are replaced, so calling this twice is safe. Records
    do not propagate to the root logger afterwards.

    Args:
        level: Level name or number; unknown names mean INFO
        json_output: JSONL on stdout instead of console lines
        log_dir: Directory receiving a rotating ``appservice.log``
        max_bytes: Rotation threshold of the log file
        backup_count: Rotated files kept
    """
    number = _level_number(level)
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(number)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(JSONLFormatter() if json_output else ConsoleFormatter())
    logger.addHandler(stream)

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        rotating = RotatingFileHandler(
            directory / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        rotating.setFormatter(JSONLFormatter())
        logger.addHandler(rotating)

    for handler in logger.handlers:
        handler.setLevel(number)
    return logger


def get_logger(component: str) -> logging.Logger:
    """Namespaced logger, e.g. ``get_logger("Route Generator")`` -> ``appservice_api.route_generator``."""
    return logging.getLogger(f"{ROOT_LOGGER}.{component.strip().lower().replace(' ', '_')}")


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    **fields: Any,
) -> None:
    """Emit *message* with ``context`` and *fields* merged into the record's context."""
    merged = {**(context or {}), **fields}
    logger.log(level, message, extra={"context": merged} if merged else None)
