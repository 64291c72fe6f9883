from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from typing import Any, Optional, TextIO

_connection_id_ctx: ContextVar[str | None] = ContextVar("connection_id", default=None)

_RESERVED_RECORD_KEYS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
        "message",
        "asctime",
        "service",
        "connection_id",
    }
)


def get_connection_id() -> str | None:
    return _connection_id_ctx.get()


def bind_connection_id(value: str | None) -> Token:
    return _connection_id_ctx.set(value)


def reset_connection_id(token: Token) -> None:
    _connection_id_ctx.reset(token)


class ConnectionContextFilter(logging.Filter):
    """Stamp records with the service name and the viewer connection in scope."""

    def __init__(self, service: str) -> None:
        super().__init__()
        self._service = service

    def filter(self, record: logging.LogRecord) -> bool:
        record.service = self._service
        record.connection_id = getattr(record, "connection_id", None) or get_connection_id()
        return True


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "service": getattr(record, "service", None),
            "connection_id": getattr(record, "connection_id", None),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        extra = {key: value for key, value in record.__dict__.items() if key not in _RESERVED_RECORD_KEYS}
        if extra:
            payload["extra"] = extra
        return json.dumps(payload, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(
    service: str,
    level: str = "INFO",
    *,
    fmt: str = "json",
    stream: Optional[TextIO] = None,
    log_file: Optional[str] = None,
) -> None:
    if log_file:
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(stream or sys.stdout)
    if fmt == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JsonLogFormatter())
    handler.addFilter(ConnectionContextFilter(service))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper())

    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logger = logging.getLogger(logger_name)
        logger.handlers = [handler]
        logger.setLevel(level.upper())
        logger.propagate = False
    # websockets logs every frame at DEBUG.
    logging.getLogger("websockets").setLevel(max(logging.INFO, root.level))
