"""Logging setup for wiki2docx.

One ``dictConfig`` call wires the ``wiki2docx`` logger tree to a stderr
handler using either a pattern or a JSON layout. Worker threads wrap each
title in :func:`log_context`; a filter copies those fields onto every record
emitted inside the block.

Environment:
- ``W2D_LOG_LEVEL``: DEBUG, INFO, WARN, ERROR, FATAL (default: INFO)
- ``W2D_LOG_JSON``: 1 for one JSON object per line (default: 0)
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.config
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

_CONTEXT: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar("w2d_log_context", default={})
_CONFIGURED = False


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Attach ``fields`` to every record logged by this thread inside the block."""
    token = _CONTEXT.set({**_CONTEXT.get(), **fields})
    try:
        yield
    finally:
        _CONTEXT.reset(token)


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        ctx = _CONTEXT.get()
        record.context = ctx
        record.context_suffix = (" | " + " ".join(f"{k}={v}" for k, v in ctx.items())) if ctx else ""
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        ctx = getattr(record, "context", None)
        if ctx:
            payload.update(ctx)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _log_level() -> str:
    name = os.getenv("W2D_LOG_LEVEL", "INFO").strip().upper()
    name = {"WARN": "WARNING", "FATAL": "CRITICAL"}.get(name, name)
    return name if isinstance(logging.getLevelName(name), int) else "INFO"


def build_logging_config() -> Dict[str, Any]:
    use_json = os.getenv("W2D_LOG_JSON", "0").strip().lower() in {"1", "true", "yes", "on"}
    level = _log_level()
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"context": {"()": ContextFilter}},
        "formatters": {
            "pattern": {
                "format": "[%(asctime)s][%(levelname)s][%(threadName)s][%(name)s] "
                "%(message)s%(context_suffix)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {"()": JSONFormatter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "json" if use_json else "pattern",
                "filters": ["context"],
                "stream": "ext://sys.stderr",
            }
        },
        "loggers": {
            "wiki2docx": {"level": level, "handlers": ["console"], "propagate": False},
            # urllib3 logs every pooled connection at DEBUG
            "urllib3": {"level": "WARNING"},
        },
    }


def init_logging(force: bool = False) -> None:
    """Configure logging once per process; ``force`` reapplies the environment."""
    global _CONFIGURED
    if _CONFIGURED and not force:
        return
    logging.config.dictConfig(build_logging_config())
    _CONFIGURED = True


def get_unified_logger(program: str, task_type: str) -> logging.Logger:
    """Logger named ``wiki2docx.<program>.<task_type>``."""
    init_logging()
    return logging.getLogger(f"wiki2docx.{program}.{task_type}")


def unified_print(message: str, program: str, task_type: str, level: int = logging.INFO) -> None:
    """Show ``message`` to the operator on stdout and record it in the log."""
    print(message, flush=True)
    get_unified_logger(program, task_type).log(level, message)


def log_task_start(program: str, task_type: str, details: Optional[Dict[str, Any]] = None) -> None:
    get_unified_logger(program, task_type).info(
        "[TASK START] %s", json.dumps(details or {}, ensure_ascii=False)
    )


def log_task_end(
    program: str, task_type: str, success: bool, details: Optional[Dict[str, Any]] = None
) -> None:
    payload = {"success": success, **(details or {})}
    get_unified_logger(program, task_type).info("[TASK END] %s", json.dumps(payload, ensure_ascii=False))


def log_error(program: str, task_type: str, error: BaseException, context: str = "") -> None:
    msg = f"{context} | {error}" if context else str(error)
    get_unified_logger(program, task_type).error("%s", msg, exc_info=error)


def log_batch_processing(
    program: str,
    task_type: str,
    operation: str,
    total_items: int,
    success_count: int,
    failure_count: int,
    duration: float,
) -> None:
    payload = {
        "operation": operation,
        "total": total_items,
        "success": success_count,
        "failed": failure_count,
        "duration": round(duration, 3),
        "status": "success" if failure_count == 0 else "partial",
    }
    get_unified_logger(program, task_type).info("[BATCH] %s", json.dumps(payload, ensure_ascii=False))


__all__ = [
    "init_logging",
    "build_logging_config",
    "log_context",
    "get_unified_logger",
    "unified_print",
    "log_task_start",
    "log_task_end",
    "log_error",
    "log_batch_processing",
]
