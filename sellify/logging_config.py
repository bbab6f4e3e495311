"""Structured logging for the decision core.

Every record is one JSON line. ``tenant_id`` and ``conversation_id`` are
lifted out of the context to top-level keys so a single conversation can be
followed across the decision, quota, alert and audit loggers.
"""

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "sellify-core"
CORRELATION_KEYS = ("tenant_id", "conversation_id")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": SERVICE_NAME,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = dict(getattr(record, "context", None) or {})
        for key in CORRELATION_KEYS:
            if key in context:
                log_data[key] = context.pop(key)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # snapshots and datetimes in context are not JSON-native
        return json.dumps(log_data, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """Readable single-line output for local debugging."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname:<7} {record.name}: {record.getMessage()}"
        context = getattr(record, "context", None)
        if context:
            line += " " + " ".join(f"{k}={v}" for k, v in context.items())
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", json_output: bool = True) -> None:
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if json_output else ConsoleFormatter())
    root_logger.addHandler(handler)

    # Telegram and generator calls go through httpx; keep their request lines out
    for noisy in ("httpx", "httpcore", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"sellify.{name}")


class LoggerAdapter(logging.LoggerAdapter):
    """Carries a fixed cycle context; per-call ``context=`` keys are merged on top."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        context = kwargs.pop("context", None)
        if context or self.extra:
            kwargs["extra"] = {"context": {**self.extra, **(context or {})}}
        return msg, kwargs


def log_timing(logger: logging.Logger, stage: str, started: float, context: Optional[dict] = None) -> float:
    """Log milliseconds elapsed since ``started`` (a ``time.monotonic()`` value)."""
    elapsed_ms = round((time.monotonic() - started) * 1000, 2)
    logger.info(
        "Timing",
        extra={"context": {"stage": stage, "elapsed_ms": elapsed_ms, **(context or {})}},
    )
    return elapsed_ms
