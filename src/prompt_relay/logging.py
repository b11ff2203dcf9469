"""
Structured logging for the prompt relay.

This module provides:
- Structured JSON (or plain text) logging with consistent fields
- Request-scoped context for correlating the inbound request and its upstream call
- Redaction helpers so the upstream credential never reaches log output
"""

from __future__ import annotations

import json
import logging
import sys
import time
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


# =============================================================================
# Log Record Types
# =============================================================================


@dataclass
class LogContext:
    """Context information attached to log records."""

    request_id: str | None = None
    model: str | None = None
    operation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def with_update(self, **kwargs) -> LogContext:
        """Create a new context with updated values."""
        return LogContext(
            request_id=kwargs.get("request_id", self.request_id),
            model=kwargs.get("model", self.model),
            operation=kwargs.get("operation", self.operation),
        )


@dataclass
class UpstreamRequestLog:
    """Log record for an outbound generateContent call."""

    request_id: str
    model: str
    prompt_chars: int = 0
    timestamp: str = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


@dataclass
class UpstreamResponseLog:
    """Log record for the outcome of a generateContent call."""

    request_id: str
    model: str
    success: bool = True
    status_code: int | None = None
    duration_ms: float | None = None
    timestamp: str = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


# One context per task, so interleaved requests never share log fields.
_log_context: ContextVar[LogContext | None] = ContextVar("prompt_relay_log_context", default=None)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger:
    """
    Logger with structured output and context tracking.

    Example:
        ```python
        logger = StructuredLogger("prompt_relay")

        with logger.request_context(model="gemini-2.5-flash") as request_id:
            logger.log_upstream_request(UpstreamRequestLog(request_id=request_id, ...))
        ```
    """

    def __init__(
        self,
        name: str = "prompt_relay",
        level: str = "INFO",
        json_output: bool = True,
    ):
        self.name = name
        self.json_output = json_output

        self._logger = logging.getLogger(name)
        self._logger.setLevel(getattr(logging, level.upper()))

        formatter = JSONFormatter() if json_output else TextFormatter()
        if not self._logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            self._logger.addHandler(handler)
        for handler in self._logger.handlers:
            handler.setFormatter(formatter)

    @property
    def context(self) -> LogContext:
        return _log_context.get() or LogContext()

    @contextmanager
    def request_context(self, request_id: str | None = None, **kwargs) -> Iterator[str]:
        """
        Context manager for a single inbound request.

        Yields:
            The request ID
        """
        request_id = request_id or generate_request_id()
        token = _log_context.set(self.context.with_update(request_id=request_id, **kwargs))
        try:
            yield request_id
        finally:
            _log_context.reset(token)

    def _log(
        self,
        level: int,
        message: str,
        event_type: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        record_data = {
            "message": message,
            **self.context.to_dict(),
        }
        if event_type:
            record_data["event_type"] = event_type
        if data:
            record_data.update(data)

        if self.json_output:
            self._logger.log(level, json.dumps(record_data, default=str))
        else:
            extras = " ".join(f"{k}={v}" for k, v in record_data.items() if k != "message")
            self._logger.log(level, f"{message} {extras}".rstrip())

    def info(self, message: str, **kwargs) -> None:
        self._log(logging.INFO, message, data=kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self._log(logging.WARNING, message, data=kwargs)

    def log_upstream_request(self, request: UpstreamRequestLog) -> None:
        self._log(
            logging.INFO,
            f"Gemini request to {request.model}",
            event_type="upstream_request",
            data=request.to_dict(),
        )

    def log_upstream_response(self, response: UpstreamResponseLog) -> None:
        level = logging.INFO if response.success else logging.WARNING
        message = f"Gemini response from {response.model}"
        if response.duration_ms is not None:
            message += f" ({response.duration_ms:.0f}ms)"
        self._log(level, message, event_type="upstream_response", data=response.to_dict())

    def log_error(
        self,
        error: BaseException,
        message: str | None = None,
        *,
        secret: str | None = None,
        **kwargs,
    ) -> None:
        """
        Log an error with context.

        `secret`, when given, is scrubbed from every string that is logged.
        Relay errors also carry their request context under `error_context`.
        """
        error_data: dict[str, Any] = {
            "error_type": type(error).__name__,
            "error_message": redact_secret(str(error), secret),
            **kwargs,
        }
        if hasattr(error, "code") and hasattr(error.code, "value"):
            error_data["error_code"] = str(error.code.value)
        if hasattr(error, "http_status"):
            error_data["http_status"] = error.http_status
        cause = getattr(error, "cause", None)
        if cause is not None:
            error_data["cause_type"] = type(cause).__name__
            error_data["cause"] = redact_secret(str(cause), secret)
        context = getattr(error, "context", None)
        if context is not None and hasattr(context, "to_dict"):
            error_data["error_context"] = context.to_dict()

        self._log(
            logging.ERROR,
            redact_secret(message or f"Error: {error}", secret),
            event_type="error",
            data=error_data,
        )


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """JSON log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utcnow(),
            "level": record.levelname,
            "logger": record.name,
        }

        try:
            message_data = json.loads(record.getMessage())
            if isinstance(message_data, dict):
                log_data.update(message_data)
            else:
                log_data["message"] = record.getMessage()
        except (json.JSONDecodeError, TypeError):
            log_data["message"] = record.getMessage()

        return json.dumps(log_data)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "")
        reset = self.RESET if color else ""
        return f"{timestamp} {color}{record.levelname:8}{reset} {record.getMessage()}"


# =============================================================================
# Utilities
# =============================================================================


def generate_request_id() -> str:
    """Generate a unique request ID."""
    return f"req_{uuid.uuid4().hex[:12]}"


def redact_api_key(key: str | None) -> str:
    """Redact an API key for safe logging."""
    if not key:
        return "<not set>"
    if len(key) <= 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


def redact_secret(text: str, secret: str | None) -> str:
    """Replace every occurrence of `secret` in `text`."""
    if not secret:
        return text
    return text.replace(secret, redact_api_key(secret))


@dataclass
class Timer:
    """Simple timer for measuring durations."""

    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None

    def stop(self) -> float:
        """Stop the timer and return duration in milliseconds."""
        self.end_time = time.perf_counter()
        return self.elapsed_ms

    @property
    def elapsed_ms(self) -> float:
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000


# =============================================================================
# Global Logger
# =============================================================================

_default_logger: StructuredLogger | None = None


def get_logger(name: str = "prompt_relay") -> StructuredLogger:
    """Get or create a structured logger."""
    global _default_logger
    if _default_logger is None or _default_logger.name != name:
        _default_logger = StructuredLogger(name)
    return _default_logger


def configure_logging(level: str = "INFO", json_output: bool = True, name: str = "prompt_relay") -> StructuredLogger:
    """Configure the default logger."""
    global _default_logger
    _default_logger = StructuredLogger(name, level=level, json_output=json_output)
    return _default_logger


__all__ = [
    "LogContext",
    "UpstreamRequestLog",
    "UpstreamResponseLog",
    "StructuredLogger",
    "JSONFormatter",
    "TextFormatter",
    "Timer",
    "generate_request_id",
    "redact_api_key",
    "redact_secret",
    "get_logger",
    "configure_logging",
]
