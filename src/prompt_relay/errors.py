"""
Error taxonomy for the prompt relay.

Every error knows the HTTP status it maps to and the message that may be
shown to the caller. The caller-facing message is kept separate from the
diagnostic message so that transport details and credentials stay in the
logs.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes for the relay."""

    # Configuration errors (1xxx)
    MISSING_API_KEY = "ERR_1001"

    # Request validation errors (2xxx)
    VALIDATION_ERROR = "ERR_2000"
    METHOD_NOT_ALLOWED = "ERR_2001"
    MISSING_PROMPT = "ERR_2002"

    # Upstream errors (3xxx)
    UPSTREAM_REJECTED = "ERR_3000"
    UPSTREAM_TRANSPORT = "ERR_3001"
    CONTENT_UNAVAILABLE = "ERR_3002"
    CONTENT_BLOCKED = "ERR_3003"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


INTERNAL_ERROR_MESSAGE = "Internal server error during API call."


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    request_id: str | None = None
    model: str | None = None
    operation: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in vars(self).items() if v is not None}


class RelayError(Exception):
    """
    Base exception for all relay errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Diagnostic message (logged)
        http_status: Status code returned to the caller
        public_message: Message returned to the caller in the `error` field
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    http_status: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        http_status: int | None = None,
        public_message: str | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.public_message = public_message if public_message is not None else message
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.request_id:
            parts.append(f"(request_id={self.context.request_id})")
        return " ".join(parts)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(RelayError):
    """The upstream credential is not set, so no request can be served."""

    code = ErrorCode.MISSING_API_KEY
    http_status = 500

    def __init__(
        self,
        message: str | None = None,
        *,
        env_var: str = "GEMINI_API_KEY",
        **kwargs,
    ):
        super().__init__(message or f"{env_var} is not configured on the server.", **kwargs)
        self.env_var = env_var


# =============================================================================
# Request Validation Errors
# =============================================================================


class RequestValidationError(RelayError):
    """The inbound request is malformed. Fixable by the caller."""

    code = ErrorCode.VALIDATION_ERROR
    http_status = 400


class MethodNotAllowedError(RequestValidationError):
    code = ErrorCode.METHOD_NOT_ALLOWED
    http_status = 405

    def __init__(
        self,
        message: str = "Only POST requests are allowed.",
        *,
        method: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.method = method


class MissingPromptError(RequestValidationError):
    code = ErrorCode.MISSING_PROMPT

    def __init__(
        self,
        message: str = "Prompt is missing in the request body.",
        **kwargs,
    ):
        super().__init__(message, **kwargs)


# =============================================================================
# Upstream Errors
# =============================================================================


class UpstreamRejectionError(RelayError):
    """The upstream API answered with a non-success status. Its status is mirrored."""

    code = ErrorCode.UPSTREAM_REJECTED

    def __init__(
        self,
        message: str,
        *,
        status: int,
        upstream_error: Any = None,
        **kwargs,
    ):
        super().__init__(message, http_status=status, **kwargs)
        self.upstream_error = upstream_error


class UpstreamTransportError(RelayError):
    """The upstream call failed before a usable response was received."""

    code = ErrorCode.UPSTREAM_TRANSPORT
    http_status = 500

    def __init__(
        self,
        message: str = "Upstream transport failure",
        **kwargs,
    ):
        kwargs.setdefault("public_message", INTERNAL_ERROR_MESSAGE)
        super().__init__(message, **kwargs)


class ContentUnavailableError(RelayError):
    """The upstream call succeeded but produced no usable answer."""

    code = ErrorCode.CONTENT_UNAVAILABLE
    http_status = 400

    def __init__(
        self,
        message: str = "No content generated.",
        **kwargs,
    ):
        super().__init__(message, **kwargs)


class ContentBlockedError(ContentUnavailableError):
    """The candidate was withheld by the upstream safety filters."""

    code = ErrorCode.CONTENT_BLOCKED

    def __init__(
        self,
        block_reason: str,
        **kwargs,
    ):
        super().__init__(f"Blocked by Safety: {block_reason}", **kwargs)
        self.block_reason = block_reason


# =============================================================================
# Error Mapping
# =============================================================================


def error_from_upstream(
    status: int,
    body: Any,
    *,
    context: ErrorContext | None = None,
) -> UpstreamRejectionError:
    """
    Create an UpstreamRejectionError from a non-success upstream response.

    Args:
        status: HTTP status code returned by the upstream API
        body: Decoded JSON body (any shape)
        context: Additional error context

    Returns:
        Error carrying the upstream status and its `error.message` when present
    """
    upstream_error = body.get("error") if isinstance(body, dict) else None
    message = None
    if isinstance(upstream_error, dict):
        message = upstream_error.get("message")
    if not message or not isinstance(message, str):
        message = f"Gemini API returned status {status}"
    return UpstreamRejectionError(message, status=status, upstream_error=upstream_error, context=context)


__all__ = [
    "INTERNAL_ERROR_MESSAGE",
    "ErrorCode",
    "ErrorContext",
    "RelayError",
    "ConfigurationError",
    "RequestValidationError",
    "MethodNotAllowedError",
    "MissingPromptError",
    "UpstreamRejectionError",
    "UpstreamTransportError",
    "ContentUnavailableError",
    "ContentBlockedError",
    "error_from_upstream",
]
