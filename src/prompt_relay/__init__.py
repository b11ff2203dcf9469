"""
Top-level package for the prompt relay.

A single-endpoint proxy that forwards a prompt to Gemini with a fixed system
instruction and returns the answer with up to five web sources. The ASGI
application lives in `prompt_relay.app:app`.
"""

from .config import LoggingConfig, Settings, configure, get_settings, load_env
from .errors import (
    ConfigurationError,
    ContentBlockedError,
    ContentUnavailableError,
    ErrorCode,
    MethodNotAllowedError,
    MissingPromptError,
    RelayError,
    RequestValidationError,
    UpstreamRejectionError,
    UpstreamTransportError,
)
from .persona import COMPANY_INFO, SYSTEM_PROMPT
from .relay import PromptRelay, RelayResponse, build_payload
from .upstream import GeminiClient, Source, UpstreamPayload, UpstreamResult

__all__ = [
    "Settings",
    "LoggingConfig",
    "configure",
    "get_settings",
    "load_env",
    "ErrorCode",
    "RelayError",
    "ConfigurationError",
    "RequestValidationError",
    "MethodNotAllowedError",
    "MissingPromptError",
    "UpstreamRejectionError",
    "UpstreamTransportError",
    "ContentUnavailableError",
    "ContentBlockedError",
    "COMPANY_INFO",
    "SYSTEM_PROMPT",
    "PromptRelay",
    "RelayResponse",
    "build_payload",
    "GeminiClient",
    "Source",
    "UpstreamPayload",
    "UpstreamResult",
]
