"""
The prompt relay handler.

`PromptRelay.handle` turns one inbound call into exactly one `RelayResponse`:

1. An ordered validation pipeline (credential, method, prompt). The first
   failing stage decides the response and nothing else runs. A `prompt`
   that is present but not a string (number, list, object) is rejected with
   400 "Prompt must be a string." rather than forwarded.
2. One generateContent call built from the prompt and the constant persona.
3. Extraction of the answer text and up to five grounding sources, or a
   normalized error.

Nothing raised inside escapes `handle`; every failure becomes
`{"error": ...}` with a matching status code.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from .config import Settings
from .errors import (
    INTERNAL_ERROR_MESSAGE,
    ConfigurationError,
    ContentBlockedError,
    ContentUnavailableError,
    ErrorContext,
    MethodNotAllowedError,
    MissingPromptError,
    RelayError,
    RequestValidationError,
    UpstreamTransportError,
    error_from_upstream,
)
from .logging import StructuredLogger, get_logger
from .persona import SYSTEM_PROMPT
from .upstream.gemini import GeminiClient
from .upstream.types import MAX_SOURCES, Source, UpstreamPayload, UpstreamResult


class UpstreamCaller(Protocol):
    model_name: str

    async def generate_content(self, payload: UpstreamPayload) -> UpstreamResult: ...


@dataclass(frozen=True)
class InboundCall:
    method: str
    body: Any = None


@dataclass(frozen=True)
class RelayResponse:
    """Status code and JSON body sent back to the caller."""

    status_code: int
    body: dict[str, Any]

    @classmethod
    def success(cls, text: str, sources: list[Source]) -> RelayResponse:
        return cls(200, {"text": text, "sources": [s.to_dict() for s in sources]})

    @classmethod
    def from_error(cls, error: RelayError) -> RelayResponse:
        return cls(error.http_status, {"error": error.public_message})

    @property
    def ok(self) -> bool:
        return self.status_code == 200


ValidationStage = Callable[[InboundCall], "RelayError | None"]


def build_payload(prompt: str) -> UpstreamPayload:
    """Upstream request body for `prompt`; the system instruction never varies."""
    return UpstreamPayload(prompt=prompt, system_instruction=SYSTEM_PROMPT)


def check_method(call: InboundCall) -> RelayError | None:
    if (call.method or "").upper() != "POST":
        return MethodNotAllowedError(method=call.method)
    return None


def check_prompt(call: InboundCall) -> RelayError | None:
    body = call.body if isinstance(call.body, Mapping) else {}
    prompt = body.get("prompt")
    if not prompt:
        return MissingPromptError()
    if not isinstance(prompt, str):
        return RequestValidationError("Prompt must be a string.")
    return None


class PromptRelay:
    """
    Stateless handler; safe to share between concurrent requests.

    Args:
        settings: Read-only configuration holding the credential
        client: Upstream caller (defaults to a GeminiClient for `settings`)
        logger: Structured logger for operator diagnostics
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: UpstreamCaller | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.settings = settings
        self._logger = logger or get_logger()
        self._client = client or GeminiClient(settings, logger=self._logger)
        self._stages: tuple[ValidationStage, ...] = (self.check_credential, check_method, check_prompt)

    def check_credential(self, call: InboundCall) -> RelayError | None:
        if not self.settings.has_credential:
            return ConfigurationError()
        return None

    def validate(self, call: InboundCall) -> RelayError | None:
        """Run the validation stages in order and return the first error, if any."""
        for stage in self._stages:
            error = stage(call)
            if error is not None:
                return error
        return None

    async def handle(self, method: str, body: Any = None, *, request_id: str | None = None) -> RelayResponse:
        call = InboundCall(method=method, body=body)
        with self._logger.request_context(
            request_id, model=self.settings.model, operation="generate_content"
        ) as rid:
            context = ErrorContext(request_id=rid, model=self.settings.model, operation="generate_content")
            try:
                return await self._relay(call, context)
            except RelayError as exc:
                self._log_failure(exc)
                return RelayResponse.from_error(exc)
            except Exception as exc:
                error = RelayError(
                    f"Unhandled {type(exc).__name__}: {exc}",
                    public_message=INTERNAL_ERROR_MESSAGE,
                    context=context,
                    cause=exc,
                )
                self._logger.log_error(error, "Unhandled error while relaying prompt", secret=self.settings.api_key)
                return RelayResponse.from_error(error)

    async def _relay(self, call: InboundCall, context: ErrorContext) -> RelayResponse:
        error = self.validate(call)
        if error is not None:
            error.context = context
            raise error

        prompt: str = call.body["prompt"]
        self._logger.info("Relaying prompt", prompt_chars=len(prompt))

        result = await self._client.generate_content(build_payload(prompt))
        return self._respond(result, context)

    def _respond(self, result: UpstreamResult, context: ErrorContext) -> RelayResponse:
        if result.is_transport_failure:
            cause = result.transport_error
            raise UpstreamTransportError(
                f"Gemini call failed: {type(cause).__name__}: {cause}",
                context=context,
                cause=cause if isinstance(cause, Exception) else None,
            )

        if not result.ok:
            raise error_from_upstream(result.status, result.body, context=context)

        candidate = result.parsed().first_candidate
        if candidate is None or not candidate.has_text:
            block_reason = candidate.block_reason if candidate is not None else None
            if block_reason:
                raise ContentBlockedError(block_reason, context=context)
            raise ContentUnavailableError(context=context)

        sources = candidate.sources(MAX_SOURCES)
        self._logger.info("Relayed answer", text_chars=len(candidate.text), source_count=len(sources))
        return RelayResponse.success(candidate.text, sources)

    def _log_failure(self, error: RelayError) -> None:
        if isinstance(error, UpstreamTransportError):
            self._logger.log_error(error, "Gemini transport error", secret=self.settings.api_key)
        elif isinstance(error, ConfigurationError):
            self._logger.log_error(error, "Relay is not configured")
        elif isinstance(error, RequestValidationError):
            self._logger.info(
                "Rejected request",
                error_code=error.code.value,
                http_status=error.http_status,
                error=error.message,
            )
        else:
            data: dict[str, Any] = {
                "error_code": error.code.value,
                "http_status": error.http_status,
                "error": error.message,
            }
            upstream_error = getattr(error, "upstream_error", None)
            if upstream_error is not None:
                data["upstream_error"] = upstream_error
            self._logger.warning(f"Gemini API Error: {error.message}", **data)


__all__ = [
    "InboundCall",
    "PromptRelay",
    "RelayResponse",
    "UpstreamCaller",
    "build_payload",
    "check_method",
    "check_prompt",
]
