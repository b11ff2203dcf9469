"""
Client for the Gemini generateContent REST method.

One call per inbound request, no retries and no timeout override: the
aiohttp default applies. Transport problems are returned as values rather
than raised, so callers can tell them apart from an upstream rejection.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable

import aiohttp

from ..config import Settings
from ..errors import ConfigurationError
from ..logging import StructuredLogger, Timer, UpstreamRequestLog, UpstreamResponseLog, get_logger
from .types import UpstreamPayload, UpstreamResult

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError, ValueError)


class GeminiClient:
    """
    Thin async client for `models/{model}:generateContent`.

    The credential is sent as the `key` query parameter.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        session_factory: Callable[[], aiohttp.ClientSession] = aiohttp.ClientSession,
        logger: StructuredLogger | None = None,
    ) -> None:
        self.settings = settings
        self._session_factory = session_factory
        self._logger = logger or get_logger()

    @property
    def model_name(self) -> str:
        return self.settings.model

    async def generate_content(self, payload: UpstreamPayload) -> UpstreamResult:
        """
        Issue one generateContent call.

        Returns:
            UpstreamResult holding either the upstream status and decoded body,
            or the transport error that prevented getting them.

        Raises:
            ConfigurationError: if no credential is configured
        """
        api_key = self.settings.api_key
        if not api_key:
            raise ConfigurationError()

        context = self._logger.context
        self._logger.log_upstream_request(
            UpstreamRequestLog(
                request_id=context.request_id or "",
                model=self.model_name,
                prompt_chars=len(payload.prompt),
            )
        )

        timer = Timer()
        try:
            async with self._session_factory() as session:
                async with session.post(
                    self.settings.generate_content_url(),
                    params={"key": api_key},
                    json=payload.to_dict(),
                    headers={"Content-Type": "application/json"},
                ) as response:
                    status = response.status
                    raw = await response.text()
            # Empty or non-JSON bodies count as transport failures, whatever the status.
            body = json.loads(raw)
        except TRANSPORT_ERRORS as exc:
            return UpstreamResult.failed(exc, duration_ms=timer.stop())

        result = UpstreamResult(status=status, body=body, duration_ms=timer.stop())
        self._logger.log_upstream_response(
            UpstreamResponseLog(
                request_id=context.request_id or "",
                model=self.model_name,
                success=result.ok,
                status_code=status,
                duration_ms=result.duration_ms,
            )
        )
        return result


__all__ = ["GeminiClient", "TRANSPORT_ERRORS"]
