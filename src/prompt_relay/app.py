from __future__ import annotations

import json
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings, load_env
from .logging import configure_logging, redact_api_key
from .relay import PromptRelay, UpstreamCaller


async def _read_json_body(request: Request) -> Any:
    """Decoded JSON body, or an empty dict when the body is empty or not JSON."""
    raw = await request.body()
    if not raw:
        return {}
    try:
        return json.loads(raw)
    except ValueError:
        return {}


async def _relay_request(request: Request) -> JSONResponse:
    response = await request.app.state.relay.handle(
        request.method,
        await _read_json_body(request),
        request_id=request.headers.get("x-request-id"),
    )
    return JSONResponse(status_code=response.status_code, content=response.body)


def create_app(settings: Settings | None = None, *, client: UpstreamCaller | None = None) -> FastAPI:
    """
    Build the relay application.

    Settings (and with them the credential) are resolved once, here. The route
    only matches POST; the router's 405 for any other method on the endpoint
    path (TRACE and custom verbs included) is handed to the relay as well, so
    every method gets the credential check and the JSON error body.
    """
    settings = settings or get_settings()
    logger = configure_logging(
        level=settings.logging.level,
        json_output=settings.logging.format == "json",
    )
    if settings.has_credential:
        logger.info("Prompt relay configured", model=settings.model, api_key=redact_api_key(settings.api_key))
    else:
        logger.warning("GEMINI_API_KEY is not set; every request will fail with a configuration error")

    relay = PromptRelay(settings, client=client, logger=logger)

    app = FastAPI(title="Prompt Relay", version="0.1.0")
    app.state.settings = settings
    app.state.relay = relay

    @app.post(settings.endpoint_path)
    async def generate_content(request: Request) -> JSONResponse:
        return await _relay_request(request)

    @app.exception_handler(StarletteHTTPException)
    async def relay_other_methods(request: Request, exc: StarletteHTTPException) -> Response:
        if exc.status_code == 405 and request.url.path == settings.endpoint_path:
            return await _relay_request(request)
        return await http_exception_handler(request, exc)

    return app


load_env()  # pick up a local `.env` before the module-level app reads the environment

app = create_app()
