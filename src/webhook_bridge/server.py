"""FastAPI application bridging platform webhooks to a chat completion API."""
from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from .auth import Unauthorized, require_auth
from .config import BridgeSettings, load_config
from .fulfillment import Completer, fulfill
from .llm import CompletionClient, create_from_settings

logger = logging.getLogger(__name__)


# -----------------------------
# Utilities
# -----------------------------
def _decode_payload(raw: bytes) -> Any:
    """Decode the JSON body; an unreadable body counts as an empty payload."""
    try:
        return json.loads(raw)
    except ValueError:
        logger.warning("Webhook body is not valid JSON; treating it as empty")
        return {}


def _too_large(size: int, limit: int) -> JSONResponse:
    logger.warning("Rejected %d-byte body (limit %d)", size, limit)
    return JSONResponse(status_code=413, content={"error": "Payload Too Large"})


def _content_length(request: Request) -> Optional[int]:
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    client: Optional[Completer] = None,
    settings: Optional[BridgeSettings] = None,
) -> FastAPI:
    settings = settings or BridgeSettings.from_config(load_config(config_path))
    client = client or create_from_settings(settings)

    if not settings.webhook_secret:
        logger.warning("WEBHOOK_SECRET is not set; /webhook accepts unauthenticated calls")

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        if isinstance(client, CompletionClient):
            await client.aclose()

    app = FastAPI(title="Webhook Bridge", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = _content_length(request)
        if length is not None and length > settings.max_body_bytes:
            return _too_large(length, settings.max_body_bytes)
        return await call_next(request)

    @app.exception_handler(Unauthorized)
    async def unauthorized(_: Request, __: Unauthorized) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    @app.get("/", response_class=PlainTextResponse)
    def healthcheck() -> str:
        return "OK"

    @app.post("/webhook", dependencies=[Depends(require_auth(settings.webhook_secret))])
    async def webhook(request: Request) -> JSONResponse:
        # chunked uploads carry no Content-Length, so check what actually arrived
        raw = await request.body()
        if len(raw) > settings.max_body_bytes:
            return _too_large(len(raw), settings.max_body_bytes)
        payload = _decode_payload(raw)
        body = await fulfill(payload, client, system_prompt=settings.system_prompt)
        return JSONResponse(body)

    return app
