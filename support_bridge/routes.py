from __future__ import annotations

import hmac
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from .bridge import SupportBridge, build_bridge
from .channel.ws_routes import router as visitor_channel_router
from .deps import get_bridge
from .errors import http_error, not_found
from .logging_config import logger
from .session_routes import router as session_router
from .settings import Settings, settings
from .workspace.client import TelegramWorkspace, WorkspaceAPIError
from .workspace.delivery import MODE_POLLING, UpdatePoller, configure_delivery


class HealthResponse(BaseModel):
    status: str = "ok"


def _redact_path(path: str) -> str:
    # The webhook path embeds the bot token.
    if path.startswith("/telegram/"):
        return "/telegram/***"
    return path


@asynccontextmanager
async def _bridge_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Build the bridge and start Telegram update delivery.

    Skipped when a bridge was injected into create_app (tests, embedding).
    """
    if app.state.bridge is not None:
        yield
        return

    cfg: Settings = app.state.settings
    cfg.ensure_configured()

    client = httpx.AsyncClient(timeout=cfg.telegram_timeout)
    workspace = TelegramWorkspace(client, cfg.bot_token or "", api_base=cfg.telegram_api_base)
    bridge = build_bridge(
        workspace,
        group_id=cfg.admin_group_id or "",
        requests_thread_id=int(cfg.requests_thread_id or 0),
        logs_thread_id=int(cfg.logs_thread_id or 0),
    )
    app.state.bridge = bridge

    mode: Optional[str]
    try:
        mode = await configure_delivery(workspace, cfg)
    except WorkspaceAPIError as exc:
        logger.error("Launch error: %s", exc)
        mode = None if cfg.wants_webhook else MODE_POLLING
    app.state.delivery_mode = mode

    poller: Optional[UpdatePoller] = None
    if mode == MODE_POLLING:
        poller = UpdatePoller(workspace, bridge.handle_update, timeout=cfg.polling_timeout)
        poller.start()

    try:
        yield
    finally:
        if poller is not None:
            await poller.stop()
        await client.aclose()
        app.state.bridge = None


def create_app(
    bridge: Optional[SupportBridge] = None,
    *,
    app_settings: Optional[Settings] = None,
) -> FastAPI:
    cfg = app_settings or settings
    app = FastAPI(title="Support Bridge", version="0.1.0", lifespan=_bridge_lifespan)
    app.state.settings = cfg
    app.state.bridge = bridge
    app.state.delivery_mode = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.get_cors_origins(),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Visitor WebSocket channel.
    app.include_router(visitor_channel_router)
    # Read-only session inspection for operators.
    app.include_router(session_router)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        client_host = request.client.host if request.client else "-"
        path = _redact_path(request.url.path)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error while processing %s %s", request.method, path)
            raise
        logger.info("HTTP %s %s from %s -> %s", request.method, path, client_host, response.status_code)
        return response

    @app.get("/", response_class=PlainTextResponse)
    async def liveness() -> str:
        return "OK"

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse()

    @app.post("/telegram/{token}")
    async def telegram_webhook(token: str, request: Request) -> Dict[str, Any]:
        expected = cfg.bot_token or ""
        if not expected or not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
            raise not_found("Not Found")
        try:
            raw = await request.json()
        except ValueError:
            raise http_error(400, error="bad_request", message="Update body must be JSON")
        if not isinstance(raw, dict):
            raise http_error(400, error="bad_request", message="Update body must be an object")

        await get_bridge(request).handle_update(raw)
        return {"ok": True}

    return app


__all__ = ["HealthResponse", "create_app"]
