"""Social Hub – Gateway.

FastAPI application: webhooks, REST surface for the dashboard, live
WebSocket and monitoring endpoints. Hub errors become JSON error payloads;
anything unexpected becomes a generic 500.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.exceptions import HubError
from app.core.instrumentation import router as metrics_router, setup_instrumentation
from app.gateway.dependencies import (
    ai_config,
    conversation_memory,
    credential_store,
    live_sink,
    rule_store,
    send_gateway,
    settings,
)
from app.gateway.routers import instagram, messenger, webhooks, websocket, whatsapp
from app.gateway.schemas import AccountPlatform

logger = structlog.get_logger()

VERSION = "2.0.0"
_started_at = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "gateway.starting",
        version=VERSION,
        environment=settings.environment,
        instagram_redirect=settings.instagram_redirect_uri,
        facebook_callback=settings.facebook_callback_url,
    )
    yield
    live_sink.detach()
    logger.info("gateway.stopped")


app = FastAPI(
    title="Social Hub Gateway",
    version=VERSION,
    lifespan=lifespan,
)

setup_instrumentation(app, settings.log_level)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(metrics_router)
app.include_router(webhooks.router)
app.include_router(websocket.router)
app.include_router(instagram.router)
app.include_router(messenger.router)
app.include_router(whatsapp.router)


# ──────────────────────────────────────────
# Error handlers
# ──────────────────────────────────────────


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(HubError)
async def hub_error_handler(request: Request, exc: HubError) -> JSONResponse:
    logger.warning(
        "gateway.request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("gateway.invalid_request", path=request.url.path, errors=len(exc.errors()))
    return _error(400, "Missing required fields")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _error(404, "Not found")
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("gateway.unhandled_error", path=request.url.path, error=str(exc), exc_info=exc)
    return _error(500, "Internal server error")


# ──────────────────────────────────────────
# Status endpoints
# ──────────────────────────────────────────


@app.get("/health")
async def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "version": VERSION,
        "uptime": round(time.time() - _started_at, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/api/stats")
async def stats() -> dict[str, Any]:
    return {
        "instagramUsers": credential_store.count(AccountPlatform.INSTAGRAM),
        "configurations": len(rule_store),
        "messagesSent": send_gateway.messages_sent,
    }


@app.get("/debug")
async def debug() -> dict[str, Any]:
    """Runtime overview without secrets."""
    return {
        "status": "running",
        "environment": settings.environment,
        "instagram": {
            "app_id": settings.instagram_app_id,
            "users_count": credential_store.count(AccountPlatform.INSTAGRAM),
            "configs_count": len(rule_store),
        },
        "facebook": {
            "app_id": settings.facebook_app_id,
            "users_count": credential_store.count(AccountPlatform.FACEBOOK),
        },
        "whatsapp": {
            "phone_number_id": settings.whatsapp_phone_number_id,
            "ai_configured": ai_config.get().is_ready,
            "conversations": conversation_memory.sender_count(),
        },
        "live_subscriber": live_sink.is_attached,
        "server_time": datetime.now(timezone.utc).isoformat(),
        "uptime": round(time.time() - _started_at, 3),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.gateway.main:app", host=settings.gateway_host, port=settings.gateway_port)
