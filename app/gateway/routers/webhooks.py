"""Social Hub – Webhook Router.

Subscription handshakes and event deliveries for Instagram, WhatsApp and
Messenger. Deliveries are always acknowledged with 200 so Meta does not
retry; routing runs as a background task after the response.
"""

import json
from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Header, Query, Request
from fastapi.responses import PlainTextResponse

from app.core.exceptions import Forbidden, ValidationFailure
from app.core.instrumentation import WEBHOOK_EVENTS
from app.gateway.dependencies import event_router, settings, webhook_verifier
from app.gateway.schemas import Platform, RouteOutcome
from app.gateway.verifier import verify_handshake

logger = structlog.get_logger()
router = APIRouter(tags=["webhooks"])


def _expected_token(platform: Platform) -> str:
    if platform == Platform.WHATSAPP:
        return settings.whatsapp_verify_token
    return settings.meta_verify_token


def _handshake(platform: Platform, mode: str, token: str, challenge: str) -> PlainTextResponse:
    try:
        verified = verify_handshake(mode, token, challenge, _expected_token(platform))
    except Forbidden:
        logger.warning("webhook.verification_failed", platform=platform.value, mode=mode)
        return PlainTextResponse("Forbidden", status_code=403)
    logger.info("webhook.verified", platform=platform.value)
    return PlainTextResponse(verified)


async def _accept(
    platform: Platform,
    request: Request,
    background_tasks: BackgroundTasks,
    signature: str | None,
) -> dict[str, Any]:
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body) if raw_body else None
        payload = webhook_verifier.validate_delivery(platform, payload, raw_body=raw_body, signature=signature)
    except (ValueError, RecursionError, ValidationFailure) as e:
        reason = e.message if isinstance(e, ValidationFailure) else "invalid JSON"
        WEBHOOK_EVENTS.labels(platform=platform.value, outcome=RouteOutcome.IGNORED.value).inc()
        logger.warning("webhook.ignored", platform=platform.value, reason=reason)
        return {"status": "ignored"}

    background_tasks.add_task(event_router.dispatch, platform, payload)
    return {"status": "ok"}


# ──────────────────────────────────────────
# Instagram
# ──────────────────────────────────────────


@router.get("/webhook/instagram")
async def instagram_verify(
    hub_mode: str = Query(default="", alias="hub.mode"),
    hub_verify_token: str = Query(default="", alias="hub.verify_token"),
    hub_challenge: str = Query(default="", alias="hub.challenge"),
) -> PlainTextResponse:
    """Instagram webhook subscription handshake."""
    return _handshake(Platform.INSTAGRAM, hub_mode, hub_verify_token, hub_challenge)


@router.post("/webhook/instagram")
async def instagram_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_hub_signature_256: str | None = Header(default=None, alias="x-hub-signature-256"),
) -> dict[str, Any]:
    """Instagram comment events."""
    return await _accept(Platform.INSTAGRAM, request, background_tasks, x_hub_signature_256)


# ──────────────────────────────────────────
# WhatsApp
# ──────────────────────────────────────────


@router.get("/webhook/whatsapp")
async def whatsapp_verify(
    hub_mode: str = Query(default="", alias="hub.mode"),
    hub_verify_token: str = Query(default="", alias="hub.verify_token"),
    hub_challenge: str = Query(default="", alias="hub.challenge"),
) -> PlainTextResponse:
    """WhatsApp Cloud API webhook subscription handshake."""
    return _handshake(Platform.WHATSAPP, hub_mode, hub_verify_token, hub_challenge)


@router.post("/webhook/whatsapp")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_hub_signature_256: str | None = Header(default=None, alias="x-hub-signature-256"),
) -> dict[str, Any]:
    """WhatsApp inbound messages and status updates."""
    return await _accept(Platform.WHATSAPP, request, background_tasks, x_hub_signature_256)


# ──────────────────────────────────────────
# Messenger
# ──────────────────────────────────────────


@router.get("/webhook/messenger")
async def messenger_verify(
    hub_mode: str = Query(default="", alias="hub.mode"),
    hub_verify_token: str = Query(default="", alias="hub.verify_token"),
    hub_challenge: str = Query(default="", alias="hub.challenge"),
) -> PlainTextResponse:
    """Messenger webhook subscription handshake."""
    return _handshake(Platform.MESSENGER, hub_mode, hub_verify_token, hub_challenge)


@router.post("/webhook/messenger")
async def messenger_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_hub_signature_256: str | None = Header(default=None, alias="x-hub-signature-256"),
) -> dict[str, Any]:
    """Messenger page messaging events."""
    return await _accept(Platform.MESSENGER, request, background_tasks, x_hub_signature_256)
