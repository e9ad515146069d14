"""Social Hub – WhatsApp Router.

AI auto-reply configuration and manual sends.
"""

from typing import Any

import structlog
from fastapi import APIRouter

from app.core.exceptions import ConfigurationMissing
from app.gateway.dependencies import ai_config, live_sink, send_gateway
from app.gateway.schemas import (
    AIConfig,
    AIConfigRequest,
    Direction,
    MirroredMessage,
    WhatsAppManualSendRequest,
    WhatsAppSendRequest,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/api/whatsapp", tags=["whatsapp"])


@router.post("/config")
async def save_ai_config(body: AIConfigRequest) -> dict[str, Any]:
    """Replace the AI configuration used for every WhatsApp conversation."""
    config = ai_config.replace(AIConfig(
        api_key=body.api_key,
        system_prompt=body.system_prompt,
        whatsapp_token=body.whatsapp_token,
    ))
    return {"success": True, "ai_configured": config.is_ready}


@router.get("/config")
async def get_ai_config() -> dict[str, Any]:
    config = ai_config.get()
    return {
        "ai_configured": config.is_ready,
        "has_api_key": bool(config.api_key),
        "has_whatsapp_token": bool(config.whatsapp_token),
        "system_prompt": config.system_prompt,
    }


@router.post("/send")
async def send_with_token(body: WhatsAppSendRequest) -> dict[str, Any]:
    """Send using a token passed in the request."""
    data = await send_gateway.send_whatsapp_message(body.token, body.to, body.message)
    await live_sink.publish(MirroredMessage(
        type="whatsapp-message", sender="You", to=body.to, text=body.message, direction=Direction.OUT,
    ).to_event())
    return {"success": True, "data": data}


@router.post("/send-manual")
async def send_manual(body: WhatsAppManualSendRequest) -> dict[str, Any]:
    """Send using the stored WhatsApp token."""
    token = ai_config.get().whatsapp_token
    if not token:
        raise ConfigurationMissing("WhatsApp token not configured")

    data = await send_gateway.send_whatsapp_message(token, body.to, body.message)
    await live_sink.publish(MirroredMessage(
        type="whatsapp-message", sender="You", to=body.to, text=body.message, direction=Direction.OUT,
    ).to_event())
    return {"success": True, "data": data}
