"""Social Hub – Messenger Router.

Facebook Login for page owners, conversation reads and manual replies. The
page is the first page the stored Facebook account manages.
"""

from typing import Any
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Query
from fastapi.responses import RedirectResponse

from app.core.exceptions import HubError, NotFoundError, ValidationFailure
from app.gateway.dependencies import (
    credential_store,
    live_sink,
    messenger_client,
    oauth_service,
    send_gateway,
    settings,
)
from app.gateway.schemas import (
    AccountPlatform,
    Direction,
    MessengerSendRequest,
    MirroredMessage,
)

logger = structlog.get_logger()
router = APIRouter(tags=["messenger"])


async def _require_page(user_id: str) -> dict[str, Any]:
    user = credential_store.require(user_id, AccountPlatform.FACEBOOK)
    page = await messenger_client.get_primary_page(user.access_token)
    if page is None:
        raise NotFoundError("Page not found")
    return page


@router.get("/auth/facebook")
async def facebook_login() -> RedirectResponse:
    """Start Facebook Login with the page messaging scopes."""
    return RedirectResponse(messenger_client.authorize_url(), status_code=302)


@router.get("/auth/facebook/callback")
async def facebook_callback(
    code: str = Query(default=""),
    error: str = Query(default=""),
) -> RedirectResponse:
    if error or not code:
        return RedirectResponse("/?error=facebook_auth_failed", status_code=302)
    try:
        user = await oauth_service.redeem_facebook_code(code)
    except HubError as e:
        logger.error("facebook.oauth_failed", error=e.message)
        return RedirectResponse("/?error=facebook_auth_failed", status_code=302)

    query = urlencode({"user_id": user.platform_user_id})
    return RedirectResponse(f"{settings.messenger_dashboard_path}?{query}", status_code=302)


@router.get("/api/messenger/conversations")
async def messenger_conversations(user_id: str = Query(default="", alias="userId")) -> dict[str, Any]:
    """Page conversations; an account without a page has none."""
    user = credential_store.require(user_id, AccountPlatform.FACEBOOK)
    page = await messenger_client.get_primary_page(user.access_token)
    if page is None:
        return {"conversations": []}
    return {"conversations": await messenger_client.list_conversations(page)}


@router.get("/api/messenger/messages")
async def messenger_messages(
    user_id: str = Query(default="", alias="userId"),
    conversation_id: str = Query(default="", alias="id"),
) -> dict[str, Any]:
    if not conversation_id:
        raise ValidationFailure("Conversation ID required")
    page = await _require_page(user_id)
    return {"messages": await messenger_client.list_messages(conversation_id, page)}


@router.post("/api/messenger/send")
async def messenger_send(body: MessengerSendRequest) -> dict[str, Any]:
    """Reply in a conversation as the page."""
    page = await _require_page(body.user_id)
    participants = await messenger_client.get_participants(body.conversation_id, page["access_token"])
    recipient = next((p for p in participants if p.get("id") != page["id"]), None)
    if recipient is None:
        raise ValidationFailure("Recipient not found")

    data = await send_gateway.send_messenger_message(page["access_token"], recipient["id"], body.message)
    await live_sink.publish(MirroredMessage(
        type="messenger-message",
        sender="You",
        to=recipient["id"],
        text=body.message,
        direction=Direction.OUT,
    ).to_event())
    return {"success": True, "data": data}
