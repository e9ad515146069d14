"""Social Hub – Instagram Router.

Instagram Login, comment automation configuration, manual DMs and
read-through proxies for posts and comments.
"""

from typing import Any
from urllib.parse import urlencode

import structlog
from fastapi import APIRouter, Query
from fastapi.responses import RedirectResponse

from app.core.exceptions import HubError, ValidationFailure
from app.gateway.dependencies import (
    credential_store,
    instagram_client,
    live_sink,
    oauth_service,
    rule_store,
    send_gateway,
    settings,
)
from app.gateway.schemas import (
    AccountPlatform,
    AutomationRule,
    ConfigureRuleRequest,
    Direction,
    InstagramDMRequest,
    MirroredMessage,
)

logger = structlog.get_logger()
router = APIRouter(tags=["instagram"])


def _error_redirect(error: str, message: str = "") -> RedirectResponse:
    query = {"error": error}
    if message:
        query["message"] = message
    return RedirectResponse(f"/?{urlencode(query)}", status_code=302)


@router.get("/auth/instagram")
async def instagram_login() -> RedirectResponse:
    """Start Instagram Login."""
    return RedirectResponse(instagram_client.authorize_url(), status_code=302)


@router.get("/auth/instagram/callback")
async def instagram_callback(
    code: str = Query(default=""),
    error: str = Query(default=""),
    error_reason: str = Query(default=""),
) -> RedirectResponse:
    """Redeem the authorization code and open the dashboard for the account."""
    if error:
        logger.warning("instagram.oauth_denied", error=error, reason=error_reason)
        return _error_redirect("instagram_auth_failed", error_reason or error)
    if not code:
        return _error_redirect("no_code")

    try:
        user = await oauth_service.redeem_instagram_code(code)
    except HubError as e:
        logger.error("instagram.oauth_failed", error=e.message)
        return _error_redirect("instagram_auth_failed", e.message)

    query = urlencode({"user_id": user.platform_user_id})
    return RedirectResponse(f"{settings.instagram_dashboard_path}?{query}", status_code=302)


@router.get("/api/user-info")
async def user_info(user_id: str = Query(default="", alias="userId")) -> dict[str, Any]:
    """Stored profile of an authorized account (token omitted)."""
    if not user_id:
        raise ValidationFailure("User ID required")
    return credential_store.require(user_id).public_profile()


@router.get("/api/instagram/posts")
async def instagram_posts(user_id: str = Query(default="", alias="userId")) -> dict[str, Any]:
    user = credential_store.require(user_id, AccountPlatform.INSTAGRAM)
    return {"posts": await instagram_client.list_media(user.access_token)}


@router.get("/api/instagram/comments")
async def instagram_comments(
    user_id: str = Query(default="", alias="userId"),
    post_id: str = Query(default="", alias="postId"),
) -> dict[str, Any]:
    if not post_id:
        raise ValidationFailure("Missing required fields")
    user = credential_store.require(user_id, AccountPlatform.INSTAGRAM)
    return {"comments": await instagram_client.list_comments(post_id, user.access_token)}


@router.post("/api/instagram/configure")
async def configure_automation(body: ConfigureRuleRequest) -> dict[str, Any]:
    """Save the owner's keyword rule, replacing any previous one."""
    credential_store.require(body.user_id, AccountPlatform.INSTAGRAM)
    rule_store.save(AutomationRule(
        owner_id=body.user_id,
        target_post_id=body.post_id,
        keyword=body.keyword,
        response_template=body.response,
    ))
    return {"success": True}


@router.post("/api/instagram/send-dm")
async def send_instagram_dm(body: InstagramDMRequest) -> dict[str, Any]:
    user = credential_store.require(body.user_id, AccountPlatform.INSTAGRAM)
    data = await send_gateway.send_instagram_dm(user, body.username, body.message)
    await live_sink.publish(MirroredMessage(
        type="instagram-message",
        sender="You",
        to=body.username,
        text=body.message,
        direction=Direction.OUT,
    ).to_event())
    return {"success": True, "data": data}
