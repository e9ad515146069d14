"""Social Hub – Instagram Client.

Instagram Login (business accounts): OAuth code exchange, profile, media and
comments via graph.instagram.com, plus Direct Message delivery via the
Facebook Graph API.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

import structlog

from app.integrations.graph import (
    FACEBOOK_GRAPH_BASE,
    INSTAGRAM_GRAPH_BASE,
    bearer,
    get_json,
    post_json,
)

logger = structlog.get_logger()

AUTHORIZE_URL = "https://www.instagram.com/oauth/authorize"
TOKEN_URL = "https://api.instagram.com/oauth/access_token"

MEDIA_FIELDS = "id,caption,media_url,media_type,thumbnail_url"
COMMENT_FIELDS = "id,text,username,timestamp"
PROFILE_FIELDS = "id,username,profile_picture_url"


class InstagramClient:
    """Client for Instagram Login and Instagram messaging.

    Parameters
    ----------
    app_id : str
        Instagram app id (OAuth ``client_id``).
    app_secret : str
        Instagram app secret.
    redirect_uri : str
        OAuth redirect registered with the app.
    graph_version : str
        Graph API version, e.g. ``v19.0``.
    timeout : float
        Per-call timeout in seconds.
    """

    target = "instagram"

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        redirect_uri: str,
        graph_version: str = "v19.0",
        timeout: float = 15.0,
        scopes: str = "",
    ) -> None:
        self.app_id = app_id
        self.app_secret = app_secret
        self.redirect_uri = redirect_uri
        self.graph_version = graph_version
        self.timeout = timeout
        self.scopes = scopes

    # ──────────────────────────────────────────────────────────────
    # OAuth
    # ──────────────────────────────────────────────────────────────

    def authorize_url(self) -> str:
        query = urlencode({
            "force_reauth": "true",
            "client_id": self.app_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scopes,
        })
        return f"{AUTHORIZE_URL}?{query}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for a short-lived user token.

        Returns
        -------
        dict
            ``{"access_token": ..., "user_id": ...}``
        """
        data = await post_json(
            TOKEN_URL,
            target=self.target,
            timeout=self.timeout,
            fallback="Instagram token exchange failed",
            data={
                "client_id": self.app_id,
                "client_secret": self.app_secret,
                "grant_type": "authorization_code",
                "redirect_uri": self.redirect_uri,
                "code": code,
            },
        )
        logger.info("instagram.token_exchanged", user_id=str(data.get("user_id", "")))
        return data

    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        return await get_json(
            f"{INSTAGRAM_GRAPH_BASE}/me",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to fetch Instagram profile",
            params={"fields": PROFILE_FIELDS, "access_token": access_token},
        )

    # ──────────────────────────────────────────────────────────────
    # Content
    # ──────────────────────────────────────────────────────────────

    async def list_media(self, access_token: str) -> list[dict[str, Any]]:
        """Recent media of the authorized account; videos show their thumbnail."""
        data = await get_json(
            f"{INSTAGRAM_GRAPH_BASE}/{self.graph_version}/me/media",
            target=self.target,
            timeout=self.timeout,
            fallback="Error fetching posts",
            params={"fields": MEDIA_FIELDS, "access_token": access_token},
        )
        posts = []
        for item in data.get("data") or []:
            media_type = item.get("media_type", "")
            posts.append({
                "id": item.get("id"),
                "caption": item.get("caption", ""),
                "media_type": media_type,
                "media_url": item.get("thumbnail_url") if media_type == "VIDEO" else item.get("media_url"),
            })
        return posts

    async def list_comments(self, post_id: str, access_token: str) -> list[dict[str, Any]]:
        data = await get_json(
            f"{INSTAGRAM_GRAPH_BASE}/{self.graph_version}/{post_id}/comments",
            target=self.target,
            timeout=self.timeout,
            fallback="Error fetching comments",
            params={"fields": COMMENT_FIELDS, "access_token": access_token},
        )
        return list(data.get("data") or [])

    # ──────────────────────────────────────────────────────────────
    # Messaging
    # ──────────────────────────────────────────────────────────────

    async def list_pages(self, access_token: str) -> list[dict[str, Any]]:
        """Facebook pages managed by the token owner (``me/accounts``)."""
        data = await get_json(
            f"{FACEBOOK_GRAPH_BASE}/{self.graph_version}/me/accounts",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to look up pages",
            params={"access_token": access_token},
        )
        return list(data.get("data") or [])

    async def get_business_account_id(self, page_id: str, page_token: str) -> str | None:
        data = await get_json(
            f"{FACEBOOK_GRAPH_BASE}/{self.graph_version}/{page_id}",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to look up Instagram business account",
            params={"fields": "instagram_business_account", "access_token": page_token},
        )
        account = data.get("instagram_business_account") or {}
        return account.get("id")

    async def send_message(
        self,
        sender_id: str,
        recipient_username: str,
        text: str,
        access_token: str,
    ) -> dict[str, Any]:
        """Send a DM from ``sender_id`` (IG business account) to a username."""
        data = await post_json(
            f"{FACEBOOK_GRAPH_BASE}/{self.graph_version}/{sender_id}/messages",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to send DM",
            json={
                "recipient": {"username": recipient_username},
                "message": {"text": text},
            },
            headers=bearer(access_token),
        )
        logger.info(
            "instagram.message_sent",
            recipient=recipient_username,
            message_id=data.get("message_id", ""),
        )
        return data
