"""Social Hub – Facebook Messenger Client.

Facebook Login for page owners, page conversation reads and the Messenger
Send API.
"""

from __future__ import annotations

import asyncio
from typing import Any
from urllib.parse import urlencode

import structlog

from app.core.exceptions import UpstreamCallFailure
from app.integrations.graph import FACEBOOK_GRAPH_BASE, bearer, get_json, post_json

logger = structlog.get_logger()

DIALOG_URL = "https://www.facebook.com/{version}/dialog/oauth"


class FacebookMessengerClient:
    """Client for Facebook Login and Messenger.

    Parameters
    ----------
    app_id : str
        Facebook app id.
    app_secret : str
        Facebook app secret.
    callback_url : str
        OAuth redirect registered with the app.
    graph_version : str
        Graph API version, e.g. ``v19.0``.
    timeout : float
        Per-call timeout in seconds.
    """

    target = "messenger"

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        callback_url: str,
        graph_version: str = "v19.0",
        timeout: float = 30.0,
        scopes: str = "",
    ) -> None:
        self.app_id = app_id
        self.app_secret = app_secret
        self.callback_url = callback_url
        self.graph_version = graph_version
        self.timeout = timeout
        self.scopes = scopes
        self._base = f"{FACEBOOK_GRAPH_BASE}/{graph_version}"

    # ──────────────────────────────────────────────────────────────
    # OAuth
    # ──────────────────────────────────────────────────────────────

    def authorize_url(self) -> str:
        query = urlencode({
            "client_id": self.app_id,
            "redirect_uri": self.callback_url,
            "response_type": "code",
            "scope": self.scopes,
        })
        return f"{DIALOG_URL.format(version=self.graph_version)}?{query}"

    async def exchange_code(self, code: str) -> dict[str, Any]:
        data = await get_json(
            f"{self._base}/oauth/access_token",
            target=self.target,
            timeout=self.timeout,
            fallback="Facebook token exchange failed",
            params={
                "client_id": self.app_id,
                "client_secret": self.app_secret,
                "redirect_uri": self.callback_url,
                "code": code,
            },
        )
        logger.info("facebook.token_exchanged")
        return data

    async def fetch_profile(self, access_token: str) -> dict[str, Any]:
        return await get_json(
            f"{self._base}/me",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to fetch Facebook profile",
            params={"fields": "id,name,picture", "access_token": access_token},
        )

    # ──────────────────────────────────────────────────────────────
    # Pages & conversations
    # ──────────────────────────────────────────────────────────────

    async def get_primary_page(self, user_token: str) -> dict[str, Any] | None:
        """First page the user manages (``id``, ``access_token``), or None."""
        data = await get_json(
            f"{self._base}/me/accounts",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to look up pages",
            params={"access_token": user_token},
        )
        pages = data.get("data") or []
        return pages[0] if pages else None

    async def get_participants(self, conversation_id: str, page_token: str) -> list[dict[str, Any]]:
        data = await get_json(
            f"{self._base}/{conversation_id}",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to load conversation",
            params={"fields": "participants", "access_token": page_token},
        )
        return list((data.get("participants") or {}).get("data") or [])

    async def get_user_profile(self, user_id: str, page_token: str) -> dict[str, Any]:
        return await get_json(
            f"{self._base}/{user_id}",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to load profile",
            params={"fields": "name,picture", "access_token": page_token},
        )

    async def list_conversations(self, page: dict[str, Any]) -> list[dict[str, Any]]:
        """Page conversations with the other participant's name and avatar.

        Conversations whose details cannot be loaded are skipped.
        """
        page_id, page_token = page["id"], page["access_token"]
        data = await get_json(
            f"{self._base}/{page_id}/conversations",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to load conversations",
            params={"access_token": page_token},
        )

        conversations = []
        for convo in data.get("data") or []:
            try:
                participants = await self.get_participants(convo["id"], page_token)
                recipient = next((p for p in participants if p.get("id") != page_id), None)
                if recipient is None:
                    continue
                profile = await self.get_user_profile(recipient["id"], page_token)
            except UpstreamCallFailure as e:
                logger.warning("messenger.conversation_skipped", conversation_id=convo.get("id"), error=e.message)
                continue
            conversations.append({
                "id": convo["id"],
                "name": profile.get("name") or recipient["id"],
                "avatar": ((profile.get("picture") or {}).get("data") or {}).get("url", ""),
            })
        return conversations

    async def list_messages(self, conversation_id: str, page: dict[str, Any]) -> list[dict[str, Any]]:
        """Conversation messages, oldest first, with sender display names."""
        page_id, page_token = page["id"], page["access_token"]
        data = await get_json(
            f"{self._base}/{conversation_id}/messages",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to fetch messages",
            params={"fields": "message,from,created_time", "access_token": page_token},
        )

        async def describe(msg: dict[str, Any]) -> dict[str, Any]:
            sender_id = (msg.get("from") or {}).get("id", "")
            text = msg.get("message") or "[No text]"
            try:
                profile = await self.get_user_profile(sender_id, page_token)
            except UpstreamCallFailure:
                return {
                    "sender": "Unknown",
                    "text": text,
                    "pfp": "",
                    "isFromPage": False,
                    "timestamp": msg.get("created_time"),
                }
            return {
                "sender": profile.get("name") or sender_id,
                "text": text,
                "pfp": ((profile.get("picture") or {}).get("data") or {}).get("url", ""),
                "isFromPage": sender_id == page_id,
                "timestamp": msg.get("created_time"),
            }

        messages = await asyncio.gather(*(describe(m) for m in data.get("data") or []))
        # Graph returns newest first.
        return list(reversed(messages))

    # ──────────────────────────────────────────────────────────────
    # Send API
    # ──────────────────────────────────────────────────────────────

    async def send_message(self, recipient_id: str, text: str, page_token: str) -> dict[str, Any]:
        """Send a text message to a page-scoped user id (PSID)."""
        data = await post_json(
            f"{self._base}/me/messages",
            target=self.target,
            timeout=self.timeout,
            fallback="Failed to send message",
            json={
                "recipient": {"id": recipient_id},
                "message": {"text": text},
            },
            headers=bearer(page_token),
        )
        logger.info(
            "messenger.message_sent",
            recipient=recipient_id,
            message_id=data.get("message_id", ""),
        )
        return data
