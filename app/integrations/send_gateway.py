"""Social Hub – External Send Gateway.

One operation per outbound target. The gateway owns timeouts (through the
clients) and error normalization; it never retries and never mirrors to the
live sink. Callers decide what a failure means for them.
"""

from __future__ import annotations

from typing import Any, Awaitable

import structlog

from app.assistant.llm import GeminiClient
from app.core.exceptions import UpstreamCallFailure
from app.core.instrumentation import OUTBOUND_SENDS
from app.gateway.schemas import PlatformUser
from app.integrations.facebook.client import FacebookMessengerClient
from app.integrations.instagram.client import InstagramClient
from app.integrations.whatsapp import WhatsAppClient

logger = structlog.get_logger()


class SendGateway:
    """Fire-once outbound calls to Instagram, Messenger, WhatsApp and Gemini."""

    def __init__(
        self,
        instagram: InstagramClient,
        messenger: FacebookMessengerClient,
        whatsapp: WhatsAppClient,
        llm: GeminiClient,
    ) -> None:
        self._instagram = instagram
        self._messenger = messenger
        self._whatsapp = whatsapp
        self._llm = llm
        self.messages_sent = 0

    async def _call(self, target: str, call: Awaitable[dict[str, Any]], **log_fields: Any) -> dict[str, Any]:
        try:
            result = await call
        except UpstreamCallFailure as e:
            OUTBOUND_SENDS.labels(target=target, status="failed").inc()
            logger.error(f"send_gateway.{target}.failed", error=e.message, **log_fields)
            raise
        OUTBOUND_SENDS.labels(target=target, status="ok").inc()
        logger.info(f"send_gateway.{target}.sent", **log_fields)
        return result

    async def send_instagram_dm(self, user: PlatformUser, recipient_username: str, text: str) -> dict[str, Any]:
        """DM ``recipient_username`` from ``user``'s Instagram business account.

        Resolves the linked Facebook page, then its Instagram business
        account, and sends with the page token. Accounts without a page send
        directly with the user token. Each step has its own timeout.
        """
        result = await self._call(
            "instagram",
            self._send_instagram_chain(user, recipient_username, text),
            owner_id=user.platform_user_id,
            recipient=recipient_username,
        )
        self.messages_sent += 1
        return result

    async def _send_instagram_chain(self, user: PlatformUser, recipient_username: str, text: str) -> dict[str, Any]:
        try:
            pages = await self._instagram.list_pages(user.access_token)
        except UpstreamCallFailure as e:
            # Instagram Login tokens cannot read me/accounts.
            logger.info("send_gateway.instagram.page_lookup_failed", owner_id=user.platform_user_id, error=e.message)
            pages = []
        if not pages:
            return await self._instagram.send_message(
                user.platform_user_id, recipient_username, text, user.access_token
            )

        page = pages[0]
        page_token = page.get("access_token") or user.access_token
        business_id = await self._instagram.get_business_account_id(page["id"], page_token)
        if not business_id:
            raise UpstreamCallFailure(
                "No Instagram business account linked to page", target="instagram"
            )
        return await self._instagram.send_message(business_id, recipient_username, text, page_token)

    async def send_messenger_message(self, page_token: str, recipient_id: str, text: str) -> dict[str, Any]:
        result = await self._call(
            "messenger",
            self._messenger.send_message(recipient_id, text, page_token),
            recipient=recipient_id,
        )
        self.messages_sent += 1
        return result

    async def send_whatsapp_message(self, access_token: str, to: str, text: str) -> dict[str, Any]:
        result = await self._call(
            "whatsapp",
            self._whatsapp.send_text(to, text, access_token),
            to=to,
        )
        self.messages_sent += 1
        return result

    async def complete_ai_prompt(self, api_key: str, contents: list[dict[str, Any]]) -> dict[str, Any]:
        return await self._call(
            "gemini",
            self._llm.generate(contents, api_key),
            turns=len(contents),
        )
