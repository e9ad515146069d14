"""Social Hub – WhatsApp Cloud API Client.

Outbound text messages through the Meta Cloud API. The access token is
supplied per call: it comes either from the dashboard request or from the
stored AI configuration.
"""

from __future__ import annotations

from typing import Any

import structlog

from app.integrations.graph import FACEBOOK_GRAPH_BASE, bearer, post_json

logger = structlog.get_logger()


class WhatsAppClient:
    """WhatsApp Cloud API client bound to one business phone number."""

    target = "whatsapp"

    def __init__(
        self,
        phone_number_id: str,
        api_version: str = "v17.0",
        timeout: float = 30.0,
    ) -> None:
        self._phone_number_id = phone_number_id
        self._timeout = timeout
        self._url = f"{FACEBOOK_GRAPH_BASE}/{api_version}/{phone_number_id}/messages"

    async def send_text(self, to: str, body: str, access_token: str) -> dict[str, Any]:
        """Send a plain-text message.

        Args:
            to: Recipient phone number (E.164 without ``+``).
            body: Message text.
            access_token: Cloud API bearer token.

        Returns:
            Response dict containing ``messages[0].id``.
        """
        payload = {
            "messaging_product": "whatsapp",
            "to": to,
            "type": "text",
            "text": {"body": body},
        }
        data = await post_json(
            self._url,
            target=self.target,
            timeout=self._timeout,
            fallback="Failed to send WhatsApp message",
            json=payload,
            headers=bearer(access_token),
        )
        msg_id = (data.get("messages") or [{}])[0].get("id")
        logger.info("whatsapp.cloud_api.sent", to=to, id=msg_id)
        return data
