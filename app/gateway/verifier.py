"""Social Hub – Webhook Verifier.

Subscription handshakes (GET) and delivery validation (POST) for the three
Meta webhooks. Handshake comparison is constant-time and the configured
token value is never logged.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

import structlog

from app.core.exceptions import Forbidden, ValidationFailure
from app.gateway.schemas import Platform

logger = structlog.get_logger()

SIGNATURE_PREFIX = "sha256="


def verify_handshake(mode: str, token: str, challenge: str, expected_token: str) -> str:
    """Return ``challenge`` verbatim if the subscription request is valid.

    Raises:
        Forbidden: mode is not ``subscribe``, no token is configured, or the
            token does not match.
    """
    if mode != "subscribe" or not expected_token:
        raise Forbidden("Webhook verification failed")
    if not hmac.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8")):
        raise Forbidden("Webhook verification failed")
    return challenge


def compute_signature(app_secret: str, body: bytes) -> str:
    """``sha256=<hex>`` HMAC of ``body``, as sent in X-Hub-Signature-256."""
    digest = hmac.new(app_secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


class WebhookVerifier:
    """Validates webhook deliveries before they reach the event router.

    Args:
        app_secret: Meta app secret. When set, every delivery must carry a
            valid ``X-Hub-Signature-256`` header.
        signature_required_for: Platforms whose deliveries must carry the
            signature header even when no app secret is configured.
    """

    def __init__(
        self,
        app_secret: str = "",
        signature_required_for: frozenset[Platform] = frozenset({Platform.MESSENGER}),
    ) -> None:
        self._app_secret = app_secret
        self._signature_required_for = signature_required_for

    def validate_delivery(
        self,
        platform: Platform,
        payload: Any,
        raw_body: bytes = b"",
        signature: str | None = None,
    ) -> dict[str, Any]:
        """Check shape (and signature when applicable) of a delivery.

        Returns:
            The payload, typed as a dict.

        Raises:
            ValidationFailure: malformed body, missing or invalid signature.
        """
        if platform in self._signature_required_for and not signature:
            raise ValidationFailure("Missing X-Hub-Signature-256 header")
        if self._app_secret:
            self._check_signature(raw_body, signature or "")

        if not isinstance(payload, dict):
            raise ValidationFailure("Webhook body must be a JSON object")
        entries = payload.get("entry")
        if not isinstance(entries, list):
            raise ValidationFailure("Webhook body has no entry list")
        if platform == Platform.INSTAGRAM and not payload.get("object"):
            raise ValidationFailure("Instagram webhook body has no object")
        if platform == Platform.MESSENGER and payload.get("object") != "page":
            raise ValidationFailure("Messenger webhook object is not 'page'")
        return payload

    def _check_signature(self, raw_body: bytes, signature: str) -> None:
        if not signature.startswith(SIGNATURE_PREFIX):
            raise ValidationFailure("Missing or malformed webhook signature")
        expected = compute_signature(self._app_secret, raw_body)
        if not hmac.compare_digest(expected, signature):
            logger.warning("webhook.signature_mismatch")
            raise ValidationFailure("Invalid webhook signature")
