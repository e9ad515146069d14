"""Social Hub – Event Router.

Takes a validated webhook delivery, classifies it by platform and shape and
runs the matching handler:

  Instagram ``comments`` change  → keyword rules → DM per match
  WhatsApp message               → mirror → AI reply (when configured)
  Messenger ``page`` object      → mirror each messaging event verbatim

Every delivery ends in exactly one RouteOutcome. Nothing raised by a handler
escapes ``dispatch``; the webhook caller has already been acknowledged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import structlog

from app.assistant.responder import AIResponder
from app.core.exceptions import UpstreamCallFailure
from app.core.instrumentation import WEBHOOK_EVENTS
from app.gateway.keyword_matcher import match_rules, render_reply
from app.gateway.live_sink import LiveSink
from app.gateway.persistence import AIConfigHolder, CredentialStore, RuleStore
from app.gateway.schemas import (
    Direction,
    MirroredMessage,
    Platform,
    RouteOutcome,
    RouteResult,
)
from app.integrations.send_gateway import SendGateway
from app.memory.context import ConversationMemory

logger = structlog.get_logger()

AI_SENDER_LABEL = "🤖 AI Assistant"


@dataclass
class CommentEvent:
    media_id: str
    text: str
    username: str


def extract_comment(value: dict[str, Any]) -> CommentEvent | None:
    """Comment fields from a ``comments`` change value.

    Accepts the flat ``{media_id, text, username}`` form and Graph's nested
    ``{media: {id}, from: {username}}`` form.
    """
    media_id = value.get("media_id") or (value.get("media") or {}).get("id")
    username = value.get("username") or (value.get("from") or {}).get("username")
    text = value.get("text")
    if not (media_id and text and username):
        return None
    return CommentEvent(media_id=str(media_id), text=str(text), username=str(username))


def extract_whatsapp_message(payload: dict[str, Any]) -> tuple[str, str] | None:
    """``(from, text)`` of the first message in the first change, if any."""
    try:
        message = payload["entry"][0]["changes"][0]["value"]["messages"][0]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(message, dict):
        return None
    sender = message.get("from")
    text = (message.get("text") or {}).get("body")
    if not (sender and text):
        return None
    return str(sender), str(text)


class EventRouter:
    """Routes webhook deliveries to their handlers. Holds no state of its own."""

    def __init__(
        self,
        rules: RuleStore,
        credentials: CredentialStore,
        ai_config: AIConfigHolder,
        memory: ConversationMemory,
        responder: AIResponder,
        gateway: SendGateway,
        sink: LiveSink,
    ) -> None:
        self._rules = rules
        self._credentials = credentials
        self._ai_config = ai_config
        self._memory = memory
        self._responder = responder
        self._gateway = gateway
        self._sink = sink

    async def dispatch(self, platform: Platform, payload: dict[str, Any]) -> RouteResult:
        """Route one delivery. Always returns; never raises."""
        try:
            if platform == Platform.INSTAGRAM:
                result = await self._route_instagram(payload)
            elif platform == Platform.WHATSAPP:
                result = await self._route_whatsapp(payload)
            elif platform == Platform.MESSENGER:
                result = await self._route_messenger(payload)
            else:
                result = RouteResult(platform=platform, outcome=RouteOutcome.IGNORED, reason="unknown platform")
        except Exception as e:
            logger.exception("event_router.unhandled_error", platform=platform.value, error=str(e))
            result = RouteResult(platform=platform, outcome=RouteOutcome.FAILED, failures=1, reason=str(e))

        WEBHOOK_EVENTS.labels(platform=platform.value, outcome=result.outcome.value).inc()
        logger.info(
            "event_router.routed",
            platform=platform.value,
            outcome=result.outcome.value,
            sent=result.sent,
            failures=result.failures,
            reason=result.reason,
        )
        return result

    # ──────────────────────────────────────────
    # Instagram
    # ──────────────────────────────────────────

    async def _route_instagram(self, payload: dict[str, Any]) -> RouteResult:
        if payload.get("object") != "instagram":
            return RouteResult(platform=Platform.INSTAGRAM, outcome=RouteOutcome.IGNORED, reason="not an instagram object")

        comments = []
        for entry in payload.get("entry") or []:
            changes = entry.get("changes") if isinstance(entry, dict) else None
            if not changes or not isinstance(changes[0], dict) or changes[0].get("field") != "comments":
                continue
            comment = extract_comment(changes[0].get("value") or {})
            if comment is not None:
                comments.append(comment)

        if not comments:
            return RouteResult(platform=Platform.INSTAGRAM, outcome=RouteOutcome.IGNORED, reason="no comment changes")

        sent = failures = 0
        for comment in comments:
            s, f = await self._handle_comment(comment)
            sent += s
            failures += f
        return RouteResult(
            platform=Platform.INSTAGRAM,
            outcome=RouteOutcome.FAILED if failures else RouteOutcome.DISPATCHED,
            sent=sent,
            failures=failures,
        )

    async def _handle_comment(self, comment: CommentEvent) -> tuple[int, int]:
        logger.info("instagram.comment_received", media_id=comment.media_id, username=comment.username)
        sent = failures = 0
        for rule in match_rules(comment.media_id, comment.text, self._rules.all()):
            owner = self._credentials.get(rule.owner_id)
            if owner is None:
                logger.debug("instagram.rule_owner_missing", owner_id=rule.owner_id)
                continue

            reply = render_reply(rule, comment.username)
            try:
                await self._gateway.send_instagram_dm(owner, comment.username, reply)
            except UpstreamCallFailure as e:
                failures += 1
                logger.error("instagram.auto_dm_failed", owner_id=rule.owner_id, keyword=rule.keyword, error=e.message)
                continue

            sent += 1
            await self._sink.publish(MirroredMessage(
                type="instagram-message",
                sender=owner.display_name or owner.platform_user_id,
                to=comment.username,
                text=reply,
                direction=Direction.OUT,
            ).to_event())
        return sent, failures

    # ──────────────────────────────────────────
    # WhatsApp
    # ──────────────────────────────────────────

    async def _route_whatsapp(self, payload: dict[str, Any]) -> RouteResult:
        message = extract_whatsapp_message(payload)
        if message is None:
            return RouteResult(platform=Platform.WHATSAPP, outcome=RouteOutcome.IGNORED, reason="no text message")
        sender, text = message

        await self._sink.publish(MirroredMessage(
            type="whatsapp-message", sender=sender, text=text, direction=Direction.IN,
        ).to_event())

        config = self._ai_config.get()
        if not config.is_ready:
            reason = "WhatsApp AI not configured"
            logger.warning("whatsapp.auto_reply_skipped", reason=reason)
            return RouteResult(platform=Platform.WHATSAPP, outcome=RouteOutcome.DISPATCHED, reason=reason)

        reply = await self._responder.respond(sender, text, config, self._memory)
        try:
            await self._gateway.send_whatsapp_message(config.whatsapp_token, sender, reply)
        except UpstreamCallFailure as e:
            logger.error("whatsapp.auto_reply_failed", to=sender, error=e.message)
            return RouteResult(platform=Platform.WHATSAPP, outcome=RouteOutcome.FAILED, failures=1, reason=e.message)

        await self._sink.publish(MirroredMessage(
            type="whatsapp-message", sender=AI_SENDER_LABEL, to=sender, text=reply, direction=Direction.OUT,
        ).to_event())
        return RouteResult(platform=Platform.WHATSAPP, outcome=RouteOutcome.DISPATCHED, sent=1)

    # ──────────────────────────────────────────
    # Messenger
    # ──────────────────────────────────────────

    async def _route_messenger(self, payload: dict[str, Any]) -> RouteResult:
        if payload.get("object") != "page":
            return RouteResult(platform=Platform.MESSENGER, outcome=RouteOutcome.IGNORED, reason="not a page object")

        relayed = 0
        for entry in payload.get("entry") or []:
            if not isinstance(entry, dict):
                continue
            for event in entry.get("messaging") or []:
                await self._sink.publish({"type": "messenger-event", "event": event})
                relayed += 1

        if not relayed:
            return RouteResult(platform=Platform.MESSENGER, outcome=RouteOutcome.IGNORED, reason="no messaging events")
        return RouteResult(platform=Platform.MESSENGER, outcome=RouteOutcome.DISPATCHED, sent=relayed)
