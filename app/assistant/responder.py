"""Social Hub – WhatsApp AI Responder.

Builds the Gemini prompt from the persona, the operator prompt and the
sender's transcript, and always returns something sendable: completion
failures turn into a fixed apology instead of an exception.
"""

from __future__ import annotations

import structlog

from app.assistant.llm import extract_text
from app.core.exceptions import UpstreamCallFailure
from app.gateway.schemas import AIConfig
from app.integrations.send_gateway import SendGateway
from app.memory.context import ConversationMemory

logger = structlog.get_logger()

BASELINE_PERSONA = (
    "You are a helpful sales AI bot. Answer everything briefly and you are "
    "handling users on WhatsApp. Be friendly and concise."
)

FALLBACK_REPLY = "I apologize, but I cannot respond right now. Please try again later."


def compose_system_prompt(system_prompt: str) -> str:
    if system_prompt.strip():
        return f"{BASELINE_PERSONA}\n{system_prompt}"
    return BASELINE_PERSONA


class AIResponder:
    """Generates WhatsApp auto-replies and keeps the transcript."""

    def __init__(self, gateway: SendGateway) -> None:
        self._gateway = gateway

    async def respond(
        self,
        sender_id: str,
        incoming_text: str,
        config: AIConfig,
        memory: ConversationMemory,
    ) -> str:
        """Reply to ``incoming_text`` from ``sender_id``.

        The user turn is recorded before the completion call, the model turn
        (reply or fallback) after it. Never raises on completion failure.
        """
        memory.append(sender_id, "user", incoming_text)

        contents = [
            {"role": "user", "parts": [{"text": compose_system_prompt(config.system_prompt)}]},
            *memory.as_contents(sender_id),
        ]

        try:
            data = await self._gateway.complete_ai_prompt(config.api_key, contents)
        except UpstreamCallFailure as e:
            logger.warning("responder.completion_failed", sender=sender_id, error=e.message)
            reply = FALLBACK_REPLY
        else:
            reply = extract_text(data)
            if reply is None:
                logger.warning("responder.empty_completion", sender=sender_id)
                reply = FALLBACK_REPLY

        memory.append(sender_id, "model", reply)
        return reply
