"""Social Hub – AI Responder Tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.assistant.llm import extract_text
from app.assistant.responder import (
    BASELINE_PERSONA,
    FALLBACK_REPLY,
    AIResponder,
    compose_system_prompt,
)
from app.core.exceptions import UpstreamCallFailure
from app.gateway.schemas import AIConfig
from app.memory.context import ConversationMemory

CONFIG = AIConfig(api_key="gemini-key", system_prompt="We sell shoes.", whatsapp_token="wa-token")


def _completion(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


class TestPrompt:

    def test_baseline_only_when_operator_prompt_empty(self) -> None:
        assert compose_system_prompt("") == BASELINE_PERSONA
        assert compose_system_prompt("   ") == BASELINE_PERSONA

    def test_operator_prompt_appended_on_new_line(self) -> None:
        assert compose_system_prompt("We sell shoes.") == f"{BASELINE_PERSONA}\nWe sell shoes."

    def test_extract_text(self) -> None:
        assert extract_text(_completion("  Hi!  ")) == "Hi!"
        assert extract_text({"candidates": []}) is None
        assert extract_text({"candidates": [{"content": {"parts": [{}]}}]}) is None


class TestAIResponder:

    def setup_method(self) -> None:
        self.gateway = MagicMock()
        self.gateway.complete_ai_prompt = AsyncMock(return_value=_completion("Sure, size 42 is in stock."))
        self.responder = AIResponder(self.gateway)
        self.memory = ConversationMemory()

    @pytest.mark.anyio
    async def test_returns_first_candidate_text(self) -> None:
        reply = await self.responder.respond("4915", "Do you have size 42?", CONFIG, self.memory)
        assert reply == "Sure, size 42 is in stock."

    @pytest.mark.anyio
    async def test_prompt_is_persona_then_history_then_new_turn(self) -> None:
        self.memory.append("4915", "user", "Hi")
        self.memory.append("4915", "model", "Hello!")

        await self.responder.respond("4915", "Do you have size 42?", CONFIG, self.memory)

        api_key, contents = self.gateway.complete_ai_prompt.call_args.args
        assert api_key == "gemini-key"
        assert contents[0] == {"role": "user", "parts": [{"text": f"{BASELINE_PERSONA}\nWe sell shoes."}]}
        assert [(c["role"], c["parts"][0]["text"]) for c in contents[1:]] == [
            ("user", "Hi"),
            ("model", "Hello!"),
            ("user", "Do you have size 42?"),
        ]

    @pytest.mark.anyio
    async def test_upstream_failure_returns_fallback(self) -> None:
        self.gateway.complete_ai_prompt = AsyncMock(
            side_effect=UpstreamCallFailure("AI completion failed: timed out after 10s", target="gemini")
        )
        reply = await self.responder.respond("4915", "hello?", CONFIG, self.memory)
        assert reply == FALLBACK_REPLY

    @pytest.mark.anyio
    async def test_response_without_text_returns_fallback(self) -> None:
        self.gateway.complete_ai_prompt = AsyncMock(return_value={"candidates": []})
        assert await self.responder.respond("4915", "hello?", CONFIG, self.memory) == FALLBACK_REPLY

    @pytest.mark.anyio
    async def test_user_turn_recorded_even_when_call_fails(self) -> None:
        self.gateway.complete_ai_prompt = AsyncMock(side_effect=UpstreamCallFailure("down"))
        await self.responder.respond("4915", "hello?", CONFIG, self.memory)
        assert [(t.role, t.text) for t in self.memory.turns("4915")] == [
            ("user", "hello?"),
            ("model", FALLBACK_REPLY),
        ]

    @pytest.mark.anyio
    async def test_sequential_messages_alternate_roles(self) -> None:
        replies = iter(["r1", "r2", "r3"])
        self.gateway.complete_ai_prompt = AsyncMock(side_effect=lambda *a: _completion(next(replies)))

        for text in ("m1", "m2", "m3"):
            await self.responder.respond("4915", text, CONFIG, self.memory)

        turns = self.memory.turns("4915")
        assert [t.role for t in turns] == ["user", "model"] * 3
        assert [t.text for t in turns] == ["m1", "r1", "m2", "r2", "m3", "r3"]
