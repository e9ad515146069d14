"""Social Hub – WhatsApp Conversation Memory.

Per-sender transcript of (role, text) turns used as AI context. Turns are
appended in call order and never reordered; each transcript keeps only the
most recent ``max_turns`` turns.
"""

import time
from dataclasses import dataclass, field

import structlog

from app.core.store import InMemoryStore, KeyValueStore

logger = structlog.get_logger()

DEFAULT_MAX_TURNS = 40

ROLES = ("user", "model")


@dataclass
class Turn:
    """A single conversation turn."""

    role: str  # 'user' or 'model'
    text: str
    timestamp: float = field(default_factory=time.time)


class ConversationMemory:
    """Bounded per-sender conversation transcripts."""

    def __init__(
        self,
        max_turns: int = DEFAULT_MAX_TURNS,
        store: KeyValueStore[list[Turn]] | None = None,
    ) -> None:
        if max_turns < 2:
            raise ValueError("max_turns must allow at least one user/model pair")
        self._max_turns = max_turns
        self._store: KeyValueStore[list[Turn]] = store if store is not None else InMemoryStore()

    @property
    def max_turns(self) -> int:
        return self._max_turns

    def append(self, sender_id: str, role: str, text: str) -> None:
        """Append a turn, creating the transcript on first use.

        Args:
            sender_id: WhatsApp sender (phone number).
            role: ``user`` or ``model``.
            text: Turn text.
        """
        if role not in ROLES:
            raise ValueError(f"Unknown role: {role!r}")

        turns = self._store.get(sender_id) or []
        turns.append(Turn(role=role, text=text))

        if len(turns) > self._max_turns:
            removed = len(turns) - self._max_turns
            turns = turns[-self._max_turns:]
            # Context sent to the model must open on a user turn.
            while turns and turns[0].role == "model":
                turns = turns[1:]
                removed += 1
            logger.debug("memory.trimmed", sender=sender_id, removed=removed)

        self._store.set(sender_id, turns)

    def turns(self, sender_id: str) -> list[Turn]:
        """Copy of the sender's turns, oldest first."""
        return list(self._store.get(sender_id) or [])

    def as_contents(self, sender_id: str) -> list[dict]:
        """Transcript in Gemini ``contents`` form."""
        return [
            {"role": t.role, "parts": [{"text": t.text}]}
            for t in self.turns(sender_id)
        ]

    def clear(self, sender_id: str) -> None:
        self._store.delete(sender_id)
        logger.info("memory.cleared", sender=sender_id)

    def reset(self) -> None:
        self._store.clear()

    def sender_count(self) -> int:
        return len(self._store)
