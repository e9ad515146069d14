"""Social Hub – Gemini completion client.

A single ``generateContent`` call per request; the API key is supplied per
call from the AI configuration.
"""
import time
from typing import Any

import structlog

from app.integrations.graph import post_json

logger = structlog.get_logger()


def extract_text(data: dict[str, Any]) -> str | None:
    """First candidate's first text part, stripped; None if absent or blank."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(text, str):
        return None
    return text.strip() or None


def _usage_tokens(data: dict[str, Any]) -> int:
    usage = data.get("usageMetadata") or {}
    return int(usage.get("totalTokenCount") or 0)


class GeminiClient:
    """Client for the Gemini ``generateContent`` endpoint."""

    target = "gemini"

    def __init__(
        self,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        model: str = "gemini-2.0-flash",
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    async def generate(self, contents: list[dict[str, Any]], api_key: str) -> dict[str, Any]:
        """Run one completion and return the raw response body.

        Raises:
            UpstreamCallFailure: transport error, timeout or non-2xx status.
        """
        start_time = time.time()
        data = await post_json(
            f"{self.base_url}/models/{self.model}:generateContent",
            target=self.target,
            timeout=self.timeout,
            fallback="AI completion failed",
            params={"key": api_key},
            json={"contents": contents},
        )
        logger.info(
            "llm.success",
            model=self.model,
            latency_ms=round((time.time() - start_time) * 1000),
            tokens=_usage_tokens(data),
        )
        return data
