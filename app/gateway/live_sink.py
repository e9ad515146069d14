"""Social Hub – Live dashboard sink.

Single-slot push channel: at most one dashboard is attached at a time and a
new attach replaces the previous subscriber. Publishing never raises; the
dashboard being offline must not affect webhook processing.
"""

from __future__ import annotations

from typing import Any, Protocol

import structlog

logger = structlog.get_logger()


class LiveSubscriber(Protocol):
    async def send_json(self, data: Any) -> None: ...


class LiveSink:
    """Mirrors inbound and outbound traffic to the attached dashboard."""

    def __init__(self) -> None:
        self._subscriber: LiveSubscriber | None = None

    @property
    def subscriber(self) -> LiveSubscriber | None:
        return self._subscriber

    @property
    def is_attached(self) -> bool:
        return self._subscriber is not None

    def attach(self, subscriber: LiveSubscriber) -> None:
        if self._subscriber is not None and self._subscriber is not subscriber:
            logger.info("live_sink.replaced")
        self._subscriber = subscriber
        logger.info("live_sink.attached")

    def detach(self, subscriber: LiveSubscriber | None = None) -> None:
        """Clear the slot.

        With ``subscriber`` given, only clears it if that handle is still the
        attached one, so a late disconnect from a replaced socket is a no-op.
        """
        if subscriber is not None and subscriber is not self._subscriber:
            return
        if self._subscriber is not None:
            self._subscriber = None
            logger.info("live_sink.detached")

    async def publish(self, event: dict[str, Any]) -> bool:
        """Push ``event`` to the subscriber. Returns False when nothing was sent."""
        subscriber = self._subscriber
        if subscriber is None:
            return False
        try:
            await subscriber.send_json(event)
        except Exception as e:
            logger.warning("live_sink.publish_failed", event_type=event.get("type"), error=str(e))
            self.detach(subscriber)
            return False
        return True
