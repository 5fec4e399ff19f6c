"""Progression event records and their Redis pub/sub delivery.

Services queue events on an ``EventEmitter`` while a unit of work is open.
The caller publishes them only after the transaction commits, so a
subscriber never sees a level-up or unlock that was rolled back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

LEVEL_UP = "level_up"
UNLOCK = "unlock"


@dataclass(frozen=True)
class ProgressionEvent:
    """Structured event handed to the presentation layer."""

    kind: str
    user_id: int
    payload: dict[str, Any]
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_message(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data


def level_up_event(user_id: int, old_level: int, new_level: int, title: str) -> ProgressionEvent:
    return ProgressionEvent(
        kind=LEVEL_UP,
        user_id=user_id,
        payload={"old_level": old_level, "new_level": new_level, "title": title},
    )


def unlock_event(user_id: int, achievement_id: str, trigger: str, message: str) -> ProgressionEvent:
    return ProgressionEvent(
        kind=UNLOCK,
        user_id=user_id,
        payload={"achievement_id": achievement_id, "trigger": trigger, "message": message},
    )


class EventEmitter:
    """Collects events during a unit of work and publishes them on flush."""

    def __init__(self, redis: object | None = None) -> None:
        self._redis = redis
        self._pending: list[ProgressionEvent] = []

    @property
    def pending(self) -> list[ProgressionEvent]:
        return list(self._pending)

    def emit(self, event: ProgressionEvent) -> None:
        self._pending.append(event)

    def discard(self) -> None:
        """Drop queued events (the unit of work rolled back)."""
        self._pending.clear()

    async def flush(self) -> list[ProgressionEvent]:
        """Publish queued events and return them.

        Delivery is best effort: state is already committed, so a Redis
        failure is logged and does not raise.
        """
        events, self._pending = self._pending, []
        if self._redis is None:
            return events

        for event in events:
            message = json.dumps(event.to_message())
            try:
                # Broadcast for activity feeds, then per-user delivery
                await self._redis.publish(f"pubsub:{event.kind}", message)  # type: ignore[attr-defined]
                await self._redis.publish(  # type: ignore[attr-defined]
                    f"ws:user:{event.user_id}",
                    json.dumps({"event": event.kind, "data": event.payload}),
                )
            except Exception:
                logger.warning("Failed to publish %s event for user %s", event.kind, event.user_id, exc_info=True)
        return events
