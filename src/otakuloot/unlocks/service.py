"""Persistence side of the unlock tracker."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from otakuloot.config import get_settings
from otakuloot.db.models import UnlockState
from otakuloot.errors import ConflictError, NotFoundError
from otakuloot.events.emitter import EventEmitter, unlock_event
from otakuloot.unlocks.tracker import (
    STARTER_CHARACTERS,
    UNLOCK_MESSAGES,
    UnlockRules,
    UnlockSnapshot,
    UnlockStep,
    record_add,
    record_spend,
)

logger = logging.getLogger(__name__)


async def get_unlock_state(db: AsyncSession, user_id: int) -> UnlockState:
    result = await db.execute(select(UnlockState).where(UnlockState.user_id == user_id))
    state = result.scalar_one_or_none()
    if state is None:
        msg = "Unlock state not found"
        raise NotFoundError(msg)
    return state


def to_snapshot(row: UnlockState) -> UnlockSnapshot:
    return UnlockSnapshot(
        total_spent=Decimal(row.total_spent),
        fast_add_streak=row.fast_add_streak,
        last_add_at=row.last_add_at,
        recent_add_times=tuple(row.recent_add_times or ()),
        unlocked_ids=frozenset(row.unlocked_ids or ()),
    )


async def _commit_step(
    db: AsyncSession,
    row: UnlockState,
    step: UnlockStep,
    trigger: str,
    emitter: EventEmitter | None,
) -> tuple[str, ...]:
    snapshot = step.state
    row.total_spent = snapshot.total_spent
    row.fast_add_streak = snapshot.fast_add_streak
    row.last_add_at = snapshot.last_add_at
    row.recent_add_times = list(snapshot.recent_add_times)
    # Append in unlock order so earlier unlocks keep their position
    row.unlocked_ids = list(row.unlocked_ids or []) + list(step.unlocked)
    row.updated_at = datetime.now(timezone.utc)

    try:
        await db.flush()
    except StaleDataError as exc:
        msg = "Unlock state was updated concurrently"
        raise ConflictError(msg) from exc

    for achievement_id in step.unlocked:
        logger.info("User %s unlocked %s via %s", row.user_id, achievement_id, trigger)
        if emitter is not None:
            emitter.emit(unlock_event(
                row.user_id,
                achievement_id,
                trigger,
                UNLOCK_MESSAGES.get(achievement_id, f"{achievement_id} is now unlocked!"),
            ))
    return step.unlocked


async def track_spend(
    db: AsyncSession,
    user_id: int,
    amount: Decimal,
    *,
    rules: UnlockRules | None = None,
    emitter: EventEmitter | None = None,
) -> tuple[str, ...]:
    """Add a completed purchase to the spend total. Returns newly unlocked ids."""
    rules = rules or UnlockRules.from_settings(get_settings())
    row = await get_unlock_state(db, user_id)
    step = record_spend(to_snapshot(row), amount, rules)
    return await _commit_step(db, row, step, "spend", emitter)


async def track_cart_add(
    db: AsyncSession,
    user_id: int,
    now: datetime | None = None,
    *,
    rules: UnlockRules | None = None,
    emitter: EventEmitter | None = None,
) -> tuple[str, ...]:
    """Register a cart-add event. Returns newly unlocked ids."""
    rules = rules or UnlockRules.from_settings(get_settings())
    if now is None:
        now = datetime.now(timezone.utc)
    row = await get_unlock_state(db, user_id)
    step = record_add(to_snapshot(row), now, rules)
    return await _commit_step(db, row, step, "streak", emitter)


async def list_available_characters(db: AsyncSession, user_id: int) -> dict:
    """Starter shopkeepers plus everything the user has unlocked."""
    row = await get_unlock_state(db, user_id)
    unlocked = list(row.unlocked_ids or [])
    return {
        "starters": list(STARTER_CHARACTERS),
        "unlocked": unlocked,
        "available": list(STARTER_CHARACTERS) + [u for u in unlocked if u not in STARTER_CHARACTERS],
        "total_spent": Decimal(row.total_spent),
        "fast_add_streak": row.fast_add_streak,
    }
