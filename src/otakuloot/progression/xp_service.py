"""XP award service with level-up detection and an append-only ledger."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from otakuloot.db.base import MAX_INT_COLUMN
from otakuloot.db.models import Profile, XPLedger
from otakuloot.errors import ConflictError, InvalidArgumentError, NotFoundError
from otakuloot.events.emitter import EventEmitter, level_up_event
from otakuloot.progression.levels import advance_level, compute_progress, title_for_level

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class XPAward:
    """Outcome of one award_xp call."""

    new_xp: int
    new_level: int
    leveled_up: bool
    new_title: str
    old_level: int
    granted: bool = True


def validate_xp_amount(amount: object) -> int:
    """Reject anything but a non-negative integer that fits the ledger column."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        msg = "XP amount must be an integer"
        raise InvalidArgumentError(msg)
    if amount < 0:
        msg = "XP amount must not be negative"
        raise InvalidArgumentError(msg)
    if amount > MAX_INT_COLUMN:
        msg = f"XP amount must not exceed {MAX_INT_COLUMN}"
        raise InvalidArgumentError(msg)
    return amount


async def get_profile(db: AsyncSession, user_id: int) -> Profile:
    """Fetch a user's profile or raise NotFoundError."""
    result = await db.execute(select(Profile).where(Profile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        msg = "Profile not found"
        raise NotFoundError(msg)
    return profile


async def award_xp(
    db: AsyncSession,
    user_id: int,
    amount: int,
    *,
    source: str = "manual",
    source_id: str | None = None,
    description: str | None = None,
    idempotency_key: str | None = None,
    emitter: EventEmitter | None = None,
) -> XPAward:
    """Add XP to a profile and climb levels. Flushes, does not commit.

    1. Append to xp_ledger (skipped for a zero amount without a key)
    2. Accrue profile.xp
    3. Advance level from the current level, title from the new level
    4. If the level changed, queue a level_up event

    A grant whose idempotency_key is already in the ledger changes nothing
    and returns granted=False. A concurrent writer on the same profile
    surfaces as ConflictError.
    """
    amount = validate_xp_amount(amount)
    profile = await get_profile(db, user_id)
    old_level = profile.level

    if idempotency_key is not None:
        existing = await db.execute(
            select(XPLedger.id).where(XPLedger.idempotency_key == idempotency_key)
        )
        if existing.scalar_one_or_none() is not None:
            return XPAward(
                new_xp=profile.xp,
                new_level=profile.level,
                leveled_up=False,
                new_title=profile.current_title,
                old_level=old_level,
                granted=False,
            )

    now = datetime.now(timezone.utc)
    if amount > 0 or idempotency_key is not None:
        db.add(XPLedger(
            user_id=user_id,
            amount=amount,
            source=source,
            source_id=source_id,
            description=description,
            idempotency_key=idempotency_key,
            created_at=now,
        ))

    new_xp = profile.xp + amount
    new_level, leveled_up = advance_level(old_level, new_xp)
    new_title = title_for_level(new_level, profile.current_title)

    profile.xp = new_xp
    profile.level = new_level
    profile.current_title = new_title
    profile.updated_at = now

    try:
        await db.flush()
    except StaleDataError as exc:
        msg = "Profile was updated concurrently"
        raise ConflictError(msg) from exc
    except IntegrityError as exc:
        msg = "XP grant already recorded"
        raise ConflictError(msg) from exc

    if leveled_up:
        logger.info("User %s leveled up: %d -> %d (%s)", user_id, old_level, new_level, new_title)
        if emitter is not None:
            emitter.emit(level_up_event(user_id, old_level, new_level, new_title))

    return XPAward(
        new_xp=new_xp,
        new_level=new_level,
        leveled_up=leveled_up,
        new_title=new_title,
        old_level=old_level,
    )


async def get_progress(db: AsyncSession, user_id: int) -> dict:
    """Read-only progress view of a user's profile."""
    profile = await get_profile(db, user_id)
    progress = compute_progress(profile.level, profile.xp)
    progress["current_title"] = profile.current_title
    return progress
