"""User account creation and lookup."""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.db.models import Profile, UnlockState, User
from otakuloot.progression.levels import LEVEL_TITLES

logger = logging.getLogger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def create_user(db: AsyncSession, email: str, display_name: str) -> User:
    """Create a user together with a level-1 profile and an empty unlock state.

    Flushes, does not commit.
    """
    user = User(email=email.lower(), display_name=display_name)
    db.add(user)
    await db.flush()

    db.add(Profile(user_id=user.id, xp=0, level=1, current_title=LEVEL_TITLES[1]))
    db.add(UnlockState(
        user_id=user.id,
        total_spent=Decimal("0"),
        fast_add_streak=0,
        recent_add_times=[],
        unlocked_ids=[],
    ))
    await db.flush()
    logger.info("Created user %s", user.id)
    return user


async def get_or_create_user(db: AsyncSession, email: str, display_name: str | None = None) -> tuple[User, bool]:
    """Returns (user, created)."""
    user = await get_user_by_email(db, email)
    if user is not None:
        return user, False
    user = await create_user(db, email, display_name or email.split("@", 1)[0])
    return user, True
