"""User creation seeds progression and unlock rows."""

from __future__ import annotations

from decimal import Decimal

import pytest

from otakuloot.progression.xp_service import get_profile
from otakuloot.unlocks.service import get_unlock_state
from otakuloot.users.service import create_user, get_or_create_user, get_user_by_id


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_seeds_profile_and_unlock_state(self, db_session):
        user = await create_user(db_session, "Fresh@Example.com", "Fresh")
        await db_session.commit()

        assert user.email == "fresh@example.com"
        profile = await get_profile(db_session, user.id)
        assert (profile.xp, profile.level, profile.current_title) == (0, 1, "Newbie Shopper")
        state = await get_unlock_state(db_session, user.id)
        assert Decimal(state.total_spent) == Decimal("0")
        assert state.unlocked_ids == []


class TestGetOrCreateUser:
    @pytest.mark.asyncio
    async def test_creates_once(self, db_session):
        first, created = await get_or_create_user(db_session, "kid@example.com")
        await db_session.commit()
        again, created_again = await get_or_create_user(db_session, "KID@example.com")

        assert created is True
        assert created_again is False
        assert again.id == first.id
        assert first.display_name == "kid"

    @pytest.mark.asyncio
    async def test_lookup_by_id(self, db_session, user):
        assert (await get_user_by_id(db_session, user.id)).email == "player@example.com"
        assert await get_user_by_id(db_session, user.id + 999) is None
