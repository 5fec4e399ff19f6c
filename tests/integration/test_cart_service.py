"""Cart operations and the rapid-add streak they feed."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from otakuloot.db.models import ProductVariant
from otakuloot.errors import InvalidArgumentError, NotFoundError
from otakuloot.events.emitter import UNLOCK, EventEmitter
from otakuloot.shop.cart_service import (
    add_to_cart,
    clear_cart,
    get_cart,
    remove_from_cart,
    update_quantity,
)
from otakuloot.unlocks.service import get_unlock_state
from otakuloot.users.service import create_user

T0 = datetime(2026, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


class TestAddToCart:
    """Adding, merging and validating cart lines."""

    @pytest.mark.asyncio
    async def test_add_creates_line(self, db_session, user, products):
        item, unlocked = await add_to_cart(db_session, user.id, products["katana"].id, 2, now=T0)
        await db_session.commit()

        assert item.quantity == 2
        assert unlocked == ()
        assert [i.id for i in await get_cart(db_session, user.id)] == [item.id]

    @pytest.mark.asyncio
    async def test_same_product_merges(self, db_session, user, products):
        first, _ = await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0)
        second, _ = await add_to_cart(db_session, user.id, products["katana"].id, 3, now=T0 + timedelta(seconds=30))

        assert first.id == second.id
        assert second.quantity == 4
        assert len(await get_cart(db_session, user.id)) == 1

    @pytest.mark.asyncio
    async def test_variant_gets_its_own_line(self, db_session, user, products):
        hoodie = products["hoodie"]
        variant = (await db_session.execute(
            select(ProductVariant).where(ProductVariant.product_id == hoodie.id)
        )).scalar_one()

        await add_to_cart(db_session, user.id, hoodie.id, 1, now=T0)
        await add_to_cart(db_session, user.id, hoodie.id, 1, variant.id, now=T0 + timedelta(seconds=30))

        lines = await get_cart(db_session, user.id)
        assert [(line.variant_id, line.quantity) for line in lines] == [(None, 1), (variant.id, 1)]

    @pytest.mark.asyncio
    async def test_unknown_product(self, db_session, user, products):
        with pytest.raises(NotFoundError):
            await add_to_cart(db_session, user.id, 987654, 1)

    @pytest.mark.asyncio
    async def test_variant_of_other_product(self, db_session, user, products):
        variant = (await db_session.execute(select(ProductVariant))).scalars().first()
        with pytest.raises(NotFoundError):
            await add_to_cart(db_session, user.id, products["katana"].id, 1, variant.id)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("quantity", [0, -2, 1.5, True, 2**31])
    async def test_rejects_bad_quantity(self, db_session, user, products, quantity):
        with pytest.raises(InvalidArgumentError):
            await add_to_cart(db_session, user.id, products["katana"].id, quantity)


class TestQuantityLimits:
    """Quantities must fit the cart_items.quantity column."""

    @pytest.mark.asyncio
    async def test_merge_past_column_limit_rejected(self, db_session, user, products):
        item, _ = await add_to_cart(db_session, user.id, products["katana"].id, 2**31 - 1, now=T0)

        with pytest.raises(InvalidArgumentError):
            await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0 + timedelta(seconds=30))
        assert item.quantity == 2**31 - 1

    @pytest.mark.asyncio
    async def test_update_past_column_limit_rejected(self, db_session, user, products):
        item, _ = await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0)

        with pytest.raises(InvalidArgumentError):
            await update_quantity(db_session, user.id, item.id, 2**31)
        assert item.quantity == 1


class TestRapidAddStreak:
    """Cart adds drive the streak unlock."""

    @pytest.mark.asyncio
    async def test_five_quick_adds_unlock_anya(self, db_session, user, products):
        emitter = EventEmitter()
        results = []
        for i in range(5):
            _, unlocked = await add_to_cart(
                db_session, user.id, products["katana"].id, now=T0 + timedelta(seconds=i), emitter=emitter
            )
            results.append(unlocked)
        await db_session.commit()

        assert results == [(), (), (), (), ("anya",)]
        assert [e.kind for e in emitter.pending] == [UNLOCK]
        assert emitter.pending[0].payload["achievement_id"] == "anya"
        assert emitter.pending[0].payload["trigger"] == "streak"

        state = await get_unlock_state(db_session, user.id)
        assert state.unlocked_ids == ["anya"]
        assert state.fast_add_streak == 5

    @pytest.mark.asyncio
    async def test_idle_gap_resets_streak(self, db_session, user, products):
        offsets = [0, 1, 8, 9, 10]
        unlocked = []
        for offset in offsets:
            _, step = await add_to_cart(db_session, user.id, products["katana"].id, now=T0 + timedelta(seconds=offset))
            unlocked.extend(step)

        assert unlocked == []
        assert (await get_unlock_state(db_session, user.id)).fast_add_streak == 3


class TestEditCart:
    @pytest.mark.asyncio
    async def test_update_quantity(self, db_session, user, products):
        item, _ = await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0)
        updated = await update_quantity(db_session, user.id, item.id, 7)
        assert updated is not None
        assert updated.quantity == 7

    @pytest.mark.asyncio
    async def test_update_to_zero_removes_line(self, db_session, user, products):
        item, _ = await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0)
        assert await update_quantity(db_session, user.id, item.id, 0) is None
        assert await get_cart(db_session, user.id) == []

    @pytest.mark.asyncio
    async def test_update_rejects_non_integer(self, db_session, user, products):
        item, _ = await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0)
        with pytest.raises(InvalidArgumentError):
            await update_quantity(db_session, user.id, item.id, "3")

    @pytest.mark.asyncio
    async def test_remove_line(self, db_session, user, products):
        item, _ = await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0)
        await remove_from_cart(db_session, user.id, item.id)
        assert await get_cart(db_session, user.id) == []

    @pytest.mark.asyncio
    async def test_cannot_touch_another_users_line(self, db_session, user, products):
        other = await create_user(db_session, "rival@example.com", "Rival")
        item, _ = await add_to_cart(db_session, other.id, products["katana"].id, 1, now=T0)

        with pytest.raises(NotFoundError):
            await remove_from_cart(db_session, user.id, item.id)
        with pytest.raises(NotFoundError):
            await update_quantity(db_session, user.id, item.id, 3)

    @pytest.mark.asyncio
    async def test_clear_cart(self, db_session, user, products):
        await add_to_cart(db_session, user.id, products["katana"].id, 1, now=T0)
        await add_to_cart(db_session, user.id, products["headband"].id, 1, now=T0 + timedelta(seconds=30))
        await db_session.commit()

        assert await clear_cart(db_session, user.id) == 2
        await db_session.commit()
        assert await get_cart(db_session, user.id) == []
