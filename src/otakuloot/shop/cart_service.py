"""Cart operations. Each cart add also feeds the rapid-add unlock streak."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.db.base import MAX_INT_COLUMN
from otakuloot.db.models import CartItem, Product, ProductVariant
from otakuloot.errors import InvalidArgumentError, NotFoundError
from otakuloot.events.emitter import EventEmitter
from otakuloot.unlocks.service import track_cart_add

logger = logging.getLogger(__name__)


def _check_quantity_limit(quantity: int) -> None:
    if quantity > MAX_INT_COLUMN:
        msg = f"Quantity must not exceed {MAX_INT_COLUMN}"
        raise InvalidArgumentError(msg)


def _validate_quantity(quantity: object) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        msg = "Quantity must be a positive integer"
        raise InvalidArgumentError(msg)
    _check_quantity_limit(quantity)
    return quantity


async def get_cart(db: AsyncSession, user_id: int) -> list[CartItem]:
    """Cart lines in insertion order."""
    result = await db.execute(
        select(CartItem).where(CartItem.user_id == user_id).order_by(CartItem.id.asc())
    )
    return list(result.scalars().all())


async def _get_own_item(db: AsyncSession, user_id: int, item_id: int) -> CartItem:
    result = await db.execute(
        select(CartItem).where(CartItem.id == item_id, CartItem.user_id == user_id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        msg = "Cart item not found"
        raise NotFoundError(msg)
    return item


async def add_to_cart(
    db: AsyncSession,
    user_id: int,
    product_id: int,
    quantity: int = 1,
    variant_id: int | None = None,
    *,
    now: datetime | None = None,
    emitter: EventEmitter | None = None,
) -> tuple[CartItem, tuple[str, ...]]:
    """Add a product (optionally a variant) to the cart, merging with an existing line.

    Returns the cart line and the shopkeepers unlocked by this add.
    """
    quantity = _validate_quantity(quantity)

    product = await db.get(Product, product_id)
    if product is None:
        msg = "Product not found"
        raise NotFoundError(msg)
    if variant_id is not None:
        variant = await db.get(ProductVariant, variant_id)
        if variant is None or variant.product_id != product_id:
            msg = "Variant not found"
            raise NotFoundError(msg)

    variant_clause = CartItem.variant_id.is_(None) if variant_id is None else CartItem.variant_id == variant_id
    result = await db.execute(
        select(CartItem).where(
            CartItem.user_id == user_id,
            CartItem.product_id == product_id,
            variant_clause,
        )
    )
    item = result.scalar_one_or_none()
    if item is None:
        item = CartItem(user_id=user_id, product_id=product_id, variant_id=variant_id, quantity=quantity)
        db.add(item)
    else:
        _check_quantity_limit(item.quantity + quantity)
        item.quantity += quantity

    # Shares the transaction with the cart write: the streak row's version
    # also serializes concurrent adds for the same user.
    unlocked = await track_cart_add(db, user_id, now, emitter=emitter)
    await db.flush()
    return item, unlocked


async def remove_from_cart(db: AsyncSession, user_id: int, item_id: int) -> CartItem:
    item = await _get_own_item(db, user_id, item_id)
    await db.delete(item)
    await db.flush()
    return item


async def update_quantity(db: AsyncSession, user_id: int, item_id: int, quantity: int) -> CartItem | None:
    """Set a line's quantity. Zero or less removes the line and returns None."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        msg = "Quantity must be an integer"
        raise InvalidArgumentError(msg)
    if quantity <= 0:
        await remove_from_cart(db, user_id, item_id)
        return None
    _check_quantity_limit(quantity)

    item = await _get_own_item(db, user_id, item_id)
    item.quantity = quantity
    await db.flush()
    return item


async def clear_cart(db: AsyncSession, user_id: int) -> int:
    """Delete every cart line of the user. Returns the number removed."""
    result = await db.execute(delete(CartItem).where(CartItem.user_id == user_id))
    logger.debug("Cleared %d cart items for user %s", result.rowcount, user_id)
    return result.rowcount
