"""Order settlement: cart -> immutable order with price snapshots.

Order creation and cart clearing happen in one transaction. ``checkout``
extends that transaction with the purchase XP grant and the spend unlock
check, so a purchase is rewarded exactly when its order exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.config import Settings, get_settings
from otakuloot.db.models import CartItem, Order, OrderItem, OrderStatus
from otakuloot.errors import ConflictError, EmptyCartError, NotFoundError
from otakuloot.events.emitter import EventEmitter
from otakuloot.progression.xp_service import XPAward, award_xp
from otakuloot.shop.cart_service import get_cart
from otakuloot.shop.pricing import CatalogPriceResolver, PriceResolver
from otakuloot.unit_of_work import committing
from otakuloot.unlocks.service import track_spend
from otakuloot.unlocks.tracker import UnlockRules

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    xp: XPAward
    unlocked: tuple[str, ...]


async def settle_cart(db: AsyncSession, user_id: int, resolver: PriceResolver) -> Order:
    """Build the order from the cart and delete the cart lines. Flushes, does not commit.

    Raises EmptyCartError for an empty cart and NotFoundError when a cart
    line points at a product the catalog no longer has. Nothing is written
    in either case.
    """
    items = await get_cart(db, user_id)
    if not items:
        raise EmptyCartError

    product_ids = sorted({item.product_id for item in items})
    prices = await resolver.resolve(product_ids)
    missing = [pid for pid in product_ids if pid not in prices]
    if missing:
        msg = f"Products no longer available: {', '.join(str(pid) for pid in missing)}"
        raise NotFoundError(msg)

    lines: list[OrderItem] = []
    total = Decimal("0.00")
    for position, item in enumerate(items):
        unit_price = Decimal(prices[item.product_id]).quantize(CENTS)
        line_total = (unit_price * item.quantity).quantize(CENTS)
        total += line_total
        lines.append(OrderItem(
            position=position,
            product_id=item.product_id,
            variant_id=item.variant_id,
            quantity=item.quantity,
            unit_price=unit_price,
            line_total=line_total,
        ))

    order = Order(
        user_id=user_id,
        status=OrderStatus.PENDING.value,
        total=total,
        created_at=datetime.now(timezone.utc),
        items=lines,
    )
    db.add(order)

    # Delete exactly the lines that were priced; anything else means a
    # concurrent checkout or cart edit got there first.
    item_ids = [item.id for item in items]
    result = await db.execute(
        delete(CartItem)
        .where(CartItem.user_id == user_id, CartItem.id.in_(item_ids))
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount != len(item_ids):
        msg = "Cart changed during checkout"
        raise ConflictError(msg)

    await db.flush()
    logger.info("Order %s settled for user %s: %d lines, total %s", order.id, user_id, len(lines), total)
    return order


async def create_order(
    db: AsyncSession,
    user_id: int,
    resolver: PriceResolver | None = None,
) -> Order:
    """Settle the cart into an order and commit both effects together."""
    resolver = resolver or CatalogPriceResolver(db)
    async with committing(db):
        order = await settle_cart(db, user_id, resolver)
    return order


async def checkout(
    db: AsyncSession,
    user_id: int,
    *,
    redis: object | None = None,
    resolver: PriceResolver | None = None,
    settings: Settings | None = None,
) -> CheckoutResult:
    """Settle the cart, grant purchase XP and record the spend atomically.

    Level-up and unlock events are published only once the transaction
    has committed.
    """
    settings = settings or get_settings()
    resolver = resolver or CatalogPriceResolver(db)
    emitter = EventEmitter(redis)

    async with committing(db, emitter):
        order = await settle_cart(db, user_id, resolver)
        xp = await award_xp(
            db,
            user_id,
            settings.xp_per_order_line * len(order.items),
            source="purchase",
            source_id=str(order.id),
            description=f"Order #{order.id}",
            idempotency_key=f"order:{order.id}",
            emitter=emitter,
        )
        unlocked = await track_spend(
            db, user_id, order.total, rules=UnlockRules.from_settings(settings), emitter=emitter
        )

    return CheckoutResult(order=order, xp=xp, unlocked=unlocked)


async def get_order(db: AsyncSession, user_id: int, order_id: int) -> Order:
    result = await db.execute(
        select(Order).where(Order.id == order_id, Order.user_id == user_id)
    )
    order = result.scalar_one_or_none()
    if order is None:
        msg = "Order not found"
        raise NotFoundError(msg)
    return order


async def list_orders(db: AsyncSession, user_id: int) -> list[Order]:
    result = await db.execute(
        select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())
