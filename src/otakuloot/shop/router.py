"""Cart, order and checkout endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.auth.dependencies import get_current_user
from otakuloot.database import get_session
from otakuloot.db.models import User
from otakuloot.dependencies import get_redis_dep
from otakuloot.events.emitter import EventEmitter
from otakuloot.progression.schemas import XPAwardResponse
from otakuloot.shop.cart_service import (
    add_to_cart,
    clear_cart,
    get_cart,
    remove_from_cart,
    update_quantity,
)
from otakuloot.shop.order_service import checkout, create_order, get_order, list_orders
from otakuloot.shop.schemas import (
    AddToCartRequest,
    AddToCartResponse,
    CartItemResponse,
    CartResponse,
    CheckoutResponse,
    OrderListResponse,
    OrderResponse,
    UpdateQuantityRequest,
)
from otakuloot.unit_of_work import committing

router = APIRouter(prefix="/api/v1", tags=["Shop"])


# ── Cart ──


@router.get("/cart", response_model=CartResponse)
async def get_my_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    items = await get_cart(db, user.id)
    return CartResponse(
        items=[CartItemResponse.model_validate(i) for i in items],
        total_items=sum(i.quantity for i in items),
    )


@router.post("/cart/items", response_model=AddToCartResponse)
async def add_cart_item(
    body: AddToCartRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Add a product to the cart. Rapid adds count toward the streak unlock."""
    emitter = EventEmitter(redis)
    async with committing(db, emitter):
        item, unlocked = await add_to_cart(
            db, user.id, body.product_id, body.quantity, body.variant_id, emitter=emitter
        )
    return AddToCartResponse(item=CartItemResponse.model_validate(item), unlocked=list(unlocked))


@router.patch("/cart/items/{item_id}", response_model=CartItemResponse | None)
async def update_cart_item(
    item_id: int,
    body: UpdateQuantityRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Set a line's quantity; zero or less removes it."""
    async with committing(db):
        item = await update_quantity(db, user.id, item_id, body.quantity)
    return CartItemResponse.model_validate(item) if item is not None else None


@router.delete("/cart/items/{item_id}", status_code=204)
async def delete_cart_item(
    item_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    async with committing(db):
        await remove_from_cart(db, user.id, item_id)
    return Response(status_code=204)


@router.delete("/cart", status_code=204)
async def clear_my_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    async with committing(db):
        await clear_cart(db, user.id)
    return Response(status_code=204)


# ── Orders ──


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def create_my_order(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Turn the cart into an order. The cart is emptied in the same transaction."""
    order = await create_order(db, user.id)
    return OrderResponse.model_validate(order)


@router.post("/checkout", response_model=CheckoutResponse, status_code=201)
async def checkout_my_cart(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Create the order, grant purchase XP and record the spend in one transaction."""
    result = await checkout(db, user.id, redis=redis)
    return CheckoutResponse(
        order=OrderResponse.model_validate(result.order),
        xp=XPAwardResponse(
            new_xp=result.xp.new_xp,
            new_level=result.xp.new_level,
            leveled_up=result.xp.leveled_up,
            new_title=result.xp.new_title,
        ),
        unlocked=list(result.unlocked),
    )


@router.get("/orders", response_model=OrderListResponse)
async def list_my_orders(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    orders = await list_orders(db, user.id)
    return OrderListResponse(orders=[OrderResponse.model_validate(o) for o in orders])


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    return OrderResponse.model_validate(await get_order(db, user.id, order_id))
