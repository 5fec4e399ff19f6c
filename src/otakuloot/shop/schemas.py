"""Pydantic request/response models for cart and order endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from otakuloot.progression.schemas import XPAwardResponse


class AddToCartRequest(BaseModel):
    product_id: int
    quantity: int = 1
    variant_id: int | None = None


class UpdateQuantityRequest(BaseModel):
    quantity: int


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    variant_id: int | None = None
    quantity: int


class CartResponse(BaseModel):
    items: list[CartItemResponse]
    total_items: int


class AddToCartResponse(BaseModel):
    item: CartItemResponse
    unlocked: list[str] = []


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: int
    variant_id: int | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: str
    total: Decimal
    created_at: datetime
    items: list[OrderItemResponse]


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]


class CheckoutResponse(BaseModel):
    order: OrderResponse
    xp: XPAwardResponse
    unlocked: list[str]
