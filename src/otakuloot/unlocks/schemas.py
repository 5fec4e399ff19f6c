"""Pydantic response models for unlock endpoints."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel


class UnlocksResponse(BaseModel):
    starters: list[str]
    unlocked: list[str]
    available: list[str]
    total_spent: Decimal
    fast_add_streak: int
