"""Unit price lookup for order settlement."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.db.models import Product


class PriceResolver(Protocol):
    """Returns current unit prices keyed by product id.

    Products that no longer exist are simply absent from the result; the
    caller decides what a missing price means.
    """

    async def resolve(self, product_ids: Iterable[int]) -> dict[int, Decimal]: ...


class CatalogPriceResolver:
    """Reads prices from the catalog tables in the caller's session."""

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def resolve(self, product_ids: Iterable[int]) -> dict[int, Decimal]:
        ids = list(set(product_ids))
        if not ids:
            return {}
        result = await self._db.execute(
            select(Product.id, Product.price).where(Product.id.in_(ids))
        )
        return {row.id: Decimal(row.price) for row in result}
