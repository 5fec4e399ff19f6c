"""Domain errors raised by the progression, settlement and unlock services.

Each error carries the HTTP status the API layer answers with; the services
themselves never catch them.
"""

from __future__ import annotations


class OtakuLootError(Exception):
    """Base class for domain errors."""

    status_code: int = 400

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class NotFoundError(OtakuLootError):
    """A profile, cart item, product or variant does not exist."""

    status_code = 404


class InvalidArgumentError(OtakuLootError):
    """Negative XP amount, non-positive quantity and similar caller mistakes."""

    status_code = 422


class EmptyCartError(OtakuLootError):
    """Checkout attempted with no cart items."""

    status_code = 409

    def __init__(self, detail: str = "Cart is empty") -> None:
        super().__init__(detail)


class ConflictError(OtakuLootError):
    """A concurrent update won the race for the same row."""

    status_code = 409
