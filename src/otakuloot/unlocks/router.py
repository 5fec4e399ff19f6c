"""Unlock endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.auth.dependencies import get_current_user
from otakuloot.database import get_session
from otakuloot.db.models import User
from otakuloot.unlocks.schemas import UnlocksResponse
from otakuloot.unlocks.service import list_available_characters

router = APIRouter(prefix="/api/v1", tags=["Unlocks"])


@router.get("/users/me/unlocks", response_model=UnlocksResponse)
async def get_my_unlocks(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Shopkeepers available to the current user."""
    return UnlocksResponse(**await list_available_characters(db, user.id))
