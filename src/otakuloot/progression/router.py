"""Progression API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.auth.dependencies import get_current_user
from otakuloot.database import get_session
from otakuloot.db.models import User, XPLedger
from otakuloot.dependencies import get_redis_dep
from otakuloot.events.emitter import EventEmitter
from otakuloot.progression.levels import LEVEL_THRESHOLDS, LEVEL_TITLES
from otakuloot.progression.schemas import (
    AllLevelsResponse,
    AwardXPRequest,
    LevelEntry,
    ProgressResponse,
    XPAwardResponse,
    XPHistoryEntry,
    XPHistoryResponse,
)
from otakuloot.progression.xp_service import award_xp, get_progress
from otakuloot.unit_of_work import committing

router = APIRouter(prefix="/api/v1", tags=["Progression"])


@router.get("/levels", response_model=AllLevelsResponse)
async def list_levels():
    """Get all level definitions."""
    return AllLevelsResponse(
        levels=[
            LevelEntry(level=i + 1, title=LEVEL_TITLES[i + 1], xp_required=floor)
            for i, floor in enumerate(LEVEL_THRESHOLDS)
        ]
    )


@router.get("/users/me/progress", response_model=ProgressResponse)
async def get_my_progress(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Current level, XP and progress toward the next level."""
    return ProgressResponse(**await get_progress(db, user.id))


@router.post("/users/me/xp", response_model=XPAwardResponse)
async def award_my_xp(
    body: AwardXPRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
    redis: object | None = Depends(get_redis_dep),
):
    """Award XP to the current user."""
    emitter = EventEmitter(redis)
    async with committing(db, emitter):
        award = await award_xp(db, user.id, body.amount, source="manual", emitter=emitter)
    return XPAwardResponse(
        new_xp=award.new_xp,
        new_level=award.new_level,
        leveled_up=award.leveled_up,
        new_title=award.new_title,
    )


@router.get("/users/me/xp/history", response_model=XPHistoryResponse)
async def get_xp_history(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Paginated XP ledger of the current user, newest first."""
    total = await db.execute(
        select(func.count()).select_from(XPLedger).where(XPLedger.user_id == user.id)
    )
    result = await db.execute(
        select(XPLedger)
        .where(XPLedger.user_id == user.id)
        .order_by(XPLedger.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return XPHistoryResponse(
        entries=[
            XPHistoryEntry(
                amount=e.amount,
                source=e.source,
                source_id=e.source_id,
                description=e.description,
                created_at=e.created_at,
            )
            for e in result.scalars()
        ],
        total=total.scalar_one(),
        page=page,
        per_page=per_page,
    )
