"""Commit-then-publish boundary shared by the write endpoints."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from otakuloot.events.emitter import EventEmitter


@asynccontextmanager
async def committing(db: AsyncSession, emitter: EventEmitter | None = None) -> AsyncIterator[None]:
    """Commit on success, roll back on error; publish queued events after commit."""
    try:
        yield
        await db.commit()
    except Exception:
        await db.rollback()
        if emitter is not None:
            emitter.discard()
        raise
    if emitter is not None:
        await emitter.flush()
