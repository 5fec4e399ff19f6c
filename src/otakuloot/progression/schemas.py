"""Pydantic request/response models for progression endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class AwardXPRequest(BaseModel):
    amount: int


class XPAwardResponse(BaseModel):
    new_xp: int
    new_level: int
    leveled_up: bool
    new_title: str


class ProgressResponse(BaseModel):
    level: int
    xp: int
    xp_for_next_level: int
    xp_from_current_level: int
    xp_needed: int
    progress: float
    current_title: str


class XPHistoryEntry(BaseModel):
    amount: int
    source: str
    source_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


class XPHistoryResponse(BaseModel):
    entries: list[XPHistoryEntry]
    total: int
    page: int
    per_page: int


class LevelEntry(BaseModel):
    level: int
    title: str
    xp_required: int


class AllLevelsResponse(BaseModel):
    levels: list[LevelEntry]
