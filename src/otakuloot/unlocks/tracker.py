"""Unlock rules for bonus shopkeepers.

Two independent, monotone triggers over a user's unlock signals:

* cumulative spend reaching a threshold (inclusive)
* a burst of rapid cart additions

Both are pure: they take a snapshot and return the next snapshot plus the
ids unlocked by this step. Unlocks are a set and are never revoked.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal

from otakuloot.config import Settings
from otakuloot.errors import InvalidArgumentError

STARTER_CHARACTERS = ("luffy", "naruto", "goku")

UNLOCK_MESSAGES = {
    "gojo": "You've impressed the strongest sorcerer! Gojo Satoru is now unlocked!",
    "anya": "Waku waku! You shop so fast! Anya Forger is now unlocked!",
}


@dataclass(frozen=True)
class UnlockRules:
    spend_threshold: Decimal = Decimal("10000")
    spend_unlock_id: str = "gojo"
    streak_count: int = 5
    streak_unlock_id: str = "anya"
    streak_mode: str = "gap"
    idle_reset_seconds: float = 5.0
    window_seconds: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> UnlockRules:
        return cls(
            spend_threshold=settings.spend_unlock_threshold,
            spend_unlock_id=settings.spend_unlock_id,
            streak_count=settings.streak_unlock_count,
            streak_unlock_id=settings.streak_unlock_id,
            streak_mode=settings.streak_mode,
            idle_reset_seconds=settings.streak_idle_reset_seconds,
            window_seconds=settings.streak_window_seconds,
        )


@dataclass(frozen=True)
class UnlockSnapshot:
    total_spent: Decimal = Decimal("0")
    fast_add_streak: int = 0
    last_add_at: datetime | None = None
    recent_add_times: tuple[float, ...] = ()
    unlocked_ids: frozenset[str] = frozenset()


@dataclass(frozen=True)
class UnlockStep:
    state: UnlockSnapshot
    unlocked: tuple[str, ...] = ()


def _as_utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC
    return dt.replace(tzinfo=timezone.utc) if dt.tzinfo is None else dt


def _grant(state: UnlockSnapshot, achievement_id: str) -> UnlockStep:
    if achievement_id in state.unlocked_ids:
        return UnlockStep(state)
    return UnlockStep(
        replace(state, unlocked_ids=state.unlocked_ids | {achievement_id}),
        (achievement_id,),
    )


def record_spend(state: UnlockSnapshot, amount: Decimal, rules: UnlockRules = UnlockRules()) -> UnlockStep:
    """Accumulate spend and unlock once the total reaches the threshold."""
    amount = Decimal(amount)
    if amount < 0:
        msg = "Spend amount must not be negative"
        raise InvalidArgumentError(msg)

    state = replace(state, total_spent=state.total_spent + amount)
    if state.total_spent >= rules.spend_threshold:
        return _grant(state, rules.spend_unlock_id)
    return UnlockStep(state)


def record_add(state: UnlockSnapshot, now: datetime, rules: UnlockRules = UnlockRules()) -> UnlockStep:
    """Register a cart add at ``now`` and unlock on a long enough burst.

    In "gap" mode the streak resets to 1 whenever more than
    idle_reset_seconds passed since the previous add. In "window" mode the
    streak is the number of adds less than window_seconds old.
    """
    now = _as_utc(now)

    if rules.streak_mode == "window":
        cutoff = now.timestamp() - rules.window_seconds
        recent = [t for t in state.recent_add_times if t > cutoff]
        recent.append(now.timestamp())
        recent = recent[-rules.streak_count:]
        streak = len(recent)
    else:
        recent = []
        if state.last_add_at is None:
            streak = 1
        else:
            elapsed = (now - _as_utc(state.last_add_at)).total_seconds()
            streak = 1 if elapsed > rules.idle_reset_seconds else state.fast_add_streak + 1

    state = replace(
        state,
        fast_add_streak=streak,
        last_add_at=now,
        recent_add_times=tuple(recent),
    )
    if streak >= rules.streak_count:
        return _grant(state, rules.streak_unlock_id)
    return UnlockStep(state)
