"""Level thresholds, titles and level/progress computation.

Thresholds are cumulative XP floors: index 0 is the floor of level 1.
"""

from __future__ import annotations

LEVEL_THRESHOLDS: list[int] = [0, 100, 250, 500, 1000, 2000, 3500, 5000, 7500, 10000]

LEVEL_TITLES: dict[int, str] = {
    1: "Newbie Shopper",
    2: "Apprentice Collector",
    3: "Rising Otaku",
    4: "Seasoned Buyer",
    5: "Elite Collector",
    6: "Master Otaku",
    7: "Grandmaster",
    8: "Legendary Collector",
    9: "Mythical Shopper",
    10: "God of Loot",
}

MAX_LEVEL = len(LEVEL_THRESHOLDS)


def compute_level(total_xp: int) -> int:
    """Largest level whose floor is at or below total_xp."""
    level = 1
    for i, floor in enumerate(LEVEL_THRESHOLDS):
        if total_xp >= floor:
            level = i + 1
    return level


def advance_level(level: int, new_xp: int) -> tuple[int, bool]:
    """Climb from ``level`` while the next floor is reached.

    Returns (new_level, leveled_up). Level growth stops at the last table
    entry; XP beyond it keeps accruing on the profile.
    """
    leveled_up = False
    while level < MAX_LEVEL and new_xp >= LEVEL_THRESHOLDS[level]:
        level += 1
        leveled_up = True
    return level, leveled_up


def title_for_level(level: int, fallback: str) -> str:
    """Mapped title for ``level``, or ``fallback`` when the map has none."""
    return LEVEL_TITLES.get(level, fallback)


def compute_progress(level: int, xp: int) -> dict:
    """Progress within the current level, a pure function of (level, xp)."""
    current_threshold = LEVEL_THRESHOLDS[level - 1] if 1 <= level <= MAX_LEVEL else LEVEL_THRESHOLDS[-1]
    next_threshold = LEVEL_THRESHOLDS[level] if level < MAX_LEVEL else current_threshold

    xp_from_current_level = xp - current_threshold
    span = next_threshold - current_threshold

    # Top of the table (or equal thresholds) has no span to divide by
    if span <= 0:
        progress = 100.0
    else:
        progress = min(max(xp_from_current_level / span * 100, 0.0), 100.0)

    return {
        "level": level,
        "xp": xp,
        "xp_for_next_level": next_threshold,
        "xp_from_current_level": xp_from_current_level,
        "xp_needed": max(next_threshold - xp, 0),
        "progress": progress,
    }
