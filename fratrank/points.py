"""
User points, levels and activity streaks.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from fratrank.errors import ValidationError
from fratrank.store import EntityStore, Record, parse_timestamp, to_timestamp, utc_now

logger = logging.getLogger(__name__)

POINT_VALUES = {
    "rate_party": 10,
    "rate_fraternity": 10,
    "create_comment": 5,
    "create_post": 8,
    "create_poll": 15,
    "upload_photo": 5,
    "vote_on_post": 2,
    "vote_on_comment": 1,
    "vote_on_poll": 3,
    "daily_login": 5,
    "streak_bonus_7": 25,
    "streak_bonus_30": 100,
    "complete_all_frat_ratings": 50,
    "first_rating": 15,
    "share_content": 3,
    "mark_attendance": 3,
}

STREAK_BONUSES = {7: "streak_bonus_7", 30: "streak_bonus_30"}
STREAK_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class Level:
    level: int
    name: str
    min_points: int
    max_points: float


LEVELS = (
    Level(1, "Lower Bouse", 0, 24),
    Level(2, "Bouse", 25, 74),
    Level(3, "Upper Bouse", 75, 149),
    Level(4, "Lower Mouse", 150, 299),
    Level(5, "Mouse", 300, 499),
    Level(6, "Upper Mouse", 500, 799),
    Level(7, "Lower Touse", 800, 1199),
    Level(8, "Touse", 1200, 1999),
    Level(9, "Upper Touse", 2000, math.inf),
)


@dataclass(frozen=True)
class LevelInfo:
    level: int
    name: str
    points: int
    progress_to_next: float
    points_to_next_level: int
    next_level_name: Optional[str]


def level_info(points: int) -> LevelInfo:
    current = next(
        (lvl for lvl in LEVELS if lvl.min_points <= points <= lvl.max_points),
        LEVELS[0],
    )
    following = next((lvl for lvl in LEVELS if lvl.level == current.level + 1), None)
    if following:
        span = following.min_points - current.min_points
        progress = (points - current.min_points) / span * 100
        to_next = following.min_points - points
    else:
        progress = 100.0
        to_next = 0
    return LevelInfo(
        level=current.level,
        name=current.name,
        points=points,
        progress_to_next=min(100.0, max(0.0, progress)),
        points_to_next_level=to_next,
        next_level_name=following.name if following else None,
    )


def award_points(
    store: EntityStore, user_id: str, action: str, description: Optional[str] = None
) -> int:
    """Record points for ``action`` and return the user's new total."""
    if action not in POINT_VALUES:
        raise ValidationError(f"Unknown point action: {action}")
    store.create(
        "user_points_history",
        {
            "user_id": user_id,
            "points": POINT_VALUES[action],
            "action_type": action,
            "description": description,
        },
    )
    return total_points(store, user_id)


def total_points(store: EntityStore, user_id: str) -> int:
    return sum(r["points"] for r in store.filter("user_points_history", {"user_id": user_id}))


def has_awarded(
    store: EntityStore, user_id: str, action: str, description: Optional[str] = None
) -> bool:
    """True if ``action`` was awarded before; ``description`` narrows the match when given."""
    filters = {"user_id": user_id, "action_type": action, "description": description}
    return bool(store.filter("user_points_history", filters))


@dataclass(frozen=True)
class StreakInfo:
    current_streak: int
    longest_streak: int
    last_action_at: Optional[str]
    streak_expires_at: Optional[str]
    hours_remaining: Optional[float]


def _streak_row(store: EntityStore, user_id: str) -> Optional[Record]:
    rows = store.filter("user_streaks", {"user_id": user_id})
    return rows[0] if rows else None


def _streak_info(row: Optional[Record], now: datetime) -> StreakInfo:
    if not row:
        return StreakInfo(0, 0, None, None, None)
    last = parse_timestamp(row.get("last_action_at"))
    expires = last + 2 * STREAK_WINDOW if last else None
    hours = max(0.0, (expires - now).total_seconds() / 3600) if expires else None
    return StreakInfo(
        current_streak=row.get("current_streak") or 0,
        longest_streak=row.get("longest_streak") or 0,
        last_action_at=row.get("last_action_at"),
        streak_expires_at=to_timestamp(expires) if expires else None,
        hours_remaining=hours,
    )


def next_streak(current: int, last_action_at: Optional[datetime], now: datetime) -> int:
    """
    Under 24h since the last action keeps the streak, 24-48h extends it,
    anything longer (or no previous action) starts over at 1.
    """
    if last_action_at is None:
        return 1
    elapsed = now - last_action_at
    if elapsed < STREAK_WINDOW:
        return max(1, current)
    if elapsed < 2 * STREAK_WINDOW:
        return current + 1
    return 1


def record_user_action(
    store: EntityStore, user_id: str, now: Optional[datetime] = None
) -> StreakInfo:
    now = now or utc_now()
    row = _streak_row(store, user_id)
    previous = (row or {}).get("current_streak") or 0
    last = parse_timestamp((row or {}).get("last_action_at"))
    streak = next_streak(previous, last, now)
    longest = max(streak, (row or {}).get("longest_streak") or 0)
    changes = {
        "current_streak": streak,
        "longest_streak": longest,
        "last_action_at": to_timestamp(now),
    }
    if row:
        row = store.update("user_streaks", row["id"], changes)
    else:
        row = store.create("user_streaks", {"user_id": user_id, **changes})

    bonus = STREAK_BONUSES.get(streak)
    if bonus and streak != previous:
        award_points(store, user_id, bonus, f"{streak} day streak")
        logger.info("User %s reached a %d day streak", user_id, streak)
    return _streak_info(row, now)


def check_streak(
    store: EntityStore, user_id: str, now: Optional[datetime] = None
) -> StreakInfo:
    """Reset the streak to 0 after more than 48h without an action."""
    now = now or utc_now()
    row = _streak_row(store, user_id)
    if row:
        last = parse_timestamp(row.get("last_action_at"))
        if last and now - last > 2 * STREAK_WINDOW and row.get("current_streak"):
            row = store.update("user_streaks", row["id"], {"current_streak": 0})
    return _streak_info(row, now)
