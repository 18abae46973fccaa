"""
Core Mastery Module.

Numeric helpers shared by every component of the engine.

Design:
- MasteryLevel: Enum for categorizing 0-100 mastery scores
- Guards: finite_or_zero, clamp, safe_ratio (no NaN/inf ever leaves the engine)
- Time: ensure_utc, days_between (explicit clock, never datetime.now())
- Mastery: stability_target, calculate_mastery_score
"""

from __future__ import annotations

import math
from datetime import UTC, datetime, timedelta
from enum import Enum

SECONDS_PER_DAY = 86400.0


class MasteryLevel(str, Enum):
    """
    Mastery level categorization for a 0-100 mastery score.
    """

    NOT_STARTED = "not_started"  # 0
    NOVICE = "novice"  # 1-39
    DEVELOPING = "developing"  # 40-69
    PROFICIENT = "proficient"  # 70-89
    MASTERED = "mastered"  # 90-100

    @classmethod
    def from_score(cls, score: float) -> MasteryLevel:
        """
        Convert a 0-100 mastery score to a level.

        Args:
            score: Mastery score between 0 and 100

        Returns:
            Corresponding MasteryLevel
        """
        if score <= 0:
            return cls.NOT_STARTED
        elif score < 40:
            return cls.NOVICE
        elif score < 70:
            return cls.DEVELOPING
        elif score < 90:
            return cls.PROFICIENT
        else:
            return cls.MASTERED

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.replace("_", " ").title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOT_STARTED: "dim",
            MasteryLevel.NOVICE: "red",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.MASTERED: "green",
        }[self]


# ============================================================================
# Numeric Guards
# ============================================================================


def finite_or_zero(value: float | int | None) -> float:
    """Return ``value`` as a float, or 0.0 when it is missing, NaN or infinite."""
    if value is None:
        return 0.0
    value = float(value)
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def clamp(value: float, low: float, high: float) -> float:
    """Clamp ``value`` into ``[low, high]``; non-finite input becomes ``low``."""
    value = finite_or_zero(value)
    return min(max(value, low), high)


def safe_ratio(numerator: float, denominator: float) -> float:
    """Divide, returning 0.0 instead of raising or producing a non-finite value."""
    if not denominator:
        return 0.0
    return finite_or_zero(numerator / denominator)


def round_half_up(value: float) -> int:
    """Round halves away from zero for positive scores (50.5 -> 51)."""
    return int(math.floor(finite_or_zero(value) + 0.5))


# ============================================================================
# Time
# ============================================================================


def ensure_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def days_between(start: datetime | None, end: datetime) -> float:
    """
    Calculate fractional days elapsed from ``start`` to ``end``.

    Args:
        start: Earlier timestamp (None means "no elapsed time")
        end: Later timestamp

    Returns:
        Days elapsed as float, never negative
    """
    if start is None:
        return 0.0
    delta = ensure_utc(end) - ensure_utc(start)
    return max(0.0, delta.total_seconds() / SECONDS_PER_DAY)


def add_days(moment: datetime, days: float) -> datetime:
    """Shift ``moment`` forward by a fractional number of days."""
    return ensure_utc(moment) + timedelta(days=days)


# ============================================================================
# Mastery Score
# ============================================================================


def stability_target(level: int) -> int:
    """
    Stability (days) at which a concept of the given level counts as mastered.

    Level 1 concepts are mastered at 21 days, levels 2-3 at 60 days and
    anything higher at 100 days.
    """
    if level <= 1:
        return 21
    if level <= 3:
        return 60
    return 100


def calculate_mastery_score(stability: float, level: int) -> int:
    """
    Calculate the 0-100 mastery score for a concept.

    Formula: round(100 × stability / stability_target(level)), clamped.

    Args:
        stability: FSRS stability in days
        level: Concept difficulty tier (>= 1)

    Returns:
        Mastery score between 0 and 100
    """
    ratio = safe_ratio(stability, stability_target(level))
    return int(clamp(round_half_up(ratio * 100), 0, 100))
