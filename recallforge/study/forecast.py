"""
Review Forecast.

Read-side summary of everything a learner has on their pages:
- Overdue concepts (one entry per entity id, most urgent phrasing wins),
  ready to feed the MissionPlanner
- A 7-day workload forecast (items and estimated minutes per day)
- A weekly retro of recent activity
- The weekly review gate (weekend OR enough volume)
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loguru import logger

from recallforge.core.mastery import SECONDS_PER_DAY, ensure_utc, round_half_up, safe_ratio
from recallforge.core.models import Item, Page, ReviewItem
from recallforge.study.rating import estimated_minutes

FORECAST_DAYS = 7
WEEKLY_REVIEW_TARGET = 10
WEEKEND_DAYS = {4, 5, 6}  # Friday, Saturday, Sunday (datetime.weekday())


@dataclass(frozen=True)
class WeeklyRetro:
    """Activity over the last seven days."""

    reviewed_count: int = 0
    mastery_avg: int = 0
    concepts: tuple[str, ...] = ()
    top_concept: str = "None"


@dataclass(frozen=True)
class ReviewForecast:
    """Overdue items plus per-day counts and load (index 0 = due now)."""

    overdue_items: tuple[ReviewItem, ...] = ()
    counts: tuple[int, ...] = (0,) * FORECAST_DAYS
    minutes: tuple[int, ...] = (0,) * FORECAST_DAYS
    retro: WeeklyRetro = field(default_factory=WeeklyRetro)

    @property
    def total_due(self) -> int:
        return self.counts[0]


@dataclass(frozen=True)
class WeeklyStatus:
    """Whether the weekly review is open, with a user-facing message."""

    is_unlocked: bool
    message: str


def _iter_with_variants(item: Item) -> Iterable[Item]:
    yield item
    yield from item.variants


def build_forecast(pages: Iterable[Page], now: datetime) -> ReviewForecast:
    """
    Build the review forecast across pages.

    Args:
        pages: Page snapshots
        now: Current time (caller supplied)

    Returns:
        ReviewForecast; empty input yields an all-zero forecast
    """
    now = ensure_utc(now)
    week_ago = now - timedelta(days=7)

    most_urgent: dict[str, tuple[datetime, ReviewItem]] = {}
    reviewed_count = 0
    mastery_sum = 0
    activity: Counter[str] = Counter()

    for page in pages:
        for item in page.items:
            record = item.record
            if record is not None:
                due = record.due_at
                existing = most_urgent.get(record.entity_id)
                if existing is None or due < existing[0]:
                    most_urgent[record.entity_id] = (due, ReviewItem(page.title, item))

            # Retro counts every phrasing, variants included
            for member in _iter_with_variants(item):
                r = member.record
                if r is not None and r.last_reviewed is not None and r.last_reviewed > week_ago:
                    reviewed_count += 1
                    mastery_sum += r.mastery_score
                    activity[r.entity_id] += 1

    counts = [0] * FORECAST_DAYS
    minutes = [0] * FORECAST_DAYS
    overdue: list[ReviewItem] = []

    for due, review_item in most_urgent.values():
        load = estimated_minutes(review_item.item.item_type)
        if due <= now:
            overdue.append(review_item)
            counts[0] += 1
            minutes[0] += load
        else:
            days_ahead = math.ceil((due - now).total_seconds() / SECONDS_PER_DAY)
            if 0 < days_ahead < FORECAST_DAYS:
                counts[days_ahead] += 1
                minutes[days_ahead] += load

    retro = WeeklyRetro(
        reviewed_count=reviewed_count,
        mastery_avg=round_half_up(safe_ratio(mastery_sum, reviewed_count)),
        concepts=tuple(activity),
        top_concept=activity.most_common(1)[0][0] if activity else "None",
    )

    logger.debug(
        f"Forecast: {len(most_urgent)} concepts, {counts[0]} due now, "
        f"{reviewed_count} reviews this week"
    )
    return ReviewForecast(
        overdue_items=tuple(overdue),
        counts=tuple(counts),
        minutes=tuple(minutes),
        retro=retro,
    )


def weekly_status(
    now: datetime,
    weekly_review_count: int,
    target: int = WEEKLY_REVIEW_TARGET,
) -> WeeklyStatus:
    """
    Gate for the weekly review.

    Open on Friday-Sunday, or any day once ``target`` reviews were done
    this week.
    """
    is_weekend = ensure_utc(now).weekday() in WEEKEND_DAYS
    has_enough_volume = weekly_review_count >= target
    is_unlocked = is_weekend or has_enough_volume

    message = "Available now."
    if not is_unlocked:
        message = "Unlocks on Friday."
        message += f" (Or review {target - weekly_review_count} more items)"
    return WeeklyStatus(is_unlocked=is_unlocked, message=message)
