"""
Progress Metrics.

Derived read-side metrics over page snapshots:
- Achievements (long-term stability, interdisciplinary pages, average
  mastery, review volume)
- Realms: per-tag territories whose light fades with overdue items
- Review streak: consecutive review days ending today or yesterday

Everything is computed from ConceptRecord fields and an explicit ``now``.
Averages go through ``safe_ratio`` so empty pages never divide by zero.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from loguru import logger

from recallforge.core.mastery import clamp, ensure_utc, round_half_up, safe_ratio
from recallforge.core.models import ConceptRecord, Page

HIGH_STABILITY_DAYS = 30.0
FOUNDATION_TARGET = 10
INTERDISCIPLINARY_DOMAINS = 3
GRANDMASTER_MIN_CONCEPTS = 5
GRANDMASTER_MASTERY = 90
DEDICATION_REVIEWS = 50

REALM_MASTERED_SCORE = 80
REALM_FULL_LIGHT_STABILITY = 20.0
REALM_OVERDUE_PENALTY = 10
UNCHARTED_REALM = "Uncharted"


@dataclass(frozen=True)
class Achievement:
    """One badge with its progress toward unlocking."""

    id: str
    title: str
    description: str
    progress: int
    max_progress: int
    is_unlocked: bool


@dataclass(frozen=True)
class Realm:
    """A tag territory: light 0-100 drops by 10 per overdue concept."""

    name: str
    level: int
    light_level: int
    page_count: int
    mastered: int
    total: int


@dataclass(frozen=True)
class ProgressReport:
    achievements: tuple[Achievement, ...] = ()
    realms: tuple[Realm, ...] = ()
    streak_days: int = 0
    total_reviews: int = 0
    mastery_avg: int = 0

    @property
    def badges_unlocked(self) -> int:
        return sum(1 for a in self.achievements if a.is_unlocked)


def _root_records(page: Page) -> list[ConceptRecord]:
    return [item.record for item in page.items if item.record is not None]


def _all_records(page: Page) -> list[ConceptRecord]:
    records = []
    for item in page.items:
        records.extend(m.record for m in (item, *item.variants) if m.record is not None)
    return records


# =============================================================================
# Achievements
# =============================================================================


def calculate_achievements(pages: Iterable[Page]) -> tuple[Achievement, ...]:
    """
    Evaluate the achievement badges.

    Stability counts every phrasing; mastery, reviews and domains come from
    root items only.
    """
    high_stability = 0
    interdisciplinary_pages = 0
    mastery_sum = 0
    concept_count = 0
    total_reviews = 0

    for page in pages:
        high_stability += sum(1 for r in _all_records(page) if r.stability > HIGH_STABILITY_DAYS)

        domains = set()
        for record in _root_records(page):
            concept_count += 1
            mastery_sum += record.mastery_score
            total_reviews += record.repetition_count
            if record.key.domain is not None:
                domains.add(record.key.domain)
        if len(domains) >= INTERDISCIPLINARY_DOMAINS:
            interdisciplinary_pages += 1

    avg_mastery = safe_ratio(mastery_sum, concept_count)

    return (
        Achievement(
            id="foundation",
            title="Solid Foundations",
            description=f"Maintain >{HIGH_STABILITY_DAYS:.0f} days stability on {FOUNDATION_TARGET}+ concepts.",
            progress=high_stability,
            max_progress=FOUNDATION_TARGET,
            is_unlocked=high_stability >= FOUNDATION_TARGET,
        ),
        Achievement(
            id="explorer",
            title="Interdisciplinary",
            description=f"Create a lesson mixing {INTERDISCIPLINARY_DOMAINS}+ distinct domains.",
            progress=interdisciplinary_pages,
            max_progress=1,
            is_unlocked=interdisciplinary_pages > 0,
        ),
        Achievement(
            id="master",
            title="Grandmaster",
            description=f"Achieve {GRANDMASTER_MASTERY}% average mastery across the board.",
            progress=round_half_up(avg_mastery),
            max_progress=100,
            is_unlocked=concept_count > GRANDMASTER_MIN_CONCEPTS and avg_mastery >= GRANDMASTER_MASTERY,
        ),
        Achievement(
            id="dedication",
            title="Deep Practice",
            description=f"Complete {DEDICATION_REVIEWS} total reviews.",
            progress=total_reviews,
            max_progress=DEDICATION_REVIEWS,
            is_unlocked=total_reviews >= DEDICATION_REVIEWS,
        ),
    )


# =============================================================================
# Realms
# =============================================================================


def realm_of(page: Page) -> str:
    """Realm name: first segment of the page's first tag."""
    if page.tags:
        return page.tags[0].split("/")[0]
    return UNCHARTED_REALM


def light_level(avg_stability: float, overdue_count: int) -> int:
    """20 days of average stability is full light, minus 10 per overdue concept."""
    stability_factor = min(100.0, safe_ratio(avg_stability, REALM_FULL_LIGHT_STABILITY) * 100)
    return round_half_up(clamp(stability_factor - REALM_OVERDUE_PENALTY * overdue_count, 0, 100))


@dataclass
class _RealmTally:
    total: int = 0
    mastered: int = 0
    stability_sum: float = 0.0
    overdue: int = 0


def calculate_realms(pages: Iterable[Page], now: datetime) -> tuple[Realm, ...]:
    """
    Group root concepts by realm.

    Returns:
        Realms, largest (by concept count) first
    """
    now = ensure_utc(now)
    pages = list(pages)
    tallies: dict[str, _RealmTally] = {}

    for page in pages:
        tally = tallies.setdefault(realm_of(page), _RealmTally())
        for record in _root_records(page):
            tally.total += 1
            tally.stability_sum += record.stability
            if record.mastery_score > REALM_MASTERED_SCORE:
                tally.mastered += 1
            if record.due_at <= now:
                tally.overdue += 1

    realms = [
        Realm(
            name=name,
            level=math.isqrt(tally.mastered) + 1,
            light_level=light_level(safe_ratio(tally.stability_sum, tally.total), tally.overdue),
            page_count=sum(1 for p in pages if any(t.startswith(name) for t in p.tags)),
            mastered=tally.mastered,
            total=tally.total,
        )
        for name, tally in tallies.items()
    ]
    realms.sort(key=lambda r: r.total, reverse=True)
    return tuple(realms)


# =============================================================================
# Streak
# =============================================================================


def review_history(pages: Iterable[Page]) -> list[datetime]:
    """Last review time of every phrasing on the pages."""
    return [
        record.last_reviewed
        for page in pages
        for record in _all_records(page)
        if record.last_reviewed is not None
    ]


def review_streak(history: Iterable[datetime], now: datetime) -> int:
    """
    Count consecutive review days (UTC calendar days).

    The streak is alive only if the latest review day is today or
    yesterday. Reviews after ``now`` are ignored.
    """
    today = ensure_utc(now).date()
    days = sorted({ensure_utc(moment).date() for moment in history}, reverse=True)
    days = [d for d in days if d <= today]

    if not days or days[0] < today - timedelta(days=1):
        return 0

    streak = 0
    expected = days[0]
    for day in days:
        if day != expected:
            break
        streak += 1
        expected -= timedelta(days=1)
    return streak


def build_progress(
    pages: Iterable[Page],
    now: datetime,
    history: Iterable[datetime] | None = None,
) -> ProgressReport:
    """
    Build all progress metrics.

    Args:
        pages: Page snapshots
        now: Current time (caller supplied)
        history: Review timestamps; defaults to each record's last review

    Returns:
        ProgressReport; empty input yields zeros and locked badges
    """
    pages = list(pages)
    if history is None:
        history = review_history(pages)

    roots = [r for page in pages for r in _root_records(page)]
    report = ProgressReport(
        achievements=calculate_achievements(pages),
        realms=calculate_realms(pages, now),
        streak_days=review_streak(history, now),
        total_reviews=sum(r.repetition_count for r in roots),
        mastery_avg=round_half_up(safe_ratio(sum(r.mastery_score for r in roots), len(roots))),
    )
    logger.debug(
        f"Progress: {report.badges_unlocked} badges, {len(report.realms)} realms, "
        f"streak={report.streak_days}"
    )
    return report
