"""
Adaptive Session Planner.

Builds a bounded, deduplicated study queue for one concept group
(root item + variants) in four tiers:

1. CRITICAL_REPAIR - reviewed members with stability < 2 days
2. EXPANSION - weakest member at the highest level (only when nothing is
   critical: don't grow on a cracked foundation)
3. MAINTENANCE - overdue members, oldest due first
4. RANDOM_INTERLEAVE - whatever is left, shuffled

The final queue is ordered by level for pedagogical coherence.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from loguru import logger

from recallforge.core.mastery import ensure_utc
from recallforge.core.models import Item

DEFAULT_SESSION_LIMIT = 5
CRITICAL_STABILITY_DAYS = 2.0


class SessionStrategy(str, Enum):
    """Label describing why a session was built the way it was."""

    CRITICAL_REPAIR = "CRITICAL_REPAIR"
    EXPANSION = "EXPANSION"
    MAINTENANCE = "MAINTENANCE"
    RANDOM_INTERLEAVE = "RANDOM_INTERLEAVE"


@dataclass(frozen=True)
class SessionPlan:
    """Ordered study queue for a concept group."""

    queue: tuple[Item, ...] = ()
    strategy: SessionStrategy = SessionStrategy.MAINTENANCE
    reason: str = "No content."
    critical_count: int = 0

    @property
    def item_ids(self) -> list[str]:
        return [item.id for item in self.queue]


@dataclass
class _SessionBuilder:
    limit: int
    items: list[Item] = field(default_factory=list)
    added: set[str] = field(default_factory=set)

    @property
    def is_full(self) -> bool:
        return len(self.items) >= self.limit

    def add(self, item: Item) -> bool:
        if item.id in self.added or self.is_full:
            return False
        self.items.append(item)
        self.added.add(item.id)
        return True


def _level(item: Item) -> int:
    return item.record.level if item.record is not None else 1


class SessionPlanner:
    """
    Plans adaptive sessions for concept groups.

    Randomness comes only from the injected ``random.Random`` so tests can
    seed it.
    """

    def __init__(
        self,
        critical_stability_days: float = CRITICAL_STABILITY_DAYS,
        rng: random.Random | None = None,
    ):
        """
        Initialize planner.

        Args:
            critical_stability_days: Stability below which a reviewed member is critical
            rng: Random source for the interleave tier (fresh unseeded Random if None)
        """
        self.critical_stability_days = critical_stability_days
        self.rng = rng if rng is not None else random.Random()

    @classmethod
    def from_settings(cls, settings=None, rng: random.Random | None = None) -> SessionPlanner:
        if settings is None:
            from config import get_settings

            settings = get_settings()
        return cls(settings.get_planner_config()["critical_stability_days"], rng=rng)

    def is_critical(self, item: Item) -> bool:
        record = item.record
        return (
            record is not None
            and record.repetition_count > 0
            and record.stability < self.critical_stability_days
        )

    def plan(
        self,
        root: Item,
        now: datetime,
        limit: int = DEFAULT_SESSION_LIMIT,
        variants: list[Item] | tuple[Item, ...] | None = None,
    ) -> SessionPlan:
        """
        Build the session for a concept group.

        Args:
            root: Root item of the group
            now: Current time (caller supplied)
            limit: Maximum queue length
            variants: Group variants (defaults to ``root.variants``)

        Returns:
            SessionPlan with at most ``limit`` unique items
        """
        now = ensure_utc(now)
        members = [root, *(root.variants if variants is None else variants)]
        learnable = sorted((m for m in members if m.is_learnable), key=_level)

        if not learnable or limit <= 0:
            return SessionPlan()

        session = _SessionBuilder(limit=limit)
        strategy = SessionStrategy.MAINTENANCE
        reason = "Routine spaced repetition."

        # Tier 1: critical repair
        critical = [m for m in learnable if self.is_critical(m)]
        if critical:
            strategy = SessionStrategy.CRITICAL_REPAIR
            reason = (
                f"Detected {len(critical)} foundational cracks. "
                f"Repairing Level {_level(critical[0])} first."
            )
            for item in critical:
                session.add(item)
        else:
            # Tier 2: expansion at the frontier
            max_level = _level(learnable[-1])
            frontier = [m for m in learnable if _level(m) == max_level]
            focus = min(frontier, key=lambda m: m.record.mastery_score)
            strategy = SessionStrategy.EXPANSION
            reason = f"Foundation stable. Expanding Level {max_level}."
            session.add(focus)

        # Tier 3: maintenance of overdue members
        if not session.is_full:
            overdue = sorted(
                (m for m in learnable if m.id not in session.added and m.record.due_at <= now),
                key=lambda m: m.record.due_at,
            )
            for item in overdue:
                session.add(item)

        # Tier 4: random interleaving
        if not session.is_full:
            remaining = [m for m in learnable if m.id not in session.added]
            self.rng.shuffle(remaining)
            for item in remaining:
                session.add(item)

        queue = tuple(sorted(session.items, key=_level))
        logger.info(
            f"Built session for {root.id}: {len(queue)}/{len(learnable)} items, "
            f"strategy={strategy.value}, critical={len(critical)}"
        )
        return SessionPlan(
            queue=queue,
            strategy=strategy,
            reason=reason,
            critical_count=len(critical),
        )
