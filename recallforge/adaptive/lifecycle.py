"""
Page Lifecycle Manager.

Decides whether a page is open for study or locked while its content
incubates, and drives the cycle a page goes through:

    ACTIVE --close_lesson--> INCUBATING --(time)--> RETRIEVAL_DUE --evolve--> ACTIVE

A page unlocks shortly before its most urgent item comes due (grace
window, default 1 hour). Evolution requires a free-recall summary and adds
the next chapter's items with fresh memory state.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum

from loguru import logger

from recallforge.core.exceptions import LifecycleError
from recallforge.core.mastery import ensure_utc
from recallforge.core.models import (
    ConceptRecord,
    Cycle,
    CycleStatus,
    Item,
    MemoryState,
    Page,
    new_entity_id,
)

LIFECYCLE_GRACE_MINUTES = 60.0


class CyclePhase(str, Enum):
    """Where a page sits in its lock/unlock cycle."""

    ACTIVE = "active"
    INCUBATING = "incubating"
    RETRIEVAL_DUE = "retrieval_due"


@dataclass(frozen=True)
class PageLifecycle:
    """Result of evaluating a page's items."""

    status: CycleStatus
    next_review: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == CycleStatus.ACTIVE


def cycle_phase(cycle: Cycle | None, now: datetime) -> CyclePhase:
    """
    Classify a page cycle.

    Pages without a cycle, or with an Active one, are ACTIVE. A Locked page
    is INCUBATING until its next_review passes, then RETRIEVAL_DUE.
    """
    if cycle is None or cycle.status == CycleStatus.ACTIVE:
        return CyclePhase.ACTIVE
    if cycle.next_review is None or cycle.next_review <= ensure_utc(now):
        return CyclePhase.RETRIEVAL_DUE
    return CyclePhase.INCUBATING


def _reset_record(record: ConceptRecord | None, entity_id: str, now: datetime) -> ConceptRecord | None:
    if record is None:
        return None
    empty = MemoryState.empty(now)
    return replace(
        record,
        entity_id=entity_id,
        mastery_score=0,
        due_at=empty.due_at,
        stability=empty.stability,
        difficulty=empty.difficulty,
        repetition_count=empty.repetition_count,
        lapses=empty.lapses,
        state=empty.state,
        last_reviewed=empty.last_reviewed,
    )


def _fresh_item(item: Item, now: datetime, entity_id: str | None = None) -> Item:
    # Variants keep sharing one identity with their root
    entity_id = entity_id or new_entity_id()
    return replace(
        item,
        record=_reset_record(item.record, entity_id, now),
        variants=tuple(_fresh_item(v, now, entity_id) for v in item.variants),
    )


class PageLifecycleManager:
    """
    Evaluate and transition page cycles.

    Stateless; ``now`` is always supplied by the caller.
    """

    def __init__(self, grace_minutes: float = LIFECYCLE_GRACE_MINUTES):
        self.grace = timedelta(minutes=grace_minutes)

    @classmethod
    def from_settings(cls, settings=None) -> PageLifecycleManager:
        if settings is None:
            from config import get_settings

            settings = get_settings()
        return cls(settings.get_planner_config()["lifecycle_grace_minutes"])

    def evaluate(self, items: Iterable[Item], now: datetime) -> PageLifecycle:
        """
        Compute the page status from its items.

        Args:
            items: Page items (variants are not consulted)
            now: Current time (caller supplied)

        Returns:
            PageLifecycle; Active with no next_review when nothing is learnable
        """
        due_dates = [item.record.due_at for item in items if item.record is not None]
        if not due_dates:
            return PageLifecycle(status=CycleStatus.ACTIVE, next_review=None)

        next_review = min(due_dates)
        if next_review <= ensure_utc(now) + self.grace:
            return PageLifecycle(status=CycleStatus.ACTIVE, next_review=next_review)
        return PageLifecycle(status=CycleStatus.LOCKED, next_review=next_review)

    def close_lesson(self, page: Page, now: datetime) -> Cycle:
        """
        Close the current lesson and compute the page's new cycle.

        The chapter carries over; a page with no cycle starts at chapter 1.
        """
        lifecycle = self.evaluate(page.items, now)
        previous = page.cycle or Cycle()
        cycle = replace(previous, status=lifecycle.status, next_review=lifecycle.next_review)
        logger.debug(
            f"Closed lesson on page {page.id}: status={cycle.status.value}, "
            f"next_review={cycle.next_review}"
        )
        return cycle

    def evolve(
        self,
        page: Page,
        recall_text: str,
        new_items: Sequence[Item],
        now: datetime,
    ) -> Page:
        """
        Pass the retrieval gate and advance the page to its next chapter.

        Args:
            page: Page whose cycle is RETRIEVAL_DUE
            recall_text: Free-recall summary written by the learner
            new_items: Items of the next chapter
            now: Current time (caller supplied)

        Returns:
            New Page with the items appended, chapter + 1 and an Active cycle

        Raises:
            ValueError: If recall_text is blank
            LifecycleError: If the page is not waiting for retrieval
        """
        if not recall_text or not recall_text.strip():
            raise ValueError("Recall text must not be blank")

        phase = cycle_phase(page.cycle, now)
        if phase != CyclePhase.RETRIEVAL_DUE:
            raise LifecycleError(f"Page {page.id} is {phase.value}, retrieval is not due")

        now = ensure_utc(now)
        fresh = tuple(_fresh_item(item, now) for item in new_items)
        cycle = Cycle(
            status=CycleStatus.ACTIVE,
            chapter=page.cycle.chapter + 1,
            next_review=None,
            last_retrieval=recall_text,
        )
        logger.info(f"Evolved page {page.id} to chapter {cycle.chapter} with {len(fresh)} new items")
        return replace(page, items=page.items + fresh, cycle=cycle)
