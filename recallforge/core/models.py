"""
Domain models for the scheduling engine.

Every model is an immutable snapshot. Components never mutate their input;
they return new values built with ``dataclasses.replace``.

Invariants enforced on construction:
- ConceptRecord.entity_id is never blank (a fresh id is synthesized)
- mastery_score in [0, 100], stability >= 0, no NaN/inf
- ConceptRecord.key is parsed from entity_id exactly once
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum

from loguru import logger

from recallforge.core.mastery import clamp, ensure_utc, finite_or_zero, round_half_up

GENERAL_CLUSTER = "General"


class Rating(IntEnum):
    """Outcome of a review, ordinal scheduler input."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


class CardState(IntEnum):
    """Position of an item in the learning state machine."""

    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class CycleStatus(str, Enum):
    """Persisted lock status of a page cycle."""

    ACTIVE = "active"
    LOCKED = "locked"


class MissionType(str, Enum):
    """Kind of remediation campaign proposed by the mission planner."""

    REPAIR = "REPAIR"
    EXPANSION = "EXPANSION"
    SYNTHESIS = "SYNTHESIS"


def cluster_topic_name(cluster: str) -> str:
    """Display name of a cluster key: ``physics.energy`` -> ``Physics: Energy``."""
    return ": ".join(part[:1].upper() + part[1:] for part in cluster.split("."))


def new_entity_id(prefix: str = "concept") -> str:
    """Generate a concept identity that is never reused."""
    return f"{prefix}.{uuid.uuid4()}"


@dataclass(frozen=True)
class ConceptKey:
    """
    Structured form of a dotted entity id.

    ``concept.physics.energy.kinetic`` parses to namespace ``concept``,
    domain ``physics``, subtopic ``energy`` and concept ``kinetic``.
    """

    namespace: str
    domain: str | None = None
    subtopic: str | None = None
    concept: str | None = None

    @classmethod
    def parse(cls, entity_id: str) -> ConceptKey:
        parts = entity_id.split(".")
        return cls(
            namespace=parts[0],
            domain=parts[1] if len(parts) > 1 else None,
            subtopic=parts[2] if len(parts) > 2 else None,
            concept=".".join(parts[3:]) if len(parts) > 3 else None,
        )

    @property
    def cluster(self) -> str:
        """Grouping key used to gather related concepts into one mission."""
        if self.subtopic is not None:
            return f"{self.domain}.{self.subtopic}"
        if self.domain is not None:
            return self.domain
        return GENERAL_CLUSTER

    @property
    def topic_name(self) -> str:
        """Display name of the cluster, e.g. ``Physics: Energy``."""
        return cluster_topic_name(self.cluster)


@dataclass(frozen=True)
class MemoryState:
    """Forgetting-curve state of one item instance."""

    due_at: datetime
    stability: float = 0.0
    difficulty: float = 0.0
    repetition_count: int = 0
    lapses: int = 0
    state: CardState = CardState.NEW
    last_reviewed: datetime | None = None

    @classmethod
    def empty(cls, now: datetime) -> MemoryState:
        """State of a never-reviewed item, due immediately."""
        return cls(due_at=ensure_utc(now))

    def __post_init__(self):
        object.__setattr__(self, "due_at", ensure_utc(self.due_at))
        if self.last_reviewed is not None:
            object.__setattr__(self, "last_reviewed", ensure_utc(self.last_reviewed))
        object.__setattr__(self, "stability", max(0.0, finite_or_zero(self.stability)))
        object.__setattr__(self, "difficulty", max(0.0, finite_or_zero(self.difficulty)))
        object.__setattr__(self, "repetition_count", max(0, int(self.repetition_count)))
        object.__setattr__(self, "lapses", max(0, int(self.lapses)))
        object.__setattr__(self, "state", CardState(self.state))


@dataclass(frozen=True)
class ConceptRecord:
    """
    Persisted learning state of one phrasing of a concept.

    Identity fields (entity_id, name, objective, level, integrated_levels)
    plus the embedded MemoryState fields and a 0-100 mastery score.
    """

    entity_id: str
    due_at: datetime
    level: int = 1
    integrated_levels: frozenset[int] = frozenset()
    name: str | None = None
    objective: str | None = None
    mastery_score: int = 0

    # Embedded memory state
    stability: float = 0.0
    difficulty: float = 0.0
    repetition_count: int = 0
    lapses: int = 0
    state: CardState = CardState.NEW
    last_reviewed: datetime | None = None

    key: ConceptKey = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        if not self.entity_id or not self.entity_id.strip():
            generated = new_entity_id()
            logger.warning(f"ConceptRecord without entity id, assigned {generated}")
            object.__setattr__(self, "entity_id", generated)

        object.__setattr__(self, "level", max(1, int(self.level)))
        object.__setattr__(self, "integrated_levels", frozenset(int(v) for v in self.integrated_levels))
        object.__setattr__(self, "mastery_score", int(clamp(round_half_up(self.mastery_score), 0, 100)))

        memory = self.memory
        object.__setattr__(self, "due_at", memory.due_at)
        object.__setattr__(self, "last_reviewed", memory.last_reviewed)
        object.__setattr__(self, "stability", memory.stability)
        object.__setattr__(self, "difficulty", memory.difficulty)
        object.__setattr__(self, "repetition_count", memory.repetition_count)
        object.__setattr__(self, "lapses", memory.lapses)
        object.__setattr__(self, "state", memory.state)

        object.__setattr__(self, "key", ConceptKey.parse(self.entity_id))

    @property
    def memory(self) -> MemoryState:
        """The embedded forgetting-curve state."""
        return MemoryState(
            due_at=self.due_at,
            stability=self.stability,
            difficulty=self.difficulty,
            repetition_count=self.repetition_count,
            lapses=self.lapses,
            state=self.state,
            last_reviewed=self.last_reviewed,
        )


@dataclass(frozen=True)
class Item:
    """
    One phrasing of a concept on a page.

    Only the learning record matters to the engine; interaction UI state
    lives elsewhere.
    """

    id: str
    item_type: str = "text"
    record: ConceptRecord | None = None
    variants: tuple[Item, ...] = ()

    @property
    def is_learnable(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class Cycle:
    """Lock state and next-review timestamp of a page."""

    status: CycleStatus = CycleStatus.ACTIVE
    chapter: int = 1
    next_review: datetime | None = None
    last_retrieval: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "status", CycleStatus(self.status))
        object.__setattr__(self, "chapter", max(1, int(self.chapter)))
        if self.next_review is not None:
            object.__setattr__(self, "next_review", ensure_utc(self.next_review))


@dataclass(frozen=True)
class Page:
    """Ordered collection of items plus an optional cycle."""

    id: str
    title: str
    items: tuple[Item, ...] = ()
    tags: tuple[str, ...] = ()
    cycle: Cycle | None = None


@dataclass(frozen=True)
class Telemetry:
    """Raw interaction data captured by the presentation layer."""

    hints_used: int = 0
    time_spent_ms: float = 0.0
    item_type: str = "mcq"


@dataclass(frozen=True)
class ReviewItem:
    """An item together with the title of the page it lives on."""

    page_title: str
    item: Item

    @property
    def record(self) -> ConceptRecord | None:
        return self.item.record


@dataclass(frozen=True)
class Mission:
    """A cluster of decaying concepts proposed as one remediation session."""

    title: str
    type: MissionType
    reason: str
    target_item_ids: tuple[str, ...]
    priority: int
    cluster: str = GENERAL_CLUSTER

    @property
    def id(self) -> str:
        return f"mission-{self.cluster}"
