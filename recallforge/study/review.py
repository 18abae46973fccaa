"""
Review Commit Protocol.

Orchestrates one review of a concept instance:
1. Rate the interaction (telemetry heuristic or fallback)
2. Hydrate the memory state (or start an empty one)
3. Consolidation guard: repeat answers inside the session window are one
   study event, so rapid re-answering cannot farm stability
4. Otherwise run the FSRS scheduler
5. Rescore mastery against the level's stability target
6. Return a new record that keeps the concept's identity
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta

from loguru import logger

from recallforge.core.fsrs import FSRSParameters, FSRSScheduler
from recallforge.core.mastery import add_days, calculate_mastery_score, ensure_utc
from recallforge.core.models import ConceptRecord, MemoryState, Rating, Telemetry, new_entity_id
from recallforge.study.rating import RatingClassifier, fallback_rating


@dataclass(frozen=True)
class ConsolidationConfig:
    """Configuration for the same-session consolidation guard."""

    window_minutes: float = 20.0
    penalty: float = 0.8
    stability_floor: float = 0.1
    retry_days: float = 1.0


class ReviewCommitter:
    """
    Commit a review outcome to a ConceptRecord.

    Stateless: scheduler, classifier and consolidation policy are injected
    and ``commit`` depends only on its arguments.
    """

    def __init__(
        self,
        scheduler: FSRSScheduler | None = None,
        classifier: RatingClassifier | None = None,
        consolidation: ConsolidationConfig | None = None,
    ):
        self.scheduler = scheduler or FSRSScheduler()
        self.classifier = classifier or RatingClassifier()
        self.consolidation = consolidation or ConsolidationConfig()

    @classmethod
    def from_settings(cls, settings=None) -> ReviewCommitter:
        """Build a committer whose every policy comes from the settings."""
        if settings is None:
            from config import get_settings

            settings = get_settings()
        config = settings.get_review_config()
        return cls(
            scheduler=FSRSScheduler(FSRSParameters.from_settings(settings)),
            classifier=RatingClassifier.from_settings(settings),
            consolidation=ConsolidationConfig(
                window_minutes=config["consolidation_window_minutes"],
                penalty=config["consolidation_penalty"],
                stability_floor=config["stability_floor"],
                retry_days=config["consolidation_retry_days"],
            ),
        )

    def rate(
        self,
        is_correct: bool,
        attempts: int,
        telemetry: Telemetry | None,
        current_reps: int,
    ) -> Rating:
        """Rating for one interaction; falls back to correctness/attempts only."""
        if telemetry is None:
            return fallback_rating(is_correct, attempts)
        return self.classifier.classify(
            is_correct,
            attempts,
            telemetry.hints_used,
            telemetry.time_spent_ms,
            telemetry.item_type,
            current_reps,
        )

    def is_consolidation(self, state: MemoryState, now: datetime) -> bool:
        """True when ``now`` falls in the same study session as the last review."""
        if state.repetition_count <= 0 or state.last_reviewed is None:
            return False
        window = timedelta(minutes=self.consolidation.window_minutes)
        return ensure_utc(now) - state.last_reviewed < window

    def commit(
        self,
        current: ConceptRecord | None,
        is_correct: bool,
        attempts: int,
        now: datetime,
        telemetry: Telemetry | None = None,
    ) -> ConceptRecord:
        """
        Apply one review and return the updated record.

        Args:
            current: Existing record, or None for a first encounter
            is_correct: Whether the answer was correct
            attempts: Attempts taken
            now: Review time (caller supplied)
            telemetry: Optional hints/latency/type data

        Returns:
            New ConceptRecord with updated memory fields and mastery score
        """
        now = ensure_utc(now)
        current_reps = current.repetition_count if current is not None else 0
        rating = self.rate(is_correct, attempts, telemetry, current_reps)

        state = current.memory if current is not None else MemoryState.empty(now)

        if self.is_consolidation(state, now):
            new_state = self._consolidate(state, rating, now)
            logger.debug(f"Consolidated repeat review (rating={rating.name})")
        else:
            new_state = self.scheduler.schedule(state, rating, now)

        level = current.level if current is not None else 1
        mastery = calculate_mastery_score(new_state.stability, level)

        if current is None:
            base = ConceptRecord(entity_id=new_entity_id("gen"), due_at=new_state.due_at)
        else:
            base = current

        return replace(
            base,
            mastery_score=mastery,
            stability=new_state.stability,
            difficulty=new_state.difficulty,
            repetition_count=new_state.repetition_count,
            lapses=new_state.lapses,
            state=new_state.state,
            last_reviewed=new_state.last_reviewed,
            due_at=new_state.due_at,
        )

    def _consolidate(self, state: MemoryState, rating: Rating, now: datetime) -> MemoryState:
        """Same-session repeat: bump the timestamp, penalize only a fresh failure."""
        if rating != Rating.AGAIN:
            return replace(state, last_reviewed=now)

        config = self.consolidation
        return replace(
            state,
            last_reviewed=now,
            stability=max(config.stability_floor, state.stability * config.penalty),
            due_at=add_days(now, config.retry_days),
        )
