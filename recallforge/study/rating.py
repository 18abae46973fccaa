"""
Rating Classifier.

Translates raw interaction telemetry into an FSRS rating.
Based on "desirable difficulty" and response latency:

1. Incorrect -> Again
2. Hints cap the ceiling (scaffold tax): 1 hint -> Hard, more -> Again
3. Extra attempts (friction tax): 2 -> Hard, more -> Again
4. Latency vs. a per-type baseline (fluency check), lenient on first encoding
"""

from __future__ import annotations

from collections.abc import Mapping

from loguru import logger

from recallforge.core.models import Rating

# Expected duration per item type for a "Good" answer (ms)
BASELINE_DURATIONS_MS = {
    "mcq": 15000,
    "input": 25000,
    "match": 30000,
    "sort": 30000,
    "socratic": 60000,
}
DEFAULT_BASELINE_MS = 15000

# Minutes of study per item type, for workload forecasts
ESTIMATED_MINUTES = {
    "socratic": 3,
    "code": 5,
    "canvas": 3,
    "match": 2,
    "sort": 2,
    "math": 2,
}
DEFAULT_ESTIMATED_MINUTES = 1

FIRST_ENCOUNTER_SLOW_FACTOR = 3.0
FAST_FACTOR = 0.6
SLOW_FACTOR = 1.5


def estimated_minutes(item_type: str) -> int:
    """Estimated study minutes for one item of the given type."""
    return ESTIMATED_MINUTES.get(item_type, DEFAULT_ESTIMATED_MINUTES)


class RatingClassifier:
    """
    Heuristic grader: interaction data -> Rating.

    Stateless; the baseline table is injected so deployments can tune it.
    """

    def __init__(
        self,
        baselines: Mapping[str, float] | None = None,
        default_baseline_ms: float = DEFAULT_BASELINE_MS,
    ):
        """
        Initialize classifier.

        Args:
            baselines: Expected "Good" duration per item type in ms
            default_baseline_ms: Baseline for unknown item types
        """
        self.baselines = dict(BASELINE_DURATIONS_MS if baselines is None else baselines)
        self.default_baseline_ms = default_baseline_ms

    @classmethod
    def from_settings(cls, settings=None) -> RatingClassifier:
        if settings is None:
            from config import get_settings

            settings = get_settings()
        config = settings.get_review_config()
        return cls(config["baselines"], config["default_baseline_ms"])

    def baseline_for(self, item_type: str) -> float:
        """Baseline duration for ``item_type``, falling back to the default."""
        baseline = self.baselines.get(item_type)
        if not baseline or baseline <= 0:
            return self.default_baseline_ms
        return baseline

    def classify(
        self,
        is_correct: bool,
        attempts: int,
        hints_used: int,
        time_spent_ms: float,
        item_type: str,
        current_reps: int,
    ) -> Rating:
        """
        Convert one interaction into a Rating (first matching rule wins).

        Args:
            is_correct: Whether the final answer was correct
            attempts: Number of attempts taken
            hints_used: Number of hints revealed
            time_spent_ms: Time on task
            item_type: Item type, used for the latency baseline
            current_reps: Reviews completed before this one

        Returns:
            Rating for the scheduler
        """
        if not is_correct:
            return Rating.AGAIN

        if hints_used > 1:
            return Rating.AGAIN
        if hints_used == 1:
            return Rating.HARD

        if attempts > 2:
            return Rating.AGAIN
        if attempts == 2:
            return Rating.HARD

        baseline = self.baseline_for(item_type)

        if current_reps == 0:
            # Thinking time during first encoding is not penalized
            if time_spent_ms > baseline * FIRST_ENCOUNTER_SLOW_FACTOR:
                return Rating.HARD
            return Rating.GOOD

        if time_spent_ms < baseline * FAST_FACTOR:
            rating = Rating.EASY
        elif time_spent_ms > baseline * SLOW_FACTOR:
            rating = Rating.HARD
        else:
            rating = Rating.GOOD

        logger.debug(
            f"Latency {time_spent_ms:.0f}ms vs {baseline:.0f}ms baseline ({item_type}) -> {rating.name}"
        )
        return rating


def fallback_rating(is_correct: bool, attempts: int) -> Rating:
    """Rating used when no telemetry was captured."""
    if not is_correct:
        return Rating.AGAIN
    return Rating.GOOD if attempts <= 1 else Rating.HARD
