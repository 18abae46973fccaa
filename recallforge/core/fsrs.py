"""
FSRS Memory Model & Scheduler.

Implements the FSRS-5 update rules:
1. Initial stability/difficulty from the first rating
2. Short-term stability while Learning/Relearning
3. Recall stability growth (Hard < Good < Easy)
4. Post-lapse stability on Again from Review
5. Power forgetting curve for retrievability and intervals

All coefficients live in FSRSParameters so alternative parameter sets can
be swapped in without touching callers.

Based on:
- Ye et al. (FSRS algorithm)
- open-spaced-repetition/py-fsrs (FSRS-5 reference formulas)
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime

from loguru import logger

from recallforge.core.mastery import add_days, clamp, days_between, ensure_utc, finite_or_zero
from recallforge.core.models import CardState, MemoryState, Rating

# =============================================================================
# FSRS-5 CONSTANTS
# =============================================================================

# Published FSRS-5 default weights (w0..w18)
FSRS5_DEFAULT_WEIGHTS = (
    0.40255, 1.18385, 3.173, 15.69105,  # w0-w3: initial stability per rating
    7.1949, 0.5345,                     # w4-w5: initial difficulty
    1.4604, 0.0046,                     # w6-w7: difficulty step, mean reversion
    1.54575, 0.1192, 1.01925,           # w8-w10: recall stability growth
    1.9395, 0.11, 0.29605, 2.2698,      # w11-w14: post-lapse stability
    0.2315, 2.9898,                     # w15-w16: hard penalty, easy bonus
    0.51655, 0.6621,                    # w17-w18: short-term stability
)

DECAY = -0.5
FACTOR = 0.9 ** (1 / DECAY) - 1  # 19/81, makes R(S, S) == 0.9

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0


@dataclass(frozen=True)
class FSRSParameters:
    """Injectable FSRS parameterization."""

    weights: tuple[float, ...] = FSRS5_DEFAULT_WEIGHTS
    request_retention: float = 0.9
    maximum_interval: int = 36500
    stability_floor: float = 0.1

    def __post_init__(self):
        object.__setattr__(self, "weights", tuple(float(w) for w in self.weights))
        if len(self.weights) != len(FSRS5_DEFAULT_WEIGHTS):
            raise ValueError(
                f"FSRS needs {len(FSRS5_DEFAULT_WEIGHTS)} weights, got {len(self.weights)}"
            )
        if not 0 < self.request_retention < 1:
            raise ValueError(f"request_retention must be in (0, 1), got {self.request_retention}")

    @classmethod
    def from_settings(cls, settings=None) -> FSRSParameters:
        """Build parameters from the application settings."""
        if settings is None:
            from config import get_settings

            settings = get_settings()
        return cls(**settings.get_fsrs_config())


def forgetting_curve(elapsed_days: float, stability: float) -> float:
    """Probability of recall after ``elapsed_days`` for a given stability."""
    if stability <= 0:
        return 0.0
    return math.pow(1 + FACTOR * elapsed_days / stability, DECAY)


class FSRSScheduler:
    """
    FSRS-5 Spaced Repetition Scheduler.

    Pure: ``schedule`` maps (state, rating, now) to a new state and reads no
    clock of its own.
    """

    def __init__(self, params: FSRSParameters | None = None):
        self.params = params or FSRSParameters()
        self.w = self.params.weights

    def schedule(self, state: MemoryState, rating: Rating, now: datetime) -> MemoryState:
        """
        Process a review and return the new memory state.

        Args:
            state: Current memory state
            rating: Review outcome
            now: Review time (caller supplied)

        Returns:
            New MemoryState with updated stability, difficulty and due date
        """
        rating = Rating(rating)
        now = ensure_utc(now)
        lapses = state.lapses

        if state.state == CardState.NEW:
            stability = self._initial_stability(rating)
            difficulty = self._initial_difficulty(rating)
            next_state = CardState.LEARNING

        elif state.state in (CardState.LEARNING, CardState.RELEARNING):
            stability = self._short_term_stability(self._current_stability(state), rating)
            difficulty = self._next_difficulty(state.difficulty, rating)
            if rating >= Rating.GOOD:
                next_state = CardState.REVIEW
            else:
                next_state = state.state

        else:
            current = self._current_stability(state)
            r = self._review_retrievability(state, now)
            difficulty = self._next_difficulty(state.difficulty, rating)
            if rating == Rating.AGAIN:
                stability = min(
                    self._next_forget_stability(self._difficulty_for(state), current, r),
                    current,
                )
                lapses += 1
                next_state = CardState.RELEARNING
            else:
                stability = self._next_recall_stability(
                    self._difficulty_for(state), current, r, rating
                )
                next_state = CardState.REVIEW

        stability = self._sanitize_stability(stability)
        difficulty = round(clamp(difficulty, MIN_DIFFICULTY, MAX_DIFFICULTY), 4)
        interval = self.next_interval(stability)

        logger.debug(
            f"FSRS {state.state.name}->{next_state.name} rating={rating.name} "
            f"S={state.stability:.2f}->{stability:.2f} D={difficulty:.2f} interval={interval}d"
        )

        return replace(
            state,
            stability=stability,
            difficulty=difficulty,
            repetition_count=state.repetition_count + 1,
            lapses=lapses,
            state=next_state,
            last_reviewed=now,
            due_at=add_days(now, interval),
        )

    def retrievability(self, state: MemoryState, now: datetime) -> float:
        """Current recall probability (0-1); 0 for never-reviewed items."""
        if state.state == CardState.NEW or state.stability <= 0:
            return 0.0
        return forgetting_curve(days_between(state.last_reviewed, now), state.stability)

    def next_interval(self, stability: float) -> int:
        """Whole days until recall probability falls to the requested retention."""
        interval = stability / FACTOR * (
            math.pow(self.params.request_retention, 1 / DECAY) - 1
        )
        interval = finite_or_zero(interval)
        return int(clamp(round(interval), 1, self.params.maximum_interval))

    # -------------------------------------------------------------------------
    # Update rules
    # -------------------------------------------------------------------------

    def _initial_stability(self, rating: Rating) -> float:
        return self.w[rating - 1]

    def _initial_difficulty(self, rating: Rating) -> float:
        d = self.w[4] - math.exp(self.w[5] * (rating - 1)) + 1
        return clamp(d, MIN_DIFFICULTY, MAX_DIFFICULTY)

    def _next_difficulty(self, d: float, rating: Rating) -> float:
        """Linear-damped step toward the rating, then mean reversion."""
        d = self._clamped_difficulty(d)
        delta = -self.w[6] * (rating - 3)
        damped = d + delta * (MAX_DIFFICULTY - d) / 9
        reverted = self.w[7] * self._initial_difficulty(Rating.EASY) + (1 - self.w[7]) * damped
        return clamp(reverted, MIN_DIFFICULTY, MAX_DIFFICULTY)

    def _short_term_stability(self, s: float, rating: Rating) -> float:
        return s * math.exp(self.w[17] * (rating - 3 + self.w[18]))

    def _next_recall_stability(self, d: float, s: float, r: float, rating: Rating) -> float:
        hard_penalty = self.w[15] if rating == Rating.HARD else 1.0
        easy_bonus = self.w[16] if rating == Rating.EASY else 1.0
        return s * (
            1
            + math.exp(self.w[8])
            * (11 - d)
            * math.pow(s, -self.w[9])
            * (math.exp((1 - r) * self.w[10]) - 1)
            * hard_penalty
            * easy_bonus
        )

    def _next_forget_stability(self, d: float, s: float, r: float) -> float:
        return (
            self.w[11]
            * math.pow(d, -self.w[12])
            * (math.pow(s + 1, self.w[13]) - 1)
            * math.exp((1 - r) * self.w[14])
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _current_stability(self, state: MemoryState) -> float:
        """Stability to grow from; a reviewed item never starts from zero."""
        return max(state.stability, self.params.stability_floor)

    def _difficulty_for(self, state: MemoryState) -> float:
        return self._clamped_difficulty(state.difficulty)

    def _clamped_difficulty(self, d: float) -> float:
        if d <= 0:
            # Records migrated without a difficulty start from a Good first review
            return self._initial_difficulty(Rating.GOOD)
        return clamp(d, MIN_DIFFICULTY, MAX_DIFFICULTY)

    def _review_retrievability(self, state: MemoryState, now: datetime) -> float:
        # Unknown review time: assume the item was reviewed on schedule
        if state.last_reviewed is None:
            return self.params.request_retention
        return forgetting_curve(days_between(state.last_reviewed, now), self._current_stability(state))

    def _sanitize_stability(self, stability: float) -> float:
        stability = finite_or_zero(stability)
        return round(max(self.params.stability_floor, stability), 4)
