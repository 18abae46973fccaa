"""
Unit tests for the ReviewCommitter.

Tests:
- Full commit through the scheduler (telemetry and fallback ratings)
- Identity preservation and entity id synthesis
- Same-session consolidation guard
- Mastery recalculation against the level's stability target
"""

from datetime import timedelta

import pytest

from recallforge.core.mastery import calculate_mastery_score
from recallforge.core.models import CardState, Telemetry
from recallforge.study.review import ConsolidationConfig, ReviewCommitter


@pytest.fixture
def committer():
    return ReviewCommitter()


@pytest.fixture
def reviewed_record(make_record, now):
    """A Review-state record last seen two days ago."""
    return make_record(
        stability=1.0,
        difficulty=5.0,
        repetition_count=3,
        last_reviewed=now - timedelta(days=2),
        name="Kinetic energy",
        objective="Relate speed and energy",
        level=2,
        integrated_levels=frozenset({1}),
    )


class TestCommit:
    """Commits that run the full scheduler."""

    def test_fast_correct_answer_grows_stability(self, committer, reviewed_record, now):
        """Fast, hint-free, first-try answer rates Easy and grows stability."""
        telemetry = Telemetry(hints_used=0, time_spent_ms=5000, item_type="mcq")

        result = committer.commit(reviewed_record, True, 1, now, telemetry=telemetry)

        assert result.stability > reviewed_record.stability
        assert result.repetition_count == 4
        assert result.last_reviewed == now
        assert result.mastery_score == calculate_mastery_score(result.stability, 2)

    def test_easy_beats_good(self, committer, reviewed_record, now):
        fast = Telemetry(time_spent_ms=5000, item_type="mcq")
        normal = Telemetry(time_spent_ms=15000, item_type="mcq")

        easy = committer.commit(reviewed_record, True, 1, now, telemetry=fast)
        good = committer.commit(reviewed_record, True, 1, now, telemetry=normal)

        assert easy.stability > good.stability

    def test_identity_preserved(self, committer, reviewed_record, now):
        result = committer.commit(reviewed_record, True, 1, now)

        assert result.entity_id == reviewed_record.entity_id
        assert result.name == "Kinetic energy"
        assert result.objective == "Relate speed and energy"
        assert result.level == 2
        assert result.integrated_levels == frozenset({1})
        assert result.key.cluster == "physics.energy"

    def test_incorrect_answer_is_a_lapse(self, committer, reviewed_record, now):
        result = committer.commit(reviewed_record, False, 1, now)

        assert result.lapses == 1
        assert result.state == CardState.RELEARNING
        assert result.stability <= reviewed_record.stability

    def test_input_record_unchanged(self, committer, reviewed_record, now):
        committer.commit(reviewed_record, True, 1, now)

        assert reviewed_record.repetition_count == 3
        assert reviewed_record.stability == 1.0


class TestFirstEncounter:
    """Commits without an existing record."""

    def test_new_record_gets_generated_identity(self, committer, now):
        result = committer.commit(None, True, 1, now)

        assert result.entity_id.startswith("gen.")
        assert result.level == 1
        assert result.repetition_count == 1
        assert result.state == CardState.LEARNING
        assert result.due_at > now

    def test_new_records_never_share_identity(self, committer, now):
        first = committer.commit(None, True, 1, now)
        second = committer.commit(None, True, 1, now)

        assert first.entity_id != second.entity_id


class TestConsolidation:
    """Repeat reviews inside the same study session."""

    def test_repeat_success_only_bumps_timestamp(self, committer, now):
        first = committer.commit(None, True, 1, now)
        repeat_at = now + timedelta(minutes=5)

        second = committer.commit(first, True, 1, repeat_at)

        assert second.last_reviewed == repeat_at
        assert second.stability == first.stability
        assert second.difficulty == first.difficulty
        assert second.repetition_count == first.repetition_count
        assert second.due_at == first.due_at

    def test_repeat_failure_penalizes_stability(self, committer, now):
        first = committer.commit(None, True, 1, now)
        repeat_at = now + timedelta(minutes=5)

        second = committer.commit(first, False, 1, repeat_at)

        assert second.stability == pytest.approx(max(0.1, first.stability * 0.8))
        assert second.due_at == repeat_at + timedelta(days=1)
        assert second.repetition_count == first.repetition_count
        assert second.lapses == first.lapses

    def test_penalty_respects_floor(self, make_record, now):
        committer = ReviewCommitter()
        record = make_record(
            stability=0.1,
            repetition_count=2,
            last_reviewed=now - timedelta(minutes=1),
        )

        result = committer.commit(record, False, 1, now)

        assert result.stability == pytest.approx(0.1)

    def test_outside_window_runs_scheduler(self, committer, now):
        first = committer.commit(None, True, 1, now)

        later = committer.commit(first, True, 1, now + timedelta(minutes=25))

        assert later.repetition_count == first.repetition_count + 1

    def test_custom_window(self, now):
        committer = ReviewCommitter(consolidation=ConsolidationConfig(window_minutes=60))
        first = committer.commit(None, True, 1, now)

        second = committer.commit(first, True, 1, now + timedelta(minutes=45))

        assert second.repetition_count == first.repetition_count

    def test_missing_last_reviewed_never_consolidates(self, committer, make_record, now):
        record = make_record(stability=5.0, difficulty=5.0, repetition_count=2, last_reviewed=None)

        result = committer.commit(record, True, 1, now)

        assert result.repetition_count == 3


class TestMastery:
    """Mastery score recalculated from stability and level."""

    @pytest.mark.parametrize(
        "stability, level, expected",
        [
            (10.5, 1, 50),
            (21.0, 1, 100),
            (30.0, 2, 50),
            (50.0, 4, 50),
            (500.0, 4, 100),
            (0.0, 1, 0),
        ],
    )
    def test_score_against_target(self, stability, level, expected):
        assert calculate_mastery_score(stability, level) == expected

    def test_non_finite_is_zero(self):
        assert calculate_mastery_score(float("nan"), 1) == 0
