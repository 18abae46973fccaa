"""
Unit tests for domain models and numeric helpers.
"""

from dataclasses import FrozenInstanceError, replace
from datetime import UTC, datetime

import pytest

from recallforge.core.mastery import (
    MasteryLevel,
    clamp,
    days_between,
    ensure_utc,
    finite_or_zero,
    round_half_up,
    safe_ratio,
    stability_target,
)
from recallforge.core.models import (
    GENERAL_CLUSTER,
    CardState,
    ConceptKey,
    ConceptRecord,
    Cycle,
    Mission,
    MissionType,
)


class TestConceptKey:
    """Structured identity parsed from dotted entity ids."""

    def test_full_id(self):
        key = ConceptKey.parse("concept.physics.energy.kinetic")

        assert key.namespace == "concept"
        assert key.domain == "physics"
        assert key.subtopic == "energy"
        assert key.concept == "kinetic"
        assert key.cluster == "physics.energy"
        assert key.topic_name == "Physics: Energy"

    def test_deep_concept_kept_whole(self):
        assert ConceptKey.parse("concept.a.b.c.d").concept == "c.d"

    def test_domain_only(self):
        key = ConceptKey.parse("concept.history")

        assert key.cluster == "history"
        assert key.topic_name == "History"

    def test_bare_id_is_general(self):
        key = ConceptKey.parse("gen")

        assert key.cluster == GENERAL_CLUSTER
        assert key.topic_name == "General"


class TestConceptRecord:
    def test_key_parsed_on_construction(self, make_record):
        record = make_record(entity_id="concept.chem.bonds.ionic")

        assert record.key.cluster == "chem.bonds"

    def test_key_follows_replaced_identity(self, make_record):
        record = replace(make_record(), entity_id="concept.bio.cell.membrane")

        assert record.key.cluster == "bio.cell"

    def test_blank_entity_id_synthesized(self, now):
        record = ConceptRecord(entity_id="", due_at=now)

        assert record.entity_id.startswith("concept.")

    def test_invariants_clamped(self, now):
        record = ConceptRecord(
            entity_id="concept.x",
            due_at=now,
            level=0,
            mastery_score=140,
            stability=float("inf"),
            repetition_count=-2,
        )

        assert record.level == 1
        assert record.mastery_score == 100
        assert record.stability == 0.0
        assert record.repetition_count == 0

    def test_naive_datetimes_become_utc(self):
        record = ConceptRecord(entity_id="concept.x", due_at=datetime(2025, 1, 1, 8, 0))

        assert record.due_at.tzinfo is not None
        assert record.due_at == datetime(2025, 1, 1, 8, 0, tzinfo=UTC)

    def test_frozen(self, make_record):
        with pytest.raises(FrozenInstanceError):
            make_record().stability = 3.0

    def test_memory_view(self, make_record, now):
        memory = make_record(stability=2.5, repetition_count=1, last_reviewed=now).memory

        assert memory.stability == 2.5
        assert memory.state == CardState.REVIEW
        assert memory.last_reviewed == now


class TestSmallModels:
    def test_cycle_chapter_at_least_one(self):
        assert Cycle(chapter=0).chapter == 1

    def test_mission_id_is_deterministic(self):
        mission = Mission(
            title="Bio: Cell Integration",
            type=MissionType.SYNTHESIS,
            reason="Routine consolidation of knowledge.",
            target_item_ids=("q1", "q2"),
            priority=1,
            cluster="bio.cell",
        )

        assert mission.id == "mission-bio.cell"


class TestNumericHelpers:
    def test_finite_or_zero(self):
        assert finite_or_zero(None) == 0.0
        assert finite_or_zero(float("nan")) == 0.0
        assert finite_or_zero(float("-inf")) == 0.0
        assert finite_or_zero(2) == 2.0

    def test_clamp(self):
        assert clamp(5, 0, 3) == 3
        assert clamp(-1, 0, 3) == 0
        assert clamp(float("nan"), 1, 10) == 1

    def test_safe_ratio(self):
        assert safe_ratio(1, 0) == 0.0
        assert safe_ratio(1, 4) == pytest.approx(0.25)

    @pytest.mark.parametrize("value, expected", [(0.5, 1), (50.5, 51), (50.49, 50), (2.0, 2)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_days_between(self, now):
        earlier = datetime(2025, 1, 14, 0, 0, tzinfo=UTC)

        assert days_between(earlier, now) == pytest.approx(1.5)
        assert days_between(now, earlier) == 0.0
        assert days_between(None, now) == 0.0

    def test_ensure_utc_converts_offsets(self):
        from datetime import timedelta, timezone

        plus_two = datetime(2025, 1, 1, 10, 0, tzinfo=timezone(timedelta(hours=2)))

        assert ensure_utc(plus_two).hour == 8

    @pytest.mark.parametrize("level, target", [(1, 21), (2, 60), (3, 60), (4, 100), (9, 100)])
    def test_stability_target(self, level, target):
        assert stability_target(level) == target


class TestMasteryLevel:
    @pytest.mark.parametrize(
        "score, level",
        [
            (0, MasteryLevel.NOT_STARTED),
            (20, MasteryLevel.NOVICE),
            (55, MasteryLevel.DEVELOPING),
            (75, MasteryLevel.PROFICIENT),
            (95, MasteryLevel.MASTERED),
        ],
    )
    def test_from_score(self, score, level):
        assert MasteryLevel.from_score(score) == level

    def test_display(self):
        assert MasteryLevel.NOT_STARTED.display_name == "Not Started"
        assert MasteryLevel.MASTERED.color == "green"
