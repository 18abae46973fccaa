"""
Unit tests for the adaptive session planner.

Tests:
- Tier selection (critical repair, expansion, maintenance, interleave)
- Limit and deduplication
- Final ordering by level
- Deterministic shuffling with a seeded RNG
"""

import random

import pytest

from recallforge.study.session_planner import SessionPlanner, SessionStrategy


@pytest.fixture
def planner():
    return SessionPlanner(rng=random.Random(7))


class TestStrategy:
    """Which tier drives the session."""

    def test_critical_members_come_first(self, planner, make_item, now):
        root = make_item("q1", level=1, stability=1.0, repetition_count=2, due_in_days=5)
        variants = [
            make_item("q1-v1", level=2, stability=30.0, repetition_count=4, due_in_days=5),
            make_item("q1-v2", level=3, stability=0.5, repetition_count=1, due_in_days=5),
        ]

        plan = planner.plan(root, now, variants=variants)

        assert plan.strategy == SessionStrategy.CRITICAL_REPAIR
        assert plan.critical_count == 2
        assert "2 foundational cracks" in plan.reason
        assert "Level 1" in plan.reason
        assert {"q1", "q1-v2"} <= set(plan.item_ids)

    def test_unreviewed_low_stability_is_not_critical(self, planner, make_item, now):
        """New members have no stability yet; that is not a crack."""
        root = make_item("q1", stability=0.0, repetition_count=0)

        plan = planner.plan(root, now)

        assert plan.critical_count == 0
        assert plan.strategy == SessionStrategy.EXPANSION

    def test_expansion_picks_weakest_frontier_member(self, make_item, now):
        planner = SessionPlanner(rng=random.Random(1))
        root = make_item("q1", level=1, stability=40.0, repetition_count=5, mastery_score=100, due_in_days=9)
        variants = [
            make_item("q1-v1", level=3, stability=30.0, repetition_count=3, mastery_score=70, due_in_days=9),
            make_item("q1-v2", level=3, stability=25.0, repetition_count=3, mastery_score=40, due_in_days=9),
        ]

        plan = planner.plan(root, now, limit=1, variants=variants)

        assert plan.strategy == SessionStrategy.EXPANSION
        assert plan.reason == "Foundation stable. Expanding Level 3."
        assert plan.item_ids == ["q1-v2"]

    def test_maintenance_fills_with_oldest_due(self, planner, make_item, now):
        root = make_item("q1", level=2, stability=10.0, repetition_count=3, mastery_score=10, due_in_days=1)
        variants = [
            make_item("q1-v1", level=1, stability=10.0, repetition_count=3, due_in_days=-1),
            make_item("q1-v2", level=1, stability=10.0, repetition_count=3, due_in_days=-5),
            make_item("q1-v3", level=1, stability=10.0, repetition_count=3, due_in_days=3),
        ]

        plan = planner.plan(root, now, limit=3, variants=variants)

        # Expansion focus (q1) plus the two overdue members, not the future one
        assert set(plan.item_ids) == {"q1", "q1-v1", "q1-v2"}


class TestQueueShape:
    """Limit, deduplication and ordering."""

    def test_respects_limit(self, planner, make_item, now):
        root = make_item("q1", variants=[make_item(f"q1-v{i}") for i in range(8)])

        plan = planner.plan(root, now, limit=5)

        assert len(plan.queue) == 5

    def test_no_duplicates(self, planner, make_item, now):
        """A critical, overdue member must appear only once."""
        root = make_item("q1", stability=1.0, repetition_count=2, due_in_days=-3)
        variants = [make_item("q1-v1", stability=0.5, repetition_count=1, due_in_days=-2)]

        plan = planner.plan(root, now, limit=5, variants=variants)

        assert sorted(plan.item_ids) == ["q1", "q1-v1"]

    def test_sorted_by_level(self, planner, make_item, now):
        root = make_item("q1", level=3)
        variants = [make_item("q1-v1", level=1), make_item("q1-v2", level=2)]

        plan = planner.plan(root, now, variants=variants)

        assert [item.record.level for item in plan.queue] == [1, 2, 3]

    def test_non_learnable_members_skipped(self, planner, make_item, now):
        root = make_item("heading", record=None, variants=[make_item("q1")])

        plan = planner.plan(root, now)

        assert plan.item_ids == ["q1"]

    def test_empty_group(self, planner, make_item, now):
        plan = planner.plan(make_item("heading", record=None), now)

        assert plan.queue == ()
        assert plan.strategy == SessionStrategy.MAINTENANCE
        assert plan.reason == "No content."

    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_limit_is_empty(self, planner, make_item, now, limit):
        assert planner.plan(make_item("q1"), now, limit=limit).queue == ()

    def test_embedded_variants_used_by_default(self, planner, make_item, now):
        root = make_item("q1", variants=[make_item("q1-v1")])

        assert sorted(planner.plan(root, now).item_ids) == ["q1", "q1-v1"]


class TestDeterminism:
    """Seeded RNG makes the interleave tier reproducible."""

    def _group(self, make_item):
        # All stable, none due: only the expansion pick and the shuffle apply
        variants = [
            make_item(f"q1-v{i}", level=1, stability=30.0, repetition_count=3, due_in_days=10)
            for i in range(10)
        ]
        return make_item("q1", level=2, stability=30.0, repetition_count=3, due_in_days=10, variants=variants)

    def test_same_seed_same_queue(self, make_item, now):
        root = self._group(make_item)

        first = SessionPlanner(rng=random.Random(42)).plan(root, now, limit=4)
        second = SessionPlanner(rng=random.Random(42)).plan(root, now, limit=4)

        assert first.item_ids == second.item_ids

    def test_expansion_focus_always_included(self, make_item, now):
        root = self._group(make_item)

        for seed in range(5):
            plan = SessionPlanner(rng=random.Random(seed)).plan(root, now, limit=3)
            assert "q1" in plan.item_ids
