"""
Mission Planner.

Groups overdue concepts into coherent remediation "missions" by topic
cluster (``domain.subtopic`` of the entity id). A cluster becomes a
mission when it holds at least two concepts or anything critical;
everything else stays an orphan for regular review.

Mission types, highest priority first:
- REPAIR: the cluster has critical concepts (priority 10 + critical count)
- EXPANSION: average stability above 20 days (priority 5)
- SYNTHESIS: routine consolidation (priority 1)
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from loguru import logger

from recallforge.core.mastery import safe_ratio
from recallforge.core.models import (
    GENERAL_CLUSTER,
    Mission,
    MissionType,
    ReviewItem,
    cluster_topic_name,
)

CRITICAL_STABILITY_DAYS = 2.0
EXPANSION_STABILITY_DAYS = 20.0

REPAIR_BASE_PRIORITY = 10
EXPANSION_PRIORITY = 5
SYNTHESIS_PRIORITY = 1


@dataclass(frozen=True)
class MissionPlan:
    """Missions ordered by priority, plus items left for regular review."""

    missions: tuple[Mission, ...] = ()
    orphans: tuple[ReviewItem, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.missions and not self.orphans


@dataclass
class _Cluster:
    name: str
    items: list[ReviewItem] = field(default_factory=list)

    @property
    def topic_name(self) -> str:
        return cluster_topic_name(self.name)

    def add(self, review_item: ReviewItem) -> None:
        # The same item listed twice is still one concept
        if all(i.item.id != review_item.item.id for i in self.items):
            self.items.append(review_item)

    def stabilities(self) -> list[float]:
        # A concept without a record has no stability at all
        return [i.record.stability if i.record is not None else 0.0 for i in self.items]


def _cluster_of(review_item: ReviewItem) -> str:
    record = review_item.record
    return record.key.cluster if record is not None else GENERAL_CLUSTER


class MissionPlanner:
    """
    Cluster overdue concepts into missions.

    Inputs are partitioned exactly: every item ends up in one mission or in
    the orphan list, never both.
    """

    def __init__(
        self,
        critical_stability_days: float = CRITICAL_STABILITY_DAYS,
        expansion_stability_days: float = EXPANSION_STABILITY_DAYS,
    ):
        self.critical_stability_days = critical_stability_days
        self.expansion_stability_days = expansion_stability_days

    @classmethod
    def from_settings(cls, settings=None) -> MissionPlanner:
        if settings is None:
            from config import get_settings

            settings = get_settings()
        config = settings.get_planner_config()
        return cls(
            critical_stability_days=config["critical_stability_days"],
            expansion_stability_days=config["expansion_stability_days"],
        )

    def plan(self, overdue_items: Iterable[ReviewItem]) -> MissionPlan:
        """
        Build the mission plan.

        Args:
            overdue_items: Overdue concepts (e.g. ReviewForecast.overdue_items)

        Returns:
            MissionPlan with missions sorted by descending priority
        """
        clusters: dict[str, _Cluster] = {}
        for review_item in overdue_items:
            name = _cluster_of(review_item)
            clusters.setdefault(name, _Cluster(name)).add(review_item)

        missions: list[Mission] = []
        orphans: list[ReviewItem] = []

        for cluster in clusters.values():
            stabilities = cluster.stabilities()
            critical_count = sum(1 for s in stabilities if s < self.critical_stability_days)

            if len(cluster.items) < 2 and critical_count == 0:
                orphans.extend(cluster.items)
                continue

            avg_stability = safe_ratio(sum(stabilities), len(stabilities))
            missions.append(self._build_mission(cluster, critical_count, avg_stability))

        missions.sort(key=lambda m: m.priority, reverse=True)
        logger.info(f"Planned {len(missions)} missions, {len(orphans)} orphans")
        return MissionPlan(missions=tuple(missions), orphans=tuple(orphans))

    def _build_mission(self, cluster: _Cluster, critical_count: int, avg_stability: float) -> Mission:
        if critical_count > 0:
            mission_type = MissionType.REPAIR
            title = f"{cluster.topic_name} Reinforcement"
            reason = "Detected foundational cracks. Immediate intervention required."
            priority = REPAIR_BASE_PRIORITY + critical_count
        elif avg_stability > self.expansion_stability_days:
            mission_type = MissionType.EXPANSION
            title = f"{cluster.topic_name} Evolution"
            reason = "Concepts are stable. Ready for Level +1 complexity."
            priority = EXPANSION_PRIORITY
        else:
            mission_type = MissionType.SYNTHESIS
            title = f"{cluster.topic_name} Integration"
            reason = "Routine consolidation of knowledge."
            priority = SYNTHESIS_PRIORITY

        logger.debug(
            f"Cluster {cluster.name}: {mission_type.value} "
            f"(size={len(cluster.items)}, critical={critical_count}, avg={avg_stability:.1f})"
        )
        return Mission(
            title=title,
            type=mission_type,
            reason=reason,
            target_item_ids=tuple(i.item.id for i in cluster.items),
            priority=priority,
            cluster=cluster.name,
        )
