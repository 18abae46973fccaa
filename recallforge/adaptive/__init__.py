"""
Adaptive Module.

Read-side aggregation and planning over reviewed content:
- ConceptAggregator: one health view per concept group (weakest phrasing wins)
- PageLifecycleManager: page lock/unlock cycle, lesson closure, evolution
- MissionPlanner: clusters overdue concepts into remediation missions
"""

from recallforge.adaptive.aggregator import aggregate, concept_group
from recallforge.adaptive.lifecycle import (
    CyclePhase,
    PageLifecycle,
    PageLifecycleManager,
    cycle_phase,
)
from recallforge.adaptive.mission_planner import MissionPlan, MissionPlanner

__all__ = [
    "aggregate",
    "concept_group",
    "CyclePhase",
    "PageLifecycle",
    "PageLifecycleManager",
    "cycle_phase",
    "MissionPlan",
    "MissionPlanner",
]
