"""
Study Module.

Provides the write path and the session-level read path:
- Rating classification from interaction telemetry
- Review commits (FSRS scheduling + consolidation guard + mastery)
- Adaptive session planning for concept groups
- Review forecast, weekly retro and weekly gate
- Progress metrics (achievements, realms, review streak)
"""

from recallforge.study.forecast import (
    ReviewForecast,
    WeeklyRetro,
    WeeklyStatus,
    build_forecast,
    weekly_status,
)
from recallforge.study.progress import (
    Achievement,
    ProgressReport,
    Realm,
    build_progress,
    calculate_achievements,
    calculate_realms,
    review_streak,
)
from recallforge.study.rating import RatingClassifier, estimated_minutes, fallback_rating
from recallforge.study.review import ConsolidationConfig, ReviewCommitter
from recallforge.study.session_planner import SessionPlan, SessionPlanner, SessionStrategy

__all__ = [
    "RatingClassifier",
    "estimated_minutes",
    "fallback_rating",
    "ConsolidationConfig",
    "ReviewCommitter",
    "SessionPlan",
    "SessionPlanner",
    "SessionStrategy",
    "ReviewForecast",
    "WeeklyRetro",
    "WeeklyStatus",
    "build_forecast",
    "weekly_status",
    "Achievement",
    "ProgressReport",
    "Realm",
    "build_progress",
    "calculate_achievements",
    "calculate_realms",
    "review_streak",
]
