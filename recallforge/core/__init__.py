"""
Core Module - Shared domain models and the memory model.

Components:
- models: Immutable records (ConceptRecord, Item, Page, Cycle, Mission)
- mastery: Numeric guards, time helpers, mastery score
- fsrs: FSRS-5 scheduler with injectable parameters
- ingest: Validation boundary for raw payloads

Design Principle:
The study/ and adaptive/ packages import shared concepts from here rather
than reimplementing them.
"""

from recallforge.core.exceptions import IngestError, LifecycleError, RecallForgeError
from recallforge.core.fsrs import FSRS5_DEFAULT_WEIGHTS, FSRSParameters, FSRSScheduler
from recallforge.core.ingest import dump_record, ingest_item, ingest_page, ingest_pages, ingest_record
from recallforge.core.mastery import (
    MasteryLevel,
    calculate_mastery_score,
    finite_or_zero,
    stability_target,
)
from recallforge.core.models import (
    CardState,
    ConceptKey,
    ConceptRecord,
    Cycle,
    CycleStatus,
    Item,
    MemoryState,
    Mission,
    MissionType,
    Page,
    Rating,
    ReviewItem,
    Telemetry,
)

__all__ = [
    # Models
    "CardState",
    "ConceptKey",
    "ConceptRecord",
    "Cycle",
    "CycleStatus",
    "Item",
    "MemoryState",
    "Mission",
    "MissionType",
    "Page",
    "Rating",
    "ReviewItem",
    "Telemetry",
    # Memory model
    "FSRS5_DEFAULT_WEIGHTS",
    "FSRSParameters",
    "FSRSScheduler",
    # Mastery
    "MasteryLevel",
    "calculate_mastery_score",
    "finite_or_zero",
    "stability_target",
    # Ingestion
    "dump_record",
    "ingest_item",
    "ingest_page",
    "ingest_pages",
    "ingest_record",
    # Errors
    "IngestError",
    "LifecycleError",
    "RecallForgeError",
]
