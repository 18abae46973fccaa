"""
Ingestion boundary.

Turns the calling layer's JSON-shaped payloads (camelCase keys, epoch-ms or
ISO timestamps) into immutable domain records. This is the only place that
parses raw data:

- Missing or blank entityId -> fresh ``concept.<uuid>`` identity
- Missing state -> New when never reviewed, otherwise Review
- Missing due date -> due immediately (``now``)
- Non-finite numbers -> 0, scores/stability clamped by the records themselves
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from recallforge.core.exceptions import IngestError
from recallforge.core.mastery import ensure_utc
from recallforge.core.models import (
    CardState,
    ConceptRecord,
    Cycle,
    CycleStatus,
    Item,
    Page,
    new_entity_id,
)


class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


def _from_epoch_ms(value: Any) -> Any:
    # Numbers are epoch milliseconds; pydantic alone would read small ones as seconds
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, UTC)
        except (OverflowError, OSError, ValueError) as e:
            raise ValueError(f"timestamp out of range: {value!r}") from e
    return value


class ConceptRecordPayload(_Payload):
    """Raw learning record (``srs`` object of an item)."""

    entity_id: str | None = Field(default=None, alias="entityId")
    repetition_count: int = Field(default=0, alias="repetitionCount")
    stability: float = 0.0
    difficulty: float = 0.0
    lapses: int = 0
    state: CardState | None = None
    level: int = 1
    integrated_levels: list[int] = Field(default_factory=list, alias="integratedLevels")
    name: str | None = None
    objective: str | None = None
    mastery_score: float = Field(default=0.0, alias="masteryScore")
    last_reviewed: datetime | None = Field(default=None, alias="lastReviewed")
    next_review_due: datetime | None = Field(default=None, alias="nextReviewDue")

    @field_validator("state", mode="before")
    @classmethod
    def _state_by_name(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.isdigit():
            try:
                return CardState[value.strip().upper()]
            except KeyError:
                raise ValueError(f"unknown state {value!r}") from None
        return value

    @field_validator("last_reviewed", "next_review_due", mode="before")
    @classmethod
    def _epoch_ms(cls, value: Any) -> Any:
        return _from_epoch_ms(value)

    @field_validator("integrated_levels", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ItemPayload(_Payload):
    """Raw item (``block``) with its optional record and variants."""

    id: str | None = None
    item_type: str = Field(default="text", alias="type")
    record: ConceptRecordPayload | None = Field(default=None, alias="srs")
    variants: list[ItemPayload] = Field(default_factory=list, alias="variations")

    @field_validator("variants", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


ItemPayload.model_rebuild()


class CyclePayload(_Payload):
    """Raw page cycle."""

    status: CycleStatus = CycleStatus.ACTIVE
    chapter: int = Field(default=1, ge=1)
    next_review: datetime | None = Field(default=None, alias="nextReview")
    last_retrieval: str | None = Field(default=None, alias="lastRetrieval")

    @field_validator("status", mode="before")
    @classmethod
    def _pending_is_locked(cls, value: Any) -> Any:
        # The gatekeeper phase is derived from Locked + due date, not stored
        if value == "retrieval_pending":
            return CycleStatus.LOCKED
        return value

    @field_validator("next_review", mode="before")
    @classmethod
    def _zero_is_unset(cls, value: Any) -> Any:
        return None if value == 0 else _from_epoch_ms(value)


class PagePayload(_Payload):
    """Raw page."""

    id: str
    title: str = "Untitled"
    items: list[ItemPayload] = Field(default_factory=list, alias="blocks")
    tags: list[str] = Field(default_factory=list)
    cycle: CyclePayload | None = None


# =============================================================================
# Conversion
# =============================================================================


def _validate(model: type[_Payload], payload: Any) -> Any:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise IngestError(f"Invalid {model.__name__}: {e}") from e


def ingest_record(payload: Mapping[str, Any] | ConceptRecordPayload, now: datetime) -> ConceptRecord:
    """
    Convert a raw record into a ConceptRecord.

    Args:
        payload: Raw ``srs`` mapping or an already validated payload
        now: Ingestion time, used as due date when none is given

    Returns:
        ConceptRecord with a guaranteed entity id
    """
    data = _validate(ConceptRecordPayload, payload)

    entity_id = (data.entity_id or "").strip()
    if not entity_id:
        entity_id = new_entity_id()
        logger.debug(f"Synthesized entity id {entity_id} at ingestion")

    state = data.state
    if state is None:
        state = CardState.NEW if data.repetition_count == 0 else CardState.REVIEW

    return ConceptRecord(
        entity_id=entity_id,
        due_at=data.next_review_due or now,
        level=data.level,
        integrated_levels=frozenset(data.integrated_levels),
        name=data.name,
        objective=data.objective,
        mastery_score=data.mastery_score,
        stability=data.stability,
        difficulty=data.difficulty,
        repetition_count=data.repetition_count,
        lapses=data.lapses,
        state=state,
        last_reviewed=data.last_reviewed,
    )


def ingest_item(payload: Mapping[str, Any] | ItemPayload, now: datetime) -> Item:
    """Convert a raw item (and its variants) into an Item."""
    data = _validate(ItemPayload, payload)
    return Item(
        id=data.id or f"item-{uuid4()}",
        item_type=data.item_type,
        record=ingest_record(data.record, now) if data.record is not None else None,
        variants=tuple(ingest_item(v, now) for v in data.variants),
    )


def ingest_page(payload: Mapping[str, Any] | PagePayload, now: datetime) -> Page:
    """Convert a raw page into a Page."""
    data = _validate(PagePayload, payload)
    cycle = None
    if data.cycle is not None:
        cycle = Cycle(
            status=data.cycle.status,
            chapter=data.cycle.chapter,
            next_review=ensure_utc(data.cycle.next_review) if data.cycle.next_review else None,
            last_retrieval=data.cycle.last_retrieval,
        )
    return Page(
        id=data.id,
        title=data.title,
        items=tuple(ingest_item(i, now) for i in data.items),
        tags=tuple(data.tags),
        cycle=cycle,
    )


def ingest_pages(payload: Sequence[Any] | Mapping[str, Any], now: datetime) -> list[Page]:
    """
    Convert an export into pages.

    Accepts either a list of pages or a mapping with a ``pages`` key.
    """
    if isinstance(payload, Mapping):
        if "pages" not in payload:
            raise IngestError("Export mapping has no 'pages' key")
        payload = payload["pages"]
    if isinstance(payload, (str, bytes)) or not isinstance(payload, Sequence):
        raise IngestError(f"Expected a list of pages, got {type(payload).__name__}")

    pages = [ingest_page(p, now) for p in payload]
    logger.debug(f"Ingested {len(pages)} pages")
    return pages


# =============================================================================
# Export
# =============================================================================


def to_epoch_ms(moment: datetime | None) -> int | None:
    if moment is None:
        return None
    return int(round(ensure_utc(moment).timestamp() * 1000))


def dump_record(record: ConceptRecord) -> dict[str, Any]:
    """Render a record in the calling layer's camelCase shape."""
    return {
        "entityId": record.entity_id,
        "repetitionCount": record.repetition_count,
        "stability": record.stability,
        "difficulty": record.difficulty,
        "lapses": record.lapses,
        "state": record.state.name.lower(),
        "level": record.level,
        "integratedLevels": sorted(record.integrated_levels),
        "name": record.name,
        "objective": record.objective,
        "masteryScore": record.mastery_score,
        "lastReviewed": to_epoch_ms(record.last_reviewed),
        "nextReviewDue": to_epoch_ms(record.due_at),
    }
