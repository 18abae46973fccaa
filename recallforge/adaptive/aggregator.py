"""
Concept Aggregator.

Collapses the phrasings of one concept (root item + variants) into a single
health view. A concept is only as strong as its weakest phrasing, so
stability and due date take the minimum across the group.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace

from recallforge.core.mastery import round_half_up
from recallforge.core.models import ConceptRecord, Item


def concept_group(root: Item) -> tuple[Item, list[Item]]:
    """Return ``(root, variants)`` from the item's embedded variants."""
    return root, list(root.variants)


def aggregate(root: Item, variants: Sequence[Item] = ()) -> ConceptRecord | None:
    """
    Aggregate the health of a concept group.

    Args:
        root: Root item of the group
        variants: Other phrasings of the same concept

    Returns:
        Aggregated ConceptRecord (identity copied from the root), the root's
        own record if no member carries one, or None for an empty group
    """
    records = [m.record for m in (root, *variants) if m.record is not None]
    if not records:
        return root.record

    base = root.record if root.record is not None else records[0]
    return replace(
        base,
        level=max(r.level for r in records),
        mastery_score=round_half_up(sum(r.mastery_score for r in records) / len(records)),
        stability=min(r.stability for r in records),
        due_at=min(r.due_at for r in records),
    )
