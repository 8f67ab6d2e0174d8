"""Cycle-safe mutations of a flat parent-pointer collection.

Functions return new item lists; the caller's list and items are left as
they were, so a rejected change never needs undoing.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Sequence, Union

from loguru import logger
from pydantic import ValidationError

from tree_core import (
    CycleError,
    NodeNotFoundError,
    ParentNotFoundError,
    SelfReferenceError,
    TreeError,
    TreeValidationError,
)

from .hierarchy import get_descendant_ids, index_by_id, require_item
from .models import (
    ROOT_PARENT,
    BulkReparentResult,
    FlatItem,
    ItemId,
    ParentUpdate,
    ReparentOutcome,
    ReparentResult,
)


def ensure_parent_exists(items: Sequence[FlatItem], parent_id: ItemId) -> None:
    if parent_id == ROOT_PARENT:
        return
    if parent_id not in index_by_id(items):
        raise ParentNotFoundError(
            f"Parent term with ID '{parent_id}' not found.", node_id=parent_id
        )


def validate_reparent(items: Sequence[FlatItem], item_id: ItemId, new_parent_id: ItemId) -> FlatItem:
    """Check a parent change without applying it; returns the item to change."""

    item = require_item(items, item_id)
    if new_parent_id == item_id:
        raise SelfReferenceError("A term cannot be its own parent.", node_id=item_id)
    ensure_parent_exists(items, new_parent_id)
    if new_parent_id != ROOT_PARENT and new_parent_id in get_descendant_ids(items, item_id):
        raise CycleError("Cannot create circular reference.", node_id=item_id)
    return item


def reparent(items: Sequence[FlatItem], item_id: ItemId, new_parent_id: ItemId) -> ReparentResult:
    """Point ``item_id`` at ``new_parent_id``; no other item changes."""

    item = validate_reparent(items, item_id, new_parent_id)
    moved = item.model_copy(update={"parent_id": new_parent_id})
    updated = [moved if existing.id == item_id else existing for existing in items]
    logger.debug(
        "Reparented term {item_id}: {old} -> {new}",
        item_id=item_id,
        old=item.parent_id,
        new=new_parent_id,
    )
    return ReparentResult(items=updated, item=moved, previous_parent_id=item.parent_id)


def parse_parent_update(raw: Mapping) -> ParentUpdate:
    try:
        return ParentUpdate.model_validate(raw)
    except ValidationError as exc:
        raise TreeValidationError(f"Malformed parent update: {exc}") from exc


def rejected_outcome(raw: Union[ParentUpdate, Mapping, object], exc: TreeError) -> ReparentOutcome:
    """Failed outcome for ``raw``, keeping whichever ids it carried."""

    if isinstance(raw, ParentUpdate):
        fields = raw.model_dump()
    elif isinstance(raw, Mapping):
        fields = raw
    else:
        fields = {}

    def usable(key: str):
        value = fields.get(key)
        return value if isinstance(value, (int, str)) and not isinstance(value, bool) else None

    return ReparentOutcome(
        id=usable("id"),
        new_parent_id=usable("new_parent_id"),
        success=False,
        code=exc.code,
        message=exc.message,
    )


def bulk_reparent(
    items: Sequence[FlatItem],
    updates: Iterable[Union[ParentUpdate, Mapping]],
) -> BulkReparentResult:
    """
    Apply each update on its own, in order, against the running result.

    A rejected or malformed update is recorded and skipped; the rest still apply.
    """

    current: List[FlatItem] = list(items)
    outcomes: List[ReparentOutcome] = []
    for raw in updates:
        try:
            update = raw if isinstance(raw, ParentUpdate) else parse_parent_update(raw)
            current = reparent(current, update.id, update.new_parent_id).items
        except TreeError as exc:
            outcomes.append(rejected_outcome(raw, exc))
        else:
            outcomes.append(
                ReparentOutcome(id=update.id, new_parent_id=update.new_parent_id, success=True)
            )
    return BulkReparentResult(items=current, outcomes=outcomes)


def validate_new_item(items: Sequence[FlatItem], name: str, parent_id: ItemId = ROOT_PARENT) -> str:
    """Check a term about to be created; returns the cleaned name."""

    cleaned = (name or "").strip()
    if not cleaned:
        raise TreeValidationError("Term name is required.")
    ensure_parent_exists(items, parent_id)
    folded = cleaned.casefold()
    for item in items:
        if item.parent_id == parent_id and item.name.strip().casefold() == folded:
            raise TreeValidationError(
                "A term with the name provided already exists with this parent."
            )
    return cleaned


def reorder_siblings(items: Sequence[FlatItem], ordered_ids: Sequence[ItemId]) -> List[FlatItem]:
    """Give each listed item ``order = position`` in the list."""

    lookup = index_by_id(items)
    missing = [item_id for item_id in ordered_ids if item_id not in lookup]
    if missing:
        raise NodeNotFoundError(f"Terms not found: {missing}", node_id=missing[0])

    positions = {item_id: position for position, item_id in enumerate(ordered_ids)}
    return [
        item.model_copy(update={"order": positions[item.id]}) if item.id in positions else item
        for item in items
    ]
