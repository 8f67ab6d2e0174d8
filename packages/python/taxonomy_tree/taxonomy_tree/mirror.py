"""Client-side mirror of a taxonomy collection.

A mirror lets a UI show a parent change immediately while the store write is
in flight. The mirror is advisory: the store's response is the source of
truth, and every tentative change ends either confirmed or reverted.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel

from .hierarchy import build_hierarchy, parent_options
from .models import FlatItem, HierarchyEntry, ItemId, ParentOption
from .reparent import reparent


class PendingMove(BaseModel):
    token: str
    item_id: ItemId
    previous_parent_id: ItemId
    new_parent_id: ItemId


class TermMirror:
    """In-memory copy of a collection with tentative-apply / confirm-or-revert."""

    def __init__(self, items: Iterable[FlatItem] = ()) -> None:
        self._items: List[FlatItem] = list(items)
        self._pending: Dict[str, PendingMove] = {}

    @property
    def items(self) -> List[FlatItem]:
        return list(self._items)

    @property
    def pending(self) -> List[PendingMove]:
        return list(self._pending.values())

    def hierarchy(self) -> List[HierarchyEntry]:
        return build_hierarchy(self._items)

    def parent_options(self, exclude_id: Optional[ItemId] = None) -> List[ParentOption]:
        return parent_options(self._items, exclude_id)

    def apply_tentative(self, item_id: ItemId, new_parent_id: ItemId) -> PendingMove:
        """Validate and show a parent change before the store confirms it."""

        result = reparent(self._items, item_id, new_parent_id)
        move = PendingMove(
            token=uuid4().hex,
            item_id=item_id,
            previous_parent_id=result.previous_parent_id,
            new_parent_id=new_parent_id,
        )
        self._items = result.items
        self._pending[move.token] = move
        return move

    def confirm(self, token: str, item: Optional[FlatItem] = None) -> None:
        """Accept a pending change, patching in the store's copy of the item."""

        move = self._pending.pop(token, None)
        if move is None:
            logger.debug("Ignoring confirmation for unknown move {token}", token=token)
            return
        if item is not None:
            self._replace(item)

    def revert(self, token: str) -> bool:
        """
        Undo a pending change after the store rejected it.

        Returns False when a later change already moved the item elsewhere;
        in that case the item is left as the later change put it.
        """

        move = self._pending.pop(token, None)
        if move is None:
            return False
        current = next((i for i in self._items if i.id == move.item_id), None)
        if current is None or current.parent_id != move.new_parent_id:
            logger.warning(
                "Not reverting term {item_id}; it changed again after move {token}",
                item_id=move.item_id,
                token=token,
            )
            return False
        self._replace(current.model_copy(update={"parent_id": move.previous_parent_id}))
        return True

    def resync(self, items: Iterable[FlatItem]) -> None:
        """Replace the mirror with a fresh load from the store."""

        self._items = list(items)
        if self._pending:
            logger.debug("Dropping {count} pending moves on resync", count=len(self._pending))
        self._pending.clear()

    def add(self, item: FlatItem) -> None:
        self._replace(item)

    def _replace(self, item: FlatItem) -> None:
        for index, existing in enumerate(self._items):
            if existing.id == item.id:
                self._items[index] = item
                return
        self._items.append(item)
