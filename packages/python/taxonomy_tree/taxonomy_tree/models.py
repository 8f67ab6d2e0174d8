"""Pydantic models describing flat, parent-pointer taxonomies."""

from __future__ import annotations

from typing import Annotated, Any, List, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field

ItemId = Union[int, str]

ROOT_PARENT = 0
NO_PARENT_LABEL = "— No Parent —"


def coerce_item_id(value: Any) -> Any:
    """Turn digit-only strings into ints; anything else passes through."""

    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isascii() and stripped.isdigit():
            return int(stripped)
    return value


def coerce_parent_id(value: Any) -> Any:
    if value is None or value == "":
        return ROOT_PARENT
    return coerce_item_id(value)


TermId = Annotated[ItemId, BeforeValidator(coerce_item_id)]
ParentId = Annotated[ItemId, BeforeValidator(coerce_parent_id)]


class FlatItem(BaseModel):
    """A taxonomy term as held by the backing store; ids are assigned there."""

    id: TermId
    name: str
    parent_id: ParentId = ROOT_PARENT
    slug: Optional[str] = None
    description: Optional[str] = None
    count: int = 0
    order: Optional[int] = None


class HierarchyEntry(BaseModel):
    """One row of the depth-annotated pre-order view."""

    id: ItemId
    name: str
    parent_id: ItemId
    depth: int


class TermNode(BaseModel):
    """Nested view of a term and its children, derived on demand."""

    id: ItemId
    name: str
    parent_id: ItemId
    slug: Optional[str] = None
    count: int = 0
    depth: int = 0
    children: List["TermNode"] = Field(default_factory=list)


class ParentOption(BaseModel):
    """Entry of a parent picker; ``id`` 0 stands for "no parent"."""

    id: ItemId
    name: str
    depth: int = 0
    label: str


class ParentUpdate(BaseModel):
    id: TermId
    new_parent_id: ParentId = ROOT_PARENT


class ReparentResult(BaseModel):
    items: List[FlatItem]
    item: FlatItem
    previous_parent_id: ItemId


class ReparentOutcome(BaseModel):
    """Per-entry result of a bulk reparent."""

    id: Optional[TermId] = None
    new_parent_id: Optional[ParentId] = None
    success: bool
    code: Optional[str] = None
    message: Optional[str] = None


class BulkReparentResult(BaseModel):
    items: List[FlatItem]
    outcomes: List[ReparentOutcome] = Field(default_factory=list)

    @property
    def succeeded(self) -> List[ItemId]:
        return [outcome.id for outcome in self.outcomes if outcome.success]

    @property
    def failed(self) -> List[ItemId]:
        return [outcome.id for outcome in self.outcomes if not outcome.success]
