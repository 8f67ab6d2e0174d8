"""Storage contracts the services are written against."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Protocol, Sequence, Union

from pydantic import BaseModel

from page_tree import Elements, Node
from taxonomy_tree import FlatItem
from taxonomy_tree.models import ItemId

DocumentId = Union[int, str]


class StoredDocument(BaseModel):
    """A page document as loaded from a store."""

    id: DocumentId
    title: str = ""
    elements: Elements
    version: int = 0


class DocumentStore(Protocol):
    """Loads and saves whole element trees, one document at a time."""

    async def load_document(self, document_id: DocumentId) -> StoredDocument:
        """Raise ``DocumentNotFoundError`` when the document does not exist."""
        ...

    async def save_document(
        self,
        document_id: DocumentId,
        elements: Sequence[Node],
        expected_version: int,
    ) -> int:
        """
        Replace the document's elements if it is still at ``expected_version``
        and return the new version; raise ``StorageConflictError`` otherwise.
        """
        ...

    async def create_document(self, title: str, elements: Iterable[Node] = ()) -> StoredDocument:
        ...


class TermStore(Protocol):
    """Loads flat term collections and writes single-term changes."""

    async def load_collection(self, collection_id: str) -> List[FlatItem]:
        ...

    async def save_parent(
        self,
        collection_id: str,
        item_id: ItemId,
        parent_id: ItemId,
        expected_parent_id: ItemId,
        ancestry: Optional[Mapping[ItemId, ItemId]] = None,
    ) -> None:
        """
        Change one parent pointer if it still equals ``expected_parent_id``
        and every ``ancestry`` entry (term id to parent id, covering the new
        parent and its ancestors) still holds. Raise ``StorageConflictError``
        otherwise.
        """
        ...

    async def insert_item(
        self,
        collection_id: str,
        name: str,
        parent_id: ItemId,
        slug: Optional[str] = None,
        description: Optional[str] = None,
    ) -> FlatItem:
        """Create a term; the store assigns its id."""
        ...

    async def save_order(self, collection_id: str, orders: Mapping[ItemId, int]) -> None:
        ...
