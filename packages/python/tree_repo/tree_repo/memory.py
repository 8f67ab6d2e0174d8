"""In-memory stores used by tests and local tooling.

Data is kept in serialised form so callers never share objects with the
store, and each write happens under a lock, mirroring the per-call atomicity
a database gives the services.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from page_tree import Node, dump_elements, load_elements
from taxonomy_tree import FlatItem
from taxonomy_tree.models import ItemId
from tree_core import DocumentNotFoundError, NodeNotFoundError, StorageConflictError

from .protocols import DocumentId, StoredDocument


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._documents: Dict[DocumentId, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()
        self._next_id = 1

    def seed(self, document_id: DocumentId, raw_elements: Iterable[Any], title: str = "") -> None:
        """Store page-builder JSON directly, bypassing the async API."""

        self._documents[document_id] = {
            "title": title,
            "elements": dump_elements(load_elements(raw_elements)),
            "version": 0,
        }

    def version_of(self, document_id: DocumentId) -> int:
        return self._documents[document_id]["version"]

    async def load_document(self, document_id: DocumentId) -> StoredDocument:
        record = self._documents.get(document_id)
        if record is None:
            raise DocumentNotFoundError(f"Document {document_id} not found.", node_id=document_id)
        return StoredDocument(
            id=document_id,
            title=record["title"],
            elements=load_elements(record["elements"]),
            version=record["version"],
        )

    async def save_document(
        self,
        document_id: DocumentId,
        elements: Sequence[Node],
        expected_version: int,
    ) -> int:
        async with self._lock:
            record = self._documents.get(document_id)
            if record is None:
                raise DocumentNotFoundError(f"Document {document_id} not found.", node_id=document_id)
            if record["version"] != expected_version:
                raise StorageConflictError(
                    f"Document {document_id} is at version {record['version']}, expected {expected_version}.",
                    node_id=document_id,
                )
            record["elements"] = dump_elements(elements)
            record["version"] += 1
            return record["version"]

    async def create_document(self, title: str, elements: Iterable[Node] = ()) -> StoredDocument:
        async with self._lock:
            while self._next_id in self._documents:
                self._next_id += 1
            document_id = self._next_id
            self._documents[document_id] = {
                "title": title,
                "elements": dump_elements(list(elements)),
                "version": 0,
            }
        return await self.load_document(document_id)


class InMemoryTermStore:
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[ItemId, Dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    def seed(self, collection_id: str, items: Iterable[FlatItem]) -> None:
        self._collections[collection_id] = {item.id: item.model_dump() for item in items}

    async def load_collection(self, collection_id: str) -> List[FlatItem]:
        records = self._collections.get(collection_id, {})
        return [FlatItem.model_validate(record) for record in records.values()]

    def _record(self, collection_id: str, item_id: ItemId) -> Dict[str, Any]:
        record = self._collections.get(collection_id, {}).get(item_id)
        if record is None:
            raise NodeNotFoundError(f"Term with ID '{item_id}' not found.", node_id=item_id)
        return record

    async def save_parent(
        self,
        collection_id: str,
        item_id: ItemId,
        parent_id: ItemId,
        expected_parent_id: ItemId,
        ancestry: Optional[Mapping[ItemId, ItemId]] = None,
    ) -> None:
        async with self._lock:
            record = self._record(collection_id, item_id)
            records = self._collections[collection_id]
            moved = [
                ancestor
                for ancestor, parent in (ancestry or {}).items()
                if ancestor not in records or records[ancestor]["parent_id"] != parent
            ]
            if record["parent_id"] != expected_parent_id or moved:
                raise StorageConflictError(
                    f"Term {item_id} parent changed concurrently.", node_id=item_id
                )
            record["parent_id"] = parent_id

    async def insert_item(
        self,
        collection_id: str,
        name: str,
        parent_id: ItemId,
        slug: Optional[str] = None,
        description: Optional[str] = None,
    ) -> FlatItem:
        async with self._lock:
            records = self._collections.setdefault(collection_id, {})
            numeric = [key for key in records if isinstance(key, int)]
            item = FlatItem(
                id=max(numeric, default=0) + 1,
                name=name,
                parent_id=parent_id,
                slug=slug,
                description=description,
            )
            records[item.id] = item.model_dump()
        return item

    async def save_order(self, collection_id: str, orders: Mapping[ItemId, int]) -> None:
        async with self._lock:
            for item_id in orders:
                self._record(collection_id, item_id)
            for item_id, position in orders.items():
                self._collections[collection_id][item_id]["order"] = position
