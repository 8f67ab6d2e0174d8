"""MongoDB-backed stores built on Motor.

Page documents live one per Mongo document with a ``version`` counter used
for compare-and-set saves. Terms are stored one per Mongo document, keyed by
``(collection_id, term_id)``; numeric term ids come from a counters
collection.
"""

from __future__ import annotations

from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Iterable, List, Mapping, Optional, Sequence
from uuid import uuid4

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ReturnDocument, UpdateOne
from pymongo.errors import DuplicateKeyError, PyMongoError

from page_tree import Node, dump_elements, load_elements
from taxonomy_tree import FlatItem
from taxonomy_tree.models import ROOT_PARENT, ItemId
from tree_core import (
    DocumentNotFoundError,
    NodeNotFoundError,
    StorageConflictError,
    StorageError,
)

from . import config
from .config import RepoSettings
from .protocols import DocumentId, StoredDocument


@lru_cache
def get_mongo_client(uri: str) -> AsyncIOMotorClient:
    """Return a cached Motor client for ``uri``."""

    return AsyncIOMotorClient(uri)


def get_db(repo_settings: Optional[RepoSettings] = None) -> AsyncIOMotorDatabase:
    active = repo_settings or config.settings
    return get_mongo_client(active.mongo_uri)[active.db_name]


async def ping(repo_settings: Optional[RepoSettings] = None) -> dict[str, Any]:
    """Run a simple ``ping`` command against the configured MongoDB server."""

    await get_db(repo_settings).command("ping")
    return {"ok": True}


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parent_match(parent_id: ItemId) -> Any:
    # Root terms may be stored with a null or missing parent_id.
    if parent_id == ROOT_PARENT:
        return {"$in": [ROOT_PARENT, None]}
    return parent_id


def _doc_to_stored(doc: Mapping[str, Any]) -> StoredDocument:
    return StoredDocument(
        id=doc["_id"],
        title=doc.get("title", ""),
        elements=load_elements(doc.get("elements") or []),
        version=int(doc.get("version", 0)),
    )


def _doc_to_item(doc: Mapping[str, Any]) -> FlatItem:
    return FlatItem(
        id=doc["term_id"],
        name=doc["name"],
        parent_id=doc.get("parent_id"),
        slug=doc.get("slug"),
        description=doc.get("description"),
        count=int(doc.get("count", 0)),
        order=doc.get("order"),
    )


class MongoDocumentStore:
    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        repo_settings: Optional[RepoSettings] = None,
    ) -> None:
        self.settings = repo_settings or config.settings
        self._db = db

    def _collection(self):
        db = self._db if self._db is not None else get_db(self.settings)
        return db[self.settings.documents_collection]

    async def load_document(self, document_id: DocumentId) -> StoredDocument:
        try:
            doc = await self._collection().find_one({"_id": document_id})
        except PyMongoError as exc:
            raise StorageError(f"Failed to load document {document_id}: {exc}") from exc
        if not doc:
            raise DocumentNotFoundError(f"Document {document_id} not found.", node_id=document_id)
        return _doc_to_stored(doc)

    async def save_document(
        self,
        document_id: DocumentId,
        elements: Sequence[Node],
        expected_version: int,
    ) -> int:
        collection = self._collection()
        try:
            result = await collection.update_one(
                {"_id": document_id, "version": expected_version},
                {
                    "$set": {"elements": dump_elements(elements), "updated_at": _now()},
                    "$inc": {"version": 1},
                },
            )
            if result.matched_count:
                return expected_version + 1
            exists = await collection.count_documents({"_id": document_id}, limit=1)
        except PyMongoError as exc:
            raise StorageError(f"Failed to save document {document_id}: {exc}") from exc

        if not exists:
            raise DocumentNotFoundError(f"Document {document_id} not found.", node_id=document_id)
        logger.info(
            "Version conflict saving document {document_id} at {version}",
            document_id=document_id,
            version=expected_version,
        )
        raise StorageConflictError(
            f"Document {document_id} changed since version {expected_version}.",
            node_id=document_id,
        )

    async def create_document(self, title: str, elements: Iterable[Node] = ()) -> StoredDocument:
        now = _now()
        doc = {
            "_id": uuid4().hex,
            "title": title,
            "elements": dump_elements(list(elements)),
            "version": 0,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self._collection().insert_one(doc)
        except PyMongoError as exc:
            raise StorageError(f"Failed to create document: {exc}") from exc
        return _doc_to_stored(doc)


class MongoTermStore:
    def __init__(
        self,
        db: Optional[AsyncIOMotorDatabase] = None,
        repo_settings: Optional[RepoSettings] = None,
    ) -> None:
        self.settings = repo_settings or config.settings
        self._db = db

    def _database(self) -> AsyncIOMotorDatabase:
        return self._db if self._db is not None else get_db(self.settings)

    def _collection(self):
        return self._database()[self.settings.terms_collection]

    async def ensure_indexes(self) -> None:
        await self._collection().create_index(
            [("collection_id", 1), ("term_id", 1)], unique=True
        )

    async def _next_term_id(self, collection_id: str) -> int:
        counter = await self._database()[self.settings.counters_collection].find_one_and_update(
            {"_id": f"terms:{collection_id}"},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return int(counter["seq"])

    async def load_collection(self, collection_id: str) -> List[FlatItem]:
        try:
            cursor = self._collection().find({"collection_id": collection_id})
            return [_doc_to_item(doc) async for doc in cursor]
        except PyMongoError as exc:
            raise StorageError(f"Failed to load terms of {collection_id}: {exc}") from exc

    async def _ancestry_holds(self, collection_id: str, ancestry: Mapping[ItemId, ItemId]) -> bool:
        if not ancestry:
            return True
        matched = await self._collection().count_documents(
            {
                "collection_id": collection_id,
                "$or": [
                    {"term_id": ancestor, "parent_id": _parent_match(parent)}
                    for ancestor, parent in ancestry.items()
                ],
            }
        )
        return matched == len(ancestry)

    async def save_parent(
        self,
        collection_id: str,
        item_id: ItemId,
        parent_id: ItemId,
        expected_parent_id: ItemId,
        ancestry: Optional[Mapping[ItemId, ItemId]] = None,
    ) -> None:
        """
        Compare-and-set one parent pointer.

        The new parent's chain is checked before and after the write; if it
        moved in between, the write is undone and a conflict is raised.
        """

        collection = self._collection()
        key = {"collection_id": collection_id, "term_id": item_id}
        ancestry = ancestry or {}
        try:
            if not await self._ancestry_holds(collection_id, ancestry):
                raise StorageConflictError(
                    f"Ancestors of the new parent of term {item_id} changed.", node_id=item_id
                )
            result = await collection.update_one(
                {**key, "parent_id": _parent_match(expected_parent_id)},
                {"$set": {"parent_id": parent_id, "updated_at": _now()}},
            )
            if not result.matched_count:
                exists = await collection.count_documents(key, limit=1)
                if not exists:
                    raise NodeNotFoundError(f"Term with ID '{item_id}' not found.", node_id=item_id)
                raise StorageConflictError(
                    f"Term {item_id} parent changed concurrently.", node_id=item_id
                )
            if not await self._ancestry_holds(collection_id, ancestry):
                await collection.update_one(
                    {**key, "parent_id": parent_id},
                    {"$set": {"parent_id": expected_parent_id}},
                )
                logger.warning(
                    "Rolled back parent update of term {item_id} in {collection_id}",
                    item_id=item_id,
                    collection_id=collection_id,
                )
                raise StorageConflictError(
                    f"Ancestors of the new parent of term {item_id} changed.", node_id=item_id
                )
        except PyMongoError as exc:
            raise StorageError(f"Failed to update term {item_id}: {exc}") from exc

    async def insert_item(
        self,
        collection_id: str,
        name: str,
        parent_id: ItemId,
        slug: Optional[str] = None,
        description: Optional[str] = None,
    ) -> FlatItem:
        try:
            term_id = await self._next_term_id(collection_id)
            doc = {
                "collection_id": collection_id,
                "term_id": term_id,
                "name": name,
                "parent_id": parent_id,
                "slug": slug,
                "description": description,
                "count": 0,
                "created_at": _now(),
            }
            await self._collection().insert_one(doc)
        except DuplicateKeyError as exc:
            raise StorageConflictError(
                f"Term id collision in {collection_id}; counter out of step.", node_id=collection_id
            ) from exc
        except PyMongoError as exc:
            raise StorageError(f"Failed to create term {name!r}: {exc}") from exc
        return _doc_to_item(doc)

    async def save_order(self, collection_id: str, orders: Mapping[ItemId, int]) -> None:
        if not orders:
            return
        operations = [
            UpdateOne(
                {"collection_id": collection_id, "term_id": item_id},
                {"$set": {"order": position}},
            )
            for item_id, position in orders.items()
        ]
        try:
            result = await self._collection().bulk_write(operations, ordered=False)
        except PyMongoError as exc:
            raise StorageError(f"Failed to save term order for {collection_id}: {exc}") from exc
        if result.matched_count != len(operations):
            logger.warning(
                "Term order for {collection_id}: {matched}/{total} terms matched",
                collection_id=collection_id,
                matched=result.matched_count,
                total=len(operations),
            )
