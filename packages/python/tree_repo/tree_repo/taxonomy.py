"""Collection-level operations on flat taxonomies."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

from loguru import logger
from pydantic import BaseModel

import taxonomy_tree
from taxonomy_tree import (
    FlatItem,
    HierarchyEntry,
    ParentOption,
    ParentUpdate,
    ReparentOutcome,
    TermNode,
    parse_parent_update,
    rejected_outcome,
)
from taxonomy_tree.models import ROOT_PARENT, ItemId
from tree_core import StorageConflictError, TreeError

from . import config
from .config import RepoSettings
from .protocols import TermStore


def _ancestry(items: Sequence[FlatItem], parent_id: ItemId) -> Dict[ItemId, ItemId]:
    """Parent pointers from ``parent_id`` up to the root, as currently read."""

    if parent_id == ROOT_PARENT:
        return {}
    lookup = {item.id: item for item in items}
    chain = [parent_id] + taxonomy_tree.get_ancestor_ids(items, parent_id)
    return {ancestor: lookup[ancestor].parent_id for ancestor in chain}


class TermsView(BaseModel):
    collection_id: str
    items: List[FlatItem]
    tree: List[TermNode]
    hierarchy: List[HierarchyEntry]


class TaxonomyService:
    def __init__(self, store: TermStore, repo_settings: Optional[RepoSettings] = None) -> None:
        self.store = store
        self.settings = repo_settings or config.settings

    async def get_terms(self, collection_id: str) -> TermsView:
        items = await self.store.load_collection(collection_id)
        return TermsView(
            collection_id=collection_id,
            items=items,
            tree=taxonomy_tree.build_tree(items),
            hierarchy=taxonomy_tree.build_hierarchy(items),
        )

    async def update_parent(
        self, collection_id: str, item_id: ItemId, new_parent_id: Optional[ItemId]
    ) -> FlatItem:
        """
        Point one term at a new parent after checking it against a fresh read.

        The write only lands if the term's parent and the new parent's chain of
        ancestors are still the ones that were validated; otherwise the check
        is redone from a new read.
        """

        new_parent_id = ROOT_PARENT if new_parent_id is None else new_parent_id
        attempts = self.settings.max_write_retries + 1
        attempt = 0
        while True:
            attempt += 1
            items = await self.store.load_collection(collection_id)
            result = taxonomy_tree.reparent(items, item_id, new_parent_id)
            try:
                await self.store.save_parent(
                    collection_id,
                    item_id,
                    new_parent_id,
                    expected_parent_id=result.previous_parent_id,
                    ancestry=_ancestry(items, new_parent_id),
                )
            except StorageConflictError:
                if attempt == attempts:
                    raise
                logger.info(
                    "Parent update of term {item_id} in {collection_id} conflicted, retrying",
                    item_id=item_id,
                    collection_id=collection_id,
                )
                continue
            logger.info(
                "Term {item_id} in {collection_id} moved under {parent_id}",
                item_id=item_id,
                collection_id=collection_id,
                parent_id=new_parent_id,
            )
            return result.item

    async def bulk_update_parents(
        self,
        collection_id: str,
        updates: Iterable[Union[ParentUpdate, Mapping]],
    ) -> List[ReparentOutcome]:
        """Apply each update in order; a failed entry does not stop the rest."""

        outcomes: List[ReparentOutcome] = []
        for raw in updates:
            try:
                update = raw if isinstance(raw, ParentUpdate) else parse_parent_update(raw)
                await self.update_parent(collection_id, update.id, update.new_parent_id)
            except TreeError as exc:
                outcomes.append(rejected_outcome(raw, exc))
            else:
                outcomes.append(
                    ReparentOutcome(id=update.id, new_parent_id=update.new_parent_id, success=True)
                )
        failed = sum(1 for outcome in outcomes if not outcome.success)
        if failed:
            logger.warning(
                "Bulk parent update in {collection_id}: {failed}/{total} failed",
                collection_id=collection_id,
                failed=failed,
                total=len(outcomes),
            )
        return outcomes

    async def add_term(
        self,
        collection_id: str,
        name: str,
        parent_id: Optional[ItemId] = ROOT_PARENT,
        slug: Optional[str] = None,
        description: Optional[str] = None,
    ) -> FlatItem:
        parent_id = ROOT_PARENT if parent_id is None else parent_id
        items = await self.store.load_collection(collection_id)
        cleaned = taxonomy_tree.validate_new_item(items, name, parent_id)
        item = await self.store.insert_item(collection_id, cleaned, parent_id, slug, description)
        logger.info(
            "Added term {item_id} ({name}) to {collection_id}",
            item_id=item.id,
            name=cleaned,
            collection_id=collection_id,
        )
        return item

    async def update_order(self, collection_id: str, ordered_ids: Sequence[ItemId]) -> List[FlatItem]:
        items = await self.store.load_collection(collection_id)
        reordered = taxonomy_tree.reorder_siblings(items, ordered_ids)
        await self.store.save_order(
            collection_id, {item_id: position for position, item_id in enumerate(ordered_ids)}
        )
        return reordered

    async def parent_options(
        self,
        collection_id: str,
        exclude_id: Optional[ItemId] = None,
        query: Optional[str] = None,
    ) -> List[ParentOption]:
        items = await self.store.load_collection(collection_id)
        options = taxonomy_tree.parent_options(items, exclude_id=exclude_id)
        if query:
            options = taxonomy_tree.filter_parent_options(options, query)
        return options
