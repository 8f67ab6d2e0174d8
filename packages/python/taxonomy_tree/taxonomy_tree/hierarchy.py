"""Derived views over a flat parent-pointer collection.

Children are never stored; every view here is recomputed from ``parent_id``.
Siblings are ordered by an explicit ``order`` when one is set (those come
first), then by case-folded name, then by id.
"""

from __future__ import annotations

from collections import defaultdict, deque
from typing import Dict, Iterable, List, Optional, Sequence, Set

from loguru import logger

from tree_core import NodeNotFoundError

from .models import (
    NO_PARENT_LABEL,
    ROOT_PARENT,
    FlatItem,
    HierarchyEntry,
    ItemId,
    ParentOption,
    TermNode,
)

INDENT = "— "


def sibling_sort_key(item: FlatItem):
    has_order = item.order is not None
    return (not has_order, item.order if has_order else 0, item.name.casefold(), str(item.id))


def index_by_id(items: Iterable[FlatItem]) -> Dict[ItemId, FlatItem]:
    return {item.id: item for item in items}


def children_by_parent(items: Iterable[FlatItem]) -> Dict[ItemId, List[FlatItem]]:
    grouped: Dict[ItemId, List[FlatItem]] = defaultdict(list)
    for item in items:
        grouped[item.parent_id].append(item)
    for siblings in grouped.values():
        siblings.sort(key=sibling_sort_key)
    return grouped


def require_item(items: Sequence[FlatItem], item_id: ItemId) -> FlatItem:
    for item in items:
        if item.id == item_id:
            return item
    raise NodeNotFoundError(f"Term with ID '{item_id}' not found.", node_id=item_id)


def build_hierarchy(items: Sequence[FlatItem], root_id: ItemId = ROOT_PARENT) -> List[HierarchyEntry]:
    """
    Flatten the collection into pre-order with depths: every item is
    immediately followed by all of its descendants.

    Items that cannot be reached from ``root_id`` (their parent is missing,
    or corrupt data loops back on itself) are left out and logged.
    """

    grouped = children_by_parent(items)
    result: List[HierarchyEntry] = []
    seen: Set[ItemId] = set()
    stack = [(child, 0) for child in reversed(grouped.get(root_id, []))]
    while stack:
        item, depth = stack.pop()
        if item.id in seen:
            continue
        seen.add(item.id)
        result.append(
            HierarchyEntry(id=item.id, name=item.name, parent_id=item.parent_id, depth=depth)
        )
        for child in reversed(grouped.get(item.id, [])):
            stack.append((child, depth + 1))

    if root_id == ROOT_PARENT and len(seen) < len(items):
        unreachable = [item.id for item in items if item.id not in seen]
        logger.warning(
            "{count} terms are unreachable from the root and were left out: {ids}",
            count=len(unreachable),
            ids=unreachable,
        )
    return result


def build_tree(items: Sequence[FlatItem]) -> List[TermNode]:
    """Nested view of the collection built from the pre-order hierarchy."""

    lookup = index_by_id(items)
    roots: List[TermNode] = []
    open_nodes: List[TermNode] = []
    for entry in build_hierarchy(items):
        item = lookup[entry.id]
        node = TermNode(
            id=item.id,
            name=item.name,
            parent_id=item.parent_id,
            slug=item.slug,
            count=item.count,
            depth=entry.depth,
        )
        del open_nodes[entry.depth:]
        if open_nodes:
            open_nodes[-1].children.append(node)
        else:
            roots.append(node)
        open_nodes.append(node)
    return roots


def get_descendant_ids(items: Sequence[FlatItem], item_id: ItemId) -> Set[ItemId]:
    """``item_id`` plus every item below it."""

    grouped = children_by_parent(items)
    found: Set[ItemId] = {item_id}
    queue = deque([item_id])
    while queue:
        current = queue.popleft()
        for child in grouped.get(current, []):
            if child.id not in found:
                found.add(child.id)
                queue.append(child.id)
    return found


def get_ancestor_ids(items: Sequence[FlatItem], item_id: ItemId) -> List[ItemId]:
    """Ancestors of ``item_id``, nearest parent first, stopping at the root."""

    lookup = index_by_id(items)
    if item_id not in lookup:
        raise NodeNotFoundError(f"Term with ID '{item_id}' not found.", node_id=item_id)

    ancestors: List[ItemId] = []
    visited: Set[ItemId] = {item_id}
    parent = lookup[item_id].parent_id
    while parent != ROOT_PARENT and parent in lookup and parent not in visited:
        ancestors.append(parent)
        visited.add(parent)
        parent = lookup[parent].parent_id
    return ancestors


def parent_options(
    items: Sequence[FlatItem],
    exclude_id: Optional[ItemId] = None,
) -> List[ParentOption]:
    """
    Options for a parent picker: "no parent" followed by the hierarchy,
    minus ``exclude_id`` and its descendants (they would form a cycle).
    """

    excluded = get_descendant_ids(items, exclude_id) if exclude_id is not None else set()
    options = [ParentOption(id=ROOT_PARENT, name=NO_PARENT_LABEL, depth=0, label=NO_PARENT_LABEL)]
    for entry in build_hierarchy(items):
        if entry.id in excluded:
            continue
        options.append(
            ParentOption(
                id=entry.id,
                name=entry.name,
                depth=entry.depth,
                label=f"{INDENT * entry.depth}{entry.name}",
            )
        )
    return options


def filter_parent_options(options: Sequence[ParentOption], query: str) -> List[ParentOption]:
    needle = (query or "").strip().casefold()
    if not needle:
        return list(options)
    return [
        option
        for option in options
        if option.id == ROOT_PARENT or needle in option.name.casefold()
    ]
