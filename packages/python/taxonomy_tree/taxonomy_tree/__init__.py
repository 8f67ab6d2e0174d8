"""Flat parent-pointer tree engine for taxonomy-style collections."""

from .hierarchy import (
    build_hierarchy,
    build_tree,
    filter_parent_options,
    get_ancestor_ids,
    get_descendant_ids,
    parent_options,
)
from .mirror import PendingMove, TermMirror
from .models import (
    NO_PARENT_LABEL,
    ROOT_PARENT,
    BulkReparentResult,
    FlatItem,
    HierarchyEntry,
    ParentId,
    ParentOption,
    ParentUpdate,
    ReparentOutcome,
    ReparentResult,
    TermId,
    TermNode,
    coerce_item_id,
    coerce_parent_id,
)
from .reparent import (
    bulk_reparent,
    ensure_parent_exists,
    parse_parent_update,
    rejected_outcome,
    reorder_siblings,
    reparent,
    validate_new_item,
    validate_reparent,
)

__all__ = [
    "ROOT_PARENT",
    "NO_PARENT_LABEL",
    "TermId",
    "ParentId",
    "coerce_item_id",
    "coerce_parent_id",
    "FlatItem",
    "HierarchyEntry",
    "TermNode",
    "ParentOption",
    "ParentUpdate",
    "ReparentResult",
    "ReparentOutcome",
    "BulkReparentResult",
    "build_hierarchy",
    "build_tree",
    "get_descendant_ids",
    "get_ancestor_ids",
    "parent_options",
    "filter_parent_options",
    "reparent",
    "bulk_reparent",
    "validate_reparent",
    "validate_new_item",
    "ensure_parent_exists",
    "parse_parent_update",
    "rejected_outcome",
    "reorder_siblings",
    "TermMirror",
    "PendingMove",
]
