"""Copy-on-write structural operations over nested page-builder elements.

Every function takes the current element list and returns a new one; the
input list and the nodes in it are never mutated. Unchanged subtrees are
shared between the old and the new list, only the nodes on the path to an
edit are copied. Because nothing is written until the new list is returned,
a failed operation leaves the caller's tree exactly as it was.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Type, Union

from loguru import logger

from tree_core import (
    ContainerNotFoundError,
    CycleError,
    IdAllocator,
    NodeNotFoundError,
    NodePath,
    SelfReferenceError,
    TargetNotFoundError,
    TreeValidationError,
    is_within,
)
from tree_core.ids import IdFactory

from .models import (
    CONTAINER_KIND,
    BulkUpdateResult,
    Container,
    Elements,
    FoundElement,
    Node,
    SettingsUpdate,
    TreeEdit,
    Widget,
    load_node,
)
from .walk import collect_ids, iter_elements, node_at, subtree_ids

ROOT_TARGET = "root"
DEFAULT_WRAPPER_SETTINGS = {"content_width": "boxed"}

NodeInput = Union[Node, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _locate(
    elements: Sequence[Node],
    element_id: str,
    error: Type[NodeNotFoundError],
    label: str,
) -> FoundElement:
    for node, path in iter_elements(elements):
        if node.id == element_id:
            return FoundElement(node=node, path=path)
    raise error(f"{label} with ID '{element_id}' not found.", node_id=element_id)


def _locate_container(
    elements: Sequence[Node],
    element_id: str,
    error: Type[NodeNotFoundError],
    label: str,
) -> FoundElement:
    found = _locate(elements, element_id, error, label)
    if not isinstance(found.node, Container):
        raise error(
            f"{label} with ID '{element_id}' is a widget and cannot hold elements.",
            node_id=element_id,
        )
    return found


def _edit_children(
    elements: Sequence[Node],
    parent_path: NodePath,
    edit: Callable[[List[Node]], List[Node]],
) -> Elements:
    """
    Apply ``edit`` to the child list found at ``parent_path`` (``()`` is the
    document root) and rebuild every ancestor on the way back up.
    """

    chain = []
    siblings: Sequence[Node] = elements
    for index in parent_path:
        chain.append((siblings, index))
        siblings = siblings[index].children

    updated = edit(list(siblings))
    for level, index in reversed(chain):
        parent = level[index].model_copy(update={"children": updated})
        updated = list(level)
        updated[index] = parent
    return updated


def _replace_at(elements: Sequence[Node], path: NodePath, replacement: Node) -> Elements:
    *parent, index = path

    def _swap(siblings: List[Node]) -> List[Node]:
        siblings[index] = replacement
        return siblings

    return _edit_children(elements, tuple(parent), _swap)


def _clamp(position: int, length: int) -> int:
    if position < 0 or position >= length:
        return length
    return position


def _splice(siblings: List[Node], position: int, node: Node) -> List[Node]:
    siblings.insert(_clamp(position, len(siblings)), node)
    return siblings


def _with_fresh_ids(node: Node, allocator: IdAllocator) -> Node:
    """Deep copy of ``node`` in which every element receives a new id."""

    new_id = allocator.allocate()
    if isinstance(node, Container):
        shell = node.model_copy(update={"children": []}).model_copy(deep=True)
        children = [_with_fresh_ids(child, allocator) for child in node.children]
        return shell.model_copy(update={"id": new_id, "children": children})
    return node.model_copy(update={"id": new_id}, deep=True)


def _coerce_node(node: NodeInput) -> Node:
    if isinstance(node, (Container, Widget)):
        return node
    if isinstance(node, Mapping):
        return load_node(dict(node))
    raise TreeValidationError(f"Cannot insert {type(node).__name__}; expected an element.")


def _parent_id(elements: Sequence[Node], path: NodePath) -> Optional[str]:
    if len(path) < 2:
        return None
    return node_at(elements, path[:-1]).id


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def find_element(elements: Sequence[Node], element_id: str) -> FoundElement:
    """Locate ``element_id`` with a pre-order walk; the first match wins."""

    return _locate(elements, element_id, NodeNotFoundError, "Element")


def update_settings(
    elements: Sequence[Node],
    element_id: str,
    patch: Mapping[str, Any],
) -> TreeEdit:
    """Replace ``settings[key]`` for every key in ``patch``; other keys stay."""

    if not isinstance(patch, Mapping):
        raise TreeValidationError("Settings must be an object.", node_id=element_id)

    found = find_element(elements, element_id)
    merged = {**found.node.settings, **copy.deepcopy(dict(patch))}
    replacement = found.node.model_copy(update={"settings": merged})
    updated = _replace_at(elements, found.path, replacement)
    logger.debug(
        "Updated settings {keys} on element {element_id}",
        keys=list(patch),
        element_id=element_id,
    )
    return TreeEdit(elements=updated, touched_ids=[element_id])


def bulk_update_settings(
    elements: Sequence[Node],
    updates: Iterable[Union[SettingsUpdate, Mapping[str, Any]]],
) -> BulkUpdateResult:
    """
    Apply several settings patches in one pass.

    Entries that lack ``element_id`` or ``settings`` are skipped; entries that
    reference a missing element (or carry a non-object patch) are reported in
    ``failed`` without stopping the others.
    """

    current: Elements = list(elements)
    updated: List[str] = []
    failed: List[str] = []
    for entry in updates:
        if isinstance(entry, SettingsUpdate):
            element_id, patch = entry.element_id, entry.settings
        elif isinstance(entry, Mapping) and "element_id" in entry and "settings" in entry:
            element_id, patch = str(entry["element_id"]), entry["settings"]
        else:
            logger.debug("Skipping malformed bulk update entry {entry}", entry=entry)
            continue

        try:
            current = update_settings(current, element_id, patch).elements
        except (NodeNotFoundError, TreeValidationError):
            failed.append(element_id)
        else:
            updated.append(element_id)

    return BulkUpdateResult(elements=current, updated=updated, failed=failed)


def insert_element(
    elements: Sequence[Node],
    container_id: Optional[str],
    node: NodeInput,
    position: int = -1,
    id_factory: Optional[IdFactory] = None,
) -> TreeEdit:
    """
    Insert ``node`` into ``container_id`` at ``position``.

    Fresh ids are generated for the node and all of its descendants; any id
    supplied by the caller is ignored. Without a container a widget is wrapped
    in a new boxed container at the document root, while container-like nodes
    are placed at the root as they are. Positions outside the child list
    append.
    """

    allocator = IdAllocator(collect_ids(elements), factory=id_factory)
    new_node = _with_fresh_ids(_coerce_node(node), allocator)
    created = subtree_ids(new_node)

    if container_id is None or container_id == ROOT_TARGET:
        placed = new_node
        if isinstance(new_node, Widget):
            placed = Container(
                id=allocator.allocate(),
                kind=CONTAINER_KIND,
                settings=dict(DEFAULT_WRAPPER_SETTINGS),
                children=[new_node],
            )
            created = [placed.id] + created
        updated = _splice(list(elements), position, placed)
        touched = created
    else:
        found = _locate_container(elements, container_id, ContainerNotFoundError, "Container")
        updated = _edit_children(
            elements,
            found.path,
            lambda siblings: _splice(siblings, position, new_node),
        )
        touched = [container_id] + created

    logger.debug(
        "Inserted element {new_id} into {container}",
        new_id=new_node.id,
        container=container_id or ROOT_TARGET,
    )
    return TreeEdit(elements=updated, touched_ids=touched, new_id=new_node.id)


def remove_element(elements: Sequence[Node], element_id: str) -> TreeEdit:
    """Remove ``element_id`` together with its entire subtree."""

    found = find_element(elements, element_id)
    *parent, index = found.path

    def _drop(siblings: List[Node]) -> List[Node]:
        del siblings[index]
        return siblings

    updated = _edit_children(elements, tuple(parent), _drop)
    removed = subtree_ids(found.node)
    logger.debug(
        "Removed element {element_id} ({count} nodes)",
        element_id=element_id,
        count=len(removed),
    )
    return TreeEdit(elements=updated, touched_ids=removed)


def duplicate_element(
    elements: Sequence[Node],
    element_id: str,
    id_factory: Optional[IdFactory] = None,
) -> TreeEdit:
    """Clone ``element_id`` with new ids and place it right after the original."""

    found = find_element(elements, element_id)
    allocator = IdAllocator(collect_ids(elements), factory=id_factory)
    clone = _with_fresh_ids(found.node, allocator)
    *parent, index = found.path

    def _after(siblings: List[Node]) -> List[Node]:
        siblings.insert(index + 1, clone)
        return siblings

    updated = _edit_children(elements, tuple(parent), _after)
    logger.debug("Duplicated element {element_id} as {new_id}", element_id=element_id, new_id=clone.id)
    return TreeEdit(elements=updated, touched_ids=subtree_ids(clone), new_id=clone.id)


def move_element(
    elements: Sequence[Node],
    element_id: str,
    target_id: Optional[str] = ROOT_TARGET,
    position: int = -1,
) -> TreeEdit:
    """
    Detach ``element_id`` and graft it into ``target_id`` (or the root).

    ``position`` is read against the target's child list after the element
    has been detached. Moving an element into itself or into one of its own
    descendants is rejected.
    """

    source = find_element(elements, element_id)
    to_root = target_id is None or target_id == ROOT_TARGET

    if not to_root:
        if target_id == element_id:
            raise SelfReferenceError(
                f"Element '{element_id}' cannot be moved into itself.", node_id=element_id
            )
        target = _locate_container(elements, target_id, TargetNotFoundError, "Target container")
        if is_within(target.path, source.path):
            raise CycleError(
                f"Cannot move element '{element_id}' into its own descendant '{target_id}'.",
                node_id=element_id,
            )

    old_parent = _parent_id(elements, source.path)
    *parent, index = source.path

    def _detach(siblings: List[Node]) -> List[Node]:
        del siblings[index]
        return siblings

    detached = _edit_children(elements, tuple(parent), _detach)

    if to_root:
        updated = _splice(detached, position, source.node)
    else:
        target = find_element(detached, target_id)
        updated = _edit_children(
            detached,
            target.path,
            lambda siblings: _splice(siblings, position, source.node),
        )

    touched = [element_id]
    for container in (old_parent, None if to_root else target_id):
        if container and container not in touched:
            touched.append(container)

    logger.debug(
        "Moved element {element_id} to {target} at {position}",
        element_id=element_id,
        target=ROOT_TARGET if to_root else target_id,
        position=position,
    )
    return TreeEdit(elements=updated, touched_ids=touched)
