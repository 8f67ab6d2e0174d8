"""Iterative traversal helpers for nested element lists."""

from __future__ import annotations

from typing import Iterator, List, Sequence, Set, Tuple

from tree_core import NodePath

from .models import Container, Node


def iter_elements(elements: Sequence[Node]) -> Iterator[Tuple[Node, NodePath]]:
    """Yield ``(node, path)`` pairs in document (pre-)order without recursion."""

    stack = [((), iter(enumerate(elements)))]
    while stack:
        prefix, children = stack[-1]
        step = next(children, None)
        if step is None:
            stack.pop()
            continue
        index, node = step
        path = prefix + (index,)
        yield node, path
        if isinstance(node, Container) and node.children:
            stack.append((path, iter(enumerate(node.children))))


def collect_ids(elements: Sequence[Node]) -> Set[str]:
    return {node.id for node, _ in iter_elements(elements) if node.id}


def subtree_ids(node: Node) -> List[str]:
    """Ids of ``node`` and all of its descendants, in document order."""

    ids = [node.id]
    if isinstance(node, Container):
        ids.extend(child.id for child, _ in iter_elements(node.children))
    return ids


def node_at(elements: Sequence[Node], path: NodePath) -> Node:
    siblings = elements
    node = None
    for index in path:
        node = siblings[index]
        siblings = node.children if isinstance(node, Container) else []
    if node is None:
        raise IndexError("empty path does not address a node")
    return node
