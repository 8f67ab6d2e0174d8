"""Read-only views over an element list."""

from __future__ import annotations

import copy
from typing import List, Sequence

from .models import Container, Node, SummaryNode, Widget, WidgetMatch
from .walk import iter_elements


def find_all_by_type(elements: Sequence[Node], widget_type: str) -> List[WidgetMatch]:
    """Every widget of ``widget_type`` in document order, with its path."""

    return [
        WidgetMatch(
            id=node.id,
            widget_type=node.widget_type,
            settings=copy.deepcopy(node.settings),
            path=path,
        )
        for node, path in iter_elements(elements)
        if isinstance(node, Widget) and node.widget_type == widget_type
    ]


def count_elements(elements: Sequence[Node]) -> int:
    return sum(1 for _ in iter_elements(elements))


def build_summary(
    elements: Sequence[Node],
    include_settings: bool = False,
    depth: int = 0,
) -> List[SummaryNode]:
    """
    Build a depth-tagged, child-counted shadow of the tree.

    Settings are left out unless ``include_settings`` is set, which keeps the
    summary small enough to show a whole page at once.
    """

    summary = []
    for index, node in enumerate(elements):
        children = node.children if isinstance(node, Container) else []
        summary.append(
            SummaryNode(
                id=node.id,
                kind=node.kind,
                widget_type=node.widget_type if isinstance(node, Widget) else None,
                depth=depth,
                index=index,
                child_count=len(children),
                settings=copy.deepcopy(node.settings) if include_settings else None,
                children=build_summary(children, include_settings, depth + 1),
            )
        )
    return summary
