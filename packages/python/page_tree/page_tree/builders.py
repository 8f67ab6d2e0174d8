"""Factories for new widgets, containers and sections."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from tree_core import TreeValidationError
from tree_core.ids import IdFactory

from .engine import insert_element
from .models import (
    COLUMN_KIND,
    CONTAINER_KIND,
    SECTION_KIND,
    Container,
    Node,
    TreeEdit,
    Widget,
)

LEGACY_SECTION = "section"
FULL_COLUMN_SETTINGS = {"_column_size": 100}


def make_widget(widget_type: str, settings: Optional[Mapping[str, Any]] = None) -> Widget:
    widget_type = (widget_type or "").strip()
    if not widget_type:
        raise TreeValidationError("Widget type is required.")
    return Widget(widget_type=widget_type, settings=dict(settings or {}))


def make_container(
    layout: str = "boxed",
    settings: Optional[Mapping[str, Any]] = None,
    children: Iterable[Node] = (),
) -> Container:
    return Container(
        kind=CONTAINER_KIND,
        settings={"content_width": layout, **(settings or {})},
        children=list(children),
    )


def _widgets_from_entries(widgets: Iterable[Mapping[str, Any]]) -> list[Widget]:
    built = []
    for entry in widgets:
        if not isinstance(entry, Mapping) or not entry.get("widget_type"):
            continue
        settings = entry.get("settings")
        built.append(make_widget(str(entry["widget_type"]), settings if isinstance(settings, Mapping) else None))
    return built


def make_section(
    section_type: str = CONTAINER_KIND,
    layout: str = "boxed",
    settings: Optional[Mapping[str, Any]] = None,
    widgets: Sequence[Mapping[str, Any]] = (),
) -> Container:
    """
    Build a section holding ``widgets`` (``{widget_type, settings}`` mappings).

    ``section_type="section"`` produces the legacy layout, a section whose
    single full-width column holds the widgets. Anything else produces a
    modern container holding them directly.
    """

    children = _widgets_from_entries(widgets)
    section = make_container(layout=layout, settings=settings)
    if section_type == LEGACY_SECTION:
        column = Container(kind=COLUMN_KIND, settings=dict(FULL_COLUMN_SETTINGS), children=children)
        return section.model_copy(update={"kind": SECTION_KIND, "children": [column]})
    return section.model_copy(update={"children": children})


def add_section(
    elements: Sequence[Node],
    parent_id: Optional[str],
    section: Container,
    position: int = -1,
    id_factory: Optional[IdFactory] = None,
) -> TreeEdit:
    """Place a section at the root or inside ``parent_id``."""

    return insert_element(elements, parent_id, section, position=position, id_factory=id_factory)
