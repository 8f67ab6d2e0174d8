"""Element tree engine for nested page-builder documents."""

from .builders import add_section, make_container, make_section, make_widget
from .engine import (
    ROOT_TARGET,
    bulk_update_settings,
    duplicate_element,
    find_element,
    insert_element,
    move_element,
    remove_element,
    update_settings,
)
from .models import (
    BulkUpdateResult,
    Container,
    Elements,
    FoundElement,
    Node,
    SettingsUpdate,
    SummaryNode,
    TreeEdit,
    Widget,
    WidgetMatch,
    dump_elements,
    load_elements,
)
from .queries import build_summary, count_elements, find_all_by_type
from .walk import collect_ids, iter_elements

__all__ = [
    "Container",
    "Widget",
    "Node",
    "Elements",
    "FoundElement",
    "TreeEdit",
    "SettingsUpdate",
    "BulkUpdateResult",
    "WidgetMatch",
    "SummaryNode",
    "load_elements",
    "dump_elements",
    "ROOT_TARGET",
    "find_element",
    "update_settings",
    "bulk_update_settings",
    "insert_element",
    "remove_element",
    "duplicate_element",
    "move_element",
    "find_all_by_type",
    "build_summary",
    "count_elements",
    "iter_elements",
    "collect_ids",
    "make_widget",
    "make_container",
    "make_section",
    "add_section",
]
