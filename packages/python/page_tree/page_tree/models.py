"""Pydantic models describing page-builder elements.

Documents are stored as the page builder's JSON (``elType``, ``widgetType``,
``elements``); the models expose Python names (``kind``, ``widget_type``,
``children``) and accept either spelling on input.
"""

from __future__ import annotations

from typing import Annotated, Any, Iterable, List, Literal, Mapping, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from tree_core import NodePath, TreeValidationError

WIDGET_KIND = "widget"
CONTAINER_KIND = "container"
SECTION_KIND = "section"
COLUMN_KIND = "column"


class ElementBase(BaseModel):
    """Fields every element carries, whatever its kind."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    settings: dict[str, Any] = Field(default_factory=dict)

    @field_validator("settings", mode="before")
    @classmethod
    def _empty_settings(cls, value: Any) -> Any:
        # The page builder serialises empty settings as ``[]``.
        if value is None or value == []:
            return {}
        return value


class Widget(ElementBase):
    """Leaf element rendering one widget variety."""

    kind: Literal["widget"] = Field(default=WIDGET_KIND, alias="elType")
    widget_type: str = Field(alias="widgetType")


class Container(ElementBase):
    """Element that may hold child elements (container, section, column)."""

    kind: str = Field(default=CONTAINER_KIND, alias="elType")
    children: List["Node"] = Field(default_factory=list, alias="elements")

    @field_validator("kind")
    @classmethod
    def _not_widget(cls, value: str) -> str:
        if value == WIDGET_KIND:
            raise ValueError("containers cannot have elType 'widget'")
        return value


def _node_tag(value: Any) -> str:
    if isinstance(value, BaseModel):
        return WIDGET_KIND if isinstance(value, Widget) else CONTAINER_KIND
    if isinstance(value, Mapping):
        kind = value.get("elType", value.get("kind"))
        if kind is None:
            has_type = "widgetType" in value or "widget_type" in value
            return WIDGET_KIND if has_type else CONTAINER_KIND
        return WIDGET_KIND if kind == WIDGET_KIND else CONTAINER_KIND
    return CONTAINER_KIND


Node = Annotated[
    Union[
        Annotated[Container, Tag(CONTAINER_KIND)],
        Annotated[Widget, Tag(WIDGET_KIND)],
    ],
    Discriminator(_node_tag),
]
Elements = List[Node]

Container.model_rebuild()

_ELEMENTS_ADAPTER: TypeAdapter[List[Node]] = TypeAdapter(List[Node])
_NODE_ADAPTER: TypeAdapter[Node] = TypeAdapter(Node)


def is_container(node: Any) -> bool:
    return isinstance(node, Container)


def load_elements(raw: Optional[Iterable[Any]]) -> Elements:
    """Validate page-builder JSON (already decoded) into element models."""

    if raw is None:
        return []
    try:
        return _ELEMENTS_ADAPTER.validate_python(list(raw))
    except ValidationError as exc:
        raise TreeValidationError(f"Malformed element data: {exc}") from exc


def load_node(raw: Any) -> Node:
    try:
        return _NODE_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise TreeValidationError(f"Malformed element: {exc}") from exc


def dump_elements(elements: Iterable[Node]) -> list[dict[str, Any]]:
    """Serialise elements back to the page builder's JSON shape."""

    return [node.model_dump(by_alias=True) for node in elements]


class FoundElement(BaseModel):
    """An element together with the child-index path leading to it."""

    node: Node
    path: NodePath


class TreeEdit(BaseModel):
    """Outcome of a structural edit: the new element list and the ids it touched."""

    elements: Elements
    touched_ids: List[str] = Field(default_factory=list)
    new_id: Optional[str] = None


class SettingsUpdate(BaseModel):
    """One entry of a bulk settings update."""

    element_id: str
    settings: dict[str, Any]


class BulkUpdateResult(BaseModel):
    elements: Elements
    updated: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


class WidgetMatch(BaseModel):
    id: str
    widget_type: str
    settings: dict[str, Any] = Field(default_factory=dict)
    path: NodePath


class SummaryNode(BaseModel):
    """Depth-tagged shadow of an element used for structure views."""

    id: str
    kind: str
    widget_type: Optional[str] = None
    depth: int
    index: int
    child_count: int = 0
    settings: Optional[dict[str, Any]] = None
    children: List["SummaryNode"] = Field(default_factory=list)
