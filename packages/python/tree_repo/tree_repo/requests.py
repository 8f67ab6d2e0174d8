"""Request models and the dispatcher that turns requests into results.

``TreeRequestHandler.handle`` is the one place where domain errors become
``OperationResult`` values; anything that is not a ``TreeError`` propagates.
"""

from __future__ import annotations

from typing import Annotated, Any, Awaitable, Callable, Dict, List, Literal, Mapping, Optional, Tuple, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from page_tree import ROOT_TARGET, SettingsUpdate
from taxonomy_tree.models import ROOT_PARENT, ParentId, TermId
from tree_core import TreeError, TreeValidationError

from .documents import DocumentService
from .protocols import DocumentId
from .taxonomy import TaxonomyService


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GetPageStructure(_Request):
    op: Literal["get_page_structure"]
    document_id: DocumentId
    include_settings: bool = False


class FindElement(_Request):
    op: Literal["find_element"]
    document_id: DocumentId
    element_id: str


class FindElementsByType(_Request):
    op: Literal["find_elements_by_type"]
    document_id: DocumentId
    widget_type: str


class UpdateElement(_Request):
    op: Literal["update_element"]
    document_id: DocumentId
    element_id: str
    settings: Dict[str, Any]


class BulkUpdateElements(_Request):
    op: Literal["bulk_update_elements"]
    document_id: DocumentId
    updates: List[SettingsUpdate]


class AddWidget(_Request):
    op: Literal["add_widget"]
    document_id: DocumentId
    widget_type: str
    settings: Dict[str, Any] = Field(default_factory=dict)
    container_id: Optional[str] = None
    position: int = -1


class AddSection(_Request):
    op: Literal["add_section"]
    document_id: DocumentId
    section_type: str = "container"
    layout: str = "boxed"
    settings: Dict[str, Any] = Field(default_factory=dict)
    widgets: List[Dict[str, Any]] = Field(default_factory=list)
    parent_id: Optional[str] = None
    position: int = -1


class RemoveElement(_Request):
    op: Literal["remove_element"]
    document_id: DocumentId
    element_id: str


class DuplicateElement(_Request):
    op: Literal["duplicate_element"]
    document_id: DocumentId
    element_id: str


class MoveElement(_Request):
    op: Literal["move_element"]
    document_id: DocumentId
    element_id: str
    target_container_id: str = ROOT_TARGET
    position: int = -1


class CreatePage(_Request):
    op: Literal["create_page"]
    title: str
    elements: List[Dict[str, Any]] = Field(default_factory=list)


class GetTerms(_Request):
    op: Literal["get_terms"]
    collection_id: str


class UpdateTermParent(_Request):
    op: Literal["update_term_parent"]
    collection_id: str
    term_id: TermId
    new_parent_id: ParentId = ROOT_PARENT


class BulkUpdateTermParents(_Request):
    op: Literal["bulk_update_term_parents"]
    collection_id: str
    # Entries are checked one by one so a malformed entry only fails itself.
    updates: List[Dict[str, Any]]


class AddTerm(_Request):
    op: Literal["add_term"]
    collection_id: str
    name: str
    parent_id: ParentId = ROOT_PARENT
    slug: Optional[str] = None
    description: Optional[str] = None


class UpdateTermOrder(_Request):
    op: Literal["update_term_order"]
    collection_id: str
    order: List[TermId]


class GetParentOptions(_Request):
    op: Literal["get_parent_options"]
    collection_id: str
    exclude_id: Optional[TermId] = None
    query: Optional[str] = None


TreeRequest = Annotated[
    Union[
        GetPageStructure,
        FindElement,
        FindElementsByType,
        UpdateElement,
        BulkUpdateElements,
        AddWidget,
        AddSection,
        RemoveElement,
        DuplicateElement,
        MoveElement,
        CreatePage,
        GetTerms,
        UpdateTermParent,
        BulkUpdateTermParents,
        AddTerm,
        UpdateTermOrder,
        GetParentOptions,
    ],
    Field(discriminator="op"),
]

_request_adapter: TypeAdapter[TreeRequest] = TypeAdapter(TreeRequest)


class ErrorInfo(BaseModel):
    code: str
    message: str
    node_id: Optional[Any] = None


class OperationResult(BaseModel):
    ok: bool
    data: Any = None
    touched_ids: List[Any] = Field(default_factory=list)
    error: Optional[ErrorInfo] = None


def parse_request(payload: Mapping[str, Any]) -> TreeRequest:
    try:
        return _request_adapter.validate_python(payload)
    except ValidationError as exc:
        raise TreeValidationError(f"Invalid request: {exc}") from exc


Handled = Tuple[Any, List[Any]]


class TreeRequestHandler:
    """Routes typed requests to the document and taxonomy services."""

    def __init__(self, documents: DocumentService, taxonomy: TaxonomyService) -> None:
        self.documents = documents
        self.taxonomy = taxonomy
        self._routes: Dict[type, Callable[[Any], Awaitable[Handled]]] = {
            GetPageStructure: self._get_page_structure,
            FindElement: self._find_element,
            FindElementsByType: self._find_elements_by_type,
            UpdateElement: self._update_element,
            BulkUpdateElements: self._bulk_update_elements,
            AddWidget: self._add_widget,
            AddSection: self._add_section,
            RemoveElement: self._remove_element,
            DuplicateElement: self._duplicate_element,
            MoveElement: self._move_element,
            CreatePage: self._create_page,
            GetTerms: self._get_terms,
            UpdateTermParent: self._update_term_parent,
            BulkUpdateTermParents: self._bulk_update_term_parents,
            AddTerm: self._add_term,
            UpdateTermOrder: self._update_term_order,
            GetParentOptions: self._get_parent_options,
        }

    async def handle(self, request: Union[BaseModel, Mapping[str, Any]]) -> OperationResult:
        op = request.get("op") if isinstance(request, Mapping) else getattr(request, "op", None)
        try:
            if isinstance(request, Mapping):
                request = parse_request(request)
            data, touched = await self._routes[type(request)](request)
        except TreeError as exc:
            logger.info("Request {op} rejected: {code} {message}", op=op, code=exc.code, message=exc.message)
            return OperationResult(
                ok=False,
                error=ErrorInfo(code=exc.code, message=exc.message, node_id=exc.node_id),
            )
        logger.debug("Request {op} succeeded, touched {touched}", op=op, touched=touched)
        return OperationResult(ok=True, data=data, touched_ids=touched)

    # Page documents ----------------------------------------------------------

    async def _get_page_structure(self, request: GetPageStructure) -> Handled:
        page = await self.documents.get_page_structure(request.document_id, request.include_settings)
        return page.model_dump(exclude_none=True), []

    async def _find_element(self, request: FindElement) -> Handled:
        found = await self.documents.find_element(request.document_id, request.element_id)
        return {"element": found.node.model_dump(by_alias=True), "path": list(found.path)}, []

    async def _find_elements_by_type(self, request: FindElementsByType) -> Handled:
        matches = await self.documents.find_elements_by_type(request.document_id, request.widget_type)
        return {"count": len(matches), "elements": [match.model_dump() for match in matches]}, []

    async def _update_element(self, request: UpdateElement) -> Handled:
        change = await self.documents.update_element(
            request.document_id, request.element_id, request.settings
        )
        return change.model_dump(), change.touched_ids

    async def _bulk_update_elements(self, request: BulkUpdateElements) -> Handled:
        change = await self.documents.bulk_update_elements(request.document_id, request.updates)
        return change.model_dump(), change.updated

    async def _add_widget(self, request: AddWidget) -> Handled:
        change = await self.documents.add_widget(
            request.document_id,
            request.widget_type,
            request.settings,
            container_id=request.container_id,
            position=request.position,
        )
        return change.model_dump(), change.touched_ids

    async def _add_section(self, request: AddSection) -> Handled:
        change = await self.documents.add_section(
            request.document_id,
            section_type=request.section_type,
            layout=request.layout,
            settings=request.settings,
            widgets=request.widgets,
            parent_id=request.parent_id,
            position=request.position,
        )
        return change.model_dump(), change.touched_ids

    async def _remove_element(self, request: RemoveElement) -> Handled:
        change = await self.documents.remove_element(request.document_id, request.element_id)
        return change.model_dump(), change.touched_ids

    async def _duplicate_element(self, request: DuplicateElement) -> Handled:
        change = await self.documents.duplicate_element(request.document_id, request.element_id)
        return change.model_dump(), change.touched_ids

    async def _move_element(self, request: MoveElement) -> Handled:
        change = await self.documents.move_element(
            request.document_id,
            request.element_id,
            request.target_container_id,
            request.position,
        )
        return change.model_dump(), change.touched_ids

    async def _create_page(self, request: CreatePage) -> Handled:
        document = await self.documents.create_page(request.title, request.elements)
        return {"document_id": document.id, "title": document.title, "version": document.version}, []

    # Taxonomies --------------------------------------------------------------

    async def _get_terms(self, request: GetTerms) -> Handled:
        view = await self.taxonomy.get_terms(request.collection_id)
        return view.model_dump(), []

    async def _update_term_parent(self, request: UpdateTermParent) -> Handled:
        item = await self.taxonomy.update_parent(
            request.collection_id, request.term_id, request.new_parent_id
        )
        return item.model_dump(), [item.id]

    async def _bulk_update_term_parents(self, request: BulkUpdateTermParents) -> Handled:
        outcomes = await self.taxonomy.bulk_update_parents(request.collection_id, request.updates)
        succeeded = [outcome.id for outcome in outcomes if outcome.success]
        return {
            "updated": succeeded,
            "failed": [outcome.model_dump() for outcome in outcomes if not outcome.success],
        }, succeeded

    async def _add_term(self, request: AddTerm) -> Handled:
        item = await self.taxonomy.add_term(
            request.collection_id,
            request.name,
            request.parent_id,
            slug=request.slug,
            description=request.description,
        )
        return item.model_dump(), [item.id]

    async def _update_term_order(self, request: UpdateTermOrder) -> Handled:
        await self.taxonomy.update_order(request.collection_id, request.order)
        return {"order": list(request.order)}, list(request.order)

    async def _get_parent_options(self, request: GetParentOptions) -> Handled:
        options = await self.taxonomy.parent_options(
            request.collection_id, exclude_id=request.exclude_id, query=request.query
        )
        return [option.model_dump() for option in options], []
