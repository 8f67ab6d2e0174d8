"""Document-level operations on page-builder element trees.

Every mutation loads the document, runs the pure engine function against the
loaded elements and saves the result with the version it was read at. A save
that loses a race is retried from a fresh read, up to
``RepoSettings.max_write_retries`` times.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple, TypeVar, Union

from loguru import logger
from pydantic import BaseModel, Field

import page_tree
from page_tree import (
    BulkUpdateResult,
    Elements,
    FoundElement,
    SettingsUpdate,
    SummaryNode,
    TreeEdit,
    WidgetMatch,
    load_elements,
)
from tree_core import StorageConflictError
from tree_core.ids import IdFactory

from . import config
from .config import RepoSettings
from .protocols import DocumentId, DocumentStore, StoredDocument

Outcome = TypeVar("Outcome", TreeEdit, BulkUpdateResult)


class PageStructure(BaseModel):
    document_id: DocumentId
    title: str = ""
    structure: List[SummaryNode]
    element_count: int


class DocumentChange(BaseModel):
    """What a structural or settings edit did to a stored document."""

    document_id: DocumentId
    version: int
    touched_ids: List[str] = Field(default_factory=list)
    new_id: Optional[str] = None


class BulkDocumentChange(BaseModel):
    document_id: DocumentId
    version: int
    updated: List[str] = Field(default_factory=list)
    failed: List[str] = Field(default_factory=list)


class DocumentService:
    def __init__(
        self,
        store: DocumentStore,
        repo_settings: Optional[RepoSettings] = None,
        id_factory: Optional[IdFactory] = None,
    ) -> None:
        self.store = store
        self.settings = repo_settings or config.settings
        self.id_factory = id_factory

    async def _apply(
        self,
        document_id: DocumentId,
        operation: str,
        transform: Callable[[Elements], Outcome],
    ) -> Tuple[Outcome, int]:
        attempts = self.settings.max_write_retries + 1
        attempt = 0
        while True:
            attempt += 1
            document = await self.store.load_document(document_id)
            outcome = transform(document.elements)
            try:
                version = await self.store.save_document(
                    document_id, outcome.elements, document.version
                )
            except StorageConflictError:
                if attempt == attempts:
                    logger.warning(
                        "{operation} on document {document_id} gave up after {attempts} conflicting writes",
                        operation=operation,
                        document_id=document_id,
                        attempts=attempts,
                    )
                    raise
                logger.info(
                    "{operation} on document {document_id} hit a write conflict, retrying ({attempt}/{attempts})",
                    operation=operation,
                    document_id=document_id,
                    attempt=attempt,
                    attempts=attempts,
                )
                continue
            logger.info(
                "{operation} saved document {document_id} at version {version}",
                operation=operation,
                document_id=document_id,
                version=version,
            )
            return outcome, version

    async def _edit(
        self,
        document_id: DocumentId,
        operation: str,
        transform: Callable[[Elements], TreeEdit],
    ) -> DocumentChange:
        edit, version = await self._apply(document_id, operation, transform)
        return DocumentChange(
            document_id=document_id,
            version=version,
            touched_ids=edit.touched_ids,
            new_id=edit.new_id,
        )

    # Reads -----------------------------------------------------------------

    async def get_page_structure(
        self, document_id: DocumentId, include_settings: bool = False
    ) -> PageStructure:
        document = await self.store.load_document(document_id)
        return PageStructure(
            document_id=document_id,
            title=document.title,
            structure=page_tree.build_summary(document.elements, include_settings),
            element_count=page_tree.count_elements(document.elements),
        )

    async def find_element(self, document_id: DocumentId, element_id: str) -> FoundElement:
        document = await self.store.load_document(document_id)
        return page_tree.find_element(document.elements, element_id)

    async def find_elements_by_type(
        self, document_id: DocumentId, widget_type: str
    ) -> List[WidgetMatch]:
        document = await self.store.load_document(document_id)
        return page_tree.find_all_by_type(document.elements, widget_type)

    # Writes ----------------------------------------------------------------

    async def update_element(
        self, document_id: DocumentId, element_id: str, settings: Mapping[str, Any]
    ) -> DocumentChange:
        return await self._edit(
            document_id,
            "update_element",
            lambda elements: page_tree.update_settings(elements, element_id, settings),
        )

    async def bulk_update_elements(
        self,
        document_id: DocumentId,
        updates: Sequence[Union[SettingsUpdate, Mapping[str, Any]]],
    ) -> BulkDocumentChange:
        result, version = await self._apply(
            document_id,
            "bulk_update_elements",
            lambda elements: page_tree.bulk_update_settings(elements, updates),
        )
        return BulkDocumentChange(
            document_id=document_id,
            version=version,
            updated=result.updated,
            failed=result.failed,
        )

    async def add_widget(
        self,
        document_id: DocumentId,
        widget_type: str,
        settings: Optional[Mapping[str, Any]] = None,
        container_id: Optional[str] = None,
        position: int = -1,
    ) -> DocumentChange:
        widget = page_tree.make_widget(widget_type, settings)
        return await self._edit(
            document_id,
            "add_widget",
            lambda elements: page_tree.insert_element(
                elements, container_id, widget, position, id_factory=self.id_factory
            ),
        )

    async def add_section(
        self,
        document_id: DocumentId,
        section_type: str = "container",
        layout: str = "boxed",
        settings: Optional[Mapping[str, Any]] = None,
        widgets: Sequence[Mapping[str, Any]] = (),
        parent_id: Optional[str] = None,
        position: int = -1,
    ) -> DocumentChange:
        section = page_tree.make_section(section_type, layout, settings, widgets)
        return await self._edit(
            document_id,
            "add_section",
            lambda elements: page_tree.add_section(
                elements, parent_id, section, position, id_factory=self.id_factory
            ),
        )

    async def remove_element(self, document_id: DocumentId, element_id: str) -> DocumentChange:
        return await self._edit(
            document_id,
            "remove_element",
            lambda elements: page_tree.remove_element(elements, element_id),
        )

    async def duplicate_element(self, document_id: DocumentId, element_id: str) -> DocumentChange:
        return await self._edit(
            document_id,
            "duplicate_element",
            lambda elements: page_tree.duplicate_element(
                elements, element_id, id_factory=self.id_factory
            ),
        )

    async def move_element(
        self,
        document_id: DocumentId,
        element_id: str,
        target_container_id: Optional[str] = page_tree.ROOT_TARGET,
        position: int = -1,
    ) -> DocumentChange:
        return await self._edit(
            document_id,
            "move_element",
            lambda elements: page_tree.move_element(
                elements, element_id, target_container_id, position
            ),
        )

    async def create_page(
        self, title: str, elements: Optional[Iterable[Any]] = None
    ) -> StoredDocument:
        """Create a document, optionally seeded with page-builder JSON."""

        document = await self.store.create_document(title, load_elements(elements or []))
        logger.info("Created page {document_id} ({title})", document_id=document.id, title=title)
        return document
