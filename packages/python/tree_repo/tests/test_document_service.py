import pytest

from page_tree import Container, Widget
from tree_core import (
    CycleError,
    DocumentNotFoundError,
    NodeNotFoundError,
    StorageConflictError,
)
from tree_repo import DocumentService, InMemoryDocumentStore, RepoSettings

PAGE_ID = 42


class ContendedDocumentStore(InMemoryDocumentStore):
    """Simulates another writer landing just before each of the first saves."""

    def __init__(self, conflicts: int):
        super().__init__()
        self.conflicts = conflicts
        self.saves = 0

    async def save_document(self, document_id, elements, expected_version):
        self.saves += 1
        if self.conflicts:
            self.conflicts -= 1
            self._documents[document_id]["version"] += 1
        return await super().save_document(document_id, elements, expected_version)


@pytest.mark.asyncio
async def test_get_page_structure(documents):
    page = await documents.get_page_structure(PAGE_ID)

    assert page.title == "Landing"
    assert page.element_count == 6
    assert [node.id for node in page.structure] == ["c1", "c3"]
    assert page.structure[0].child_count == 3
    assert page.structure[0].settings is None

    detailed = await documents.get_page_structure(PAGE_ID, include_settings=True)
    assert detailed.structure[0].children[0].settings == {"title": "Hello"}


@pytest.mark.asyncio
async def test_reads_report_missing_document(documents):
    with pytest.raises(DocumentNotFoundError):
        await documents.get_page_structure(999)


@pytest.mark.asyncio
async def test_find_element_and_by_type(documents):
    found = await documents.find_element(PAGE_ID, "b2")
    assert found.path == (0, 2, 0)

    buttons = await documents.find_elements_by_type(PAGE_ID, "button")
    assert [match.id for match in buttons] == ["b1", "b2"]


@pytest.mark.asyncio
async def test_update_element_persists_and_bumps_version(documents, document_store):
    change = await documents.update_element(PAGE_ID, "h1", {"title": "Hi", "size": "xl"})

    assert change.version == 1
    assert change.touched_ids == ["h1"]
    stored = await document_store.load_document(PAGE_ID)
    heading = stored.elements[0].children[0]
    assert heading.settings == {"title": "Hi", "size": "xl"}


@pytest.mark.asyncio
async def test_failed_edit_leaves_document_untouched(documents, document_store):
    with pytest.raises(CycleError):
        await documents.move_element(PAGE_ID, "c1", "c2")
    with pytest.raises(NodeNotFoundError):
        await documents.remove_element(PAGE_ID, "missing")

    assert document_store.version_of(PAGE_ID) == 0


@pytest.mark.asyncio
async def test_bulk_update_reports_partial_failures(documents):
    change = await documents.bulk_update_elements(
        PAGE_ID,
        [
            {"element_id": "b1", "settings": {"text": "One"}},
            {"element_id": "nope", "settings": {"text": "x"}},
            {"element_id": "b2", "settings": {"text": "Two"}},
        ],
    )

    assert change.updated == ["b1", "b2"]
    assert change.failed == ["nope"]
    assert change.version == 1


@pytest.mark.asyncio
async def test_add_widget_at_root_is_wrapped(documents, document_store):
    change = await documents.add_widget(PAGE_ID, "text-editor", {"editor": "<p>x</p>"})

    assert change.new_id == "new1"
    assert change.touched_ids == ["new2", "new1"]
    stored = await document_store.load_document(PAGE_ID)
    wrapper = stored.elements[-1]
    assert isinstance(wrapper, Container)
    assert wrapper.id == "new2"
    assert wrapper.settings == {"content_width": "boxed"}
    assert isinstance(wrapper.children[0], Widget)


@pytest.mark.asyncio
async def test_add_widget_into_container_at_position(documents, document_store):
    change = await documents.add_widget(PAGE_ID, "image", container_id="c1", position=0)

    assert change.touched_ids == ["c1", "new1"]
    stored = await document_store.load_document(PAGE_ID)
    assert [child.id for child in stored.elements[0].children] == ["new1", "h1", "b1", "c2"]


@pytest.mark.asyncio
async def test_add_legacy_section(documents, document_store):
    await documents.add_section(
        PAGE_ID,
        section_type="section",
        widgets=[{"widget_type": "heading", "settings": {"title": "New"}}],
    )

    stored = await document_store.load_document(PAGE_ID)
    section = stored.elements[-1]
    assert section.kind == "section"
    column = section.children[0]
    assert column.kind == "column"
    assert column.settings == {"_column_size": 100}
    assert column.children[0].widget_type == "heading"


@pytest.mark.asyncio
async def test_duplicate_and_remove(documents, document_store):
    duplicated = await documents.duplicate_element(PAGE_ID, "c2")
    assert duplicated.touched_ids == ["new1", "new2"]

    removed = await documents.remove_element(PAGE_ID, "c1")
    assert set(removed.touched_ids) == {"c1", "h1", "b1", "c2", "b2", "new1", "new2"}
    assert removed.version == 2

    stored = await document_store.load_document(PAGE_ID)
    assert [node.id for node in stored.elements] == ["c3"]


@pytest.mark.asyncio
async def test_move_element(documents, document_store):
    change = await documents.move_element(PAGE_ID, "b1", "c3")

    assert change.touched_ids == ["b1", "c1", "c3"]
    stored = await document_store.load_document(PAGE_ID)
    assert [child.id for child in stored.elements[1].children] == ["b1"]


@pytest.mark.asyncio
async def test_conflicting_write_is_retried(id_factory, raw_page):
    store = ContendedDocumentStore(conflicts=2)
    store.seed(PAGE_ID, raw_page)
    service = DocumentService(store, RepoSettings(max_write_retries=2), id_factory=id_factory)

    change = await service.update_element(PAGE_ID, "b1", {"text": "Retried"})

    assert store.saves == 3
    assert change.version == 3
    found = await service.find_element(PAGE_ID, "b1")
    assert found.node.settings["text"] == "Retried"


@pytest.mark.asyncio
async def test_conflict_surfaces_after_retries_run_out(raw_page):
    store = ContendedDocumentStore(conflicts=5)
    store.seed(PAGE_ID, raw_page)
    service = DocumentService(store, RepoSettings(max_write_retries=1))

    with pytest.raises(StorageConflictError):
        await service.update_element(PAGE_ID, "b1", {"text": "Lost"})
    assert store.saves == 2


@pytest.mark.asyncio
async def test_create_page(documents):
    document = await documents.create_page(
        "Fresh", [{"elType": "widget", "widgetType": "heading", "settings": []}]
    )

    assert document.title == "Fresh"
    assert document.version == 0
    page = await documents.get_page_structure(document.id)
    assert page.element_count == 1
