import pytest

from tree_core import TreeValidationError
from tree_repo import (
    DocumentService,
    InMemoryDocumentStore,
    InMemoryTermStore,
    TaxonomyService,
    TreeRequestHandler,
    parse_request,
)
from tree_repo.requests import MoveElement, UpdateElement

PAGE_ID = 42


class BrokenDocumentStore(InMemoryDocumentStore):
    async def load_document(self, document_id):
        raise RuntimeError("disk on fire")


@pytest.mark.asyncio
async def test_update_element_request(handler):
    result = await handler.handle(
        {"op": "update_element", "document_id": PAGE_ID, "element_id": "b1", "settings": {"text": "New"}}
    )

    assert result.ok
    assert result.error is None
    assert result.touched_ids == ["b1"]
    assert result.data["version"] == 1


@pytest.mark.asyncio
async def test_typed_request_is_accepted(handler):
    result = await handler.handle(
        MoveElement(op="move_element", document_id=PAGE_ID, element_id="b1", target_container_id="c3")
    )

    assert result.ok
    assert result.touched_ids == ["b1", "c1", "c3"]


@pytest.mark.asyncio
async def test_domain_errors_become_results(handler):
    missing = await handler.handle(
        {"op": "remove_element", "document_id": PAGE_ID, "element_id": "ghost"}
    )
    cycle = await handler.handle(
        {"op": "move_element", "document_id": PAGE_ID, "element_id": "c1", "target_container_id": "c2"}
    )
    no_page = await handler.handle({"op": "get_page_structure", "document_id": 7})

    assert not missing.ok
    assert missing.error.code == "element_not_found"
    assert missing.error.node_id == "ghost"
    assert cycle.error.code == "circular_reference"
    assert no_page.error.code == "document_not_found"


@pytest.mark.asyncio
async def test_invalid_requests_are_rejected(handler):
    unknown = await handler.handle({"op": "explode", "document_id": PAGE_ID})
    bad_settings = await handler.handle(
        {"op": "update_element", "document_id": PAGE_ID, "element_id": "b1", "settings": "red"}
    )

    assert unknown.error.code == "invalid_input"
    assert bad_settings.error.code == "invalid_input"


def test_parse_request():
    request = parse_request(
        {"op": "update_element", "document_id": 1, "element_id": "x", "settings": {}}
    )
    assert isinstance(request, UpdateElement)

    with pytest.raises(TreeValidationError):
        parse_request({"op": "update_element", "document_id": 1, "surprise": True})


@pytest.mark.asyncio
async def test_unexpected_errors_propagate():
    handler = TreeRequestHandler(
        DocumentService(BrokenDocumentStore()), TaxonomyService(InMemoryTermStore())
    )

    with pytest.raises(RuntimeError):
        await handler.handle({"op": "get_page_structure", "document_id": PAGE_ID})


@pytest.mark.asyncio
async def test_page_reads(handler):
    structure = await handler.handle({"op": "get_page_structure", "document_id": PAGE_ID})
    buttons = await handler.handle(
        {"op": "find_elements_by_type", "document_id": PAGE_ID, "widget_type": "button"}
    )
    found = await handler.handle({"op": "find_element", "document_id": PAGE_ID, "element_id": "c2"})

    assert structure.data["element_count"] == 6
    assert buttons.data["count"] == 2
    assert found.data["path"] == [0, 2]
    assert found.data["element"]["elType"] == "container"
    assert found.data["element"]["isInner"] is True


@pytest.mark.asyncio
async def test_structural_requests(handler):
    added = await handler.handle(
        {"op": "add_widget", "document_id": PAGE_ID, "widget_type": "image", "container_id": "c3"}
    )
    section = await handler.handle(
        {"op": "add_section", "document_id": PAGE_ID, "widgets": [{"widget_type": "heading"}]}
    )
    duplicated = await handler.handle(
        {"op": "duplicate_element", "document_id": PAGE_ID, "element_id": "h1"}
    )
    bulk = await handler.handle(
        {
            "op": "bulk_update_elements",
            "document_id": PAGE_ID,
            "updates": [{"element_id": "h1", "settings": {"title": "Hey"}}],
        }
    )

    assert added.touched_ids == ["c3", "new1"]
    assert section.touched_ids == ["new2", "new3"]
    assert duplicated.data["new_id"] == "new4"
    assert bulk.data["updated"] == ["h1"]
    assert bulk.data["version"] == 4


@pytest.mark.asyncio
async def test_create_page_request(handler):
    result = await handler.handle({"op": "create_page", "title": "About"})

    assert result.ok
    assert result.data["title"] == "About"
    assert result.data["version"] == 0


@pytest.mark.asyncio
async def test_term_requests(handler):
    moved = await handler.handle(
        {"op": "update_term_parent", "collection_id": "category", "term_id": 4, "new_parent_id": 1}
    )
    bulk = await handler.handle(
        {
            "op": "bulk_update_term_parents",
            "collection_id": "category",
            "updates": [{"id": 2, "new_parent_id": 3}, {"id": 1, "new_parent_id": 1}],
        }
    )
    added = await handler.handle({"op": "add_term", "collection_id": "category", "name": "Weather"})
    ordered = await handler.handle(
        {"op": "update_term_order", "collection_id": "category", "order": [3, 1]}
    )
    options = await handler.handle(
        {"op": "get_parent_options", "collection_id": "category", "exclude_id": 3}
    )
    terms = await handler.handle({"op": "get_terms", "collection_id": "category"})

    assert moved.touched_ids == [4]
    assert bulk.data["updated"] == [2]
    assert bulk.data["failed"][0]["code"] == "self_parent"
    assert added.touched_ids == [5]
    assert ordered.touched_ids == [3, 1]
    assert [option["id"] for option in options.data] == [0, 1, 4, 5]
    assert [node["name"] for node in terms.data["tree"]] == ["Sports", "News", "Weather"]


@pytest.mark.asyncio
async def test_term_request_errors(handler):
    result = await handler.handle(
        {"op": "update_term_parent", "collection_id": "category", "term_id": 1, "new_parent_id": 2}
    )

    assert not result.ok
    assert result.error.code == "circular_reference"
    assert result.error.node_id == 1


@pytest.mark.asyncio
async def test_term_requests_accept_string_ids(handler, term_store):
    moved = await handler.handle(
        {"op": "update_term_parent", "collection_id": "category", "term_id": "4", "new_parent_id": "1"}
    )
    to_root = await handler.handle(
        {"op": "update_term_parent", "collection_id": "category", "term_id": "2", "new_parent_id": "0"}
    )

    assert moved.ok and moved.touched_ids == [4]
    assert to_root.ok and to_root.data["parent_id"] == 0
    stored = await term_store.load_collection("category")
    assert {item.id: item.parent_id for item in stored} == {1: 0, 2: 0, 3: 0, 4: 1}


@pytest.mark.asyncio
async def test_bulk_term_request_reports_malformed_entries(handler):
    result = await handler.handle(
        {
            "op": "bulk_update_term_parents",
            "collection_id": "category",
            "updates": [{"new_parent_id": 1}, {"id": "4", "new_parent_id": "1"}],
        }
    )

    assert result.ok
    assert result.data["updated"] == [4]
    assert result.data["failed"][0]["code"] == "invalid_input"
