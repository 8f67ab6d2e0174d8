import copy
import itertools

import pytest

from taxonomy_tree import FlatItem
from tree_repo import (
    DocumentService,
    InMemoryDocumentStore,
    InMemoryTermStore,
    RepoSettings,
    TaxonomyService,
    TreeRequestHandler,
)

PAGE_ID = 42

PAGE = [
    {
        "id": "c1",
        "elType": "container",
        "settings": {"content_width": "boxed"},
        "elements": [
            {"id": "h1", "elType": "widget", "widgetType": "heading", "settings": {"title": "Hello"}},
            {"id": "b1", "elType": "widget", "widgetType": "button", "settings": {"text": "Go"}},
            {
                "id": "c2",
                "elType": "container",
                "isInner": True,
                "settings": [],
                "elements": [
                    {"id": "b2", "elType": "widget", "widgetType": "button", "settings": {}},
                ],
            },
        ],
    },
    {"id": "c3", "elType": "container", "settings": {}, "elements": []},
]


@pytest.fixture()
def raw_page():
    return copy.deepcopy(PAGE)


@pytest.fixture()
def repo_settings():
    return RepoSettings(max_write_retries=2)


@pytest.fixture()
def id_factory():
    counter = itertools.count(1)
    return lambda: f"new{next(counter)}"


@pytest.fixture()
def document_store():
    store = InMemoryDocumentStore()
    store.seed(PAGE_ID, PAGE, title="Landing")
    return store


@pytest.fixture()
def documents(document_store, repo_settings, id_factory):
    return DocumentService(document_store, repo_settings, id_factory=id_factory)


@pytest.fixture()
def term_store():
    store = InMemoryTermStore()
    store.seed(
        "category",
        [
            FlatItem(id=1, name="News", parent_id=0),
            FlatItem(id=2, name="Local", parent_id=1),
            FlatItem(id=3, name="Sports", parent_id=0),
            FlatItem(id=4, name="Football", parent_id=3),
        ],
    )
    return store


@pytest.fixture()
def taxonomy(term_store, repo_settings):
    return TaxonomyService(term_store, repo_settings)


@pytest.fixture()
def handler(documents, taxonomy):
    return TreeRequestHandler(documents, taxonomy)
