import itertools

import pytest

from page_tree import load_elements


@pytest.fixture()
def page():
    """A small page: two containers, a nested inner container and three buttons."""

    return load_elements(
        [
            {
                "id": "c1",
                "elType": "container",
                "settings": {"content_width": "boxed"},
                "elements": [
                    {
                        "id": "h1",
                        "elType": "widget",
                        "widgetType": "heading",
                        "settings": {"title": "Hello", "align": "left"},
                        "elements": [],
                    },
                    {"id": "b1", "elType": "widget", "widgetType": "button", "settings": {"text": "Go"}},
                    {
                        "id": "c2",
                        "elType": "container",
                        "isInner": True,
                        "settings": [],
                        "elements": [
                            {"id": "b2", "elType": "widget", "widgetType": "button", "settings": {"text": "Two"}},
                        ],
                    },
                ],
            },
            {
                "id": "c3",
                "elType": "container",
                "settings": {},
                "elements": [
                    {"id": "b3", "elType": "widget", "widgetType": "button", "settings": {}},
                ],
            },
        ]
    )


@pytest.fixture()
def id_factory():
    counter = itertools.count(1)
    return lambda: f"new{next(counter)}"
