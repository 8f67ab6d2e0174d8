import pytest

from taxonomy_tree import (
    NO_PARENT_LABEL,
    FlatItem,
    build_hierarchy,
    build_tree,
    filter_parent_options,
    get_ancestor_ids,
    get_descendant_ids,
    parent_options,
)
from tree_core import NodeNotFoundError


def test_none_parent_is_root():
    assert FlatItem(id=5, name="x", parent_id=None).parent_id == 0


@pytest.mark.parametrize(
    "raw_id,raw_parent,expected",
    [
        ("3", "0", (3, 0)),
        (" 7 ", "12", (7, 12)),
        ("3", "", (3, 0)),
        ("news-1", "news", ("news-1", "news")),
    ],
)
def test_digit_strings_become_int_ids(raw_id, raw_parent, expected):
    item = FlatItem(id=raw_id, name="x", parent_id=raw_parent)
    assert (item.id, item.parent_id) == expected


def test_hierarchy_is_pre_order_with_depth(categories):
    view = build_hierarchy(categories)

    assert [(e.id, e.depth) for e in view] == [
        (10, 0),
        (11, 1),
        (12, 1),
        (13, 2),
        (20, 0),
        (21, 1),
        (22, 2),
    ]


def test_hierarchy_sorts_case_insensitively_and_honours_order(categories):
    categories = [
        item.model_copy(update={"order": 0}) if item.id == 20 else item for item in categories
    ]
    view = build_hierarchy(categories)
    assert [e.id for e in view if e.depth == 0] == [20, 10]


def test_hierarchy_skips_orphans_and_corrupt_loops():
    items = [
        FlatItem(id=1, name="root", parent_id=0),
        FlatItem(id=2, name="orphan", parent_id=99),
        FlatItem(id=3, name="loop-a", parent_id=4),
        FlatItem(id=4, name="loop-b", parent_id=3),
    ]
    assert [e.id for e in build_hierarchy(items)] == [1]


def test_hierarchy_is_recomputed_identically(categories):
    assert build_hierarchy(categories) == build_hierarchy(categories)


def test_build_tree_nests_children(categories):
    tree = build_tree(categories)

    assert [node.id for node in tree] == [10, 20]
    news = tree[0]
    assert [child.id for child in news.children] == [11, 12]
    assert news.children[1].children[0].name == "Europe"
    assert news.children[1].children[0].depth == 2


def test_descendants_scenario(chain):
    assert get_descendant_ids(chain, 1) == {1, 2, 3}
    assert get_descendant_ids(chain, 3) == {3}


def test_ancestors(categories):
    assert get_ancestor_ids(categories, 13) == [12, 10]
    assert get_ancestor_ids(categories, 10) == []
    with pytest.raises(NodeNotFoundError):
        get_ancestor_ids(categories, 404)


def test_parent_options_exclude_self_and_descendants(categories):
    options = parent_options(categories, exclude_id=12)

    assert options[0].id == 0
    assert options[0].label == NO_PARENT_LABEL
    assert [o.id for o in options[1:]] == [10, 11, 20, 21, 22]
    labels = {o.id: o.label for o in options}
    assert labels[11] == "— local"
    assert labels[22] == "— — cups"


def test_filter_parent_options_keeps_no_parent(categories):
    options = parent_options(categories)

    filtered = filter_parent_options(options, "EU")
    assert [o.id for o in filtered] == [0, 13]
    assert filter_parent_options(options, "  ") == options
