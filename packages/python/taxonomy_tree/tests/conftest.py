import pytest

from taxonomy_tree import FlatItem


@pytest.fixture()
def chain():
    return [
        FlatItem(id=1, name="A", parent_id=0),
        FlatItem(id=2, name="B", parent_id=1),
        FlatItem(id=3, name="C", parent_id=2),
    ]


@pytest.fixture()
def categories():
    #  News(10)            Sports(20)
    #   ├─ local(11)        └─ Football(21)
    #   └─ World(12)             └─ cups(22)
    #       └─ Europe(13)
    return [
        FlatItem(id=20, name="Sports", parent_id=0),
        FlatItem(id=12, name="World", parent_id=10),
        FlatItem(id=11, name="local", parent_id=10),
        FlatItem(id=10, name="News", parent_id=None),
        FlatItem(id=21, name="Football", parent_id=20),
        FlatItem(id=13, name="Europe", parent_id=12),
        FlatItem(id=22, name="cups", parent_id=21),
    ]
