from __future__ import annotations

import pytest

from jsonkit.common.errors import EmptyResultError, TypeMismatchError
from jsonkit.common.query import Query, QueryOptions
from jsonkit.state.mutation import Mode, extend, mutate, type_of, unset


def _doc():
    return {"name": "cfg", "list": ["a", "b", "c"], "nested": {"x": 1}}


def test_set_creates_and_overwrites():
    doc = _doc()
    assert mutate(doc, "/fresh", 1) is doc
    mutate(doc, "/name", "other")
    assert doc["fresh"] == 1
    assert doc["name"] == "other"


def test_set_extends_missing_parents_by_next_segment_type():
    doc = mutate({}, "/a/b/0/c", "v")
    assert doc == {"a": {"b": [{"c": "v"}]}}


def test_set_replaces_scalar_intermediate():
    doc = mutate({"a": "scalar"}, "/a/b", 1)
    assert doc == {"a": {"b": 1}}


def test_set_positional_overwrite():
    doc = _doc()
    mutate(doc, "/list", "z", Mode.SET, position="last")
    mutate(doc, "/list", "y", Mode.SET, position=0)
    mutate(doc, "/list", "m", Mode.SET, position=1)
    assert doc["list"] == ["y", "m", "z"]


def test_replace_requires_existing_key():
    doc = _doc()
    mutate(doc, "/name", "new", Mode.REPLACE)
    assert doc["name"] == "new"
    # default options answer a miss quietly
    mutate(doc, "/absent", 1, Mode.REPLACE)
    assert "absent" not in doc
    strict = Query(QueryOptions(throw_exception=True))
    with pytest.raises(EmptyResultError):
        mutate(doc, "/absent", 1, Mode.REPLACE, query=strict)
    with pytest.raises(EmptyResultError):
        mutate(doc, "/no/parent", 1, Mode.REPLACE, query=strict)


def test_typesafe_replace():
    doc = _doc()
    with pytest.raises(TypeMismatchError):
        mutate(doc, "/name", 42, Mode.REPLACE, typesafe=True)
    assert doc["name"] == "cfg"
    mutate(doc, "/name", 42, Mode.REPLACE, typesafe=False)
    assert doc["name"] == 42


def test_add_only_is_non_destructive():
    doc = _doc()
    mutate(doc, "/name", "other", Mode.ADD)
    mutate(doc, "/extra", "new", Mode.ADD)
    assert doc["name"] == "cfg"
    assert doc["extra"] == "new"


def test_insert_positions():
    doc = _doc()
    mutate(doc, "/list", "end", Mode.INSERT, position="last")
    mutate(doc, "/list", "start", Mode.INSERT, position="first")
    mutate(doc, "/list", "mid", Mode.INSERT, position=2)
    mutate(doc, "/list", "far", Mode.INSERT, position=99)
    assert doc["list"] == ["start", "a", "mid", "b", "c", "end", "far"]


def test_insert_on_absent_key_starts_array():
    doc = _doc()
    mutate(doc, "/tags", "t1", Mode.INSERT, position=-1)
    mutate(doc, "/deep/tags", "t1", Mode.INSERT, position=-1)
    assert doc["tags"] == ["t1"]
    assert doc["deep"] == {"tags": ["t1"]}


def test_inject_numeric_segment_is_position():
    doc = _doc()
    mutate(doc, "/list/1", "x", Mode.INJECT)
    assert doc["list"] == ["a", "x", "b", "c"]
    mutate(doc, "/list/10", "tail", Mode.INJECT)
    assert doc["list"][-1] == "tail"


def test_remove_and_reset():
    doc = _doc()
    mutate(doc, "/list/0", mode=Mode.REMOVE)
    mutate(doc, "/nested/x", mode=Mode.RESET)
    mutate(doc, "/missing/key", mode=Mode.REMOVE)
    mutate(doc, "/nested/absent", mode=Mode.RESET)
    assert doc["list"] == ["b", "c"]
    assert doc["nested"] == {"x": None}


def test_key_less_writes_replace_the_tree():
    assert mutate({"a": 1}, "/", [1, 2]) == [1, 2]
    assert mutate(None, None, {"a": 1}, Mode.ADD) == {"a": 1}
    assert mutate({"a": 1}, "/", {"b": 2}, Mode.ADD) == {"a": 1}
    assert mutate({"a": 1}, "/", mode=Mode.REMOVE) is None
    items = [1, 2]
    assert mutate(items, "/", 0, Mode.INSERT, position="first") == [0, 1, 2]


def test_list_addressed_by_name_is_a_type_mismatch():
    with pytest.raises(TypeMismatchError):
        mutate({"list": [1]}, "/list/name", "x")


def test_writes_through_conditions():
    doc = {"users": [{"id": 1, "name": "ann"}, {"id": 2, "name": "bob"}]}
    mutate(doc, "/users/name", "bea", conditions=["id=2"])
    assert doc["users"][1]["name"] == "bea"
    mutate(doc, "/users/flag", True, conditions=["id>0"], filter="all")
    assert all(u["flag"] for u in doc["users"])
    # conditions that match nothing never create data
    mutate(doc, "/users/name", "zed", conditions=["id=3"])
    assert [u["name"] for u in doc["users"]] == ["ann", "bea"]


def test_mutation_is_visible_through_live_views():
    doc = _doc()
    view = doc["nested"]
    mutate(doc, "/nested/y", 2)
    assert view == {"x": 1, "y": 2}


def test_extend_and_unset_helpers():
    assert extend(None, "/0/a", 1) == [{"a": 1}]
    assert extend({"a": 1}, "", "whole") == "whole"
    assert unset({"a": 1, "b": 2}, "a") == {"b": 2}
    assert unset([1, 2, 3], "1") == [1, 3]
    assert unset([1], "5") == [1]


@pytest.mark.parametrize(
    "value, tag",
    [(None, "null"), (True, "boolean"), (1, "integer"), (1.5, "float"), ("s", "string"), ([], "array"), ({}, "object")],
)
def test_type_of(value, tag):
    assert type_of(value) == tag


def test_index_past_the_end_pads_with_none():
    doc = {"list": ["a"]}
    mutate(doc, "/list/3", "v")
    assert doc["list"] == ["a", None, None, "v"]
    assert mutate({}, "/a/3", "x") == {"a": [None, None, None, "x"]}
