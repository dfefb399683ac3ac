from __future__ import annotations

import pytest

from jsonkit.common.paths import PathBuilder, from_dotted, is_index, join, normalize, split


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("/a/b/c", ("/a/b", "c")),
        ("a/b", ("/a", "b")),
        ("/a", ("/", "a")),
        ("a", ("/", "a")),
        ("/", ("/", None)),
        ("", ("/", None)),
        (None, ("/", None)),
        ("/a/b/*", ("/a", "b")),
        ("  /a/b/. ", ("/a", "b")),
        ("/items/0", ("/items", "0")),
    ],
)
def test_normalize(raw, expected):
    assert normalize(raw) == expected


def test_split_and_join():
    assert split("/users//0/name/") == ["users", "0", "name"]
    assert split(".") == []
    assert join("users", 0, "name") == "/users/0/name"
    assert join() == "/"


def test_is_index():
    assert is_index("0")
    assert is_index("12")
    assert is_index(3)
    assert not is_index("-1")
    assert not is_index("a1")
    assert not is_index(True)
    assert not is_index(-1)


def test_from_dotted():
    assert from_dotted("db.replicas.0") == "/db/replicas/0"


class _Target:
    def __init__(self) -> None:
        self.calls = []

    def get(self, path=None):
        self.calls.append(("get", path))
        return "value"

    def set(self, path, value, position=None):  # noqa: ARG002
        self.calls.append(("set", path, value))
        return self


def test_builder_builds_and_consumes():
    target = _Target()
    builder = PathBuilder(target).segment("users", 0).segment("name")
    assert builder.build() == "/users/0/name"
    assert builder.resolve() == "value"
    assert target.calls == [("get", "/users/0/name")]
    # consumed
    assert builder.build() == "/"

    builder.segment("flags").index(2).assign(True)
    assert target.calls[-1] == ("set", "/flags/2", True)


def test_builder_rejects_bad_index_and_unbound_resolve():
    with pytest.raises(ValueError):
        PathBuilder().index(-1)
    with pytest.raises(RuntimeError):
        PathBuilder().segment("a").resolve()
