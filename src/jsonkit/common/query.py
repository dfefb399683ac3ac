from __future__ import annotations

import copy
import json
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .errors import EmptyResultError
from .paths import is_index, split


class _Missing:
    """Marker for "nothing at this path"; distinct from any JSON value."""

    _instance: Optional["_Missing"] = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()

FILTER_FIRST = "first"
FILTER_LAST = "last"
FILTER_ALL = "all"
_FILTERS = (FILTER_FIRST, FILTER_LAST, FILTER_ALL)


class QueryOptions(BaseModel):
    """
    Miss-handling policy for one store.

    Fields
    - default_value: returned when a path/query resolves to nothing. A callable
      is called to produce the value; an exception instance is raised.
    - throw_exception: raise `EmptyResultError` on a miss instead.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    default_value: Any = Field(default=None, description="Sentinel returned on a miss")
    throw_exception: bool = Field(default=False, description="Raise on a miss")


def resolve_default(options: QueryOptions) -> Any:
    value = options.default_value
    if isinstance(value, BaseException):
        raise value
    if callable(value):
        return value()
    # Each miss gets its own copy; writes through a missed cursor must not reach the config
    return copy.deepcopy(value)


@dataclass
class Reference:
    """
    Handle to a node inside a document.

    - `holder`/`key` address the node in its parent container (live).
    - Without a holder the reference wraps `node` directly: that is the
      document root, or a `materialized` result list built by a query.
    """

    holder: Any = None
    key: Any = None
    node: Any = None
    materialized: bool = False

    @property
    def value(self) -> Any:
        if self.holder is None:
            return self.node
        try:
            return self.holder[self.key]
        except (KeyError, IndexError):
            return MISSING

    @property
    def is_root(self) -> bool:
        return self.holder is None and not self.materialized

    def assign(self, value: Any) -> None:
        if self.holder is None:
            self.node = value
            return
        if isinstance(self.holder, list) and self.key >= len(self.holder):
            self.holder.append(value)
            self.key = len(self.holder) - 1
        else:
            self.holder[self.key] = value


def child(node: Any, segment: Any) -> Any:
    """Return the child of a container for a segment, or MISSING."""
    if isinstance(node, dict):
        return node.get(str(segment), MISSING)
    if isinstance(node, list) and is_index(segment):
        idx = int(segment)
        return node[idx] if idx < len(node) else MISSING
    return MISSING


def lookup(root: Any, path: Any) -> Any:
    """Walk `path` from `root`; returns the value or MISSING. Never raises."""
    node = root
    for seg in split(path):
        node = child(node, seg)
        if node is MISSING:
            return MISSING
    return node


# -------- Conditions --------
_OPS: Dict[str, Callable[[Any, Any], bool]] = {
    "!=": operator.ne,
    "<=": operator.le,
    ">=": operator.ge,
    "=": operator.eq,
    "<": operator.lt,
    ">": operator.gt,
}
_CONDITION_RE = re.compile(r"^\s*([^!<>=]+?)\s*(!=|<=|>=|=|<|>)\s*(.*?)\s*$")


def _coerce(raw: str) -> Any:
    # Condition values follow JSON scalar syntax; anything else is a string
    try:
        return json.loads(raw)
    except ValueError:
        return raw.strip("'\"")


@dataclass(frozen=True)
class Condition:
    field: str
    op: str
    value: Any

    @classmethod
    def parse(cls, text: str) -> "Condition":
        m = _CONDITION_RE.match(str(text))
        if not m:
            raise ValueError(f"Invalid query condition: {text!r}")
        field, op, raw = m.groups()
        return cls(field=field, op=op, value=_coerce(raw))

    def matches(self, node: Any) -> bool:
        actual = lookup(node, self.field)
        if actual is MISSING:
            return False
        try:
            return bool(_OPS[self.op](actual, self.value))
        except TypeError:
            # Ordering between unrelated types never matches
            return False


def parse_conditions(conditions: Optional[Iterable[Any]]) -> List[Condition]:
    if not conditions:
        return []
    if isinstance(conditions, (str, Condition)):
        conditions = [conditions]
    return [c if isinstance(c, Condition) else Condition.parse(c) for c in conditions]


class Query:
    """
    Resolves paths (and optional filter conditions) to `Reference` handles.

    Misses raise `EmptyResultError`; callers decide whether to surface it or
    answer with the configured default.
    """

    def __init__(self, options: Optional[QueryOptions] = None) -> None:
        self.options = options or QueryOptions()

    def retrieve(self, root: Any, path: Any) -> Reference:
        return self._walk(Reference(node=root), path)

    def find(
        self,
        base: Reference,
        path: Any,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> Reference:
        ref = self._walk(base, path)
        parsed = parse_conditions(conditions)
        if not parsed:
            return ref

        mode = (filter or FILTER_FIRST).strip().lower()
        if mode not in _FILTERS:
            raise ValueError(f"Unknown query filter: {filter!r}")

        node = ref.value
        if isinstance(node, list):
            candidates = list(enumerate(node))
        elif isinstance(node, dict):
            candidates = list(node.items())
        else:
            candidates = []
        hits = [
            (key, item)
            for key, item in candidates
            if isinstance(item, dict) and all(c.matches(item) for c in parsed)
        ]
        if not hits:
            raise EmptyResultError(f"No result found for query {path!r} with {list(conditions or [])}")
        if mode == FILTER_ALL:
            return Reference(node=[item for _, item in hits], materialized=True)
        key, _ = hits[0] if mode == FILTER_FIRST else hits[-1]
        return Reference(holder=node, key=key)

    def _walk(self, base: Reference, path: Any) -> Reference:
        ref = base
        for seg in split(path):
            node = ref.value
            if child(node, seg) is MISSING:
                raise EmptyResultError(f"No result found for path {path!r}")
            ref = Reference(holder=node, key=int(seg) if isinstance(node, list) else seg)
        return ref


__all__ = [
    "MISSING",
    "FILTER_FIRST",
    "FILTER_LAST",
    "FILTER_ALL",
    "QueryOptions",
    "resolve_default",
    "Reference",
    "Condition",
    "parse_conditions",
    "child",
    "lookup",
    "Query",
]
