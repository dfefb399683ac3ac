"""
Write-mode state machine for JSON-like trees.

Every write resolves the parent container of the final path segment, then
performs a mode-specific edit in place. When the parent does not exist, the
creating modes fall back to `extend`, which builds the missing intermediate
containers along the full path.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, Sequence, Union

from jsonkit.common.errors import EmptyResultError, TypeMismatchError
from jsonkit.common.paths import FIRST_ALIASES, LAST_ALIASES, is_index, normalize, split
from jsonkit.common.query import MISSING, Query, QueryOptions, Reference, child, resolve_default


logger = logging.getLogger(__name__)


class Mode(str, Enum):
    SET = "set"
    REPLACE = "replace"
    ADD = "add"
    INSERT = "insert"
    INJECT = "inject"
    REMOVE = "remove"
    RESET = "reset"

    @property
    def creates(self) -> bool:
        return self in (Mode.SET, Mode.ADD, Mode.INSERT, Mode.INJECT)

    @property
    def positional(self) -> bool:
        return self in (Mode.INSERT, Mode.INJECT)


Position = Union[int, str, None]

_LAST = "last"
_FIRST = "first"


def type_of(value: Any) -> str:
    """Runtime type tag used by typesafe writes and merges."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int):
        return "integer"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def is_container(value: Any) -> bool:
    return isinstance(value, (dict, list))


def _position(position: Position) -> Union[int, str]:
    if position in LAST_ALIASES:
        return _LAST
    if position in FIRST_ALIASES:
        return _FIRST
    if is_index(position):
        return int(position)
    raise ValueError(f"Invalid array position: {position!r}")


def _put(container: Any, key: Any, value: Any) -> None:
    """Assign into a dict or list; list indexes past the end pad with None."""
    if isinstance(container, dict):
        container[str(key)] = value
        return
    if not is_index(key):
        raise TypeMismatchError(f"Cannot address an array with key {key!r}")
    idx = int(key)
    if idx < len(container):
        container[idx] = value
    else:
        container.extend([None] * (idx - len(container)))
        container.append(value)


def unset(container: Any, key: Any = None) -> Any:
    """Delete `key` from a container; list elements after it shift down."""
    if key is None:
        return None
    if isinstance(container, dict):
        container.pop(str(key), None)
    elif isinstance(container, list) and is_index(key) and int(key) < len(container):
        del container[int(key)]
    return container


def _insert(items: list, value: Any, position: Union[int, str]) -> None:
    if position == _LAST:
        items.append(value)
    elif position == _FIRST:
        items.insert(0, value)
    elif position < len(items):
        items.insert(position, value)
    else:
        items.append(value)


def _overwrite_at(items: list, value: Any, position: Union[int, str]) -> None:
    if not items:
        items.append(value)
    elif position == _LAST:
        items[-1] = value
    elif position == _FIRST:
        items[0] = value
    else:
        _put(items, position, value)


def _initial(value: Any, mode: Mode, position: Position, key: Any) -> Any:
    # Appending to something that does not exist yet starts a new array
    if mode is Mode.INJECT and is_index(key):
        return value
    if mode.positional and position is not None:
        return [value]
    return value


def extend(tree: Any, path: Any, value: Any = None) -> Any:
    """
    Assign `value` at `path`, creating missing or scalar intermediates.

    New intermediates are arrays when the next segment is numeric and objects
    otherwise. Returns the (possibly new) tree.
    """
    segments = split(path)
    if not segments:
        return value
    if not is_container(tree):
        tree = [] if is_index(segments[0]) else {}

    node = tree
    for seg, nxt in zip(segments, segments[1:]):
        current = child(node, seg)
        if not is_container(current):
            current = [] if is_index(nxt) else {}
            _put(node, seg, current)
        node = current
    _put(node, segments[-1], value)
    return tree


def _check_type(current: Any, value: Any, path: Any) -> None:
    if type_of(current) != type_of(value):
        raise TypeMismatchError(
            f"Value at {path!r} is {type_of(current)}, refusing to overwrite with {type_of(value)}"
        )


def _apply(container: Any, key: str, value: Any, mode: Mode, position: Position, typesafe: bool, path: Any) -> bool:
    """Edit `container[key]` in place. Returns False when a strict replace missed."""
    if mode is Mode.INJECT and is_index(key) and isinstance(container, list):
        _insert(container, value, int(key))
        return True

    if isinstance(container, list) and not is_index(key):
        raise TypeMismatchError(f"Cannot address an array with key {key!r}")

    current = child(container, key)
    if current is MISSING:
        if mode is Mode.REPLACE:
            return False
        if mode in (Mode.REMOVE, Mode.RESET):
            return True
        _put(container, key, _initial(value, mode, position, key))
        return True

    if mode is Mode.ADD:
        return True
    if mode is Mode.REMOVE:
        unset(container, key)
        return True
    if mode is Mode.RESET:
        _put(container, key, None)
        return True

    if isinstance(current, list) and position is not None:
        pos = _position(position)
        if mode.positional:
            _insert(current, value, pos)
        else:
            _overwrite_at(current, value, pos)
        return True

    if typesafe:
        _check_type(current, value, path)
    _put(container, key, value)
    return True


def _apply_root(tree: Any, value: Any, mode: Mode, position: Position, typesafe: bool) -> Any:
    # Key-less writes target the tree itself; the return value replaces it
    if mode in (Mode.REMOVE, Mode.RESET):
        return None
    if tree is None and mode is not Mode.REPLACE:
        return _initial(value, mode, position, None)
    if mode is Mode.ADD:
        return tree
    if isinstance(tree, list) and position is not None:
        pos = _position(position)
        if mode.positional:
            _insert(tree, value, pos)
        else:
            _overwrite_at(tree, value, pos)
        return tree
    if typesafe:
        _check_type(tree, value, "/")
    return value


def _miss(options: QueryOptions, path: Any) -> None:
    if options.throw_exception:
        raise EmptyResultError(f"No result found for path {path!r}")
    logger.warning("No result found for path %r; answering with the default value", path)
    resolve_default(options)


def mutate(
    tree: Any,
    path: Any = None,
    value: Any = None,
    mode: Union[Mode, str] = Mode.SET,
    position: Position = None,
    typesafe: bool = False,
    *,
    query: Optional[Query] = None,
    conditions: Optional[Sequence[Any]] = None,
    filter: Optional[str] = None,
) -> Any:
    """
    Apply one write to `tree` and return the (possibly replaced) tree.

    - The final path segment is the key; the rest locates the parent
      container through `query` (with optional filter conditions).
    - A missing parent is created via `extend` for SET/ADD/INSERT/INJECT,
      ignored for REMOVE/RESET, and a miss for REPLACE. With conditions,
      a missing parent is always a miss (nothing can be created to satisfy
      them).
    - Misses raise `EmptyResultError` or answer with the default value,
      depending on the query options.
    """
    mode = Mode(mode)
    query = query or Query()
    parent_path, key = normalize(path)

    if key is None and not conditions:
        if mode is Mode.REPLACE and tree is None:
            _miss(query.options, path)
            return tree
        return _apply_root(tree, value, mode, position, typesafe)

    try:
        ref = query.find(Reference(node=tree), parent_path, conditions, filter)
    except EmptyResultError:
        ref = None
    container = MISSING if ref is None else ref.value

    if not is_container(container):
        if mode in (Mode.REMOVE, Mode.RESET):
            return tree
        if mode.creates and not conditions:
            return extend(tree, path, _initial(value, mode, position, key))
        _miss(query.options, path)
        return tree

    if key is None:
        # Conditions selected the target itself
        replaced = _apply_root(container, value, mode, position, typesafe)
        if replaced is not container:
            if ref.is_root:
                return replaced
            ref.assign(replaced)
        return tree

    targets = container if ref.materialized else [container]
    hit = False
    for target in targets:
        hit = _apply(target, key, value, mode, position, typesafe, path) or hit
    if not hit:
        _miss(query.options, path)
    return tree


__all__ = [
    "Mode",
    "Position",
    "type_of",
    "is_container",
    "unset",
    "extend",
    "mutate",
]
