from __future__ import annotations

from typing import Any, List, Optional, Protocol, Tuple


SEPARATOR = "/"
ROOT = "/"

# Characters trimmed from the end of a raw path (wildcards and dots included)
_TRAILING = "./* "
_LEADING = " /"

LAST_ALIASES = (-1, "-1", "last")
FIRST_ALIASES = (0, "0", "first")


def is_index(segment: Any) -> bool:
    """True for list index segments: non-bool ints and all-digit strings."""
    if isinstance(segment, bool):
        return False
    if isinstance(segment, int):
        return segment >= 0
    return isinstance(segment, str) and segment.isdigit()


def to_key(segment: Any) -> Any:
    return int(segment) if is_index(segment) else str(segment)


def _strip(raw: Any) -> str:
    text = "" if raw is None else str(raw)
    return text.strip().rstrip(_TRAILING).lstrip(_LEADING)


def split(raw: Any) -> List[str]:
    """Split a raw path into its non-empty segments."""
    body = _strip(raw)
    if not body:
        return []
    return [seg.strip() for seg in body.split(SEPARATOR) if seg.strip()]


def join(*segments: Any) -> str:
    return ROOT + SEPARATOR.join(str(s).strip(_LEADING) for s in segments if str(s).strip(_LEADING))


def normalize(raw: Any) -> Tuple[str, Optional[str]]:
    """
    Split a raw path into `(parent_path, key)`.

    - The final segment is the mutation key; the rest is the parent path.
    - Paths with fewer than two levels have the root as parent.
    - An empty path (or the root itself) yields key `None`, meaning the
      whole document.
    """
    segments = split(raw)
    if not segments:
        return ROOT, None
    if len(segments) == 1:
        return ROOT, segments[0]
    return join(*segments[:-1]), segments[-1]


def from_dotted(raw: str) -> str:
    """Convert a caller-supplied `a.b.0` path into slash form."""
    return join(*[seg for seg in str(raw).split(".") if seg.strip()])


class _Target(Protocol):
    def get(self, path: Any = None) -> Any: ...

    def set(self, path: Any, value: Any, position: Any = None) -> Any: ...


class PathBuilder:
    """
    Accumulates a path one segment at a time.

    Example:
        PathBuilder(store).segment("users").index(0).segment("name").resolve()

    `build()` returns the path string. `resolve()` reads and `assign()` writes
    through the bound store; both consume the builder.
    """

    def __init__(self, target: Optional[_Target] = None) -> None:
        self._target = target
        self._segments: List[str] = []

    def segment(self, name: str, index: Optional[int] = None) -> "PathBuilder":
        self._segments.append(str(name).strip())
        if index is not None:
            self.index(index)
        return self

    def index(self, n: int) -> "PathBuilder":
        if not is_index(n):
            raise ValueError(f"index must be a non-negative integer, got {n!r}")
        self._segments.append(str(int(n)))
        return self

    def build(self) -> str:
        return join(*self._segments)

    def reset(self) -> None:
        self._segments = []

    def _consume(self) -> str:
        if self._target is None:
            raise RuntimeError("PathBuilder is not bound to a store")
        path = self.build()
        self.reset()
        return path

    def resolve(self) -> Any:
        return self._target_call("get")

    def assign(self, value: Any) -> Any:
        return self._target_call("set", value)

    def _target_call(self, op: str, *args: Any) -> Any:
        path = self._consume()
        return getattr(self._target, op)(path, *args)

    def __str__(self) -> str:
        return self.build()

    def __repr__(self) -> str:
        return f"PathBuilder({self.build()!r})"


__all__ = [
    "SEPARATOR",
    "ROOT",
    "LAST_ALIASES",
    "FIRST_ALIASES",
    "is_index",
    "to_key",
    "split",
    "join",
    "normalize",
    "from_dotted",
    "PathBuilder",
]
