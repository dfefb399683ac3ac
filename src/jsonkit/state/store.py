from __future__ import annotations

import logging
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Sequence, Union

import httpx

from jsonkit.common import codec, crypto
from jsonkit.common.errors import (
    CodecError,
    EmptyResultError,
    InvalidFileError,
    InvalidOverrideError,
    JsonKitError,
    TypeMismatchError,
)
from jsonkit.common.paths import PathBuilder, join, split
from jsonkit.common.query import MISSING, Query, Reference, lookup, resolve_default
from jsonkit.common.remote import RemoteDocumentClient, is_url

from .files import is_bindable, is_file, read_text, write_text_atomic
from .models import StoreConfig
from .mutation import Mode, Position, is_container, mutate, type_of
from .s3_store import S3DocumentStore, S3Location, is_s3_uri


logger = logging.getLogger(__name__)

Binding = Union[Path, S3Location]
IterateCallback = Callable[[Any, Any, str, "Store"], Any]


class Store:
    """
    Path-addressable, mutable JSON document.

    Reads and writes take slash paths (`/users/0/name`). `query()` narrows a
    cursor that subsequent calls operate on until `get()` (or `init()`)
    clears it:

        store = Store({"users": [{"id": 1, "tags": ["a"]}]})
        store.query("/users", ["id=1"]).append("/tags", "b")
        store.get("/tags")  # ["a", "b"], read through the cursor, which clears it

    Containers returned by `get()` are live: later writes through the store
    are visible in them until a write replaces the container itself.

    Persistence
    - `load()` accepts dicts/lists, JSON or serialized text, file paths,
      `http(s)://` URLs and `s3://bucket/key` locations.
    - `export()`/`save()` encode (or encrypt, when a key is known) and write
      to a stream, callback, file or S3 object.
    """

    def __init__(
        self,
        source: Any = None,
        config: Optional[StoreConfig] = None,
        *,
        s3: Optional[object] = None,
        http: Optional[httpx.Client] = None,
    ) -> None:
        cfg = config or StoreConfig()
        # The key lives only on the instance; it never travels with the config
        self._key = cfg.encryption.key
        self._config = cfg.without_key()
        self._query = Query(self._config.query)
        self._document: Any = None
        self._cursor: Optional[Reference] = None
        self._file: Optional[Binding] = None
        self._etag: Optional[str] = None
        self._s3 = s3
        self._http = http
        if source is not None:
            self.load(source)

    @classmethod
    def create(cls, source: Any = None, config: Optional[StoreConfig] = None, **kwargs: Any) -> "Store":
        return cls(source, config, **kwargs)

    # -------- Properties --------
    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def document(self) -> Any:
        return self._document

    @document.setter
    def document(self, value: Any) -> None:
        self._cursor = None
        self._document = value

    @property
    def file(self) -> Optional[Binding]:
        return self._file

    @property
    def queried(self) -> bool:
        return self._cursor is not None

    # -------- Cursor --------
    def init(self) -> Any:
        """Clear the cursor and return its last value."""
        value = self._cursor_value()
        self._cursor = None
        return value

    def rewind(self) -> Any:
        return self.init()

    def _cursor_value(self) -> Any:
        if self._cursor is None:
            return None
        value = self._cursor.value
        return None if value is MISSING else value

    def _base(self) -> Reference:
        return self._cursor or Reference(node=self._document)

    def _answer_miss(self, ex: EmptyResultError) -> Any:
        if self._config.query.throw_exception:
            raise ex
        logger.warning("%s; answering with the default value", ex)
        return resolve_default(self._config.query)

    def query(
        self,
        path: Any,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> "Store":
        """Narrow the cursor; chains off the current cursor when one is set."""
        try:
            self._cursor = self._query.find(self._base(), path, conditions, filter)
        except EmptyResultError as ex:
            self._cursor = Reference(node=self._answer_miss(ex), materialized=True)
        return self

    # -------- Reads --------
    def get(
        self,
        path: Any = None,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> Any:
        """
        Read the value at `path` (relative to the cursor when one is set).

        With no path, returns the cursor value, or the whole document when
        nothing was queried. Always clears the cursor.
        """
        try:
            if path is None and not conditions:
                return self._document if self._cursor is None else self._cursor_value()
            try:
                return self._query.find(self._base(), path, conditions, filter).value
            except EmptyResultError as ex:
                return self._answer_miss(ex)
        finally:
            self._cursor = None

    def has(self, path: Any = None) -> bool:
        """True when `path` holds something other than the default value."""
        if path is None:
            return self._cursor is not None
        try:
            value = self._query.find(self._base(), path).value
        except (JsonKitError, ValueError):
            return False
        if value is MISSING:
            return False
        sentinel = self._config.query.default_value
        return not (value is sentinel or (type(value) is type(sentinel) and value == sentinel))

    def path(self, name: str, index: Optional[int] = None) -> PathBuilder:
        """Start a fluent path: `store.path("users", 0).segment("name").resolve()`."""
        return PathBuilder(self).segment(name, index)

    def iterate(self, callback: IterateCallback) -> None:
        """
        Walk the document depth-first, children before their parent entry.

        `callback(key, value, path, store)` is called for every entry;
        returning `False` stops the walk.
        """
        if not callable(callback):
            raise TypeError("Passed callback is not a valid callback")
        self._walk(self._document, "/", callback)

    def _walk(self, node: Any, path: str, callback: IterateCallback) -> bool:
        if isinstance(node, dict):
            entries = list(node.items())
        elif isinstance(node, list):
            entries = list(enumerate(node))
        else:
            return True
        for key, value in entries:
            child_path = join(path, key)
            if is_container(value) and not self._walk(value, child_path, callback):
                return False
            if callback(key, value, child_path, self) is False:
                logger.debug("Iteration stopped at %s", child_path)
                return False
        return True

    # -------- Writes --------
    def _write(
        self,
        path: Any,
        value: Any,
        mode: Mode,
        position: Position = None,
        typesafe: bool = False,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> "Store":
        def apply(tree: Any) -> Any:
            return mutate(
                tree, path, value, mode, position, typesafe,
                query=self._query, conditions=conditions, filter=filter,
            )

        cursor = self._cursor
        if cursor is None:
            self._document = apply(self._document)
        elif cursor.materialized and isinstance(cursor.node, list):
            # Each matched node is live; the match list itself is a copy
            for item in list(cursor.node):
                apply(item)
        else:
            current = cursor.value
            current = None if current is MISSING else current
            updated = apply(current)
            if updated is not current:
                if cursor.is_root:
                    self._document = updated
                cursor.assign(updated)
        return self

    def set(
        self,
        path: Any,
        value: Any,
        position: Position = None,
        *,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> "Store":
        """Create or overwrite; with a position, overwrite that array element."""
        return self._write(path, value, Mode.SET, position, conditions=conditions, filter=filter)

    def replace(
        self,
        path: Any,
        value: Any,
        typesafe: Optional[bool] = None,
        *,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> "Store":
        """Overwrite an existing value only; a missing path is a miss."""
        if typesafe is None:
            typesafe = self._config.typesafe
        return self._write(path, value, Mode.REPLACE, typesafe=typesafe, conditions=conditions, filter=filter)

    def add(self, path: Any, value: Any) -> "Store":
        """Create only; an existing value is left untouched."""
        return self._write(path, value, Mode.ADD)

    def append(self, path: Any, value: Any) -> "Store":
        return self._write(path, value, Mode.INSERT, "last")

    def prepend(self, path: Any, value: Any) -> "Store":
        return self._write(path, value, Mode.INSERT, "first")

    def inject(self, path: Any, value: Any, position: Position = None) -> "Store":
        """
        Insert into an array. A numeric final segment is the position
        (`inject("/tags/1", x)`); otherwise `position` is used, defaulting
        to the end.
        """
        return self._write(path, value, Mode.INJECT, "last" if position is None else position)

    def remove(
        self,
        path: Any,
        *,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> "Store":
        return self._write(path, None, Mode.REMOVE, conditions=conditions, filter=filter)

    def reset(
        self,
        path: Any,
        *,
        conditions: Optional[Sequence[Any]] = None,
        filter: Optional[str] = None,
    ) -> "Store":
        return self._write(path, None, Mode.RESET, conditions=conditions, filter=filter)

    def _check_disjoint(self, src: Any, dst: Any) -> None:
        a, b = split(src), split(dst)
        n = min(len(a), len(b))
        if a[:n] == b[:n]:
            raise InvalidOverrideError(f"Paths {src!r} and {dst!r} overlap")

    def copy(self, src: Any, dst: Any) -> "Store":
        """Move the value at `src` to `dst` (created if absent)."""
        self._check_disjoint(src, dst)
        value = lookup(self._document, src)
        if value is MISSING:
            raise EmptyResultError(f"No result found for path {src!r}")
        self._document = mutate(self._document, dst, deepcopy(value), Mode.INSERT, query=self._query)
        self._document = mutate(self._document, src, mode=Mode.REMOVE, query=self._query)
        return self

    def merge(self, src: Any, dst: Any) -> "Store":
        """
        Merge the value at `src` into the value at `dst`, then remove `src`.

        Both must have the same type. Arrays: `src` elements are appended.
        Objects: `src` entries overwrite `dst` entries with the same key.
        Scalars: `dst` takes the `src` value.
        """
        self._check_disjoint(src, dst)
        a = lookup(self._document, src)
        b = lookup(self._document, dst)
        if a is MISSING or b is MISSING:
            raise EmptyResultError(f"No result found for path {src if a is MISSING else dst!r}")
        if type_of(a) != type_of(b):
            raise TypeMismatchError("Merging values at paths only allowed for values of same type")
        if isinstance(b, list):
            b.extend(deepcopy(a))
        elif isinstance(b, dict):
            b.update(deepcopy(a))
        else:
            self._document = mutate(self._document, dst, a, Mode.SET, query=self._query)
        self._document = mutate(self._document, src, mode=Mode.REMOVE, query=self._query)
        return self

    # -------- Serialization --------
    def serialize(self, value: Any = None) -> str:
        """Serialized form of the document, of the value at a `/path`, or of `value`."""
        if value is None:
            return codec.serialize(self._document)
        if isinstance(value, str) and value.startswith("/"):
            found = lookup(self._document, value)
            return codec.serialize(None if found is MISSING else found)
        return codec.serialize(value)

    def unserialize(self, data: Any) -> Any:
        """Decode serialized text, or the serialized text stored at a `/path`."""
        if isinstance(data, str) and data.startswith("/"):
            found = lookup(self._document, data)
            return codec.decode(None if found is MISSING else found, None)
        return codec.decode(data, None)

    def dump(self) -> str:
        text = codec.pretty(self._document)
        logger.debug("Document dump:\n%s", text)
        return text

    def __str__(self) -> str:
        return codec.encode(self._document)

    def __repr__(self) -> str:
        return f"Store(file={self._file!s}, queried={self.queried})"

    def __copy__(self) -> "Store":
        return self.__deepcopy__({})

    def __deepcopy__(self, memo: Dict[int, Any]) -> "Store":
        clone = type(self).__new__(type(self))
        clone.__setstate__(
            {"document": deepcopy(self._document, memo), "config": self._config, "file": self._file}
        )
        return clone

    def __getstate__(self) -> Dict[str, Any]:
        return {"document": self._document, "config": self._config, "file": self._file}

    def __setstate__(self, state: Dict[str, Any]) -> None:
        self._document = state["document"]
        self._config = state["config"]
        self._file = state["file"]
        self._query = Query(self._config.query)
        self._key = None
        self._cursor = None
        self._etag = None
        self._s3 = None
        self._http = None

    # -------- Persistence --------
    def _s3_binding(self, location: S3Location) -> S3DocumentStore:
        return S3DocumentStore(location, s3=self._s3)

    def _encrypt(self, key: Union[str, bytes]) -> Any:
        enc = self._config.encryption
        if enc.callback is not None:
            return enc.callback(self._document, key, "encrypt")
        return crypto.encrypt(self._document, key, enc.cipher, enc.hash_algo, enc.mode)

    def _decrypt(self, text: Any, key: Union[str, bytes]) -> Any:
        enc = self._config.encryption
        if enc.callback is not None:
            return enc.callback(text, key, "decrypt")
        return crypto.decrypt(text, key, enc.cipher, enc.hash_algo, enc.mode)

    def _decode_text(self, text: str, key: Optional[Union[str, bytes]]) -> Any:
        if key is not None:
            if codec.is_json(text):
                return codec.decode(text, codec.Algorithm.JSON)
            return self._decrypt(text, key)
        algorithm = self._config.algorithm
        try:
            return codec.decode(text, algorithm)
        except CodecError:
            # Plain JSON documents still load under a transport encoding
            if algorithm is not codec.Algorithm.JSON and codec.is_json(text):
                return codec.decode(text, codec.Algorithm.JSON)
            raise

    def _read_source(self, source: Any, key: Optional[Union[str, bytes]]) -> Optional[str]:
        """Return the text to decode for `source`, binding file/S3 targets on the way."""
        if isinstance(source, S3Location) or is_s3_uri(source):
            location = source if isinstance(source, S3Location) else S3Location.parse(source)
            self._file = location
            text, self._etag = self._s3_binding(location).read()
            if text is None:
                logger.debug("Bound to new S3 object %s", location)
            return text
        if is_url(source):
            with RemoteDocumentClient(client=self._http) as client:
                return client.fetch(source)
        if isinstance(source, (bytes, bytearray)):
            try:
                source = bytes(source).decode("utf-8")
            except UnicodeDecodeError as ex:
                raise InvalidFileError("Import source bytes are not UTF-8 text") from ex
        if isinstance(source, os.PathLike):
            source = os.fspath(source)
        if not isinstance(source, str):
            raise InvalidFileError(f"Import source of type {type(source).__name__} is not supported")

        if codec.is_json(source):
            return source
        if is_file(source):
            self._file = Path(source)
            logger.debug("Loading document from %s", self._file)
            return read_text(self._file)
        if key is None and codec.is_serialized(source):
            return source
        if is_bindable(source):
            self._file = Path(source)
            logger.debug("Bound to new file %s", self._file)
            return None
        if key is not None or self._config.algorithm is not codec.Algorithm.JSON:
            # Ciphertext or transport-encoded text
            return source
        raise InvalidFileError("Import parameter is not a valid object, serialized object or file path/dir")

    def load(self, source: Any, key: Optional[Union[str, bytes]] = None) -> Any:
        """
        Replace the document from `source` and return it.

        Dicts and lists are adopted by reference. Text sources are decrypted
        with `key` (or the store key) when one is known, else decoded with the
        configured algorithm.
        """
        if key is None:
            key = self._key
        if isinstance(source, (dict, list)):
            self.document = source
            return self._document
        text = self._read_source(source, key)
        if text is not None:
            self.document = self._decode_text(text, key)
        else:
            self._cursor = None
        return self._document

    def _encode(self, key: Optional[Union[str, bytes]]) -> Any:
        if key is not None:
            return self._encrypt(key)
        return codec.encode(self._document, self._config.algorithm)

    def export(self, sink: Any = None, key: Optional[Union[str, bytes]] = None) -> Any:
        """
        Encode (or encrypt) the document and deliver it to `sink`.

        - None: return the text.
        - object with `write`: write the text to it.
        - callable: `sink(text, key, store)`.
        - str/PathLike: overwrite that file atomically.
        - `s3://bucket/key` or S3Location: write the object; the ETag from the
          last read of the same object is used as an optimistic lock.
        Returns True for every sink.
        """
        if key is None:
            key = self._key
        text = self._encode(key)

        if sink is None:
            return text
        if isinstance(sink, S3Location) or is_s3_uri(sink):
            location = sink if isinstance(sink, S3Location) else S3Location.parse(sink)
            if_match = self._etag if location == self._file else None
            etag = self._s3_binding(location).write(text, if_match=if_match)
            if location == self._file:
                self._etag = etag
            logger.debug("Exported document to %s", location)
            return True
        if isinstance(sink, (str, os.PathLike)):
            write_text_atomic(sink, text)
            logger.debug("Exported document to %s", sink)
            return True
        if hasattr(sink, "write"):
            try:
                written = sink.write(text)
            except (OSError, ValueError, TypeError) as ex:
                raise InvalidFileError("Unable to save to stream") from ex
            if written == 0 and text:
                raise InvalidFileError("Unable to save to stream")
            return True
        if callable(sink):
            sink(text, key, self)
            return True
        raise InvalidFileError(f"Export target of type {type(sink).__name__} is not supported")

    def save(self, key: Optional[Union[str, bytes]] = None) -> Any:
        """Export to the bound file or S3 object, else return the encoded text."""
        return self.export(self._file, key)

    def save_to(self, sink: Any = None, key: Optional[Union[str, bytes]] = None) -> Any:
        return self.export(sink, key)


__all__ = ["Store", "Binding", "IterateCallback"]
