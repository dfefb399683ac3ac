from __future__ import annotations

import base64
import binascii
import codecs
import json
from enum import Enum
from typing import Any, Union

from .errors import CodecError, UnsupportedAlgorithmError


# binascii.b2a_uu accepts at most 45 bytes per line
_UU_LINE = 45


class Algorithm(str, Enum):
    JSON = "JSON"
    BASE64 = "BASE64"
    ROT13 = "ROT13"
    UU = "UU"

    @classmethod
    def parse(cls, name: Union[str, "Algorithm"]) -> "Algorithm":
        if isinstance(name, cls):
            return name
        try:
            return cls(str(name).strip().upper())
        except ValueError as ex:
            raise UnsupportedAlgorithmError(f"Codec algorithm {name!r} is not supported") from ex


AlgorithmLike = Union[str, Algorithm, None]


# -------- Serialized form --------
def serialize(value: Any) -> str:
    """Compact JSON text; dict insertion order is kept."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as ex:
        raise CodecError(f"Value of type {type(value).__name__} is not serializable") from ex


def unserialize(text: Union[str, bytes]) -> Any:
    try:
        return json.loads(text)
    except ValueError as ex:
        raise CodecError("Text is not in serialized form") from ex


def is_serialized(value: Any) -> bool:
    if not isinstance(value, (str, bytes, bytearray)):
        return False
    try:
        json.loads(value)
    except ValueError:
        return False
    return True


def is_json(value: Any) -> bool:
    """True for text holding a JSON object or array."""
    if not isinstance(value, (str, bytes, bytearray)):
        return False
    text = value.decode("utf-8", errors="replace") if isinstance(value, (bytes, bytearray)) else value
    stripped = text.strip()
    if not stripped or stripped[0] not in "{[":
        return False
    return is_serialized(stripped)


def _as_text(value: Union[str, bytes, bytearray]) -> str:
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as ex:
            raise CodecError("Payload is not valid UTF-8") from ex
    return value


def _payload(value: Any) -> bytes:
    # Plain strings (and raw bytes) are transformed as-is; everything else is
    # serialized first. Strings that already parse as JSON ("123", "null") are
    # serialized too, or decoding would unwrap them into other types.
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str) and not is_serialized(value):
        return value.encode("utf-8")
    return serialize(value).encode("utf-8")


def _unwrap(text: str) -> Any:
    # Single extra unwrap when the transform revealed serialized text
    return unserialize(text) if is_serialized(text) else text


# -------- Transforms --------
def _uuencode(data: bytes) -> str:
    lines = [binascii.b2a_uu(data[i:i + _UU_LINE], backtick=True) for i in range(0, len(data), _UU_LINE)]
    lines.append(b"`\n")
    return b"".join(lines).decode("ascii")


def _uudecode(text: str) -> bytes:
    out = bytearray()
    for line in text.encode("ascii").splitlines():
        if not line.strip():
            continue
        out += binascii.a2b_uu(line)
    return bytes(out)


def encode(value: Any, algo: AlgorithmLike = Algorithm.JSON) -> str:
    """
    Encode a value for transport.

    - JSON: structural encoding only.
    - BASE64/ROT13/UU: non-string values are serialized, then transformed.
    - algo=None: serialized form.
    """
    if algo is None:
        return serialize(value)
    algorithm = Algorithm.parse(algo)
    if algorithm is Algorithm.JSON:
        return serialize(value)
    data = _payload(value)
    if algorithm is Algorithm.BASE64:
        return base64.b64encode(data).decode("ascii")
    if algorithm is Algorithm.ROT13:
        return codecs.encode(data.decode("utf-8"), "rot_13")
    return _uuencode(data)


def decode(data: Union[str, bytes, bytearray, Any], algo: AlgorithmLike = Algorithm.JSON) -> Any:
    """
    Decode transport text produced by `encode`.

    - JSON: structural decoding only; invalid JSON raises CodecError.
    - BASE64/ROT13/UU: reverse the transform, then unserialize once if the
      result is serialized text.
    - algo=None: unserialize serialized text, return anything else unchanged.
    """
    if algo is None:
        if is_serialized(data):
            return unserialize(data)
        return data
    algorithm = Algorithm.parse(algo)
    if algorithm is Algorithm.JSON:
        return unserialize(data)
    text = _as_text(data)
    try:
        if algorithm is Algorithm.BASE64:
            raw = base64.b64decode(text.strip(), validate=True)
        elif algorithm is Algorithm.ROT13:
            raw = codecs.decode(text, "rot_13").encode("utf-8")
        else:
            raw = _uudecode(text)
    except (binascii.Error, ValueError) as ex:
        raise CodecError(f"Payload is not valid {algorithm.value} text") from ex
    return _unwrap(_as_text(raw))


def pretty(value: Any, *, indent: int = 2) -> str:
    """Human-readable JSON rendering."""
    return json.dumps(value, indent=indent, ensure_ascii=False)


__all__ = [
    "Algorithm",
    "AlgorithmLike",
    "serialize",
    "unserialize",
    "is_serialized",
    "is_json",
    "encode",
    "decode",
    "pretty",
]
