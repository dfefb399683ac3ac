from __future__ import annotations


class JsonKitError(RuntimeError):
    """Base error for jsonkit."""


class EmptyResultError(JsonKitError, LookupError):
    """Path or query resolved to nothing and strict mode requires an error."""


class TypeMismatchError(JsonKitError, TypeError):
    """Value type does not match what the operation requires."""


class InvalidOverrideError(JsonKitError):
    """A write would overwrite its own source, e.g. overlapping copy or merge paths."""


class UnsupportedAlgorithmError(JsonKitError, ValueError):
    """Unknown codec, cipher, hash or block mode name."""


class CodecError(JsonKitError, ValueError):
    """Transport text could not be decoded."""


class EncryptionError(JsonKitError):
    """Encryption failed due to invalid parameters."""


class DecryptionFailedError(JsonKitError):
    """Ciphertext or key is invalid (the two are indistinguishable)."""


class InvalidFileError(JsonKitError, OSError):
    """Unreadable or unwritable path, stream or import source."""


class RemoteSourceError(InvalidFileError):
    """HTTP import source could not be fetched."""


__all__ = [
    "JsonKitError",
    "EmptyResultError",
    "TypeMismatchError",
    "InvalidOverrideError",
    "UnsupportedAlgorithmError",
    "CodecError",
    "EncryptionError",
    "DecryptionFailedError",
    "InvalidFileError",
    "RemoteSourceError",
]
