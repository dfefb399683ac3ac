"""
jsonkit: a path-addressable, mutable JSON document store.

    from jsonkit import Store

    store = Store({"db": {"host": "localhost"}})
    store.set("/db/port", 5432).append("/db/replicas", "r1")
    store.export("config.json")
"""

from jsonkit.common.codec import Algorithm
from jsonkit.common.crypto import BlockMode, Cipher, HashAlgorithm
from jsonkit.common.errors import (
    CodecError,
    DecryptionFailedError,
    EmptyResultError,
    EncryptionError,
    InvalidFileError,
    InvalidOverrideError,
    JsonKitError,
    RemoteSourceError,
    TypeMismatchError,
    UnsupportedAlgorithmError,
)
from jsonkit.common.paths import PathBuilder
from jsonkit.common.query import QueryOptions
from jsonkit.state import (
    EncryptionSettings,
    Mode,
    OptimisticLockError,
    S3Location,
    Store,
    StoreConfig,
)

__version__ = "0.1.0"

__all__ = [
    "Algorithm",
    "BlockMode",
    "Cipher",
    "CodecError",
    "DecryptionFailedError",
    "EmptyResultError",
    "EncryptionError",
    "EncryptionSettings",
    "HashAlgorithm",
    "InvalidFileError",
    "InvalidOverrideError",
    "JsonKitError",
    "Mode",
    "OptimisticLockError",
    "PathBuilder",
    "QueryOptions",
    "RemoteSourceError",
    "S3Location",
    "Store",
    "StoreConfig",
    "TypeMismatchError",
    "UnsupportedAlgorithmError",
]
