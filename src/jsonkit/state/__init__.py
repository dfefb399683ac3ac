"""
Document state: configuration models, the mutation engine and the Store.

The Store owns one JSON-like document and persists it (optionally
encrypted) to files, streams, callbacks or S3.
"""

from .models import EncryptionSettings, StoreConfig
from .mutation import Mode
from .s3_store import OptimisticLockError, S3Location
from .store import Store

__all__ = [
    "EncryptionSettings",
    "Mode",
    "OptimisticLockError",
    "S3Location",
    "Store",
    "StoreConfig",
]
