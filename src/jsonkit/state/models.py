from __future__ import annotations

import os
from typing import Any, Callable, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from jsonkit.common.codec import Algorithm
from jsonkit.common.crypto import BlockMode, Cipher, HashAlgorithm
from jsonkit.common.query import QueryOptions


# Environment variable names for convenience configuration
ENV_ENCRYPTION_KEY = "JSONKIT_ENCRYPTION_KEY"
ENV_CIPHER = "JSONKIT_CIPHER"
ENV_HASH = "JSONKIT_HASH"
ENV_MODE = "JSONKIT_MODE"
ENV_ALGORITHM = "JSONKIT_ALGORITHM"
ENV_TYPESAFE = "JSONKIT_TYPESAFE"
ENV_THROW_ON_MISS = "JSONKIT_THROW_ON_MISS"

_TRUTHY = ("1", "true", "yes", "on")

EncryptionCallback = Callable[[Any, Union[str, bytes], str], Any]


def _getenv(name: str) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else None


class EncryptionSettings(BaseModel):
    """
    How a store encrypts its document at rest.

    Fields
    - key: symmetric key; moved into the store on construction and never
      persisted with the document.
    - cipher / hash_algo / mode: cipher triple, see `jsonkit.common.crypto`.
    - callback: `(payload, key, "encrypt"|"decrypt") -> payload`; replaces
      the built-in cipher entirely when set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: Optional[Union[str, bytes]] = Field(default=None, repr=False)
    cipher: Cipher = Field(default=Cipher.AES_256)
    hash_algo: HashAlgorithm = Field(default=HashAlgorithm.MD5)
    mode: BlockMode = Field(default=BlockMode.CBC)
    callback: Optional[EncryptionCallback] = None

    @field_validator("cipher", mode="before")
    @classmethod
    def _parse_cipher(cls, v: Any) -> Cipher:
        return Cipher.parse(v)

    @field_validator("hash_algo", mode="before")
    @classmethod
    def _parse_hash(cls, v: Any) -> HashAlgorithm:
        return HashAlgorithm.parse(v)

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, v: Any) -> BlockMode:
        return BlockMode.parse(v)


class StoreConfig(BaseModel):
    """
    Explicit configuration for a `Store`.

    Fields
    - encryption: cipher triple, key and optional callback.
    - query: miss-handling policy (default value or raise).
    - typesafe: default for `Store.replace(..., typesafe=None)`.
    - algorithm: transport encoding used by load/export when no key is set.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    encryption: EncryptionSettings = Field(default_factory=EncryptionSettings)
    query: QueryOptions = Field(default_factory=QueryOptions)
    typesafe: bool = False
    algorithm: Algorithm = Algorithm.JSON

    @field_validator("algorithm", mode="before")
    @classmethod
    def _parse_algorithm(cls, v: Any) -> Algorithm:
        return Algorithm.parse(v)

    def without_key(self) -> "StoreConfig":
        """Copy of this config with the encryption key removed."""
        enc = self.encryption.model_copy(update={"key": None})
        return self.model_copy(update={"encryption": enc})

    # -------- Construction helpers --------
    @classmethod
    def from_env(cls) -> "StoreConfig":
        # Names are parsed up front so bad values surface as UnsupportedAlgorithmError
        # rather than a pydantic ValidationError
        enc: dict[str, Any] = {}
        key = _getenv(ENV_ENCRYPTION_KEY)
        if key is not None:
            enc["key"] = key
        for field, env, parse in (
            ("cipher", ENV_CIPHER, Cipher.parse),
            ("hash_algo", ENV_HASH, HashAlgorithm.parse),
            ("mode", ENV_MODE, BlockMode.parse),
        ):
            val = _getenv(env)
            if val is not None:
                enc[field] = parse(val)

        data: dict[str, Any] = {"encryption": EncryptionSettings(**enc)}
        algo = _getenv(ENV_ALGORITHM)
        if algo is not None:
            data["algorithm"] = Algorithm.parse(algo)
        typesafe = _getenv(ENV_TYPESAFE)
        if typesafe is not None:
            data["typesafe"] = typesafe.strip().lower() in _TRUTHY
        throw = _getenv(ENV_THROW_ON_MISS)
        if throw is not None:
            data["query"] = QueryOptions(throw_exception=throw.strip().lower() in _TRUTHY)
        return cls(**data)


__all__ = [
    "ENV_ENCRYPTION_KEY",
    "ENV_CIPHER",
    "ENV_HASH",
    "ENV_MODE",
    "ENV_ALGORITHM",
    "ENV_TYPESAFE",
    "ENV_THROW_ON_MISS",
    "EncryptionCallback",
    "EncryptionSettings",
    "StoreConfig",
]
