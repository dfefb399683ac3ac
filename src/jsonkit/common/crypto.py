from __future__ import annotations

import base64
import binascii
import hashlib
from enum import Enum
from typing import Any, Tuple, Type, TypeVar, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher as _Cipher
from cryptography.hazmat.primitives.ciphers import algorithms, modes

from .codec import serialize, unserialize
from .errors import CodecError, DecryptionFailedError, EncryptionError, UnsupportedAlgorithmError


_E = TypeVar("_E", bound="_NamedEnum")

# Sentinel for "no default supplied"
NIL = object()


class _NamedEnum(str, Enum):
    @classmethod
    def parse(cls: Type[_E], name: Union[str, _E, None]) -> _E:
        if name is None:
            return cls.default()
        if isinstance(name, cls):
            return name
        norm = str(name).strip().lower().replace("_", "-")
        for member in cls:
            if member.value == norm:
                return member
        raise UnsupportedAlgorithmError(f"{cls.__name__} {name!r} is not supported")

    @classmethod
    def default(cls: Type[_E]) -> _E:  # pragma: no cover - overridden
        raise NotImplementedError


class Cipher(_NamedEnum):
    AES_128 = "aes-128"
    AES_192 = "aes-192"
    AES_256 = "aes-256"
    FERNET = "fernet"

    @classmethod
    def default(cls) -> "Cipher":
        return cls.AES_256

    @property
    def key_size(self) -> int:
        return {"aes-128": 16, "aes-192": 24, "aes-256": 32, "fernet": 32}[self.value]


class HashAlgorithm(_NamedEnum):
    MD5 = "md5"
    SHA1 = "sha1"
    SHA224 = "sha224"
    SHA256 = "sha256"
    SHA384 = "sha384"
    SHA512 = "sha512"

    @classmethod
    def default(cls) -> "HashAlgorithm":
        return cls.MD5

    def hexdigest(self, data: Union[str, bytes]) -> str:
        raw = data.encode("utf-8") if isinstance(data, str) else data
        return hashlib.new(self.value, raw).hexdigest()


class BlockMode(_NamedEnum):
    CBC = "cbc"
    CFB = "cfb"
    OFB = "ofb"
    CTR = "ctr"
    ECB = "ecb"

    @classmethod
    def default(cls) -> "BlockMode":
        return cls.CBC

    @property
    def padded(self) -> bool:
        return self in (BlockMode.CBC, BlockMode.ECB)


_BLOCK_BYTES = algorithms.AES.block_size // 8


def derive(key: Union[str, bytes], hash_algo: HashAlgorithm, size: int) -> Tuple[bytes, bytes]:
    """
    Key schedule: key = hex(hash(key)), IV = hex(hash(hex(hash(key)))).

    Both are truncated to the requested sizes. The IV is deterministic so the
    same document and key always produce the same ciphertext.
    """
    first = hash_algo.hexdigest(key)
    second = hash_algo.hexdigest(first)
    key_bytes = first.encode("ascii")
    if len(key_bytes) < size:
        raise UnsupportedAlgorithmError(
            f"Hash {hash_algo.value} is too short for a {size * 8}-bit key"
        )
    return key_bytes[:size], second.encode("ascii")[:_BLOCK_BYTES]


def _mode(mode: BlockMode, iv: bytes) -> modes.Mode:
    if mode is BlockMode.CBC:
        return modes.CBC(iv)
    if mode is BlockMode.CFB:
        return modes.CFB(iv)
    if mode is BlockMode.OFB:
        return modes.OFB(iv)
    if mode is BlockMode.CTR:
        return modes.CTR(iv)
    return modes.ECB()


def _fernet(key: Union[str, bytes], hash_algo: HashAlgorithm) -> Fernet:
    key_bytes, _ = derive(key, hash_algo, Cipher.FERNET.key_size)
    return Fernet(base64.urlsafe_b64encode(key_bytes))


def _encrypt(value: Any, key: Union[str, bytes], cipher: Cipher, hash_algo: HashAlgorithm, mode: BlockMode) -> str:
    plaintext = serialize(value).encode("utf-8")
    if cipher is Cipher.FERNET:
        # Fernet tokens are already urlsafe base64
        return _fernet(key, hash_algo).encrypt(plaintext).decode("ascii")

    key_bytes, iv = derive(key, hash_algo, cipher.key_size)
    if mode.padded:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        plaintext = padder.update(plaintext) + padder.finalize()
    encryptor = _Cipher(algorithms.AES(key_bytes), _mode(mode, iv)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    return base64.b64encode(ciphertext).decode("ascii")


def _decrypt(text: Union[str, bytes], key: Union[str, bytes], cipher: Cipher, hash_algo: HashAlgorithm, mode: BlockMode) -> Any:
    try:
        token = text.encode("ascii") if isinstance(text, str) else bytes(text)
    except UnicodeEncodeError as ex:
        raise DecryptionFailedError("Ciphertext is not base64 text") from ex
    if cipher is Cipher.FERNET:
        try:
            plaintext = _fernet(key, hash_algo).decrypt(token)
        except InvalidToken as ex:
            raise DecryptionFailedError("Unable to decrypt object with key") from ex
    else:
        key_bytes, iv = derive(key, hash_algo, cipher.key_size)
        try:
            ciphertext = base64.b64decode(token, validate=True)
            decryptor = _Cipher(algorithms.AES(key_bytes), _mode(mode, iv)).decryptor()
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
            if mode.padded:
                unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
                plaintext = unpadder.update(plaintext) + unpadder.finalize()
        except (binascii.Error, ValueError) as ex:
            raise DecryptionFailedError("Unable to decrypt object due to invalid parameters") from ex

    try:
        return unserialize(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, CodecError) as ex:
        raise DecryptionFailedError("Unable to decrypt object with key") from ex


def encrypt(
    value: Any,
    key: Union[str, bytes],
    cipher: Union[str, Cipher, None] = None,
    hash_algo: Union[str, HashAlgorithm, None] = None,
    mode: Union[str, BlockMode, None] = None,
    *,
    default: Any = NIL,
) -> Any:
    """
    Serialize `value` and encrypt it into base64 text.

    Defaults: AES-256, MD5 key schedule, CBC. Unknown names raise
    `UnsupportedAlgorithmError`; when `default` is given it is returned
    instead of raising.
    """
    try:
        c, h, m = Cipher.parse(cipher), HashAlgorithm.parse(hash_algo), BlockMode.parse(mode)
        try:
            return _encrypt(value, key, c, h, m)
        except (CodecError, TypeError, ValueError) as ex:
            raise EncryptionError("Unable to encrypt object due to invalid parameters") from ex
    except Exception:
        if default is not NIL:
            return default
        raise


def decrypt(
    text: Union[str, bytes],
    key: Union[str, bytes],
    cipher: Union[str, Cipher, None] = None,
    hash_algo: Union[str, HashAlgorithm, None] = None,
    mode: Union[str, BlockMode, None] = None,
    *,
    default: Any = NIL,
) -> Any:
    """
    Reverse `encrypt`. A wrong key and corrupted ciphertext both raise
    `DecryptionFailedError`; when `default` is given it is returned instead.
    """
    try:
        c, h, m = Cipher.parse(cipher), HashAlgorithm.parse(hash_algo), BlockMode.parse(mode)
        if not isinstance(text, (str, bytes, bytearray)):
            raise DecryptionFailedError(f"Cannot decrypt a value of type {type(text).__name__}")
        return _decrypt(text, key, c, h, m)
    except Exception:
        if default is not NIL:
            return default
        raise


def generate_key() -> str:
    """Random urlsafe key suitable for any cipher."""
    return Fernet.generate_key().decode("ascii")


__all__ = [
    "NIL",
    "Cipher",
    "HashAlgorithm",
    "BlockMode",
    "derive",
    "encrypt",
    "decrypt",
    "generate_key",
]
