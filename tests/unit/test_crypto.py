from __future__ import annotations

import pytest

from jsonkit.common import crypto
from jsonkit.common.crypto import BlockMode, Cipher, HashAlgorithm
from jsonkit.common.errors import DecryptionFailedError, UnsupportedAlgorithmError


DOC = {"db": {"user": "root", "password": "s3cr3t"}, "ports": [5432, 5433]}


def test_roundtrip_with_defaults():
    token = crypto.encrypt(DOC, "key-1")
    assert isinstance(token, str)
    assert "s3cr3t" not in token
    assert crypto.decrypt(token, "key-1") == DOC


def test_wrong_key_fails():
    token = crypto.encrypt(DOC, "key-1")
    with pytest.raises(DecryptionFailedError):
        crypto.decrypt(token, "key-2")


@pytest.mark.parametrize("mode", list(BlockMode))
def test_every_block_mode_roundtrips(mode):
    token = crypto.encrypt(DOC, "k", Cipher.AES_128, HashAlgorithm.SHA256, mode)
    assert crypto.decrypt(token, "k", Cipher.AES_128, HashAlgorithm.SHA256, mode) == DOC


def test_deterministic_iv_gives_stable_output():
    assert crypto.encrypt(DOC, "k") == crypto.encrypt(DOC, "k")


def test_fernet_uses_random_iv():
    a = crypto.encrypt(DOC, "k", "fernet")
    b = crypto.encrypt(DOC, "k", "fernet")
    assert a != b
    assert crypto.decrypt(a, "k", "fernet") == DOC
    with pytest.raises(DecryptionFailedError):
        crypto.decrypt(a, "other", "fernet")


def test_names_are_parsed_case_insensitively():
    token = crypto.encrypt(DOC, "k", "AES_192", "SHA1", "CFB")
    assert crypto.decrypt(token, "k", "aes-192", "sha1", "cfb") == DOC


def test_unsupported_names_raise():
    with pytest.raises(UnsupportedAlgorithmError):
        crypto.encrypt(DOC, "k", cipher="rijndael-512")
    with pytest.raises(UnsupportedAlgorithmError):
        crypto.encrypt(DOC, "k", hash_algo="whirlpool")
    with pytest.raises(UnsupportedAlgorithmError):
        crypto.decrypt("abc", "k", mode="xts")


def test_corrupt_ciphertext_fails():
    with pytest.raises(DecryptionFailedError):
        crypto.decrypt("not base64 at all!", "k")
    with pytest.raises(DecryptionFailedError):
        crypto.decrypt({"a": 1}, "k")


def test_default_is_returned_instead_of_raising():
    assert crypto.decrypt("garbage", "k", default="fallback") == "fallback"
    assert crypto.encrypt(DOC, "k", cipher="nope", default=None) is None


def test_derive_truncates_to_sizes():
    key, iv = crypto.derive("secret", HashAlgorithm.SHA512, 32)
    assert len(key) == 32
    assert len(iv) == 16
    assert key == HashAlgorithm.SHA512.hexdigest("secret")[:32].encode("ascii")
