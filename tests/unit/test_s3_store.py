from __future__ import annotations

import pytest
from botocore.exceptions import ClientError

from jsonkit.common.errors import InvalidFileError
from jsonkit.state.s3_store import OptimisticLockError, S3DocumentStore, S3Location, is_s3_uri


LOC = S3Location(bucket="b", key="docs/config.json")


def test_location_parse_and_str():
    loc = S3Location.parse("s3://b/docs/config.json")
    assert loc == LOC
    assert str(loc) == "s3://b/docs/config.json"
    assert is_s3_uri(" S3://b/k")
    assert not is_s3_uri("/tmp/s3.json")
    with pytest.raises(ValueError):
        S3Location.parse("s3://bucket-only")


def test_from_env_missing_vars_raises(monkeypatch):
    for name in ("JSONKIT_S3_BUCKET", "JSONKIT_S3_KEY"):
        monkeypatch.delenv(name, raising=False)
    with pytest.raises(RuntimeError) as excinfo:
        S3Location.from_env()
    assert "JSONKIT_S3_BUCKET" in str(excinfo.value)


def test_from_env(monkeypatch):
    monkeypatch.setenv("JSONKIT_S3_BUCKET", "b")
    monkeypatch.setenv("JSONKIT_S3_KEY", "docs/config.json")
    assert S3Location.from_env() == LOC


def test_read_missing_returns_nothing(fake_s3):
    store = S3DocumentStore(LOC, s3=fake_s3)
    assert store.read() == (None, None)


def test_write_and_read_roundtrip(fake_s3):
    store = S3DocumentStore(LOC, s3=fake_s3)
    etag = store.write('{"a":1}')
    assert etag.startswith('"')

    text, read_etag = store.read()
    assert text == '{"a":1}'
    assert read_etag == etag


def test_read_rejects_binary_body(fake_s3):
    fake_s3.put_object(Bucket="b", Key=LOC.key, Body=b"\xff\xfe", ContentType="application/octet-stream")
    with pytest.raises(InvalidFileError):
        S3DocumentStore(LOC, s3=fake_s3).read()


def test_other_client_errors_propagate(fake_s3):
    def denied(**_kwargs):
        raise ClientError({"Error": {"Code": "AccessDenied"}}, "GetObject")

    fake_s3.get_object = denied
    with pytest.raises(ClientError):
        S3DocumentStore(LOC, s3=fake_s3).read()


def test_write_with_if_match_succeeds_when_etag_matches(fake_s3):
    store = S3DocumentStore(LOC, s3=fake_s3)
    etag1 = store.write('{"v":1}')

    etag2 = store.write('{"v":2}', if_match=etag1)
    assert etag2 != etag1

    text, read_etag = store.read()
    assert text == '{"v":2}'
    assert read_etag == etag2
    # temp upload is cleaned up
    assert list(fake_s3.objects) == [("b", LOC.key)]


def test_write_with_if_match_raises_on_conflict(fake_s3):
    store1 = S3DocumentStore(LOC, s3=fake_s3)
    store2 = S3DocumentStore(LOC, s3=fake_s3)

    etag1 = store1.write('{"v":1}')
    store1.write('{"v":2}', if_match=etag1)

    with pytest.raises(OptimisticLockError):
        store2.write('{"v":3}', if_match=etag1)
    assert store1.read()[0] == '{"v":2}'
    assert list(fake_s3.objects) == [("b", LOC.key)]


def test_failed_temp_cleanup_does_not_hide_lock_conflict(fake_s3):
    store = S3DocumentStore(LOC, s3=fake_s3)
    etag1 = store.write('{"v":1}')
    store.write('{"v":2}', if_match=etag1)

    def broken_delete(**_kwargs):
        raise ClientError({"Error": {"Code": "InternalError"}}, "DeleteObject")

    fake_s3.delete_object = broken_delete
    with pytest.raises(OptimisticLockError):
        store.write('{"v":3}', if_match=etag1)

    current = store.read()[1]
    assert store.write('{"v":4}', if_match=current)
    assert store.read()[0] == '{"v":4}'
