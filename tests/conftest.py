import hashlib
import os
import sys

import pytest
from botocore.exceptions import ClientError


def pytest_configure():
    # Ensure `src/` is importable so `jsonkit` resolves without an install
    root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    src_path = os.path.join(root, "src")
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._data = data

    def read(self) -> bytes:
        return self._data


class FakeS3:
    """In-memory stand-in for the boto3 S3 client calls the store makes."""

    def __init__(self) -> None:
        self.objects = {}  # (bucket, key) -> {Body: bytes, ETag: str}

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str):
        etag = f'"{hashlib.md5(Body).hexdigest()}"'
        self.objects[(Bucket, Key)] = {"Body": Body, "ETag": etag}
        return {"ETag": etag}

    def get_object(self, *, Bucket: str, Key: str):
        item = self.objects.get((Bucket, Key))
        if not item:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "GetObject")
        return {"Body": _FakeBody(item["Body"]), "ETag": item["ETag"]}

    def copy_object(self, *, Bucket: str, Key: str, CopySource, IfMatch=None, MetadataDirective=None):
        dest_item = self.objects.get((Bucket, Key))
        if IfMatch is not None:
            if not dest_item or dest_item.get("ETag") != IfMatch:
                raise ClientError({"Error": {"Code": "PreconditionFailed"}}, "CopyObject")

        src_item = self.objects.get((CopySource["Bucket"], CopySource["Key"]))
        if not src_item:
            raise ClientError({"Error": {"Code": "NoSuchKey"}}, "CopyObject")
        self.objects[(Bucket, Key)] = dict(src_item)
        return {"ETag": src_item["ETag"]}

    def delete_object(self, *, Bucket: str, Key: str):
        self.objects.pop((Bucket, Key), None)
        return {}


@pytest.fixture
def fake_s3():
    return FakeS3()
