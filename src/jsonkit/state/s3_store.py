from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import uuid4

import boto3
from botocore.exceptions import ClientError

from jsonkit.common.errors import InvalidFileError


logger = logging.getLogger(__name__)

# Environment variable names for convenience configuration
ENV_BUCKET = "JSONKIT_S3_BUCKET"
ENV_KEY = "JSONKIT_S3_KEY"

_SCHEME = "s3://"


class OptimisticLockError(InvalidFileError):
    """Raised when an ETag precondition fails during a conditional write."""


@dataclass(frozen=True)
class S3Location:
    bucket: str
    key: str

    @classmethod
    def parse(cls, uri: str) -> "S3Location":
        if not is_s3_uri(uri):
            raise ValueError(f"Not an s3:// location: {uri!r}")
        bucket, _, key = uri.strip()[len(_SCHEME):].partition("/")
        if not bucket or not key:
            raise ValueError(f"S3 location needs a bucket and a key: {uri!r}")
        return cls(bucket=bucket, key=key)

    @classmethod
    def from_env(cls) -> "S3Location":
        bucket = os.environ.get(ENV_BUCKET)
        key = os.environ.get(ENV_KEY)
        if not bucket or not key:
            missing = [name for name, val in [(ENV_BUCKET, bucket), (ENV_KEY, key)] if not val]
            raise RuntimeError(
                f"Missing required environment variables for S3 location: {', '.join(missing)}"
            )
        return cls(bucket=bucket, key=key)

    def __str__(self) -> str:
        return f"{_SCHEME}{self.bucket}/{self.key}"


def is_s3_uri(value: object) -> bool:
    return isinstance(value, str) and value.strip().lower().startswith(_SCHEME)


class S3DocumentStore:
    """
    S3-backed persistence for encoded document text.

    Usage
    - `read()` returns a `(text, etag)` pair, or `(None, None)` when the
      object does not exist.
    - `write(text, if_match=None)` writes the text and returns the new ETag.
      When `if_match` is provided, uses a copy-based conditional update so the
      write succeeds only if the current object ETag matches `if_match`
      (optimistic lock).

    Encoding and encryption happen in the `Store`; this class only moves text.
    """

    def __init__(
        self,
        location: S3Location,
        *,
        s3: Optional[object] = None,
        region_name: Optional[str] = None,
    ) -> None:
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._obj = location

    @property
    def location(self) -> S3Location:
        return self._obj

    def read(self) -> Tuple[Optional[str], Optional[str]]:
        """Read the object text.

        Raises:
        - InvalidFileError if the body is not UTF-8 text.
        - botocore.exceptions.ClientError for other S3 issues.
        """
        try:
            resp = self._s3.get_object(Bucket=self._obj.bucket, Key=self._obj.key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return (None, None)
            raise

        body = resp["Body"].read()
        etag = resp.get("ETag")
        try:
            return (body.decode("utf-8"), etag)
        except UnicodeDecodeError as ex:
            raise InvalidFileError(f"Object {self._obj} is not UTF-8 text") from ex

    def write(self, text: str, *, if_match: Optional[str] = None) -> str:
        """Write text to S3; returns the new ETag.

        With `if_match`, the write proceeds only if the current object ETag
        matches, otherwise `OptimisticLockError` is raised.
        """
        body = text.encode("utf-8")

        if if_match is None:
            resp = self._s3.put_object(
                Bucket=self._obj.bucket,
                Key=self._obj.key,
                Body=body,
                ContentType="application/octet-stream",
            )
            return str(resp.get("ETag"))

        # S3 PutObject does not support If-Match: upload to a temporary key,
        # then COPY over the destination with an If-Match precondition.
        temp_key = f"{self._obj.key}.tmp-{uuid4().hex}"
        self._s3.put_object(
            Bucket=self._obj.bucket,
            Key=temp_key,
            Body=body,
            ContentType="application/octet-stream",
        )

        try:
            resp = self._s3.copy_object(
                Bucket=self._obj.bucket,
                Key=self._obj.key,
                CopySource={"Bucket": self._obj.bucket, "Key": temp_key},
                IfMatch=if_match,
                MetadataDirective="COPY",
            )
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("PreconditionFailed", "412"):
                raise OptimisticLockError(f"ETag mismatch for {self._obj}") from e
            raise
        finally:
            # Best-effort cleanup of temp object
            try:
                self._s3.delete_object(Bucket=self._obj.bucket, Key=temp_key)
            except ClientError as e:
                logger.warning("Failed to delete temp object %s/%s: %s", self._obj.bucket, temp_key, e)

        return str(resp.get("ETag"))


__all__ = [
    "ENV_BUCKET",
    "ENV_KEY",
    "OptimisticLockError",
    "S3Location",
    "S3DocumentStore",
    "is_s3_uri",
]
