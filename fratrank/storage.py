"""
Photo object storage for S3-compatible buckets and in-memory testing.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional, Protocol

import boto3
from botocore.config import Config

from fratrank.errors import ValidationError

MIB = 1024 * 1024


@dataclass(frozen=True)
class AllowedFileType:
    mime_type: str
    extension: str
    max_size_bytes: int


DEFAULT_ALLOWED_TYPES = (
    AllowedFileType("image/jpeg", "jpg", 10 * MIB),
    AllowedFileType("image/png", "png", 10 * MIB),
    AllowedFileType("image/webp", "webp", 10 * MIB),
    AllowedFileType("image/gif", "gif", 5 * MIB),
)


def validate_upload(content_type: str, size_bytes: Optional[int]) -> AllowedFileType:
    """Return the allowed type for ``content_type`` or raise ValidationError."""
    for allowed in DEFAULT_ALLOWED_TYPES:
        if allowed.mime_type == content_type.lower():
            if size_bytes is not None and size_bytes > allowed.max_size_bytes:
                limit_mb = allowed.max_size_bytes // MIB
                raise ValidationError(f"File too large. Maximum size is {limit_mb}MB")
            return allowed
    raise ValidationError(f"File type {content_type} is not allowed")


def photo_storage_path(party_id: str, extension: str) -> str:
    return f"party-photos/{party_id}/{uuid.uuid4().hex}.{extension}"


class StorageClient(Protocol):
    """Defines the operations the API needs from object storage."""

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        ...

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "image/jpeg"
    ) -> str:
        ...

    def public_url(self, path: str) -> str:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    base_url: str = "https://example.test/storage"

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return f"{self.base_url}/{path}?op=get&expires={expires_in}"

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "image/jpeg"
    ) -> str:
        return f"{self.base_url}/{path}?op=put&expires={expires_in}&type={content_type}"

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client for the party photo bucket.
    """

    bucket: str
    region: str
    endpoint: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "virtual"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint or None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def presign_get(self, path: str, expires_in: int = 3600) -> str:
        return self._client.generate_presigned_url(
            ClientMethod="get_object",
            Params={"Bucket": self.bucket, "Key": path},
            ExpiresIn=expires_in,
        )

    def presign_put(
        self, path: str, expires_in: int = 3600, content_type: str = "image/jpeg"
    ) -> str:
        # The browser must send the same Content-Type header it was signed with.
        return self._client.generate_presigned_url(
            ClientMethod="put_object",
            Params={
                "Bucket": self.bucket,
                "Key": path,
                "ContentType": content_type,
            },
            ExpiresIn=expires_in,
        )

    def public_url(self, path: str) -> str:
        if self.endpoint:
            host = self.endpoint.split("://", 1)[-1].rstrip("/")
            return f"https://{self.bucket}.{host}/{path}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{path}"
