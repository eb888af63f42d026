"""Request schemas and response projections for s3console.

Request bodies arrive as camelCase JSON from the web console; the schemas
below declare which fields are required and their types so that decoding
fails with a console error instead of a ``KeyError`` deep in a handler.
Projections turn aiobotocore response dicts into the console's JSON shape.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BucketCannedAcl = Literal["private", "public-read", "public-read-write", "authenticated-read"]

ObjectCannedAcl = Literal[
    "private",
    "public-read",
    "public-read-write",
    "authenticated-read",
    "aws-exec-read",
    "bucket-owner-read",
    "bucket-owner-full-control",
]


# ---------------------------------------------------------------------------
# Credentials
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Credentials:
    """A scoped access/secret key pair for one user.

    Lives for a single request and is never persisted.
    """

    access_key: str
    secret_key: str

    def __repr__(self) -> str:
        return f"Credentials(access_key={self.access_key!r}, secret_key='***')"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class ConsoleRequest(BaseModel):
    """Base schema: camelCase aliases, unknown fields ignored.

    Required names are non-empty strings; an empty value counts as missing.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BucketRequest(ConsoleRequest):
    bucket_name: str = Field(alias="bucketName", min_length=1)


class ObjectRequest(ConsoleRequest):
    bucket_name: str = Field(alias="bucketName", min_length=1)
    object_name: str = Field(alias="objectName", min_length=1)


class ListObjectsRequest(ConsoleRequest):
    """Body of a list-objects call.

    ``maxKeys`` is kept raw, whatever its JSON type; the console historically
    sends it as a string and any unparsable value falls back to the default
    page size.
    ``continuationToken`` is the opaque cursor returned with a truncated page.
    """

    bucket_name: str = Field(alias="bucketName", min_length=1)
    prefix: str = ""
    start_after: str = Field(default="", alias="startAfter")
    continuation_token: str = Field(default="", alias="continuationToken")
    max_keys: Any = Field(default=None, alias="maxKeys")


class BucketAclRequest(ConsoleRequest):
    bucket_name: str = Field(alias="bucketName", min_length=1)
    acl: BucketCannedAcl | None = None
    access_control_policy: dict[str, Any] | None = Field(
        default=None, alias="accessControlPolicy"
    )


class ObjectAclRequest(ConsoleRequest):
    bucket_name: str = Field(alias="bucketName", min_length=1)
    object_name: str = Field(alias="objectName", min_length=1)
    acl: ObjectCannedAcl | None = None
    access_control_policy: dict[str, Any] | None = Field(
        default=None, alias="accessControlPolicy"
    )


class FolderRequest(ConsoleRequest):
    bucket_name: str = Field(alias="bucketName", min_length=1)
    folder_name: str = Field(alias="folderName", min_length=1)
    parent_name: str = Field(alias="parentName")


class ObjectUrlRequest(ConsoleRequest):
    bucket_name: str = Field(alias="bucketName", min_length=1)
    object_name: str = Field(alias="objectName", min_length=1)
    expires: int | None = None


# ---------------------------------------------------------------------------
# Response projections
# ---------------------------------------------------------------------------


class Bucket(BaseModel):
    """A bucket as shown in the console bucket list."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    creation_time: datetime | None = Field(default=None, alias="creationTime")

    @classmethod
    def from_store(cls, entry: dict[str, Any]) -> Bucket:
        return cls(name=entry.get("Name", ""), creation_time=entry.get("CreationDate"))


class ObjectEntry(BaseModel):
    """One object row of a listing page."""

    model_config = ConfigDict(populate_by_name=True)

    object_name: str = Field(alias="objectName")
    size: int = 0
    owner_id: str = Field(default="", alias="ownerId")
    owner_name: str = Field(default="", alias="ownerName")
    storage_class: str = Field(default="", alias="storageClass")
    last_modified: datetime | None = Field(default=None, alias="lastModified")

    @classmethod
    def from_store(cls, entry: dict[str, Any]) -> ObjectEntry:
        owner = entry.get("Owner") or {}
        return cls(
            object_name=entry.get("Key", ""),
            size=entry.get("Size", 0),
            owner_id=owner.get("ID", ""),
            owner_name=owner.get("DisplayName", ""),
            storage_class=entry.get("StorageClass", ""),
            last_modified=entry.get("LastModified"),
        )


class ObjectList(BaseModel):
    """One page of a paginated object listing.

    ``directories`` are the store's common prefixes for the configured
    delimiter. ``next_continuation_token`` fetches the following page and
    is empty when the listing is not truncated.
    """

    model_config = ConfigDict(populate_by_name=True)

    key_count: int = Field(default=0, alias="keyCount")
    start_after: str = Field(default="", alias="startAfter")
    is_truncated: bool = Field(default=False, alias="isTruncated")
    objects: list[ObjectEntry] = Field(default_factory=list)
    directories: list[str] = Field(default_factory=list)
    next_continuation_token: str = Field(default="", alias="nextContinuationToken")

    @classmethod
    def from_store(cls, output: dict[str, Any]) -> ObjectList:
        objects = [ObjectEntry.from_store(o) for o in output.get("Contents", [])]
        directories = [
            p["Prefix"] for p in output.get("CommonPrefixes", []) if p.get("Prefix") is not None
        ]
        return cls(
            key_count=output.get("KeyCount", len(objects) + len(directories)),
            start_after=output.get("StartAfter", ""),
            is_truncated=bool(output.get("IsTruncated", False)),
            objects=objects,
            directories=directories,
            next_continuation_token=output.get("NextContinuationToken", ""),
        )
