"""Storage service protocol and data types.

This module defines the abstract interface for the remote object storage
calls the media client relies on: object insert/get/delete, object ACL
insert, bucket get and authenticated media download.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Protocol


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ObjectNotFoundError(StorageError):
    """Raised when the requested bucket or object does not exist."""


@dataclass(frozen=True, slots=True)
class AccessControlEntry:
    """A single role grant on an object."""

    entity: str
    role: str

    def as_resource(self) -> dict[str, str]:
        return {"entity": self.entity, "role": self.role}


PUBLIC_READ = AccessControlEntry(entity="allUsers", role="READER")

# Predefined ACL applied to every upload before the public grant.
BUCKET_OWNER_FULL_CONTROL = "bucketOwnerFullControl"


@dataclass(frozen=True, slots=True)
class DownloadResult:
    """Outcome of streaming an object's media link to disk."""

    status_code: int
    bytes_written: int


class StorageService(Protocol):
    """Protocol defining the remote calls made against one bucket.

    Implementations raise StorageError (or ObjectNotFoundError for missing
    resources) on any failure.
    """

    def insert_object(
        self,
        *,
        bucket: str,
        resource: Mapping[str, Any],
        data: bytes,
        mime_type: str,
        predefined_acl: str | None = None,
    ) -> dict[str, Any]:
        """Upload an object in a single request.

        Args:
            bucket: Target bucket name.
            resource: Object resource (name, metadata, cacheControl, ...).
            data: Full object body.
            mime_type: Content type of the body.
            predefined_acl: Named ACL bundle applied at creation time.

        Returns:
            The created object resource.

        Raises:
            StorageError: If the upload fails.
        """
        ...

    def get_object(self, *, bucket: str, name: str) -> dict[str, Any]:
        """Get object metadata.

        Raises:
            ObjectNotFoundError: If the object doesn't exist.
            StorageError: If the operation fails.
        """
        ...

    def delete_object(self, *, bucket: str, name: str) -> None:
        """Delete an object from the bucket.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def insert_object_acl(
        self, *, bucket: str, name: str, entry: AccessControlEntry
    ) -> dict[str, Any]:
        """Grant a role on an object.

        Raises:
            StorageError: If the operation fails.
        """
        ...

    def get_bucket(self, *, bucket: str) -> dict[str, Any]:
        """Get bucket metadata.

        Raises:
            StorageError: If the bucket is unreachable.
        """
        ...

    def download(self, *, url: str, destination: str) -> DownloadResult:
        """Download a media link into a local file.

        Raises:
            StorageError: If the request fails or returns an error status.
        """
        ...
