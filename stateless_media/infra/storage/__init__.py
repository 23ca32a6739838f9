"""Object storage abstraction layer.

This module provides a protocol-based abstraction over the remote storage
service, with a Google Cloud Storage JSON API implementation.
"""

from .client import (
    BUCKET_OWNER_FULL_CONTROL,
    PUBLIC_READ,
    AccessControlEntry,
    DownloadResult,
    ObjectNotFoundError,
    StorageError,
    StorageService,
)

__all__ = [
    "AccessControlEntry",
    "BUCKET_OWNER_FULL_CONTROL",
    "DownloadResult",
    "ObjectNotFoundError",
    "PUBLIC_READ",
    "StorageError",
    "StorageService",
]
