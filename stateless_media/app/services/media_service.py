"""Media storage service for a single Google Cloud Storage bucket.

This module provides the application service that uploads, fetches, checks,
deletes and downloads media objects, plus a connectivity probe. Remote
failures never escape: every operation returns a ServiceResult, or a plain
boolean for the compatibility methods.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Mapping
from urllib.parse import quote

from stateless_media.app.services.base import (
    ConfigError,
    NotFoundError,
    PublicAccessError,
    RemoteError,
    ServiceResult,
)
from stateless_media.infra.observability.metrics import LATENCY, OPERATIONS
from stateless_media.infra.storage.client import (
    BUCKET_OWNER_FULL_CONTROL,
    PUBLIC_READ,
    ObjectNotFoundError,
    StorageError,
    StorageService,
)
from stateless_media.infra.storage.gcs_client import GCSStorageService

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "image/jpeg"
DEFAULT_APPLICATION_NAME = "stateless-media"

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def _remote_error(exc: Exception) -> RemoteError:
    return RemoteError(str(exc), status_code=getattr(exc, "status_code", None))


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Bucket and credentials for the storage client."""

    bucket: str
    service_account_key_json: str | bytes = field(repr=False)
    application_name: str | None = None
    site_url: str | None = None

    def key_info(self) -> dict[str, Any]:
        """Validate the configuration and return the parsed key.

        Raises:
            ConfigError: If the bucket is empty or the key JSON is unusable.
        """
        if not (self.bucket or "").strip():
            raise ConfigError(
                "invalid bucket or credentials: bucket parameter must be provided"
            )

        raw = self.service_account_key_json
        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise ConfigError(
                    "invalid bucket or credentials: service account JSON is invalid"
                ) from exc
        try:
            parsed = json.loads(raw) if raw else None
        except ValueError as exc:
            raise ConfigError(
                "invalid bucket or credentials: service account JSON is invalid"
            ) from exc

        if not isinstance(parsed, dict) or not parsed.get("private_key"):
            raise ConfigError(
                "invalid bucket or credentials: service account JSON is invalid"
            )
        return parsed

    def resolve_application_name(self) -> str:
        """Explicit name, else the site URL without scheme, else the default."""
        if self.application_name and self.application_name.strip():
            return self.application_name.strip()
        if self.site_url and self.site_url.strip():
            return quote(_SCHEME_RE.sub("", self.site_url.strip()), safe="")
        return DEFAULT_APPLICATION_NAME


@dataclass(frozen=True, slots=True)
class MediaObjectDescriptor:
    """Local file to upload and the attributes of the remote object."""

    absolute_path: str
    name: str | None = None
    mime_type: str = DEFAULT_MIME_TYPE
    metadata: Mapping[str, str] = field(default_factory=dict)
    cache_control: str | None = None
    content_encoding: str | None = None
    content_disposition: str | None = None

    def object_name(self) -> str:
        if self.name:
            return self.name
        return Path(self.absolute_path).name

    def resource(self) -> dict[str, Any]:
        resource: dict[str, Any] = {
            "name": self.object_name(),
            "metadata": dict(self.metadata),
        }
        if self.cache_control is not None:
            resource["cacheControl"] = self.cache_control
        if self.content_encoding is not None:
            resource["contentEncoding"] = self.content_encoding
        if self.content_disposition is not None:
            resource["contentDisposition"] = self.content_disposition
        return resource


class MediaStorageClient:
    """Media operations against the one configured bucket.

    The authenticated session and adapter are shared by concurrent calls;
    each operation is a self-contained remote round trip.
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        service: StorageService | None = None,
    ) -> None:
        """Validate the configuration and bind the storage adapter.

        Args:
            config: Bucket and service-account key.
            service: Storage adapter to use instead of building a GCS one.

        Raises:
            ConfigError: If the configuration or key is rejected.
        """
        key_info = config.key_info()
        self._config = config
        self._bucket = config.bucket.strip()
        self._service = service or self._build_service(config, key_info)

    @staticmethod
    def _build_service(
        config: ClientConfig, key_info: Mapping[str, Any]
    ) -> StorageService:
        try:
            return GCSStorageService(
                key_info=key_info,
                application_name=config.resolve_application_name(),
            )
        except StorageError as exc:
            raise ConfigError(f"invalid bucket or credentials: {exc}") from exc

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def bucket(self) -> str:
        return self._bucket

    @contextmanager
    def _observe(
        self, operation: str, name: str | None = None
    ) -> Iterator[dict[str, str]]:
        state = {"outcome": "success"}
        start = time.perf_counter()
        try:
            yield state
        except Exception:
            state["outcome"] = "exception"
            raise
        finally:
            elapsed = time.perf_counter() - start
            outcome = state["outcome"]
            OPERATIONS.labels(operation, outcome).inc()
            LATENCY.labels(operation).observe(elapsed)

            duration_ms = round(elapsed * 1000, 3)
            level = logging.INFO if outcome == "success" else logging.WARNING
            logger.log(
                level,
                "storage_op operation=%s bucket=%s object=%s outcome=%s duration_ms=%.3f",
                operation,
                self._bucket,
                name or "-",
                outcome,
                duration_ms,
                extra={
                    "extra": {
                        "operation": operation,
                        "bucket": self._bucket,
                        "object": name,
                        "outcome": outcome,
                        "duration_ms": duration_ms,
                        "cause": state.get("cause"),
                    }
                },
            )

    def _get_object(self, path: str) -> ServiceResult[dict[str, Any]]:
        try:
            media = self._service.get_object(bucket=self._bucket, name=path)
        except ObjectNotFoundError as exc:
            return ServiceResult.failure(NotFoundError(str(exc)))
        except Exception as exc:
            return ServiceResult.failure(_remote_error(exc))

        if not media or not media.get("id"):
            return ServiceResult.failure(
                NotFoundError(f"Object {path} has no identifier")
            )
        return ServiceResult.success(dict(media))

    @staticmethod
    def _mark(state: dict[str, str], result: ServiceResult[Any]) -> None:
        if result.error is None:
            return
        state["outcome"] = (
            "not_found" if isinstance(result.error, NotFoundError) else "error"
        )
        state["cause"] = str(result.error)

    def add_media(
        self, descriptor: MediaObjectDescriptor
    ) -> ServiceResult[dict[str, Any]]:
        """Upload a local file and make it publicly readable.

        Args:
            descriptor: Source path and remote object attributes.

        Returns:
            ServiceResult with the created object's attributes. When the
            upload succeeds but the public-read grant fails, the result
            carries both the object and a PublicAccessError.
        """
        name = descriptor.object_name()
        with self._observe("add_media", name) as state:
            source = Path(descriptor.absolute_path)
            if not source.is_file() or not os.access(source, os.R_OK):
                result: ServiceResult[dict[str, Any]] = ServiceResult.failure(
                    NotFoundError("Unable to locate file on disk")
                )
                self._mark(state, result)
                return result

            if not name:
                result = ServiceResult.failure(
                    NotFoundError(f"Unable to derive an object name from {source}")
                )
                self._mark(state, result)
                return result

            try:
                with source.open("rb") as fh:
                    data = fh.read()
            except OSError as exc:
                result = ServiceResult.failure(
                    NotFoundError(f"Unable to read file on disk: {exc}")
                )
                self._mark(state, result)
                return result

            try:
                media = self._service.insert_object(
                    bucket=self._bucket,
                    resource=descriptor.resource(),
                    data=data,
                    mime_type=descriptor.mime_type,
                    predefined_acl=BUCKET_OWNER_FULL_CONTROL,
                )
            except Exception as exc:
                result = ServiceResult.failure(_remote_error(exc))
                self._mark(state, result)
                return result

            media = dict(media or {})
            try:
                self._service.insert_object_acl(
                    bucket=self._bucket, name=name, entry=PUBLIC_READ
                )
            except Exception as exc:
                state["outcome"] = "partial"
                state["cause"] = str(exc)
                return ServiceResult.failure(
                    PublicAccessError(
                        f"Object {name} uploaded but not made public: {exc}",
                        status_code=getattr(exc, "status_code", None),
                    ),
                    value=media,
                )

            return ServiceResult.success(media)

    def fetch_media(self, path: str) -> ServiceResult[dict[str, Any]]:
        """Get object metadata, distinguishing missing objects from failures."""
        with self._observe("fetch_media", path) as state:
            result = self._get_object(path)
            self._mark(state, result)
            return result

    def download_media(self, path: str, save_path: str) -> ServiceResult[int]:
        """Download an object's media link into ``save_path``.

        Returns:
            ServiceResult with the HTTP status code of the download.
        """
        with self._observe("download_media", path) as state:
            found = self._get_object(path)
            if not found.ok:
                self._mark(state, found)
                return ServiceResult.failure(found.error)  # type: ignore[arg-type]

            media_link = found.value.get("mediaLink") if found.value else None
            if not media_link:
                result: ServiceResult[int] = ServiceResult.failure(
                    RemoteError(f"Object {path} has no media link")
                )
                self._mark(state, result)
                return result

            try:
                download = self._service.download(
                    url=media_link, destination=save_path
                )
            except Exception as exc:
                result = ServiceResult.failure(_remote_error(exc))
                self._mark(state, result)
                return result
            return ServiceResult.success(download.status_code)

    def get_media(
        self, path: str, save: bool = False, save_path: str | None = None
    ) -> dict[str, Any] | int | bool:
        """Fetch metadata, or download when ``save`` and ``save_path`` are given.

        Returns False on any failure; callers must branch on type since a
        successful download returns the HTTP status code.
        """
        if save and save_path:
            result: ServiceResult[Any] = self.download_media(path, save_path)
        else:
            result = self.fetch_media(path)

        if not result.ok:
            return False
        return result.value

    def media_exists(self, path: str) -> bool:
        with self._observe("media_exists", path) as state:
            result = self._get_object(path)
            self._mark(state, result)
            return result.ok

    def remove_media(self, name: str) -> ServiceResult[bool]:
        """Delete the named object."""
        with self._observe("remove_media", name) as state:
            try:
                self._service.delete_object(bucket=self._bucket, name=name)
            except Exception as exc:
                result: ServiceResult[bool] = ServiceResult.failure(_remote_error(exc))
                self._mark(state, result)
                return result
            return ServiceResult.success(True)

    def is_connected(self) -> bool:
        """Probe the bucket's own metadata."""
        with self._observe("is_connected") as state:
            try:
                self._service.get_bucket(bucket=self._bucket)
            except Exception as exc:
                state["outcome"] = "error"
                state["cause"] = str(exc)
                return False
            return True


_instance: MediaStorageClient | None = None
_instance_lock = threading.Lock()


def get_instance(
    config: ClientConfig, *, service: StorageService | None = None
) -> ServiceResult[MediaStorageClient]:
    """Return the process-wide client, building it on first use.

    Once an instance exists it is returned regardless of ``config``.
    """
    global _instance
    existing = _instance
    if existing is not None:
        if existing.config != config:
            logger.warning(
                "storage client already configured for bucket=%s; ignoring new configuration",
                existing.bucket,
            )
        return ServiceResult.success(existing)

    with _instance_lock:
        if _instance is None:
            try:
                _instance = MediaStorageClient(config, service=service)
            except ConfigError as exc:
                logger.error("storage client configuration rejected: %s", exc)
                return ServiceResult.failure(exc)
            logger.info("storage client initialized bucket=%s", _instance.bucket)
        return ServiceResult.success(_instance)


def reset_instance() -> None:
    """Drop the process-wide client. Intended for tests."""
    global _instance
    with _instance_lock:
        _instance = None
