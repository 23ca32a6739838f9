"""In-memory storage service for testing media operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from stateless_media.infra.storage.client import (
    AccessControlEntry,
    DownloadResult,
    ObjectNotFoundError,
    StorageError,
)


@dataclass
class FakeStorageService:
    """In-memory fake of StorageService that records every call."""

    objects: dict[str, dict[str, Any]] = field(default_factory=dict)
    bodies: dict[str, bytes] = field(default_factory=dict)
    acls: dict[str, list[dict[str, str]]] = field(default_factory=dict)
    calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)
    download_status: int = 200
    _counter: int = field(default=0)

    def _record(self, method: str, **kwargs: Any) -> None:
        self.calls.append((method, kwargs))
        if method in self.failures:
            raise self.failures[method]

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def insert_object(
        self,
        *,
        bucket: str,
        resource: Mapping[str, Any],
        data: bytes,
        mime_type: str,
        predefined_acl: str | None = None,
    ) -> dict[str, Any]:
        self._record(
            "insert_object",
            bucket=bucket,
            resource=dict(resource),
            data=data,
            mime_type=mime_type,
            predefined_acl=predefined_acl,
        )
        self._counter += 1
        name = resource["name"]
        obj = {
            **dict(resource),
            "id": f"{bucket}/{name}/{self._counter}",
            "bucket": bucket,
            "size": str(len(data)),
            "contentType": mime_type,
            "mediaLink": f"https://fake-gcs/download/{bucket}/{name}?alt=media",
        }
        self.objects[name] = obj
        self.bodies[name] = data
        return dict(obj)

    def get_object(self, *, bucket: str, name: str) -> dict[str, Any]:
        self._record("get_object", bucket=bucket, name=name)
        if name not in self.objects:
            raise ObjectNotFoundError(f"No such object: {bucket}/{name}", status_code=404)
        return dict(self.objects[name])

    def delete_object(self, *, bucket: str, name: str) -> None:
        self._record("delete_object", bucket=bucket, name=name)
        if name not in self.objects:
            raise ObjectNotFoundError(f"No such object: {bucket}/{name}", status_code=404)
        self.objects.pop(name)
        self.bodies.pop(name, None)

    def insert_object_acl(
        self, *, bucket: str, name: str, entry: AccessControlEntry
    ) -> dict[str, Any]:
        self._record(
            "insert_object_acl",
            bucket=bucket,
            name=name,
            entity=entry.entity,
            role=entry.role,
        )
        granted = entry.as_resource()
        self.acls.setdefault(name, []).append(granted)
        return {"bucket": bucket, "object": name, **granted}

    def get_bucket(self, *, bucket: str) -> dict[str, Any]:
        self._record("get_bucket", bucket=bucket)
        return {"id": bucket, "name": bucket}

    def download(self, *, url: str, destination: str) -> DownloadResult:
        self._record("download", url=url, destination=destination)
        if self.download_status >= 400:
            raise StorageError(
                f"Failed to download object: HTTP {self.download_status}",
                status_code=self.download_status,
            )
        name = next(
            (n for n, obj in self.objects.items() if obj.get("mediaLink") == url),
            None,
        )
        body = self.bodies.get(name, b"") if name else b""
        Path(destination).write_bytes(body)
        return DownloadResult(status_code=self.download_status, bytes_written=len(body))
