"""Google Cloud Storage JSON API implementation.

This module talks to the GCS JSON API through an authorized ``requests``
session built from a service-account key.

Dependencies:
    - google-auth
    - requests
"""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import quote

from stateless_media.infra.storage.client import (
    AccessControlEntry,
    DownloadResult,
    ObjectNotFoundError,
    StorageError,
)

API_ROOT = "https://storage.googleapis.com/storage/v1"
UPLOAD_ROOT = "https://storage.googleapis.com/upload/storage/v1"
FULL_CONTROL_SCOPE = "https://www.googleapis.com/auth/devstorage.full_control"
USER_AGENT = "stateless-media/0.1"
DOWNLOAD_CHUNK_SIZE = 256 * 1024


def _quote_name(name: str) -> str:
    return quote(name, safe="")


def _error_message(response: Any) -> str:
    """Pull the human readable message out of a JSON API error body."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    text = (response.text or "").strip()
    return text[:512] if text else f"HTTP {response.status_code}"


def _multipart_body(
    resource: Mapping[str, Any], data: bytes, mime_type: str
) -> tuple[bytes, str]:
    """Build a multipart/related body: JSON resource part, then the media part."""
    boundary = f"==============={uuid.uuid4().hex}=="
    head = (
        f"--{boundary}\r\n"
        "Content-Type: application/json; charset=UTF-8\r\n\r\n"
        f"{json.dumps(dict(resource))}\r\n"
        f"--{boundary}\r\n"
        f"Content-Type: {mime_type}\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + data + tail, f'multipart/related; boundary="{boundary}"'


class GCSStorageService:
    """Google Cloud Storage client over the JSON API.

    Uses google-auth service-account credentials and an AuthorizedSession;
    the OAuth token is fetched lazily on the first request.
    """

    def __init__(
        self,
        *,
        key_info: Mapping[str, Any],
        application_name: str,
        timeout: float | None = None,
    ) -> None:
        """Initialize the session from a parsed service-account key.

        Args:
            key_info: Parsed service-account JSON key.
            application_name: Prefix for the User-Agent header.
            timeout: Optional per-request timeout; None leaves the
                transport default in place.

        Raises:
            StorageError: If google-auth is not installed or the key is
                rejected.
        """
        self._timeout = timeout
        self._session = self._build_session(key_info, application_name)

    @staticmethod
    def _build_session(key_info: Mapping[str, Any], application_name: str) -> Any:
        """Create an AuthorizedSession for the full-control storage scope."""
        try:
            from google.auth.transport.requests import AuthorizedSession
            from google.oauth2 import service_account
        except ImportError as exc:
            raise StorageError(
                "google-auth and requests are required for the GCS backend. "
                "Install with: pip install google-auth requests"
            ) from exc

        try:
            credentials = service_account.Credentials.from_service_account_info(
                dict(key_info), scopes=[FULL_CONTROL_SCOPE]
            )
        except (ValueError, KeyError) as exc:
            raise StorageError(f"Invalid service account key: {exc}") from exc

        session = AuthorizedSession(credentials)
        session.headers["User-Agent"] = f"{application_name} {USER_AGENT}"
        return session

    def _request(self, method: str, url: str, *, action: str, **kwargs: Any) -> Any:
        if self._timeout is not None:
            kwargs.setdefault("timeout", self._timeout)
        try:
            response = self._session.request(method, url, **kwargs)
        except Exception as exc:
            raise StorageError(f"Failed to {action}: {exc}") from exc

        status = response.status_code
        if status == 404:
            raise ObjectNotFoundError(
                f"Failed to {action}: {_error_message(response)}", status_code=status
            )
        if status >= 400:
            raise StorageError(
                f"Failed to {action}: {_error_message(response)}", status_code=status
            )
        return response

    @staticmethod
    def _json(response: Any, *, action: str) -> dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise StorageError(f"Failed to {action}: invalid JSON response") from exc
        if not isinstance(payload, dict):
            raise StorageError(f"Failed to {action}: unexpected response payload")
        return payload

    def insert_object(
        self,
        *,
        bucket: str,
        resource: Mapping[str, Any],
        data: bytes,
        mime_type: str,
        predefined_acl: str | None = None,
    ) -> dict[str, Any]:
        """Upload an object with its resource in one multipart request."""
        params: dict[str, Any] = {"uploadType": "multipart"}
        if predefined_acl:
            params["predefinedAcl"] = predefined_acl
        body, content_type = _multipart_body(resource, data, mime_type)

        response = self._request(
            "POST",
            f"{UPLOAD_ROOT}/b/{_quote_name(bucket)}/o",
            action="upload object",
            params=params,
            data=body,
            headers={"Content-Type": content_type},
        )
        return self._json(response, action="upload object")

    def get_object(self, *, bucket: str, name: str) -> dict[str, Any]:
        """Get object metadata."""
        response = self._request(
            "GET",
            f"{API_ROOT}/b/{_quote_name(bucket)}/o/{_quote_name(name)}",
            action="get object metadata",
        )
        return self._json(response, action="get object metadata")

    def delete_object(self, *, bucket: str, name: str) -> None:
        """Delete an object from storage."""
        self._request(
            "DELETE",
            f"{API_ROOT}/b/{_quote_name(bucket)}/o/{_quote_name(name)}",
            action="delete object",
        )

    def insert_object_acl(
        self, *, bucket: str, name: str, entry: AccessControlEntry
    ) -> dict[str, Any]:
        """Grant a role on an object."""
        response = self._request(
            "POST",
            f"{API_ROOT}/b/{_quote_name(bucket)}/o/{_quote_name(name)}/acl",
            action="insert object ACL",
            json=entry.as_resource(),
        )
        return self._json(response, action="insert object ACL")

    def get_bucket(self, *, bucket: str) -> dict[str, Any]:
        """Get bucket metadata."""
        response = self._request(
            "GET", f"{API_ROOT}/b/{_quote_name(bucket)}", action="get bucket"
        )
        return self._json(response, action="get bucket")

    def download(self, *, url: str, destination: str) -> DownloadResult:
        """Stream a media link into ``destination``.

        A partially written destination is removed when the transfer fails.
        """
        response = self._request("GET", url, action="download object", stream=True)
        target = Path(destination)
        opened = False
        written = 0
        try:
            with target.open("wb") as fh:
                opened = True
                for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                    if chunk:
                        fh.write(chunk)
                        written += len(chunk)
        except Exception as exc:
            if opened:
                target.unlink(missing_ok=True)
            raise StorageError(f"Failed to write {destination}: {exc}") from exc
        finally:
            response.close()
        return DownloadResult(status_code=response.status_code, bytes_written=written)
