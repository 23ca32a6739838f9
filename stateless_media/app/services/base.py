from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class ServiceError(Exception):
    """Base class for application service level exceptions."""


class ConfigError(ServiceError):
    """Raised when the bucket or service-account credentials are unusable."""


class NotFoundError(ServiceError):
    """Raised when a local source file or a remote object cannot be found."""


class RemoteError(ServiceError):
    """Raised when the remote storage service rejects or fails a call."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PublicAccessError(RemoteError):
    """Raised when an object was uploaded but could not be made public."""


@dataclass(frozen=True, slots=True)
class ServiceResult(Generic[T]):
    """Outcome of a service operation.

    ``error`` is None on success. A failed result may still carry a
    ``value`` when the operation partially succeeded.
    """

    value: T | None = None
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, value: T) -> "ServiceResult[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls, error: ServiceError, *, value: T | None = None
    ) -> "ServiceResult[T]":
        return cls(value=value, error=error)

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
