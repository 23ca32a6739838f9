from .base import (
    ConfigError,
    NotFoundError,
    PublicAccessError,
    RemoteError,
    ServiceError,
    ServiceResult,
)
from .media_service import (
    ClientConfig,
    MediaObjectDescriptor,
    MediaStorageClient,
    get_instance,
    reset_instance,
)

__all__ = [
    "ClientConfig",
    "ConfigError",
    "MediaObjectDescriptor",
    "MediaStorageClient",
    "NotFoundError",
    "PublicAccessError",
    "RemoteError",
    "ServiceError",
    "ServiceResult",
    "get_instance",
    "reset_instance",
]
