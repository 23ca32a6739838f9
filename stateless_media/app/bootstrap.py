from __future__ import annotations

from stateless_media.app.services.base import ServiceResult
from stateless_media.app.services.media_service import MediaStorageClient, get_instance
from stateless_media.common.config import Settings, get_settings
from stateless_media.common.logging import setup_logging
from stateless_media.infra.storage.client import StorageService


def create_client(
    settings: Settings | None = None,
    *,
    service: StorageService | None = None,
    configure_logging: bool = True,
) -> ServiceResult[MediaStorageClient]:
    """Configure logging and return the process-wide storage client."""
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)
    return get_instance(settings.client_config(), service=service)
