from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stateless_media.app.services.media_service import ClientConfig

ENV_FILE = Path(".env")


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _read_key_file(path: str | None) -> str | None:
    if not path:
        return None
    key_path = Path(path).expanduser()
    if not key_path.is_file():
        raise ValueError(f"GCS_KEY_FILE does not point to a readable file: {path}")
    return key_path.read_text(encoding="utf-8")


@dataclass
class Settings:
    GCS_BUCKET: str = ""
    GCS_KEY_JSON: str | None = None
    GCS_APPLICATION_NAME: str | None = None
    SITE_URL: str | None = None
    LOG_JSON: bool = True
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        key_json = os.environ.get("GCS_KEY_JSON") or _read_key_file(
            os.environ.get("GCS_KEY_FILE")
        )
        return cls(
            GCS_BUCKET=os.environ.get("GCS_BUCKET", cls.GCS_BUCKET).strip(),
            GCS_KEY_JSON=key_json,
            GCS_APPLICATION_NAME=os.environ.get("GCS_APPLICATION_NAME"),
            SITE_URL=os.environ.get("SITE_URL"),
            LOG_JSON=_as_bool(os.environ.get("LOG_JSON"), cls.LOG_JSON),
            LOG_LEVEL=os.environ.get("LOG_LEVEL", cls.LOG_LEVEL).upper(),
        )

    def client_config(self) -> "ClientConfig":
        """Build the storage client configuration from these settings."""
        from stateless_media.app.services.media_service import ClientConfig

        return ClientConfig(
            bucket=self.GCS_BUCKET,
            service_account_key_json=self.GCS_KEY_JSON or "",
            application_name=self.GCS_APPLICATION_NAME,
            site_url=self.SITE_URL,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
