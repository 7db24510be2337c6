from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_MAX_PHOTO_BYTES = 5 * 1024 * 1024
DEFAULT_PHOTO_URL_TTL_SECONDS = 3600


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PHOTO_BUCKET (or S3_BUCKET): object store bucket for photos. When unset,
      photo features are disabled and the service runs in degraded mode.
    - AWS_REGION / AWS_DEFAULT_REGION: optional region for the S3 client
    - S3_ENDPOINT_URL: optional custom endpoint (MinIO, localstack, ...)
    - PHOTO_URL_TTL_SECONDS: lifetime of signed photo URLs (default 3600)
    - MAX_PHOTO_BYTES: upload size cap in bytes (default 5 MiB)
    - APP_ENV: environment name reported by /api/health (default 'development')
    - SEED_TODOS: 'true' (default) to start with the welcome todos
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: loguru level (default INFO)
    - JSON_LOGGING: 'true' to emit JSON log lines
    """

    photo_bucket: Optional[str]
    aws_region: Optional[str]
    s3_endpoint_url: Optional[str]
    photo_url_ttl_seconds: int
    max_photo_bytes: int
    app_env: str
    seed_todos: bool
    cors_allow_origins: List[str]
    log_level: str
    json_logging: bool

    @property
    def photo_storage_configured(self) -> bool:
        return bool(self.photo_bucket)


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _get_optional_env(*names: str) -> Optional[str]:
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_positive_int(value: str, default: int) -> int:
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        # Star will be handled in main via allow_origins=["*"]
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    ttl = _parse_positive_int(
        _get_env("PHOTO_URL_TTL_SECONDS", str(DEFAULT_PHOTO_URL_TTL_SECONDS)),
        DEFAULT_PHOTO_URL_TTL_SECONDS,
    )
    max_bytes = _parse_positive_int(
        _get_env("MAX_PHOTO_BYTES", str(DEFAULT_MAX_PHOTO_BYTES)),
        DEFAULT_MAX_PHOTO_BYTES,
    )

    return Settings(
        photo_bucket=_get_optional_env("PHOTO_BUCKET", "S3_BUCKET"),
        aws_region=_get_optional_env("AWS_REGION", "AWS_DEFAULT_REGION"),
        s3_endpoint_url=_get_optional_env("S3_ENDPOINT_URL"),
        photo_url_ttl_seconds=ttl,
        max_photo_bytes=max_bytes,
        app_env=_get_env("APP_ENV", "development").strip(),
        seed_todos=_parse_bool(_get_env("SEED_TODOS", "true"), True),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
        json_logging=_parse_bool(_get_env("JSON_LOGGING", "false"), False),
    )
