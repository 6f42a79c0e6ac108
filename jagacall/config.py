# jagacall/config.py

"""
Process-wide settings, read from the environment exactly once.

`Settings.from_env()` is called at startup and the resulting object is
passed to `create_app()`. Nothing below `jagacall.main` looks at
`os.environ` directly.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_BASE_URL = "https://api.ytlailabs.tech/v1"
DEFAULT_CORS_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

ALLOWED_UPLOAD_TYPES = frozenset(
    {
        "application/vnd.android.package-archive",
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/x-msdownload",
        "audio/wav",
        "audio/mpeg",
        "audio/mp4",
    }
)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}.")


@dataclass(frozen=True)
class Settings:
    ilmu_api_key: str = ""
    ilmu_base_url: str = DEFAULT_BASE_URL
    text_model: str = "ILMU-text"
    file_model: str = "ILMU-text-free-safe"
    upstream_timeout: float = 30.0
    max_tokens: int = 400
    temperature: float = 0.2

    upload_dir: str = "uploads"
    max_upload_bytes: int = MAX_UPLOAD_BYTES
    allowed_upload_types: frozenset = ALLOWED_UPLOAD_TYPES

    cors_origins: Tuple[str, ...] = DEFAULT_CORS_ORIGINS
    redis_url: Optional[str] = None
    rate_limit_max: int = 100
    rate_limit_window_seconds: int = 15 * 60
    trust_proxy: bool = False

    sentry_dsn: str = ""
    environment: str = "production"
    log_level: str = "INFO"
    port: int = 3000

    service_name: str = "JagaCall Backend"
    version: str = "1.0.0"

    @property
    def demo_mode(self) -> bool:
        return self.environment == "development"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "")
        cors_origins = tuple(o.strip() for o in origins.split(",") if o.strip())
        return cls(
            ilmu_api_key=os.getenv("ILMU_API_KEY", ""),
            ilmu_base_url=os.getenv("ILMU_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            text_model=os.getenv("ILMU_TEXT_MODEL", "ILMU-text"),
            file_model=os.getenv("ILMU_FILE_MODEL", "ILMU-text-free-safe"),
            upstream_timeout=_env_float("ILMU_TIMEOUT_SECONDS", 30.0),
            upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", MAX_UPLOAD_BYTES),
            cors_origins=cors_origins or DEFAULT_CORS_ORIGINS,
            redis_url=os.getenv("REDIS_URL") or None,
            rate_limit_max=_env_int("RATE_LIMIT_MAX", 100),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
            trust_proxy=os.getenv("TRUST_PROXY", "").strip().lower() in ("1", "true", "yes"),
            sentry_dsn=os.getenv("SENTRY_DSN", ""),
            environment=os.getenv("ENVIRONMENT", "production"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=_env_int("PORT", 3000),
        )
