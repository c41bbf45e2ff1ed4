"""Centralized environment-driven settings.

Keep this module lightweight: stdlib only, no app imports, to avoid circular deps.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _str_env(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


DATABASE_URL: str = _str_env("DATABASE_URL", "sqlite:///./folio.db")

# Physical name of the works table (some environments call it "works")
WORKS_TABLE: str = _str_env("WORKS_TABLE", "Work")

# Blob store
VAULT_LOCATION: str = _str_env("VAULT_LOCATION", "./vault")
PUBLIC_BASE_URL: str = _str_env("PUBLIC_BASE_URL", "http://localhost:8000")
BLOB_SIGNING_KEY: str = _str_env("BLOB_SIGNING_KEY", "dev-blob-signing-key-change-me-please-32")
MEDIA_BUCKET: str = _str_env("MEDIA_BUCKET", "media")
AVATAR_BUCKET: str = _str_env("AVATAR_BUCKET", "avatars")

# Signed URL lifetimes (seconds)
MEDIA_SIGNED_URL_TTL: int = _int_env("MEDIA_SIGNED_URL_TTL", 60 * 60 * 24 * 365)
AVATAR_SIGNED_URL_TTL: int = _int_env("AVATAR_SIGNED_URL_TTL", 60 * 60 * 24 * 7)

# Upper bound for a single uploaded image, in whole megabytes
MAX_IMAGE_SIZE_MB: int = _int_env("MAX_IMAGE_SIZE_MB", 10)

# Thread pool size for read-side fan-out (batch queries and URL signing)
AGGREGATE_MAX_WORKERS: int = _int_env("AGGREGATE_MAX_WORKERS", 8)

# Authentication provider (GoTrue-compatible)
AUTH_URL: str = _str_env("AUTH_URL", "http://localhost:9999")
AUTH_ANON_KEY: str = _str_env("AUTH_ANON_KEY", "")
AUTH_SERVICE_KEY: str = _str_env("AUTH_SERVICE_KEY", "")
AUTH_JWT_SECRET: str = _str_env("AUTH_JWT_SECRET", "dev-auth-jwt-secret-change-me-please-32")
AUTH_JWT_ALGORITHM: str = _str_env("AUTH_JWT_ALGORITHM", "HS256")
AUTH_TIMEOUT_SECONDS: int = _int_env("AUTH_TIMEOUT_SECONDS", 10)

FRONTEND_URL: str = _str_env("FRONTEND_URL", "http://localhost:5173")
APP_URL: str = _str_env("APP_URL", "http://localhost:8000")
