"""Vault blob storage for work media and avatars.

Objects live on disk under VAULT_LOCATION/<bucket>/<key>. Keys are opaque
relative paths chosen by callers (e.g. "<workId>/<millis>-0.png").

Read access goes through time-limited signed URLs:

    <PUBLIC_BASE_URL>/vault/<bucket>/<key>?token=<jwt>

The token is a JWT naming the bucket and key with an expiry, signed with
BLOB_SIGNING_KEY. The unsigned public form (without ?token) is what gets
persisted in the database; it is only a durable reference, not a readable URL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from urllib.parse import quote, unquote, urlparse

import jwt

from . import settings
from .errors import BlobNotFoundError, BlobStoreError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
VAULT_URL_PREFIX = "/vault/"


class VaultBlobStore:
    def __init__(
        self,
        root: Path | str | None = None,
        base_url: str | None = None,
        signing_key: str | None = None,
    ) -> None:
        self.root = Path(root or settings.VAULT_LOCATION)
        self.base_url = (base_url or settings.PUBLIC_BASE_URL).rstrip("/")
        self.signing_key = signing_key or settings.BLOB_SIGNING_KEY

    def _object_path(self, bucket: str, key: str) -> Path:
        bucket_root = (self.root / bucket).resolve()
        path = (bucket_root / key).resolve()
        # Keys must stay inside their bucket
        if bucket_root != path and bucket_root not in path.parents:
            raise BlobStoreError(f"Invalid key '{key}' for bucket '{bucket}'")
        return path

    def upload(self, bucket: str, key: str, content: bytes, content_type: str) -> str:
        """Store an object (overwriting any existing one) and return its key."""
        path = self._object_path(bucket, key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Failed to upload {bucket}/{key}: {e}")
            raise BlobStoreError(f"Failed to upload {bucket}/{key}: {e}") from e
        logger.info(f"Uploaded {bucket}/{key} ({len(content)} bytes, {content_type})")
        return key

    def public_url(self, bucket: str, key: str) -> str:
        return f"{self.base_url}{VAULT_URL_PREFIX}{bucket}/{quote(key)}"

    def key_from_reference(self, bucket: str, reference: str) -> str:
        """
        Derive a storage key from a stored reference.

        Accepts either a public URL produced by public_url() (absolute or
        path-only) or a raw key, which is returned unchanged.
        """
        path = urlparse(reference).path if "://" in reference else reference
        marker = f"{VAULT_URL_PREFIX}{bucket}/"
        idx = path.rfind(marker)
        if idx == -1:
            return reference
        return unquote(path[idx + len(marker):])

    def create_signed_url(self, bucket: str, key: str, ttl_seconds: int) -> str:
        if not self._object_path(bucket, key).is_file():
            raise BlobNotFoundError(f"Object not found: {bucket}/{key}")
        now = datetime.now(timezone.utc)
        payload = {
            "bucket": bucket,
            "key": key,
            "iat": now,
            "exp": now + timedelta(seconds=ttl_seconds),
        }
        token = jwt.encode(payload, self.signing_key, algorithm=JWT_ALGORITHM)
        return f"{self.public_url(bucket, key)}?token={token}"

    def open_signed(self, bucket: str, key: str, token: str) -> Path:
        """Validate a signed URL token and return the object path."""
        try:
            claims = jwt.decode(token, self.signing_key, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            raise BlobStoreError("Signed URL expired") from e
        except jwt.InvalidTokenError as e:
            raise BlobStoreError("Invalid signed URL") from e
        if claims.get("bucket") != bucket or claims.get("key") != key:
            raise BlobStoreError("Signed URL does not match object")
        path = self._object_path(bucket, key)
        if not path.is_file():
            raise BlobNotFoundError(f"Object not found: {bucket}/{key}")
        return path
