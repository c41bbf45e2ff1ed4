"""Best-effort conversion of stored blob references into signed read URLs."""

from __future__ import annotations

import logging

from ..blob import VaultBlobStore

logger = logging.getLogger(__name__)


def signed_url_or_reference(blob: VaultBlobStore, bucket: str, reference: str, ttl_seconds: int) -> str:
    """
    Sign a stored reference, falling back to the reference itself.

    No error escapes from here; on failure the stored reference is returned.
    """
    try:
        key = blob.key_from_reference(bucket, reference)
        return blob.create_signed_url(bucket, key, ttl_seconds)
    except Exception as e:
        logger.warning(f"Could not sign {bucket} reference {reference!r}: {e}")
        return reference
