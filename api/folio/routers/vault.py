"""Signed blob reads."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import FileResponse

from ..blob import VaultBlobStore
from ..deps import get_blob_store
from ..errors import BlobNotFoundError, BlobStoreError

router = APIRouter(prefix="/vault", tags=["Vault"])


@router.get("/{bucket}/{key:path}")
def read_object(
    bucket: str,
    key: str,
    token: str = Query(...),
    blob: VaultBlobStore = Depends(get_blob_store),
) -> FileResponse:
    try:
        path = blob.open_signed(bucket, key, token)
    except BlobNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    except BlobStoreError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    return FileResponse(path)
