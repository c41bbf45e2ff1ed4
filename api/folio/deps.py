from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from .auth_provider import AuthProvider, GoTrueAuthProvider
from .blob import VaultBlobStore
from .db import get_engine
from .services.profiles import ProfileService
from .services.works import WorkService
from .store import RowStore


@lru_cache(maxsize=1)
def get_store() -> RowStore:
    return RowStore(get_engine())


@lru_cache(maxsize=1)
def get_blob_store() -> VaultBlobStore:
    return VaultBlobStore()


@lru_cache(maxsize=1)
def get_auth_provider() -> AuthProvider:
    return GoTrueAuthProvider()


def get_profile_service(
    store: RowStore = Depends(get_store),
    blob: VaultBlobStore = Depends(get_blob_store),
    provider: AuthProvider = Depends(get_auth_provider),
) -> ProfileService:
    return ProfileService(store, blob, metadata_sink=provider)


def get_work_service(
    store: RowStore = Depends(get_store),
    blob: VaultBlobStore = Depends(get_blob_store),
) -> WorkService:
    return WorkService(store, blob)
