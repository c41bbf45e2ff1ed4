"""Work endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .. import schemas
from ..auth import get_current_identity
from ..deps import get_work_service
from ..errors import InternalError
from ..identity import Identity
from ..services.work_writer import ImageInput
from ..services.works import WorkService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/works", tags=["Works"])


def _internal(e: InternalError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_work(
    payload: schemas.CreateWorkRequest,
    identity: Identity = Depends(get_current_identity),
    works: WorkService = Depends(get_work_service),
) -> dict[str, Any]:
    """
    Create a work owned by the caller.

    Tags and images are attached after the work row exists. On failure the
    work may have been partially created (no rollback across tables).
    """
    images = [ImageInput(data_url=img.dataUrl, alt_text=img.alttext) for img in payload.images or []]
    try:
        return works.create_work(
            identity.id,
            payload.title,
            description=payload.description,
            status=payload.status,
            tag_ids=payload.tagIds,
            new_tag_names=payload.newTags,
            images=images,
        )
    except InternalError as e:
        raise _internal(e)


@router.get("")
def list_published(works: WorkService = Depends(get_work_service)) -> list[dict[str, Any]]:
    """Published works, most recently published first."""
    try:
        return works.list_published()
    except InternalError as e:
        raise _internal(e)


@router.get("/my")
def list_mine(
    identity: Identity = Depends(get_current_identity),
    works: WorkService = Depends(get_work_service),
) -> list[dict[str, Any]]:
    try:
        return works.list_mine(identity.id)
    except InternalError as e:
        raise _internal(e)


@router.get("/meta/tags", response_model=list[schemas.TagItem])
def search_tags(
    q: str | None = Query(None),
    works: WorkService = Depends(get_work_service),
) -> list[dict[str, Any]]:
    try:
        return works.search_tags(q)
    except InternalError as e:
        raise _internal(e)


@router.get("/{work_id}")
def get_work(work_id: str, works: WorkService = Depends(get_work_service)) -> dict[str, Any] | None:
    """Work detail with all media (signed, in upload order) and tags."""
    try:
        return works.get_one(work_id)
    except InternalError as e:
        raise _internal(e)
