"""
Work creation pipeline.

Steps run strictly in order, each its own failure domain:

    1. insert the Work row
    2. resolve tag names and ids
    3. link tags to the work
    4. upload each image and insert its Media row

There is no transaction across tables. A failure at step N raises
InternalError and leaves steps 1..N-1 applied; callers must treat a failed
creation as possibly partially applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from .. import settings
from ..blob import VaultBlobStore
from ..clock import Clock, epoch_millis, utcnow
from ..data_urls import parse_data_url
from ..errors import ErrorPolicy, InternalError, InvalidDataUrlError, guarded
from ..models import new_uuid
from ..store import Row, RowStore
from .column_resolver import WORK_ID_COLUMNS, ColumnResolver, read_field
from .tags import TagResolver

logger = logging.getLogger(__name__)

WORKTAG_TABLE = "worktag"
MEDIA_TABLE = "Media"
WORK_STATUSES = ("draft", "published")


@dataclass(frozen=True)
class ImageInput:
    data_url: str
    alt_text: str | None = None


class WorkWriter:
    def __init__(
        self,
        store: RowStore,
        blob: VaultBlobStore,
        tags: TagResolver | None = None,
        clock: Clock = utcnow,
        works_table: str | None = None,
    ) -> None:
        self.store = store
        self.blob = blob
        self.tags = tags or TagResolver(store)
        self.clock = clock
        self.works_table = works_table or settings.WORKS_TABLE
        self.resolver = ColumnResolver(store)

    def create_work(
        self,
        author_id: str,
        title: str,
        description: str | None = None,
        status: str | None = None,
        tag_ids: Iterable[str] | None = None,
        new_tag_names: Iterable[str | None] | None = None,
        images: Sequence[ImageInput] | None = None,
    ) -> Row:
        """
        Create a work with its tag links and media.

        Returns the Work row as persisted. Thumbnail and tags are not
        attached; use the aggregator for the read-side view.
        """
        status = status or "draft"
        if status not in WORK_STATUSES:
            raise ValueError(f"Invalid status '{status}'. Allowed: {', '.join(WORK_STATUSES)}")

        now = self.clock()
        payload = {
            "key": new_uuid(),
            "authorId": author_id,
            "title": title,
            "description": description,
            "status": status,
            "created_at": now,
            "updatedAt": now,
            "publishedAt": now if status == "published" else None,
            "views": 0,
            "likes": 0,
        }

        work: Row | None = None
        with guarded("create work", ErrorPolicy.FATAL, logger):
            work = self.resolver.write_with_fallback(self.works_table, payload, {"key": WORK_ID_COLUMNS})
        work_id = read_field(work, WORK_ID_COLUMNS)
        if work_id is None:
            raise InternalError("Failed to create work: no id returned")

        resolved = self.tags.resolve_tags(tag_ids or (), new_tag_names or ())
        self.link_tags(work_id, resolved)

        for index, image in enumerate(images or ()):
            self.attach_image(work_id, index, image)

        logger.info(
            f"Created work {work_id} for {author_id} "
            f"({len(resolved)} tags, {len(images or ())} images)"
        )
        return work

    def link_tags(self, work_id: str, tag_ids: Iterable[str]) -> None:
        rows = [{"workId": work_id, "tagId": tag_id} for tag_id in sorted(set(tag_ids))]
        if not rows:
            return
        with guarded("link tags", ErrorPolicy.FATAL, logger):
            self.store.insert_many(WORKTAG_TABLE, rows)

    def attach_image(self, work_id: str, index: int, image: ImageInput) -> Row:
        media: Row = {}
        with guarded("upload image", ErrorPolicy.FATAL, logger):
            decoded = parse_data_url(image.data_url)
            if decoded.size_mb > settings.MAX_IMAGE_SIZE_MB:
                raise InvalidDataUrlError(
                    f"Image is {decoded.size_mb} MB, limit is {settings.MAX_IMAGE_SIZE_MB} MB"
                )
            now = self.clock()
            key = f"{work_id}/{epoch_millis(now)}-{index}.{decoded.extension}"
            self.blob.upload(settings.MEDIA_BUCKET, key, decoded.content, decoded.mime_type)
            media = self.store.insert(
                MEDIA_TABLE,
                {
                    "workId": work_id,
                    "fileurl": self.blob.public_url(settings.MEDIA_BUCKET, key),
                    "filetype": decoded.mime_type,
                    "sizemb": decoded.size_mb,
                    "alttext": image.alt_text,
                    "createdAt": now,
                },
            )
        return media
