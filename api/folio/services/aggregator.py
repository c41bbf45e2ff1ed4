"""
Read-side aggregation of works with their media and tags.

A batch of N works costs three queries, issued concurrently and joined:
media for the work ids (creation order), tag links for the work ids, and the
whole Tag table. Thumbnails are the first media row per work, signed
concurrently. Nothing here raises: failed queries degrade to empty results
and failed signing degrades to the stored reference.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence

from .. import settings
from ..blob import VaultBlobStore
from ..errors import StoreError
from ..store import Row, RowStore
from .column_resolver import WORK_ID_COLUMNS, read_field
from .signing import signed_url_or_reference
from .tags import TAG_TABLE
from .work_writer import MEDIA_TABLE, WORKTAG_TABLE

logger = logging.getLogger(__name__)

MEDIA_ORDER = ("createdAt", "id")


class WorkAggregator:
    def __init__(
        self,
        store: RowStore,
        blob: VaultBlobStore,
        max_workers: int | None = None,
    ) -> None:
        self.store = store
        self.blob = blob
        self.max_workers = max_workers or settings.AGGREGATE_MAX_WORKERS

    def _select(self, table: str, **kwargs: Any) -> list[Row]:
        try:
            return self.store.select(table, **kwargs)
        except StoreError as e:
            logger.error(f"Aggregation query on {table} failed: {e}")
            return []

    def _fetch_related(self, **media_filter: Any) -> tuple[list[Row], list[Row], list[Row]]:
        """Run the media, link and tag queries concurrently."""
        with ThreadPoolExecutor(max_workers=min(3, self.max_workers)) as pool:
            media = pool.submit(self._select, MEDIA_TABLE, order_by=MEDIA_ORDER, **media_filter)
            links = pool.submit(self._select, WORKTAG_TABLE, columns=["workId", "tagId"], **media_filter)
            tags = pool.submit(self._select, TAG_TABLE, columns=["tagId", "name"])
            return media.result(), links.result(), tags.result()

    def sign(self, reference: str | None) -> str | None:
        if not reference:
            return None
        return signed_url_or_reference(
            self.blob, settings.MEDIA_BUCKET, reference, settings.MEDIA_SIGNED_URL_TTL
        )

    def _sign_all(self, references: Sequence[str | None]) -> list[str | None]:
        if not references:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(self.sign, references))

    @staticmethod
    def _group_tags(links: list[Row], tags: list[Row]) -> dict[Any, list[Row]]:
        names = {tag["tagId"]: tag["name"] for tag in tags}
        grouped: dict[Any, list[Row]] = defaultdict(list)
        for link in links:
            name = names.get(link["tagId"])
            if name:
                grouped[link["workId"]].append({"tagId": link["tagId"], "name": name})
        return grouped

    def aggregate(self, works: Sequence[Row]) -> list[Row]:
        """Attach ``thumbnail`` (signed first media, or None) and ``tags`` to each work."""
        if not works:
            return []
        ids = [read_field(work, WORK_ID_COLUMNS) for work in works]
        media, links, tags = self._fetch_related(where_in={"workId": ids})

        first_media: dict[Any, Row] = {}
        for row in media:
            first_media.setdefault(row["workId"], row)
        tags_by_work = self._group_tags(links, tags)

        thumbnails = self._sign_all(
            [first_media[wid]["fileurl"] if wid in first_media else None for wid in ids]
        )
        return [
            {**work, "thumbnail": thumbnail, "tags": tags_by_work.get(wid, [])}
            for work, wid, thumbnail in zip(works, ids, thumbnails)
        ]

    def aggregate_one(self, work: Row) -> Row:
        """Detail view: every media row in creation order, each signed."""
        work_id = read_field(work, WORK_ID_COLUMNS)
        media, links, tags = self._fetch_related(where={"workId": work_id})

        signed = self._sign_all([row["fileurl"] for row in media])
        media_with_url = [{**row, "fileurl": url} for row, url in zip(media, signed)]
        tag_items = self._group_tags(links, tags).get(work_id, [])
        return {
            **work,
            "media": media_with_url,
            "tags": tag_items,
            "thumbnail": media_with_url[0]["fileurl"] if media_with_url else None,
        }
