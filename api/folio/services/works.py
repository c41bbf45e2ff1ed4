"""Work service: creation plus the listing and detail reads."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from .. import settings
from ..blob import VaultBlobStore
from ..clock import Clock, utcnow
from ..errors import ErrorPolicy, guarded
from ..store import Row, RowStore
from .aggregator import WorkAggregator
from .column_resolver import WORK_ID_COLUMNS, ColumnResolver
from .tags import TagResolver
from .work_writer import ImageInput, WorkWriter

logger = logging.getLogger(__name__)


class WorkService:
    def __init__(
        self,
        store: RowStore,
        blob: VaultBlobStore,
        clock: Clock = utcnow,
        works_table: str | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.store = store
        self.works_table = works_table or settings.WORKS_TABLE
        self.tags = TagResolver(store)
        self.writer = WorkWriter(store, blob, self.tags, clock=clock, works_table=self.works_table)
        self.aggregator = WorkAggregator(store, blob, max_workers=max_workers)
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
        return self.writer.create_work(
            author_id,
            title,
            description=description,
            status=status,
            tag_ids=tag_ids,
            new_tag_names=new_tag_names,
            images=images,
        )

    def list_published(self) -> list[Row]:
        works: list[Row] = []
        with guarded("list published works", ErrorPolicy.FATAL, logger):
            works = self.store.select(
                self.works_table,
                where={"status": "published"},
                order_by=["publishedAt"],
                descending=True,
            )
        return self.aggregator.aggregate(works)

    def list_mine(self, author_id: str) -> list[Row]:
        works: list[Row] = []
        with guarded("list works", ErrorPolicy.FATAL, logger):
            works = self.store.select(
                self.works_table,
                where={"authorId": author_id},
                order_by=["created_at"],
                descending=True,
            )
        return self.aggregator.aggregate(works)

    def get_one(self, work_id: str) -> Row | None:
        work: Row | None = None
        with guarded("load work", ErrorPolicy.FATAL, logger):
            key_column = self.resolver.resolve_column(self.works_table, WORK_ID_COLUMNS)
            if key_column is None:
                raise LookupError(f"{self.works_table} has no id column")
            work = self.store.select_one(self.works_table, where={key_column: work_id})
        if work is None:
            return None
        return self.aggregator.aggregate_one(work)

    def search_tags(self, q: str | None = None) -> list[Row]:
        return self.tags.search_tags(q)
