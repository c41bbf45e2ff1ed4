"""Tag resolution: free-text names to durable tag ids."""

from __future__ import annotations

import logging
from typing import Iterable

from ..errors import DuplicateKeyError, ErrorPolicy, guarded
from ..models import new_uuid
from ..store import Row, RowStore

logger = logging.getLogger(__name__)

TAG_TABLE = "Tag"


def normalize_tag_names(names: Iterable[str | None]) -> list[str]:
    """Trim, lowercase, drop blanks and duplicates (first occurrence wins)."""
    normalized: list[str] = []
    for name in names:
        tag = (name or "").strip().lower()
        if tag and tag not in normalized:
            normalized.append(tag)
    return normalized


class TagResolver:
    def __init__(self, store: RowStore) -> None:
        self.store = store

    def _ids_by_name(self, names: list[str]) -> dict[str, str]:
        """Map each lowercased name to a tag id, matching stored names case-insensitively."""
        rows = self.store.select(
            TAG_TABLE, columns=["tagId", "name"], where_in_ci={"name": names}, order_by=["tagId"]
        )
        found: dict[str, str] = {}
        for row in rows:
            found.setdefault(row["name"].strip().lower(), row["tagId"])
        return found

    def resolve_tags(self, existing_ids: Iterable[str], new_names: Iterable[str | None]) -> set[str]:
        """
        Return the union of ``existing_ids`` and the ids of ``new_names``.

        Names already stored (in any letter case) are reused. The rest are
        inserted one by one with a generated id; a duplicate-name rejection
        means a concurrent request created the tag and is ignored. Ids of the
        inserted names are then read back by name. Any other store failure
        raises InternalError.
        """
        names = normalize_tag_names(new_names)
        tag_ids: set[str] = set()

        if names:
            found: dict[str, str] = {}
            missing: list[str] = []
            with guarded("create tags", ErrorPolicy.FATAL, logger):
                found = self._ids_by_name(names)
                missing = [name for name in names if name not in found]
                for name in missing:
                    try:
                        self.store.insert(TAG_TABLE, {"tagId": new_uuid(), "name": name})
                    except DuplicateKeyError:
                        logger.debug(f"Tag '{name}' already exists")

            if missing:
                with guarded("fetch created tags", ErrorPolicy.FATAL, logger):
                    found.update(self._ids_by_name(missing))
            tag_ids.update(found[name] for name in names if name in found)

        tag_ids.update(tag_id for tag_id in existing_ids if tag_id)
        return tag_ids

    def search_tags(self, q: str | None = None) -> list[Row]:
        ilike = {"name": f"%{q.strip()}%"} if q and q.strip() else None
        rows: list[Row] = []
        with guarded("search tags", ErrorPolicy.FATAL, logger):
            rows = self.store.select(TAG_TABLE, columns=["tagId", "name"], ilike=ilike, order_by=["name"])
        return rows
