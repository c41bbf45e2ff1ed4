"""
Schema-tolerant column resolution.

The same logical field is stored under different physical column names
depending on the environment (the profile avatar has been ``avatarUrl``,
``avatarurl``, ``avaterUrl`` and ``avatar_url``). Callers describe each
drifting field as an ordered tuple of candidate column names and let this
module pick the one that works.

Writes try the preferred mapping first and move a field to its next
candidate only when the store reports UnknownColumnError for that field's
current column. A candidate of ``None`` means "omit the field", which lets
cosmetic fields degrade instead of failing the write.

Reads take the first non-null value in candidate order.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from ..errors import UnknownColumnError
from ..store import Row, RowStore

logger = logging.getLogger(__name__)

# Logical profile fields and their known physical names, preferred first
PROFILE_KEY_COLUMNS = ("userID", "id")
AVATAR_COLUMNS = ("avatarUrl", "avatarurl", "avaterUrl", "avatar_url")
WORK_ID_COLUMNS = ("workId", "id")

Candidates = Sequence[str | None]


def read_field(row: Mapping[str, Any] | None, candidates: Sequence[str]) -> Any:
    """Return the first non-null value among the candidate columns of a row."""
    if not row:
        return None
    for name in candidates:
        value = row.get(name)
        if value is not None:
            return value
    return None


class ColumnResolver:
    def __init__(self, store: RowStore) -> None:
        self.store = store

    def resolve_column(self, table: str, candidates: Sequence[str]) -> str | None:
        """Return the first candidate that exists as a column of the table."""
        present = set(self.store.columns(table))
        for name in candidates:
            if name in present:
                return name
        return None

    @staticmethod
    def to_physical(payload: Mapping[str, Any], mapping: Mapping[str, str | None]) -> Row:
        physical: Row = {}
        for key, value in payload.items():
            if key in mapping:
                column = mapping[key]
                if column is None:
                    continue
                physical[column] = value
            else:
                physical[key] = value
        return physical

    def write_with_fallback(
        self,
        table: str,
        payload: Mapping[str, Any],
        fields: Mapping[str, Candidates],
        key_column: str | None = None,
        key_value: Any = None,
    ) -> Row | None:
        """
        Insert (no key_column) or update-by-key a payload expressed in logical names.

        ``fields`` maps each drifting logical field in ``payload`` to its
        ordered physical candidates. Keys of ``payload`` not listed in
        ``fields`` are written as-is.

        Returns the written row, None when an update matched nothing, and
        None (with a warning) when a field ran out of candidates. Any other
        store error propagates.
        """
        active = {name: candidates for name, candidates in fields.items() if name in payload}
        positions = {name: 0 for name in active}

        while True:
            mapping = {name: active[name][positions[name]] for name in active}
            row = self.to_physical(payload, mapping)
            try:
                if key_column is None:
                    return self.store.insert(table, row)
                return self.store.update(table, row, {key_column: key_value})
            except UnknownColumnError as e:
                field = next((name for name, column in mapping.items() if column == e.column), None)
                if field is None:
                    raise
                positions[field] += 1
                if positions[field] >= len(active[field]):
                    logger.warning(
                        f"Could not write {table}.{field}: no candidate column exists "
                        f"(tried {', '.join(str(c) for c in active[field])})"
                    )
                    return None
                if active[field][positions[field]] is None:
                    logger.warning(f"{table}: no column for {field}, writing without it")
                    continue
                logger.info(
                    f"{table}: column '{e.column}' missing, retrying {field} as "
                    f"'{active[field][positions[field]]}'"
                )
