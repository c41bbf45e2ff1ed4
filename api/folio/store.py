"""Row-oriented storage over SQLAlchemy Core.

The store exposes only single-table statements (insert, update by
equality, filtered select, upsert). Each call runs in its own transaction;
callers that touch several tables get no atomicity across them.

Tables are reflected from the live database unless an explicit MetaData is
supplied, so physical column names are whatever the environment actually has.
Statements that reference a missing column fail with UnknownColumnError
before reaching the database.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import MetaData, Table, and_, func, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, NoSuchTableError, SQLAlchemyError

from .errors import DuplicateKeyError, StoreError, UnknownColumnError

logger = logging.getLogger(__name__)

Row = dict[str, Any]

# SQLSTATE for unique_violation (PostgreSQL)
_PG_UNIQUE_VIOLATION = "23505"
_SQLITE_UNIQUE_ERRORS = {"SQLITE_CONSTRAINT_UNIQUE", "SQLITE_CONSTRAINT_PRIMARYKEY"}


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == _PG_UNIQUE_VIOLATION
    return getattr(orig, "sqlite_errorname", None) in _SQLITE_UNIQUE_ERRORS


class RowStore:
    def __init__(self, engine: Engine, metadata: MetaData | None = None) -> None:
        self.engine = engine
        self._reflect = metadata is None
        self._metadata = metadata if metadata is not None else MetaData()
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def table(self, name: str) -> Table:
        with self._lock:
            existing = self._metadata.tables.get(name)
            if existing is not None:
                return existing
            if not self._reflect:
                raise StoreError(name, "table does not exist")
            try:
                return Table(name, self._metadata, autoload_with=self.engine)
            except NoSuchTableError as e:
                raise StoreError(name, "table does not exist") from e
            except SQLAlchemyError as e:
                raise StoreError(name, str(e)) from e

    def columns(self, name: str) -> list[str]:
        return [c.name for c in self.table(name).columns]

    def _column(self, table: Table, column: str):
        if column not in table.c:
            raise UnknownColumnError(table.name, column)
        return table.c[column]

    def _check_payload(self, table: Table, payload: Mapping[str, Any]) -> None:
        for key in payload:
            self._column(table, key)

    def _conditions(
        self,
        table: Table,
        where: Mapping[str, Any] | None,
        where_in: Mapping[str, Iterable[Any]] | None = None,
        ilike: Mapping[str, str] | None = None,
        where_in_ci: Mapping[str, Iterable[str]] | None = None,
    ) -> list:
        conditions = []
        for key, value in (where or {}).items():
            conditions.append(self._column(table, key) == value)
        for key, values in (where_in or {}).items():
            conditions.append(self._column(table, key).in_(list(values)))
        for key, pattern in (ilike or {}).items():
            conditions.append(self._column(table, key).ilike(pattern))
        for key, values in (where_in_ci or {}).items():
            lowered = [v.lower() for v in values]
            conditions.append(func.lower(self._column(table, key)).in_(lowered))
        return conditions

    def _translate(self, table: str, exc: SQLAlchemyError) -> StoreError:
        message = str(getattr(exc, "orig", None) or exc)
        if isinstance(exc, IntegrityError) and _is_unique_violation(exc):
            return DuplicateKeyError(table, message)
        return StoreError(table, message)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def insert(self, name: str, row: Mapping[str, Any]) -> Row:
        rows = self.insert_many(name, [row])
        return rows[0]

    def insert_many(self, name: str, rows: Sequence[Mapping[str, Any]]) -> list[Row]:
        if not rows:
            return []
        table = self.table(name)
        for row in rows:
            self._check_payload(table, row)
        inserted: list[Row] = []
        try:
            with self.engine.begin() as conn:
                for row in rows:
                    stmt = insert(table).values(**row).returning(*table.c)
                    inserted.append(dict(conn.execute(stmt).mappings().one()))
        except SQLAlchemyError as e:
            raise self._translate(name, e) from e
        return inserted

    def update(self, name: str, values: Mapping[str, Any], where: Mapping[str, Any]) -> Row | None:
        """Update rows matching every equality filter. Returns the first updated row or None."""
        table = self.table(name)
        self._check_payload(table, values)
        conditions = self._conditions(table, where)
        if not conditions:
            raise StoreError(name, "update requires at least one filter")
        stmt = update(table).where(and_(*conditions)).values(**values).returning(*table.c)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise self._translate(name, e) from e
        return dict(result) if result is not None else None

    def select(
        self,
        name: str,
        *,
        columns: Sequence[str] | None = None,
        where: Mapping[str, Any] | None = None,
        where_in: Mapping[str, Iterable[Any]] | None = None,
        ilike: Mapping[str, str] | None = None,
        where_in_ci: Mapping[str, Iterable[str]] | None = None,
        order_by: Sequence[str] = (),
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        table = self.table(name)
        selected = [self._column(table, c) for c in columns] if columns else list(table.c)
        stmt = select(*selected)
        conditions = self._conditions(table, where, where_in, ilike, where_in_ci)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        for key in order_by:
            column = self._column(table, key)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            with self.engine.connect() as conn:
                return [dict(r) for r in conn.execute(stmt).mappings().all()]
        except SQLAlchemyError as e:
            raise self._translate(name, e) from e

    def select_one(self, name: str, **kwargs: Any) -> Row | None:
        rows = self.select(name, limit=1, **kwargs)
        return rows[0] if rows else None

    def upsert(self, name: str, row: Mapping[str, Any], conflict: str) -> Row:
        """Insert a row, replacing the existing one when the conflict key matches."""
        table = self.table(name)
        self._check_payload(table, row)
        self._column(table, conflict)
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert as dialect_insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert as dialect_insert
        else:
            return self._upsert_generic(name, row, conflict)

        stmt = dialect_insert(table).values(**row)
        replace = {k: stmt.excluded[k] for k in row if k != conflict}
        if replace:
            stmt = stmt.on_conflict_do_update(index_elements=[conflict], set_=replace)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=[conflict])
        stmt = stmt.returning(*table.c)
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise self._translate(name, e) from e
        if result is None:
            return dict(row)
        return dict(result)

    def _upsert_generic(self, name: str, row: Mapping[str, Any], conflict: str) -> Row:
        values = {k: v for k, v in row.items() if k != conflict}
        updated = self.update(name, values, {conflict: row[conflict]}) if values else None
        if updated is not None:
            return updated
        try:
            return self.insert(name, row)
        except DuplicateKeyError:
            # Lost a race against a concurrent insert of the same key
            updated = self.update(name, values, {conflict: row[conflict]}) if values else None
            return updated or dict(row)
