"""Tests for the row store: single-table statements and error translation."""

from __future__ import annotations

import pytest
from sqlalchemy import Column, MetaData, String, Table

from folio.errors import DuplicateKeyError, StoreError, UnknownColumnError
from folio.store import RowStore


def test_insert_returns_persisted_row_with_defaults(store):
    row = store.insert("Tag", {"name": "ml"})

    assert row["name"] == "ml"
    assert row["tagId"]  # generated
    assert store.select_one("Tag", where={"name": "ml"}) == row


def test_insert_unknown_column_fails_before_reaching_database(store):
    with pytest.raises(UnknownColumnError) as exc_info:
        store.insert("Tag", {"name": "ml", "colour": "red"})

    assert exc_info.value.column == "colour"
    assert exc_info.value.table == "Tag"
    assert store.select("Tag") == []


def test_duplicate_unique_value_raises_duplicate_key(store):
    store.insert("Tag", {"name": "ml"})

    with pytest.raises(DuplicateKeyError):
        store.insert("Tag", {"name": "ml"})


def test_insert_many_is_one_transaction(store):
    store.insert("worktag", {"workId": "w1", "tagId": "t1"})

    with pytest.raises(DuplicateKeyError):
        store.insert_many(
            "worktag",
            [{"workId": "w1", "tagId": "t2"}, {"workId": "w1", "tagId": "t1"}],
        )

    assert [r["tagId"] for r in store.select("worktag")] == ["t1"]


def test_update_returns_none_when_nothing_matches(store):
    assert store.update("users", {"role": "admin"}, {"id": "nobody"}) is None


def test_update_requires_a_filter(store):
    with pytest.raises(StoreError):
        store.update("users", {"role": "admin"}, {})


def test_update_returns_updated_row(store):
    store.insert("users", {"id": "u1", "email": "a@example.com"})

    updated = store.update("users", {"role": "admin"}, {"id": "u1"})

    assert updated["role"] == "admin"
    assert updated["email"] == "a@example.com"


def test_upsert_replaces_on_conflict(store):
    store.upsert("users", {"id": "u1", "full_name": "Ana"}, conflict="id")
    store.upsert("users", {"id": "u1", "full_name": "Ana B"}, conflict="id")

    rows = store.select("users")
    assert len(rows) == 1
    assert rows[0]["full_name"] == "Ana B"


def test_select_filters_and_orders(store):
    for name in ("robotics", "ml", "iot", "mlops"):
        store.insert("Tag", {"name": name})

    names = [r["name"] for r in store.select("Tag", ilike={"name": "%ML%"}, order_by=["name"])]
    assert names == ["ml", "mlops"]

    names = [
        r["name"]
        for r in store.select("Tag", where_in={"name": ["iot", "robotics"]}, order_by=["name"], descending=True)
    ]
    assert names == ["robotics", "iot"]

    assert len(store.select("Tag", limit=2)) == 2


def test_missing_table_raises_store_error(engine):
    store = RowStore(engine, metadata=MetaData())

    with pytest.raises(StoreError):
        store.select("Tag")


def test_reflection_sees_live_physical_columns(engine):
    metadata = MetaData()
    Table(
        "Profile",
        metadata,
        Column("id", String(64), primary_key=True),
        Column("avaterUrl", String(1000)),
    )
    metadata.create_all(engine)

    store = RowStore(engine)

    assert store.columns("Profile") == ["id", "avaterUrl"]
    with pytest.raises(StoreError):
        store.columns("DoesNotExist")


def test_case_insensitive_membership(store):
    for name in ("ML", "iot", "Robotics"):
        store.insert("Tag", {"name": name})

    names = [r["name"] for r in store.select("Tag", where_in_ci={"name": ["ml", "ROBOTICS"]}, order_by=["name"])]

    assert names == ["ML", "Robotics"]
