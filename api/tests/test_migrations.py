"""Test the alembic migrations against a scratch database."""

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from folio.db import build_engine
from folio.identity import Identity
from folio.services.aggregator import WorkAggregator
from folio.services.profiles import ProfileService
from folio.services.tags import TagResolver
from folio.services.work_writer import ImageInput, WorkWriter
from folio.store import RowStore

from conftest import PNG_DATA_URL

API_DIR = Path(__file__).resolve().parents[1]


def _config(url: str) -> Config:
    config = Config()
    config.set_main_option("script_location", str(API_DIR / "alembic"))
    config.set_main_option("sqlalchemy.url", url)
    return config


def test_upgrade_and_downgrade(tmp_path):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    engine = build_engine(url)

    command.upgrade(_config(url), "head")
    tables = set(inspect(engine).get_table_names())
    assert {"users", "Profile", "Work", "Tag", "worktag", "Media"} <= tables
    profile_columns = {c["name"] for c in inspect(engine).get_columns("Profile")}
    assert {"userID", "displayName", "avatarUrl", "updatedAt"} <= profile_columns

    command.downgrade(_config(url), "base")
    assert "Profile" not in set(inspect(engine).get_table_names())
    engine.dispose()


def test_reflected_schema_supports_reconciliation(tmp_path, blob, clock):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    command.upgrade(_config(url), "head")
    engine = build_engine(url)
    store = RowStore(engine)

    ProfileService(store, blob, clock=clock).reconcile(
        Identity(id="u1", email="ana@example.com", metadata={"full_name": "Ana"})
    )

    assert store.select_one("Profile", where={"userID": "u1"})["displayName"] == "Ana"
    engine.dispose()


def _migrated_store(tmp_path) -> RowStore:
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    command.upgrade(_config(url), "head")
    return RowStore(build_engine(url))


def test_create_work_on_migrated_schema(tmp_path, blob, clock):
    store = _migrated_store(tmp_path)

    work = WorkWriter(store, blob, clock=clock).create_work(
        "u1", "My First Work", description="desc", new_tag_names=[" ML ", "iot"], images=[ImageInput(PNG_DATA_URL)]
    )

    work_id = work["workId"]
    assert work_id
    assert len(store.select("worktag", where={"workId": work_id})) == 2
    assert len(store.select("Media", where={"workId": work_id})) == 1

    detail = WorkAggregator(store, blob).aggregate_one(work)
    assert detail["thumbnail"].startswith(f"http://testserver/vault/media/{work_id}/")
    assert "?token=" in detail["thumbnail"]
    assert sorted(t["name"] for t in detail["tags"]) == ["iot", "ml"]
    store.engine.dispose()


def test_resolve_tags_on_migrated_schema(tmp_path):
    store = _migrated_store(tmp_path)

    ids = TagResolver(store).resolve_tags([], [" ML ", "ml", ""])

    assert len(ids) == 1
    assert [row["name"] for row in store.select("Tag")] == ["ml"]
    assert None not in ids
    store.engine.dispose()
