"""
Tests for the work creation pipeline.

Steps are not atomic across tables, so the failure tests assert exactly
which earlier steps remain applied.
"""

from __future__ import annotations

import pytest

from folio.clock import epoch_millis
from folio.errors import InternalError, StoreError
from folio.services.work_writer import ImageInput, WorkWriter

from conftest import FIXED_NOW, GIF_DATA_URL, PNG_DATA_URL


@pytest.fixture()
def writer(store, blob, clock) -> WorkWriter:
    return WorkWriter(store, blob, clock=clock)


def test_draft_without_tags_or_images(writer, store):
    work = writer.create_work("u1", "T")

    assert work["workId"]
    assert work["status"] == "draft"
    assert work["authorId"] == "u1"
    assert work["created_at"] == FIXED_NOW
    assert work["updatedAt"] == FIXED_NOW
    assert work["publishedAt"] is None
    assert (work["views"], work["likes"]) == (0, 0)
    assert store.select("worktag") == []
    assert store.select("Media") == []


def test_draft_with_store_assigned_id(writer, store, monkeypatch):
    monkeypatch.setattr(store, "insert", lambda name, row: {**row, "workId": "w1"})

    work = writer.create_work("u1", "My First Work", description="desc")

    assert work["workId"] == "w1"
    assert work["status"] == "draft"
    assert work["authorId"] == "u1"
    assert work["created_at"] == FIXED_NOW
    assert work["description"] == "desc"


def test_store_assigned_id_is_used_for_links(writer, store, monkeypatch):
    original_insert = store.insert

    def insert(name, row):
        if name == "Work":
            row = {**row, "workId": "w1"}
        return original_insert(name, row)

    monkeypatch.setattr(store, "insert", insert)

    work = writer.create_work("u1", "T", new_tag_names=["ml"], images=[ImageInput(PNG_DATA_URL)])

    assert work["workId"] == "w1"
    assert [link["workId"] for link in store.select("worktag")] == ["w1"]
    assert [m["workId"] for m in store.select("Media")] == ["w1"]


def test_published_work_gets_published_at(writer):
    work = writer.create_work("u1", "T", status="published")

    assert work["status"] == "published"
    assert work["publishedAt"] == FIXED_NOW


def test_invalid_status_is_rejected(writer, store):
    with pytest.raises(ValueError):
        writer.create_work("u1", "T", status="archived")

    assert store.select("Work") == []


def test_tags_are_created_and_linked(writer, store):
    work = writer.create_work("u1", "T", tag_ids=["t9"], new_tag_names=[" ML ", "IoT", "ml"])

    tag_ids = {r["tagId"]: r["name"] for r in store.select("Tag")}
    assert sorted(tag_ids.values()) == ["iot", "ml"]
    links = store.select("worktag", where={"workId": work["workId"]})
    assert {link["tagId"] for link in links} == {"t9", *tag_ids}


def test_images_are_uploaded_in_order(writer, store, blob):
    work = writer.create_work(
        "u1",
        "T",
        images=[ImageInput(PNG_DATA_URL, "first"), ImageInput(GIF_DATA_URL, "second")],
    )
    work_id = work["workId"]
    millis = epoch_millis(FIXED_NOW)

    media = store.select("Media", where={"workId": work_id}, order_by=["createdAt", "id"])

    assert [m["alttext"] for m in media] == ["first", "second"]
    assert [m["filetype"] for m in media] == ["image/png", "image/gif"]
    assert [m["sizemb"] for m in media] == [1, 1]
    assert media[0]["fileurl"] == f"http://testserver/vault/media/{work_id}/{millis}-0.png"
    assert media[1]["fileurl"] == f"http://testserver/vault/media/{work_id}/{millis}-1.gif"
    assert (blob.root / "media" / work_id / f"{millis}-0.png").is_file()


def test_work_insert_failure_leaves_nothing_behind(writer, store, monkeypatch):
    def broken_insert(name, row):
        raise StoreError(name, "permission denied")

    monkeypatch.setattr(store, "insert", broken_insert)

    with pytest.raises(InternalError, match="Failed to create work: Work: permission denied"):
        writer.create_work("u1", "T", new_tag_names=["ml"], images=[ImageInput(PNG_DATA_URL)])

    assert store.select("Tag") == []
    assert store.select("worktag") == []
    assert store.select("Media") == []


def test_link_failure_keeps_the_work(writer, store, monkeypatch):
    original_insert_many = store.insert_many

    def broken_insert_many(name, rows):
        if name == "worktag":
            raise StoreError(name, "read-only")
        return original_insert_many(name, rows)

    monkeypatch.setattr(store, "insert_many", broken_insert_many)

    with pytest.raises(InternalError, match="Failed to link tags"):
        writer.create_work("u1", "T", new_tag_names=["ml"], images=[ImageInput(PNG_DATA_URL)])

    assert len(store.select("Work")) == 1
    assert len(store.select("Tag")) == 1
    assert store.select("Media") == []


def test_bad_image_keeps_earlier_images(writer, store):
    with pytest.raises(InternalError, match="Failed to upload image"):
        writer.create_work(
            "u1",
            "T",
            images=[ImageInput(PNG_DATA_URL), ImageInput("data:image/png;base64,???")],
        )

    assert len(store.select("Work")) == 1
    assert len(store.select("Media")) == 1


def test_oversized_image_is_rejected(writer, store, monkeypatch):
    monkeypatch.setattr("folio.settings.MAX_IMAGE_SIZE_MB", 0)

    with pytest.raises(InternalError, match="limit is 0 MB"):
        writer.create_work("u1", "T", images=[ImageInput(PNG_DATA_URL)])

    assert store.select("Media") == []
