"""Tests for TechImagesStore (DuckDB)."""
from datetime import datetime

import pytest

from app.tech_images.schemas import TechImagesRecord
from app.tech_images.store import TechImagesStore

from .conftest import OTHER_TECH_ID, TECH_ID


class TestTechImagesStore:
    """Tests for record creation, append, replace and delete."""

    def test_find_missing_returns_none(self, store):
        assert store.find_by_technician(TECH_ID) is None
        assert store.find_all_by_technician(TECH_ID) == []

    def test_upsert_creates_record(self, store):
        record = store.upsert_append(TECH_ID, ["https://cdn/a.jpg"])

        assert isinstance(record, TechImagesRecord)
        assert record.technician_id == TECH_ID
        assert record.image_urls == ["https://cdn/a.jpg"]
        assert isinstance(record.created_at, datetime)

    def test_upsert_appends_preserving_order(self, store):
        first = store.upsert_append(TECH_ID, ["https://cdn/a.jpg", "https://cdn/b.jpg"])
        second = store.upsert_append(TECH_ID, ["https://cdn/c.jpg"])

        assert second.id == first.id
        assert second.image_urls == ["https://cdn/a.jpg", "https://cdn/b.jpg", "https://cdn/c.jpg"]
        assert len(store.find_all_by_technician(TECH_ID)) == 1

    def test_upsert_rejects_empty_list(self, store):
        with pytest.raises(ValueError):
            store.upsert_append(TECH_ID, [])
        assert store.find_by_technician(TECH_ID) is None

    def test_records_are_per_technician(self, store):
        store.upsert_append(TECH_ID, ["https://cdn/a.jpg"])
        store.upsert_append(OTHER_TECH_ID, ["https://cdn/b.jpg"])

        assert store.find_by_technician(TECH_ID).image_urls == ["https://cdn/a.jpg"]
        assert store.find_by_technician(OTHER_TECH_ID).image_urls == ["https://cdn/b.jpg"]

    def test_replace_urls(self, store):
        record = store.upsert_append(TECH_ID, ["https://cdn/a.jpg", "https://cdn/b.jpg"])

        updated = store.replace_urls(record.id, ["https://cdn/b.jpg"])

        assert updated.image_urls == ["https://cdn/b.jpg"]
        assert updated.updated_at >= record.updated_at

    def test_replace_urls_rejects_empty_list(self, store):
        record = store.upsert_append(TECH_ID, ["https://cdn/a.jpg"])
        with pytest.raises(ValueError):
            store.replace_urls(record.id, [])

    def test_delete_record(self, store):
        record = store.upsert_append(TECH_ID, ["https://cdn/a.jpg"])

        assert store.delete(record.id) is True
        assert store.delete(record.id) is False
        assert store.get(record.id) is None

    def test_delete_by_technician_counts_rows(self, store):
        store.upsert_append(TECH_ID, ["https://cdn/a.jpg"])
        store.upsert_append(OTHER_TECH_ID, ["https://cdn/b.jpg"])

        assert store.delete_by_technician(TECH_ID) == 1
        assert store.delete_by_technician(TECH_ID) == 0
        assert store.find_by_technician(OTHER_TECH_ID) is not None

    def test_data_survives_reopen(self, tmp_path):
        db_path = str(tmp_path / "reopen.duckdb")
        first = TechImagesStore(db_path=db_path)
        first.upsert_append(TECH_ID, ["https://cdn/a.jpg"])
        first.close()

        second = TechImagesStore(db_path=db_path)
        try:
            assert second.find_by_technician(TECH_ID).image_urls == ["https://cdn/a.jpg"]
        finally:
            second.close()


class TestSingleton:
    """Tests for the get_instance/reset_instance pair."""

    def test_get_instance_is_cached(self, tmp_path):
        TechImagesStore.reset_instance()
        try:
            a = TechImagesStore.get_instance(str(tmp_path / "singleton.duckdb"))
            b = TechImagesStore.get_instance()
            assert a is b
        finally:
            TechImagesStore.reset_instance()
