"""Tests for the flat-file record store."""

import json
import re

from clientdesk.storage import JSONFileStore, generate_id


class TestGetAll:

    def test_missing_file_is_empty(self, tmp_path):
        store = JSONFileStore(str(tmp_path / "nowhere"))
        assert store.get_all("clients") == []

    def test_corrupt_file_is_empty(self, tmp_path):
        (tmp_path / "clients.json").write_text("{not json")
        assert JSONFileStore(str(tmp_path)).get_all("clients") == []

    def test_non_array_is_empty(self, tmp_path):
        (tmp_path / "clients.json").write_text('{"id": "1"}')
        assert JSONFileStore(str(tmp_path)).get_all("clients") == []

    def test_reads_existing_records(self, tmp_path):
        records = [{"id": "1", "name": "A"}, {"id": "2", "name": "B"}]
        (tmp_path / "clients.json").write_text(json.dumps(records))
        assert JSONFileStore(str(tmp_path)).get_all("clients") == records


class TestWrites:

    def test_create_assigns_id_and_timestamps(self, store):
        record = store.create("clients", {"id": "", "name": "Acme", "createdAt": None})
        assert record["id"]
        assert record["name"] == "Acme"
        assert record["createdAt"]
        assert record["updatedAt"] == record["createdAt"]
        assert store.find_by_id("clients", record["id"]) == record

    def test_create_keeps_given_timestamps(self, store):
        record = store.create("clients", {"createdAt": "2025-01-01T00:00:00+00:00"})
        assert record["createdAt"] == "2025-01-01T00:00:00+00:00"

    def test_create_writes_directory_on_demand(self, store, data_dir):
        assert not data_dir.exists()
        store.create("projects", {"title": "P"})
        assert (data_dir / "projects.json").exists()

    def test_ids_unique(self, store):
        ids = {store.create("clients", {"n": i})["id"] for i in range(20)}
        assert len(ids) == 20

    def test_update_merges(self, store):
        record = store.create("clients", {"name": "Acme", "phone": "1"})
        updated = store.update("clients", record["id"], {"phone": "2", "id": "other"})
        assert updated["name"] == "Acme"
        assert updated["phone"] == "2"
        assert updated["id"] == record["id"]

    def test_update_missing_returns_none(self, store):
        assert store.update("clients", "nope", {"name": "x"}) is None

    def test_delete(self, store):
        record = store.create("clients", {"name": "Acme"})
        assert store.delete("clients", record["id"]) is True
        assert store.delete("clients", record["id"]) is False
        assert store.get_all("clients") == []

    def test_describe_counts(self, store):
        store.create("clients", {"name": "Acme"})
        info = store.describe()
        assert info["backend"] == "JSONFileStore"
        assert info["collections"]["clients"] == 1
        assert info["collections"]["invoices"] == 0


def test_generate_id_format():
    assert re.fullmatch(r"\d{13}[0-9a-z]{9}", generate_id())
