"""
Tests for the credential stores.
"""

import json

from lulemo.client.store import PIN_KEY, JsonFileCredentialStore, MemoryCredentialStore


class TestMemoryCredentialStore:
    def test_get_set_remove(self):
        store = MemoryCredentialStore({"a": "1"})
        assert store.get("a") == "1"
        store.set("b", "2")
        assert store.get("b") == "2"
        store.remove("a")
        store.remove("missing")
        assert store.get("a") is None


class TestJsonFileCredentialStore:
    def test_persists_across_instances(self, tmp_path):
        path = tmp_path / "device" / "credentials.json"
        JsonFileCredentialStore(path).set(PIN_KEY, "record")
        assert JsonFileCredentialStore(path).get(PIN_KEY) == "record"
        assert json.loads(path.read_text()) == {PIN_KEY: "record"}

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileCredentialStore(tmp_path / "none.json").get(PIN_KEY) is None

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text("{not json")
        store = JsonFileCredentialStore(path)
        assert store.get(PIN_KEY) is None
        store.set(PIN_KEY, "fresh")
        assert store.get(PIN_KEY) == "fresh"

    def test_non_string_values_are_dropped(self, tmp_path):
        path = tmp_path / "credentials.json"
        path.write_text(json.dumps({PIN_KEY: 1234, "other": "ok"}))
        store = JsonFileCredentialStore(path)
        assert store.get(PIN_KEY) is None
        assert store.get("other") == "ok"

    def test_remove(self, tmp_path):
        store = JsonFileCredentialStore(tmp_path / "credentials.json")
        store.set("a", "1")
        store.set("b", "2")
        store.remove("a")
        assert store.get("a") is None
        assert store.get("b") == "2"
        assert not (tmp_path / "credentials.json.tmp").exists()
