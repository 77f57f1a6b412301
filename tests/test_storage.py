import os

import pytest

from ecosort.exceptions import LedgerWriteError
from ecosort.utils.storage import JsonFileStore, MemoryStore


def test_memory_store():
    store = MemoryStore({"a": "1"})
    assert store.get("a") == "1"
    store.set("b", "2")
    store.delete("a")
    store.delete("missing")
    assert store.get("a") is None
    assert store.get("b") == "2"


def test_json_file_store_round_trip(tmp_path):
    store = JsonFileStore(str(tmp_path / "data"))
    assert store.get("history") is None

    store.set("history", '[{"id": 1}]')
    assert store.get("history") == '[{"id": 1}]'
    assert (tmp_path / "data" / "history.json").exists()

    store.delete("history")
    store.delete("history")
    assert store.get("history") is None


def test_json_file_store_sanitizes_keys(tmp_path):
    store = JsonFileStore(str(tmp_path))
    store.set("../escape attempt", "x")
    assert store.get("../escape attempt") == "x"
    assert not (tmp_path.parent / "escape attempt.json").exists()


def test_json_file_store_write_failure(tmp_path, monkeypatch):
    store = JsonFileStore(str(tmp_path))

    def failing_replace(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr(os, "replace", failing_replace)
    with pytest.raises(LedgerWriteError):
        store.set("history", "[]")


def test_failed_write_leaves_no_temp_file(tmp_path, monkeypatch):
    store = JsonFileStore(str(tmp_path))
    store.set("history", "[]")

    def failing_replace(src, dst):
        raise OSError("read-only file system")

    monkeypatch.setattr(os, "replace", failing_replace)
    with pytest.raises(LedgerWriteError):
        store.set("history", "[1]")

    assert sorted(p.name for p in tmp_path.iterdir()) == ["history.json"]
    assert store.get("history") == "[]"
