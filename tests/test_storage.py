"""
JsonFileStore round trips through disk and keeps prior state on failures.
"""

import asyncio
import json
import logging

import pytest

from antigravity_usage.core.errors import PersistenceError
from antigravity_usage.usage.storage import JsonFileStore, MemoryStore


def test_missing_file_starts_empty(tmp_path):
    store = JsonFileStore(tmp_path / "state.json")
    assert store.get("usageHistory", []) == []


def test_update_persists_and_reloads(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = JsonFileStore(path)
    asyncio.run(store.update("lastQuotas", {"gemini": 0.5}))

    assert json.loads(path.read_text(encoding="utf-8")) == {"lastQuotas": {"gemini": 0.5}}
    assert JsonFileStore(path).get("lastQuotas") == {"gemini": 0.5}
    assert not [p for p in path.parent.iterdir() if p.name.endswith(".tmp")]


def test_get_returns_copies(tmp_path):
    store = JsonFileStore(tmp_path / "state.json")
    asyncio.run(store.update("lastQuotas", {"a": 1.0}))
    value = store.get("lastQuotas")
    value["a"] = 0.0
    assert store.get("lastQuotas") == {"a": 1.0}


def test_corrupt_file_starts_empty_and_is_replaced(tmp_path, caplog):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    with caplog.at_level(logging.ERROR, logger="antigravity_usage"):
        store = JsonFileStore(path)
    assert store.get("usageHistory", []) == []
    assert "Failed to read" in caplog.text

    asyncio.run(store.update("lastQuotas", {"a": 1.0}))
    assert json.loads(path.read_text(encoding="utf-8")) == {"lastQuotas": {"a": 1.0}}


def test_non_object_document_starts_empty(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2]", encoding="utf-8")
    assert JsonFileStore(path).get("lastQuotas") is None


def test_unserializable_value_keeps_previous_state(tmp_path):
    path = tmp_path / "state.json"
    store = JsonFileStore(path)
    asyncio.run(store.update("lastQuotas", {"a": 1.0}))

    with pytest.raises(PersistenceError):
        asyncio.run(store.update("lastQuotas", {"a": object()}))

    assert store.get("lastQuotas") == {"a": 1.0}
    assert json.loads(path.read_text(encoding="utf-8")) == {"lastQuotas": {"a": 1.0}}


def test_memory_store_isolated_copies():
    store = MemoryStore({"k": [1]})
    value = store.get("k")
    value.append(2)
    assert store.get("k") == [1]
    assert store.get("missing", "default") == "default"
