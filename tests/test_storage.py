import json
import os

import pytest

from process_lca.storage import KeyValueStore


def test_memory_store_roundtrip():
    store = KeyValueStore(None)
    store.set("k", {"a": 1})
    assert store.get("k") == {"a": 1}
    assert "k" in store
    store.remove("k")
    assert store.get("k", "default") == "default"


def test_file_store_persists(tmp_path):
    path = str(tmp_path / "nested" / "store.json")
    KeyValueStore(path).set("sel", "Solar PV")
    assert KeyValueStore(path).get("sel") == "Solar PV"


@pytest.mark.parametrize("content", ["{broken", "[1, 2]", ""])
def test_unreadable_file_is_empty(tmp_path, content):
    path = tmp_path / "store.json"
    path.write_text(content, encoding="utf-8")
    assert KeyValueStore(str(path)).get("anything") is None


def test_failed_write_keeps_previous_snapshot(tmp_path):
    path = tmp_path / "store.json"
    store = KeyValueStore(str(path))
    store.set("ok", 1)
    with pytest.raises(TypeError):
        store.set("bad", object())
    assert json.loads(path.read_text(encoding="utf-8")) == {"ok": 1}
    assert store.get("bad") is None
    assert [p for p in os.listdir(tmp_path) if p.startswith(".store_")] == []
