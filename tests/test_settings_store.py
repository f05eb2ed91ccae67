from __future__ import annotations

import asyncio
import concurrent.futures

import pytest

from classpages.core.settings import (
    SPELL_LISTS,
    SUBCLASS_LABELS,
    InvalidSettingValueError,
    JsonFileKeyValueStore,
    MemoryKeyValueStore,
    SettingsPersistenceGateway,
    SettingsStoreError,
    UnknownSettingError,
)


def test_missing_value_returns_registered_default():
    gw = SettingsPersistenceGateway(MemoryKeyValueStore())
    assert asyncio.run(gw.get(SPELL_LISTS)) == {}
    assert asyncio.run(gw.get("spells-sources")) == []


def test_wrongly_typed_value_falls_back_to_default():
    gw = SettingsPersistenceGateway(MemoryKeyValueStore({"class-pages": {SPELL_LISTS: ["not", "a", "map"]}}))
    assert asyncio.run(gw.get(SPELL_LISTS)) == {}


def test_default_is_a_fresh_copy():
    gw = SettingsPersistenceGateway(MemoryKeyValueStore())
    first = asyncio.run(gw.get(SUBCLASS_LABELS))
    first["wizard"] = "mutated"
    assert asyncio.run(gw.get(SUBCLASS_LABELS)) == {}


def test_unknown_key_is_rejected():
    gw = SettingsPersistenceGateway(MemoryKeyValueStore())
    with pytest.raises(UnknownSettingError):
        asyncio.run(gw.get("world-map"))
    with pytest.raises(UnknownSettingError):
        asyncio.run(gw.set("world-map", {}))


def test_set_validates_type_and_serializability():
    gw = SettingsPersistenceGateway(MemoryKeyValueStore())
    with pytest.raises(InvalidSettingValueError):
        asyncio.run(gw.set(SPELL_LISTS, ["x"]))
    with pytest.raises(InvalidSettingValueError):
        asyncio.run(gw.set(SPELL_LISTS, {"A": {1, 2}}))


def test_set_returns_ack():
    gw = SettingsPersistenceGateway(MemoryKeyValueStore())
    ack = asyncio.run(gw.set(SPELL_LISTS, {"A": ["x"]}))
    assert ack.namespace == "class-pages"
    assert ack.key == SPELL_LISTS
    assert ack.updated_ts.endswith("Z")


def test_json_file_store_persists_across_instances(tmp_path):
    path = tmp_path / ".classpages" / "settings.json"
    gw = SettingsPersistenceGateway(JsonFileKeyValueStore(path))
    asyncio.run(gw.set(SPELL_LISTS, {"A": ["x", "y"]}))

    reopened = SettingsPersistenceGateway(JsonFileKeyValueStore(path))
    assert asyncio.run(reopened.get(SPELL_LISTS)) == {"A": ["x", "y"]}


def test_corrupt_settings_file_raises(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{broken", encoding="utf-8")
    with pytest.raises(SettingsStoreError):
        JsonFileKeyValueStore(path).read("class-pages", SPELL_LISTS)


def test_concurrent_writes_to_different_keys_all_persist(tmp_path):
    store = JsonFileKeyValueStore(tmp_path / "settings.json")

    def write(i: int):
        store.write("class-pages", f"key-{i}", {"i": i})

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(write, range(8)))

    assert all(store.read("class-pages", f"key-{i}") == {"i": i} for i in range(8))


def test_independent_store_instances_do_not_lose_writes(tmp_path):
    # Separate instances share no in-process lock, like separate workers.
    path = tmp_path / "settings.json"

    def write(i: int):
        JsonFileKeyValueStore(path).write("class-pages", f"key-{i}", {"i": i})

    with concurrent.futures.ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(write, range(16)))

    store = JsonFileKeyValueStore(path)
    assert all(store.read("class-pages", f"key-{i}") == {"i": i} for i in range(16))
    assert (tmp_path / "settings.json.lock").exists()
