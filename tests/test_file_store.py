from __future__ import annotations

import pytest
from sqlalchemy import inspect

from dosharness.config import StoreConfig
from dosharness.errors import StoreVersionError
from dosharness.storage.file_store import PersistentFileStore, dispose_engines


def test_store_created_on_first_access(tmp_path) -> None:
    config = StoreConfig(url=f"sqlite:///{tmp_path / 'nested' / 'store.sqlite3'}")

    store = PersistentFileStore.open(config)

    assert (tmp_path / "nested" / "store.sqlite3").exists()
    assert store.paths() == []
    tables = inspect(store._engine).get_table_names()
    assert "FILE_DATA" in tables
    assert "store_meta" in tables


def test_records_survive_reopen(store_config) -> None:
    PersistentFileStore.open(store_config).put("/game/save.dat", b"\x01\x02\x03")
    dispose_engines()

    record = PersistentFileStore.open(store_config).get("/game/save.dat")

    assert record is not None
    assert record.contents == b"\x01\x02\x03"
    assert record.mode == 0o100644


def test_put_overwrites_and_delete_removes(store_config) -> None:
    store = PersistentFileStore.open(store_config)
    store.put("/game/a", b"one")
    store.put("/game/a", b"two")

    assert store.get("/game/a").contents == b"two"
    assert store.delete("/game/a") is True
    assert store.delete("/game/a") is False
    assert store.get("/game/a") is None


def test_replace_all_mirrors_files(store_config) -> None:
    store = PersistentFileStore.open(store_config)
    store.put("/game/old.sav", b"old")
    store.put("/game/keep.sav", b"v1")

    store.replace_all({"/game/keep.sav": b"v2", "/game/new.sav": b"new"})

    assert store.paths() == ["/game/keep.sav", "/game/new.sav"]
    assert store.get("/game/keep.sav").contents == b"v2"


def test_stores_with_different_names_are_isolated(store_config) -> None:
    game = PersistentFileStore.open(store_config)
    other = PersistentFileStore.open(store_config.model_copy(update={"name": "/other"}))

    game.put("/game/a", b"a")
    other.replace_all({})

    assert game.paths() == ["/game/a"]
    assert other.get("/game/a") is None


def test_older_requested_version_is_rejected(store_config) -> None:
    PersistentFileStore.open(store_config.model_copy(update={"version": 22}))

    with pytest.raises(StoreVersionError):
        PersistentFileStore.open(store_config.model_copy(update={"version": 21}))


def test_newer_requested_version_upgrades(store_config) -> None:
    PersistentFileStore.open(store_config.model_copy(update={"version": 20})).put("/game/x", b"x")

    upgraded = PersistentFileStore.open(store_config)

    assert upgraded.get("/game/x").contents == b"x"
    with pytest.raises(StoreVersionError):
        PersistentFileStore.open(store_config.model_copy(update={"version": 20}))
