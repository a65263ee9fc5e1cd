import sqlite3

import pytest

import db
from config import Config
from errors import TransportFailure


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return db.MemoryStorage()
    s = db.SqliteStorage(tmp_path / "kv.db")
    s.create_tables()
    return s


def test_put_get_delete(store):
    store.put("fishers", "F1", {"fisher_id": "F1", "name": "Ali"})
    assert store.get("fishers", "F1") == {"fisher_id": "F1", "name": "Ali"}

    store.put("fishers", "F1", {"fisher_id": "F1", "name": "Ali B."})
    assert store.get("fishers", "F1")["name"] == "Ali B."

    assert store.delete("fishers", "F1") is True
    assert store.get("fishers", "F1") is None
    assert store.delete("fishers", "F1") is False


def test_all_keeps_insertion_order_on_update(store):
    for key in ("b", "a", "c"):
        store.put("catches", key, {"id": key})
    store.put("catches", "b", {"id": "b", "x": 1})
    assert [r["id"] for r in store.all("catches")] == ["b", "a", "c"]


def test_unicode_values_survive(store):
    store.put("fishers", "F1001", {"name": "محمد أمين"})
    assert store.get("fishers", "F1001")["name"] == "محمد أمين"


def test_unknown_table_rejected(store):
    with pytest.raises(KeyError):
        store.put("members", "1", {})


def test_transaction_rolls_back_on_error(store):
    store.put("fishers", "F1", {"v": 1})
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.put("fishers", "F1", {"v": 2})
            store.put("renewals", "T1", {"transaction_id": "T1"})
            raise RuntimeError("boom")
    assert store.get("fishers", "F1") == {"v": 1}
    assert store.get("renewals", "T1") is None


def test_transaction_commits(store):
    with store.transaction():
        store.put("renewals", "T1", {"transaction_id": "T1"})
        store.put("fishers", "F1", {"v": 3})
    assert store.get("renewals", "T1") == {"transaction_id": "T1"}
    assert store.get("fishers", "F1") == {"v": 3}


def test_sqlite_errors_become_transport_failure(tmp_path):
    s = db.SqliteStorage(tmp_path / "missing" / "dir" / "x.db")
    with pytest.raises(TransportFailure):
        s.get("fishers", "F1")


def test_sqlite_missing_tables_become_transport_failure(tmp_path):
    s = db.SqliteStorage(tmp_path / "empty.db")
    with pytest.raises(TransportFailure) as info:
        s.all("fishers")
    assert isinstance(info.value.__cause__, sqlite3.Error)


def test_init_db_seeds_once(storage, password_hash):
    emails = sorted(u["email"] for u in storage.all("users"))
    assert emails == ["admin@port.com", "csns@port.com", "nfc@port.com"]
    assert [f["fisher_id"] for f in storage.all("fishers")] == ["F1001", "F1002"]

    storage.delete("fishers", "F1002")
    db.init_db(storage, password_hash)
    # fishers are only seeded into an empty table
    assert [f["fisher_id"] for f in storage.all("fishers")] == ["F1001"]


def test_open_storage_picks_backend(tmp_path):
    class MemoryConfig(Config):
        STORAGE = "memory"

    class SqliteConfig(Config):
        STORAGE = "sqlite"
        DB_PATH = str(tmp_path / "cfg.db")

    class BadConfig(Config):
        STORAGE = "postgres"

    assert isinstance(db.open_storage(MemoryConfig), db.MemoryStorage)
    s = db.open_storage(SqliteConfig)
    assert isinstance(s, db.SqliteStorage)
    assert s.all("users") == []
    with pytest.raises(ValueError):
        db.open_storage(BadConfig)
