"""
db.py
Storage layer: a small key/value interface over five tables, with a SQLite
backend (one row per record, JSON value) and an in-memory backend used by tests.
Also creates the tables and inserts the seed users/fishers.
"""

from __future__ import annotations

import copy
import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from errors import TransportFailure

logger = logging.getLogger(__name__)

# table name -> primary key field
TABLES = {
    "users": "email",
    "fishers": "fisher_id",
    "catches": "id",
    "nfc_logs": "log_id",
    "renewals": "transaction_id",
}


def _check_table(table: str) -> None:
    if table not in TABLES:
        raise KeyError(f"unknown table: {table}")


class Storage:
    """
    get/put/delete by key, plus `all` (store order) and `transaction()`.
    Keys are strings; records are plain dicts.
    """

    def get(self, table: str, key: str) -> dict | None:
        raise NotImplementedError

    def put(self, table: str, key: str, record: dict) -> None:
        raise NotImplementedError

    def delete(self, table: str, key: str) -> bool:
        raise NotImplementedError

    def all(self, table: str) -> list[dict]:
        raise NotImplementedError

    def transaction(self):
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self):
        self._tables: dict[str, dict[str, dict]] = {name: {} for name in TABLES}

    def get(self, table, key):
        _check_table(table)
        row = self._tables[table].get(str(key))
        return copy.deepcopy(row) if row is not None else None

    def put(self, table, key, record):
        _check_table(table)
        self._tables[table][str(key)] = copy.deepcopy(record)

    def delete(self, table, key):
        _check_table(table)
        return self._tables[table].pop(str(key), None) is not None

    def all(self, table):
        _check_table(table)
        return [copy.deepcopy(r) for r in self._tables[table].values()]

    @contextmanager
    def transaction(self):
        snapshot = copy.deepcopy(self._tables)
        try:
            yield self
        except BaseException:
            self._tables = snapshot
            raise


class SqliteStorage(Storage):
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._tx: sqlite3.Connection | None = None

    @contextmanager
    def _conn(self):
        # inside transaction(): reuse its connection, commit happens there
        if self._tx is not None:
            try:
                yield self._tx
            except sqlite3.Error as exc:
                raise TransportFailure(str(exc)) from exc
            return

        try:
            conn = sqlite3.connect(self.path, check_same_thread=False)
        except sqlite3.Error as exc:
            logger.error("Cannot open database %s: %s", self.path, exc)
            raise TransportFailure(str(exc)) from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            logger.error("Database error on %s: %s", self.path, exc)
            raise TransportFailure(str(exc)) from exc
        finally:
            conn.close()

    @contextmanager
    def transaction(self):
        if self._tx is not None:
            yield self
            return
        try:
            conn = sqlite3.connect(self.path, check_same_thread=False)
        except sqlite3.Error as exc:
            raise TransportFailure(str(exc)) from exc
        conn.row_factory = sqlite3.Row
        self._tx = conn
        try:
            yield self
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("Transaction failed on %s: %s", self.path, exc)
            raise TransportFailure(str(exc)) from exc
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._tx = None
            conn.close()

    def create_tables(self) -> None:
        with self._conn() as conn:
            for table in TABLES:
                conn.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {table} (
                        key TEXT PRIMARY KEY,
                        value TEXT NOT NULL,
                        updated_at TEXT NOT NULL
                    )
                    """
                )

    def get(self, table, key):
        _check_table(table)
        with self._conn() as conn:
            row = conn.execute(f"SELECT value FROM {table} WHERE key = ?", (str(key),)).fetchone()
        return json.loads(row["value"]) if row else None

    def put(self, table, key, record):
        _check_table(table)
        now = datetime.utcnow().isoformat(timespec="seconds")
        with self._conn() as conn:
            conn.execute(
                f"""
                INSERT INTO {table}(key, value, updated_at) VALUES(?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                """,
                (str(key), json.dumps(record, ensure_ascii=False), now),
            )

    def delete(self, table, key):
        _check_table(table)
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {table} WHERE key = ?", (str(key),))
            return cur.rowcount > 0

    def all(self, table):
        _check_table(table)
        with self._conn() as conn:
            rows = conn.execute(f"SELECT value FROM {table} ORDER BY rowid").fetchall()
        return [json.loads(r["value"]) for r in rows]


def open_storage(config) -> Storage:
    """Build the single backing store configured for this deployment."""
    kind = (config.STORAGE or "sqlite").lower()
    if kind == "memory":
        return MemoryStorage()
    if kind == "sqlite":
        storage = SqliteStorage(config.DB_PATH)
        storage.create_tables()
        return storage
    raise ValueError(f"unsupported storage backend: {config.STORAGE}")


SEED_USERS = [
    ("nfc@port.com", "موظف الأمن", "NFC_OPERATOR"),
    ("admin@port.com", "مسؤول الحسابات", "ADMIN"),
    ("csns@port.com", "موظف التأمين", "CSNS_OPERATOR"),
]

SEED_FISHERS = [
    ("F1001", "04:a1:b2:c3", "محمد أمين", "لؤلؤة البحر", "2025-12-31"),
    ("F1002", "04:d4:e5:f6", "ياسر", "الخيرات", "2023-01-01"),
]


def init_db(storage: Storage, default_password_hash: str) -> None:
    """
    Initialize the store.
    - Insert the three seed users if missing
    - Insert the two demo fishers when the fisher table is empty
    """
    for email, name, role in SEED_USERS:
        if storage.get("users", email) is None:
            storage.put(
                "users",
                email,
                {"email": email, "name": name, "role": role, "password_hash": default_password_hash},
            )
            logger.info("Seeded user %s", email)

    if not storage.all("fishers"):
        for fisher_id, card_uid, name, boat, expiry in SEED_FISHERS:
            storage.put(
                "fishers",
                fisher_id,
                {
                    "fisher_id": fisher_id,
                    "card_uid": card_uid,
                    "name": name,
                    "boat": boat,
                    "insurance_expiry": expiry,
                },
            )
