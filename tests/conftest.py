from datetime import datetime

import pytest

import auth
import db
from models import User
from reader import SimulatedReader
from service import PortService

FIXED_NOW = datetime(2024, 6, 1, 10, 30, 0)


@pytest.fixture(scope="session")
def password_hash():
    return auth.hash_password("123456", rounds=4)


@pytest.fixture
def storage(password_hash):
    s = db.MemoryStorage()
    db.init_db(s, password_hash)
    return s


@pytest.fixture
def sqlite_storage(tmp_path, password_hash):
    s = db.SqliteStorage(tmp_path / "port.db")
    s.create_tables()
    db.init_db(s, password_hash)
    return s


@pytest.fixture
def reader():
    return SimulatedReader("04:a1:b2:c3")


@pytest.fixture
def service(storage, reader, tmp_path):
    return PortService(
        storage,
        reader=reader,
        clock=lambda: FIXED_NOW,
        export_dir=tmp_path / "exports",
        receipt_dir=tmp_path / "receipts",
    )


@pytest.fixture
def admin():
    return User("admin@port.com", "مسؤول الحسابات", "ADMIN")


@pytest.fixture
def nfc_op():
    return User("nfc@port.com", "موظف الأمن", "NFC_OPERATOR")


@pytest.fixture
def csns_op():
    return User("csns@port.com", "موظف التأمين", "CSNS_OPERATOR")
