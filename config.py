"""
config.py
Settings read from the environment (and an optional .env file).
"""

import os
from pathlib import Path
from dotenv import load_dotenv
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent


def _default_db_path():
    return (BASE_DIR / "portmaster.db").as_posix()


class Config:
    STORAGE = os.getenv("PORTMASTER_STORAGE", "sqlite")  # sqlite|memory
    DB_PATH = os.getenv("PORTMASTER_DB") or _default_db_path()
    EXPORT_DIR = os.getenv("PORTMASTER_EXPORT_DIR") or (BASE_DIR / "exports").as_posix()
    RECEIPT_DIR = os.getenv("PORTMASTER_RECEIPT_DIR") or (BASE_DIR / "receipts").as_posix()
    DEFAULT_PASSWORD = os.getenv("PORTMASTER_DEFAULT_PASSWORD", "123456")
    BCRYPT_ROUNDS = int(os.getenv("PORTMASTER_BCRYPT_ROUNDS", "12"))
    LANG = os.getenv("PORTMASTER_LANG", "ar")  # ar|fr
    LOG_LEVEL = os.getenv("PORTMASTER_LOG_LEVEL", "INFO")
    READER_UID = os.getenv("PORTMASTER_READER_UID", "04:a1:b2:c3")
    PDF_FONT = os.getenv("PORTMASTER_PDF_FONT", "")  # TTF with Arabic glyphs; empty = bundled DejaVu Sans
    PDF_FONT_BOLD = os.getenv("PORTMASTER_PDF_FONT_BOLD", "")


def ensure_dirs(config=Config):
    for d in (config.EXPORT_DIR, config.RECEIPT_DIR):
        os.makedirs(d, exist_ok=True)
