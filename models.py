"""
models.py
Lightweight domain types (roles, units, dataclasses).
"""

from __future__ import annotations
from dataclasses import dataclass, asdict, fields
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    NFC_OPERATOR = "NFC_OPERATOR"
    CSNS_OPERATOR = "CSNS_OPERATOR"

    @classmethod
    def parse(cls, value) -> "Role | None":
        """Unknown role strings map to None (callers deny by default)."""
        try:
            return cls(value)
        except ValueError:
            return None


UNITS = ("kg", "ton", "piece")

DEFAULT_FISH_TYPES = [
    "Sardine",
    "Latcha",
    "Anchoïs",
    "Merlon",
    "Roggig",
    "Thon rouge",
    "Merlu",
    "Vivaneau rouge",
    "Sole",
    "Poulpe",
    "Calamar",
    "Seiche",
    "Grosses crevettes",
    "Merlan bleu",
]

UNKNOWN_FISHER_ID = "UNKNOWN"
MANUAL_UID = "MANUAL"


def _from_row(cls, row: dict):
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in row.items() if k in names})


@dataclass(frozen=True)
class User:
    email: str
    name: str
    role: str  # ADMIN / NFC_OPERATOR / CSNS_OPERATOR (see Role)

    @property
    def role_enum(self) -> Role | None:
        return Role.parse(self.role)


@dataclass(frozen=True)
class Fisher:
    fisher_id: str
    card_uid: str
    name: str
    boat: str
    insurance_expiry: str  # YYYY-MM-DD

    @classmethod
    def from_row(cls, row: dict) -> "Fisher":
        return _from_row(cls, row)

    def to_row(self) -> dict:
        return asdict(self)

    @classmethod
    def unknown(cls, uid: str) -> "Fisher":
        return cls(UNKNOWN_FISHER_ID, uid, "غير مسجل", "-", "")


@dataclass(frozen=True)
class CatchRecord:
    id: int | None
    date: str
    fish_type: str
    fisher_name: str
    boat: str
    quantity: float
    unit: str  # kg/ton/piece
    created_by: str
    timestamp: str

    @classmethod
    def from_row(cls, row: dict) -> "CatchRecord":
        return _from_row(cls, row)

    def to_row(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class NFCLog:
    log_id: int
    fisher_id: str
    name_from_card: str
    boat_from_card: str
    insurance_expiry_from_card: str
    match_status: str  # found/not_found
    activation_status: str  # active/expired/not_found
    timestamp: str
    operator_email: str

    @classmethod
    def from_row(cls, row: dict) -> "NFCLog":
        return _from_row(cls, row)

    def to_row(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class RenewalRecord:
    transaction_id: str
    fisher_id: str
    fisher_name: str
    boat: str
    social_security_number: str
    amount: float
    renewal_date: str
    new_expiry_date: str
    operator_name: str
    authorization_pdf_path: str
    receipt_pdf_path: str
    timestamp: str

    @classmethod
    def from_row(cls, row: dict) -> "RenewalRecord":
        return _from_row(cls, row)

    def to_row(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ScanResult:
    status: str  # active/expired/not_found/error
    message: str  # message key, see messages.py
    fisher: Fisher | None = None


@dataclass(frozen=True)
class SummaryRow:
    fish_type: str
    unit: str
    total: float
