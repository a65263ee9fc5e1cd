"""
utils.py
Validation, dates, activation status, monthly aggregation, CSV exports.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

import pandas as pd

from models import DEFAULT_FISH_TYPES, UNITS, SummaryRow

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def parse_iso(d: str) -> date:
    return date.fromisoformat(d)


def is_iso_date(d) -> bool:
    try:
        parse_iso(str(d))
        return len(str(d)) == 10
    except ValueError:
        return False


def add_months(start: date, months: int) -> date:
    """
    Add months while keeping day in valid range (e.g., Jan 31 + 1 month => Feb 28/29).
    """
    y = start.year + (start.month - 1 + months) // 12
    m = (start.month - 1 + months) % 12 + 1
    # last day of target month
    if m == 12:
        next_month = date(y + 1, 1, 1)
    else:
        next_month = date(y, m + 1, 1)
    last_day = next_month - timedelta(days=1)
    day = min(start.day, last_day.day)
    return date(y, m, day)


def add_one_year(start_iso: str) -> str:
    return add_months(parse_iso(start_iso), 12).isoformat()


def activation_status(insurance_expiry: str, today: str) -> str:
    # plain string compare on ISO dates
    return "active" if insurance_expiry >= today else "expired"


def text_contains(haystack: str, needle: str) -> bool:
    """Case-insensitive substring test using Unicode case folding."""
    return needle.casefold() in (haystack or "").casefold()


def validate_fisher_inputs(fisher_id: str, name: str, boat: str, card_uid: str, insurance_expiry: str) -> list[str]:
    errors: list[str] = []
    if not (fisher_id or "").strip():
        errors.append("Fisher ID is required.")
    if not (name or "").strip():
        errors.append("Name is required.")
    if not (boat or "").strip():
        errors.append("Boat is required.")
    if not (card_uid or "").strip():
        errors.append("Card UID is required.")
    if not is_iso_date(insurance_expiry or ""):
        errors.append("Insurance expiry must be a valid ISO date (YYYY-MM-DD).")
    return errors


def validate_catch_inputs(catch_date: str, fish_type: str, quantity, unit: str) -> list[str]:
    errors: list[str] = []
    if not is_iso_date(catch_date or ""):
        errors.append("Date must be a valid ISO date (YYYY-MM-DD).")
    if not (fish_type or "").strip():
        errors.append("Fish type is required.")
    try:
        if not float(quantity) > 0:
            errors.append("Quantity must be > 0.")
    except (TypeError, ValueError):
        errors.append("Quantity must be numeric.")
    if unit not in UNITS:
        errors.append(f"Unit must be one of: {', '.join(UNITS)}.")
    return errors


def is_valid_month(month: str) -> bool:
    return bool(MONTH_RE.match(month or ""))


def fish_type_options(catch_rows: list[dict]) -> list[str]:
    """Default fish types first, then any other type already recorded."""
    seen = dict.fromkeys(DEFAULT_FISH_TYPES)
    for r in catch_rows:
        if r.get("fish_type"):
            seen.setdefault(r["fish_type"])
    return list(seen)


def monthly_summary(catch_rows: list[dict], month: str) -> list[SummaryRow]:
    """
    Sum quantities per (fish_type, unit) for catches dated in `month` (YYYY-MM).
    Rows come out ordered by fish_type, then unit. Units are never converted.
    """
    df = pd.DataFrame(catch_rows, columns=["date", "fish_type", "unit", "quantity"])
    if df.empty:
        return []
    df = df[df["date"].astype(str).str.startswith(month)].copy()
    if df.empty:
        return []
    df["quantity"] = pd.to_numeric(df["quantity"])
    grouped = (
        df.groupby(["fish_type", "unit"], as_index=False)["quantity"]
        .sum()
        .sort_values(["fish_type", "unit"], kind="stable")
    )
    return [
        SummaryRow(fish_type=str(r.fish_type), unit=str(r.unit), total=float(r.quantity))
        for r in grouped.itertuples(index=False)
    ]


def summary_to_csv_bytes(rows: list[SummaryRow]) -> bytes:
    df = pd.DataFrame([{"fish_type": r.fish_type, "unit": r.unit, "total": r.total} for r in rows],
                      columns=["fish_type", "unit", "total"])
    return df.to_csv(index=False).encode("utf-8")


def rows_to_csv_bytes(rows: list[dict]) -> bytes:
    df = pd.DataFrame(rows)
    return df.to_csv(index=False).encode("utf-8")
