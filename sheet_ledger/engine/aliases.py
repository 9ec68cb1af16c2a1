"""
Column alias resolution.

Each logical field maps to an ordered tuple of raw column names. The first
name present on a row wins; a key whose value is None counts as absent.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Mapping, Sequence

RawRow = Mapping[Any, Any]

FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "order_id": ("OrderID", "Order Number", "order_number", "Order #"),
    "order_date": ("OrderDate", "Order Date", "order_date", "Order date"),
    "fulfilled_date": (
        "FulfilmentDate",
        "Fulfilment Date",
        "Fulfilled Date",
        "fulfilled_date",
        "Fulfilled date",
        "Fulfilled",
    ),
    "sku": ("SKU", "sku", "Sku"),
    "quantity": ("Qty", "Quantity", "quantity"),
    "product_name": (
        "Product Name",
        "ProductName",
        "product_name",
        "Product",
        "Title",
        "Name",
        "Items",
        "items",
        "Line Items",
    ),
    "month": ("Month", "month", "Month Name"),
    "month_key": ("MonthKey", "monthKey", "Month Key"),
    "packs": ("Packs", "packs", "Pack", "Total Packs", "totalPacks"),
    "amount_owed": (
        "AmountOwed",
        "amountOwed",
        "Amount Owed",
        "Payout",
        "payout",
        "Total Payout",
        "totalPayout",
        "Amount",
        "amount",
    ),
}


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    # pandas.NaT and pandas.NA
    return type(value).__name__ in {"NaTType", "NAType"}


def cell_text(value: Any) -> str:
    """Render a sheet cell as stripped text; blanks and NaN become ''."""
    if is_missing(value):
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.hour or value.minute or value.second:
            return value.isoformat(sep=" ")
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def resolve_field(row: RawRow, field: str, aliases: Mapping[str, Sequence[str]] | None = None) -> Any:
    candidates = (aliases or FIELD_ALIASES)[field]
    for name in candidates:
        if name in row and not is_missing(row[name]):
            return row[name]
    return None


def field_text(row: RawRow, field: str, aliases: Mapping[str, Sequence[str]] | None = None) -> str:
    return cell_text(resolve_field(row, field, aliases))
