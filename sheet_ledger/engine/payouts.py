"""
Monthly payout summaries from the settlement tab.

Settlement rows are already one row per month; each row becomes one
PayoutSummary unless its month label or key is blank, or its key falls
after the current calendar month.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Sequence

from sheet_ledger.diagnostics import log_event
from sheet_ledger.engine.aliases import RawRow, field_text, resolve_field
from sheet_ledger.engine.normalization import month_key_text, next_month_key, to_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayoutSummary:
    month: str
    month_key: str
    total_packs: float
    total_payout: float
    source_index: int = -1

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "month_key": self.month_key,
            "total_packs": self.total_packs,
            "total_payout": self.total_payout,
        }


def summarise_settlement(row: RawRow, index: int = -1) -> PayoutSummary | None:
    month = field_text(row, "month")
    key = month_key_text(resolve_field(row, "month_key"))
    if not month or not key:
        return None
    return PayoutSummary(
        month=month,
        month_key=key,
        total_packs=to_number(resolve_field(row, "packs")),
        total_payout=to_number(resolve_field(row, "amount_owed")),
        source_index=index,
    )


def aggregate_payouts(settlement_rows: Sequence[RawRow], *, today: date | None = None) -> list[PayoutSummary]:
    """
    Normalize settlement rows into payout summaries, newest month first.

    Keys are compared as YYYY-MM strings; anything at or beyond next
    month's key is a future entry and is left out.
    """
    cutoff = next_month_key(today or date.today())
    summaries: list[PayoutSummary] = []
    missing = 0
    future: list[str] = []
    for index, row in enumerate(settlement_rows):
        summary = summarise_settlement(row, index)
        if summary is None:
            missing += 1
            continue
        if summary.month_key >= cutoff:
            future.append(summary.month_key)
            continue
        summaries.append(summary)

    if missing:
        log_event(logger, logging.DEBUG, "settlement_rows_dropped", reason="missing_month", count=missing)
    if future:
        log_event(
            logger,
            logging.DEBUG,
            "settlement_rows_dropped",
            reason="future_month",
            cutoff=cutoff,
            month_keys=",".join(future),
        )
    return sorted(summaries, key=lambda summary: summary.month_key, reverse=True)
