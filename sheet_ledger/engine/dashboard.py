"""The engine's complete output: three order partitions plus payouts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Sequence

from sheet_ledger.engine.aliases import RawRow
from sheet_ledger.engine.catalog import build_catalog
from sheet_ledger.engine.orders import OrderAggregate, partition_orders
from sheet_ledger.engine.payouts import PayoutSummary, aggregate_payouts


@dataclass(frozen=True)
class Dashboard:
    to_fulfill: tuple[OrderAggregate, ...]
    completed: tuple[OrderAggregate, ...]
    all_orders: tuple[OrderAggregate, ...]
    payouts: tuple[PayoutSummary, ...]
    catalog_size: int = 0
    overlapping_order_ids: tuple[str, ...] = ()

    def metrics(self) -> dict[str, int]:
        return {
            "to_fulfill": len(self.to_fulfill),
            "completed": len(self.completed),
            "all_orders": len(self.all_orders),
            "payout_months": len(self.payouts),
            "catalog_entries": self.catalog_size,
            "overlapping_orders": len(self.overlapping_order_ids),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "to_fulfill": [order.to_dict() for order in self.to_fulfill],
            "completed": [order.to_dict() for order in self.completed],
            "all_orders": [order.to_dict() for order in self.all_orders],
            "payouts": [payout.to_dict() for payout in self.payouts],
            "overlapping_order_ids": list(self.overlapping_order_ids),
            "metrics": self.metrics(),
        }


def build_dashboard(
    order_rows: Sequence[RawRow],
    settlement_rows: Sequence[RawRow],
    lookup_rows: Sequence[RawRow],
    *,
    today: date | None = None,
    debug: bool = False,
) -> Dashboard:
    """
    Recompute every derived view from raw rows.

    Orders and payouts are independent of each other; nothing is cached
    between calls.
    """
    catalog = build_catalog(lookup_rows)
    partitions = partition_orders(order_rows, catalog, debug=debug)
    payouts = aggregate_payouts(settlement_rows, today=today)
    return Dashboard(
        to_fulfill=partitions.to_fulfill,
        completed=partitions.completed,
        all_orders=partitions.all,
        payouts=tuple(payouts),
        catalog_size=len(catalog),
        overlapping_order_ids=partitions.overlapping_ids,
    )
