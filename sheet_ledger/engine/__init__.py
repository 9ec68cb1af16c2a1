"""Pure reconciliation engine: no I/O, no shared state between calls."""

from sheet_ledger.engine.catalog import Catalog, build_catalog
from sheet_ledger.engine.dashboard import Dashboard, build_dashboard
from sheet_ledger.engine.headers import HeaderLookup, discover_header
from sheet_ledger.engine.normalization import (
    NOT_AVAILABLE,
    parse_canonical,
    to_canonical,
    to_number,
)
from sheet_ledger.engine.orders import (
    UNKNOWN_PRODUCT,
    LineItem,
    OrderAggregate,
    OrderPartitions,
    aggregate_orders,
    partition_orders,
)
from sheet_ledger.engine.payouts import PayoutSummary, aggregate_payouts

__all__ = [
    "NOT_AVAILABLE",
    "UNKNOWN_PRODUCT",
    "Catalog",
    "Dashboard",
    "HeaderLookup",
    "LineItem",
    "OrderAggregate",
    "OrderPartitions",
    "PayoutSummary",
    "aggregate_orders",
    "aggregate_payouts",
    "build_catalog",
    "build_dashboard",
    "discover_header",
    "parse_canonical",
    "partition_orders",
    "to_canonical",
    "to_number",
]
