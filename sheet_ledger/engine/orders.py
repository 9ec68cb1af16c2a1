"""
Order aggregation.

Flat order line-rows are grouped into one OrderAggregate per order id, in
order of first appearance. The three dashboard partitions are computed by
filtering the raw rows first and grouping each filtered set, so an order
whose rows disagree on fulfilment can land in both "to fulfill" and
"completed". Such ids are reported in ``OrderPartitions.overlapping_ids``
and logged; they are not reassigned to a single partition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Sequence

from sheet_ledger.diagnostics import log_event
from sheet_ledger.engine.aliases import RawRow, field_text, resolve_field
from sheet_ledger.engine.catalog import Catalog
from sheet_ledger.engine.normalization import NOT_AVAILABLE, parse_canonical, to_canonical, to_number

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Unknown Product"
EARLIEST = datetime.min


@dataclass(frozen=True)
class LineItem:
    name: str
    code: str
    quantity: float

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "code": self.code, "quantity": self.quantity}


@dataclass(frozen=True)
class OrderAggregate:
    order_id: str
    order_date: str
    fulfilled_date: str
    items: tuple[LineItem, ...]
    total_quantity: float
    source_rows: tuple[RawRow, ...] = field(default=(), repr=False, compare=False)

    @property
    def is_fulfilled(self) -> bool:
        return self.fulfilled_date != NOT_AVAILABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": self.order_id,
            "order_date": self.order_date,
            "fulfilled_date": self.fulfilled_date,
            "items": [item.to_dict() for item in self.items],
            "total_quantity": self.total_quantity,
            "source_row_count": len(self.source_rows),
        }


@dataclass(frozen=True)
class OrderPartitions:
    to_fulfill: tuple[OrderAggregate, ...]
    completed: tuple[OrderAggregate, ...]
    all: tuple[OrderAggregate, ...]
    overlapping_ids: tuple[str, ...] = ()


@dataclass
class _OrderBuilder:
    order_id: str
    order_date: str
    fulfilled_date: str
    items: list[LineItem] = field(default_factory=list)
    total_quantity: float = 0.0
    source_rows: list[RawRow] = field(default_factory=list)

    def freeze(self) -> OrderAggregate:
        return OrderAggregate(
            order_id=self.order_id,
            order_date=self.order_date,
            fulfilled_date=self.fulfilled_date,
            items=tuple(self.items),
            total_quantity=self.total_quantity,
            source_rows=tuple(self.source_rows),
        )


def item_name(row: RawRow, sku: str, catalog: Catalog | None, *, debug: bool = False) -> str:
    """
    Display name for one order line.

    A present SKU is looked up in the catalog only; the free-text product
    columns are consulted when the row carries no SKU at all.
    """
    if not sku:
        return field_text(row, "product_name") or UNKNOWN_PRODUCT
    name = catalog.resolve(sku) if catalog is not None else None
    if name is None:
        if debug:
            log_event(
                logger,
                logging.DEBUG,
                "sku_unresolved",
                sku=sku,
                catalog_entries=len(catalog) if catalog is not None else 0,
            )
        return UNKNOWN_PRODUCT
    return name


def aggregate_orders(
    rows: Sequence[RawRow],
    catalog: Catalog | None = None,
    *,
    debug: bool = False,
) -> list[OrderAggregate]:
    grouped: dict[str, _OrderBuilder] = {}
    dropped = 0
    for row in rows:
        order_id = field_text(row, "order_id")
        if not order_id:
            dropped += 1
            continue

        builder = grouped.get(order_id)
        if builder is None:
            builder = _OrderBuilder(
                order_id=order_id,
                order_date=to_canonical(resolve_field(row, "order_date")),
                fulfilled_date=to_canonical(resolve_field(row, "fulfilled_date")),
            )
            grouped[order_id] = builder

        sku = field_text(row, "sku")
        quantity = to_number(resolve_field(row, "quantity"))
        builder.items.append(LineItem(name=item_name(row, sku, catalog, debug=debug), code=sku, quantity=quantity))
        builder.total_quantity += quantity
        builder.source_rows.append(row)

    if dropped:
        log_event(logger, logging.DEBUG, "order_rows_dropped", reason="missing_order_id", count=dropped)
    return [builder.freeze() for builder in grouped.values()]


def awaiting_fulfilment(row: RawRow) -> bool:
    return bool(field_text(row, "order_date")) and not field_text(row, "fulfilled_date")


def is_fulfilled_row(row: RawRow) -> bool:
    return bool(field_text(row, "fulfilled_date"))


def sort_instant(canonical: str) -> datetime:
    return parse_canonical(canonical) or EARLIEST


def sort_completed(orders: Sequence[OrderAggregate]) -> list[OrderAggregate]:
    """Most recently fulfilled first; missing dates sort last."""
    return sorted(orders, key=lambda order: sort_instant(order.fulfilled_date), reverse=True)


def _all_orders_instant(order: OrderAggregate) -> datetime:
    return parse_canonical(order.order_date) or parse_canonical(order.fulfilled_date) or EARLIEST


def sort_all(orders: Sequence[OrderAggregate]) -> list[OrderAggregate]:
    """Most recent order date first, falling back to the fulfilled date."""
    return sorted(orders, key=_all_orders_instant, reverse=True)


def partition_orders(
    rows: Sequence[RawRow],
    catalog: Catalog | None = None,
    *,
    debug: bool = False,
) -> OrderPartitions:
    to_fulfill = aggregate_orders([row for row in rows if awaiting_fulfilment(row)], catalog, debug=debug)
    completed = sort_completed(
        aggregate_orders([row for row in rows if is_fulfilled_row(row)], catalog, debug=debug)
    )
    every_order = sort_all(aggregate_orders(rows, catalog, debug=debug))

    completed_ids = {order.order_id for order in completed}
    overlapping = tuple(order.order_id for order in to_fulfill if order.order_id in completed_ids)
    if overlapping:
        log_event(
            logger,
            logging.WARNING,
            "orders_in_both_partitions",
            count=len(overlapping),
            order_ids=",".join(overlapping),
        )
    log_event(
        logger,
        logging.DEBUG,
        "orders_partitioned",
        rows=len(rows),
        to_fulfill=len(to_fulfill),
        completed=len(completed),
        all=len(every_order),
    )
    return OrderPartitions(
        to_fulfill=tuple(to_fulfill),
        completed=tuple(completed),
        all=tuple(every_order),
        overlapping_ids=overlapping,
    )
