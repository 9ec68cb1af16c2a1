"""
Request shapes for the mutation sink.

Only the payloads are built here; delivery belongs to a sink such as
sheet_ledger.sink.HttpMutationSink.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable, Mapping, Union

from sheet_ledger.engine.aliases import cell_text
from sheet_ledger.engine.normalization import to_number
from sheet_ledger.errors import MutationError

DEFAULT_PARTNER = "CHATHAM"
MARK_FULFILLED_ACTION = "markFulfilled"


@dataclass(frozen=True)
class LineItemRequest:
    sku: str
    qty: float
    line_revenue: float = 0.0

    def to_payload(self) -> dict[str, Any]:
        return {"sku": self.sku, "qty": self.qty, "lineRevenue": self.line_revenue}


@dataclass(frozen=True)
class CreateOrderRequest:
    order_id: str
    order_date: str
    fulfilment_partner: str
    order_total: float
    line_items: tuple[LineItemRequest, ...]

    def to_payload(self) -> dict[str, Any]:
        return {
            "orderId": self.order_id,
            "orderDate": self.order_date,
            "fulfilmentPartner": self.fulfilment_partner,
            "orderTotal": self.order_total,
            "lineItems": [line.to_payload() for line in self.line_items],
        }


@dataclass(frozen=True)
class MarkFulfilledRequest:
    order_id: str
    fulfilment_date: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "action": MARK_FULFILLED_ACTION,
            "orderId": self.order_id,
            "fulfilmentDate": self.fulfilment_date,
        }


LineInput = Union[LineItemRequest, Mapping[str, Any]]
MutationRequest = Union[CreateOrderRequest, MarkFulfilledRequest]


def _iso_date(value: Any, today: date | None) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = cell_text(value)
    if text:
        return text
    return (today or date.today()).isoformat()


def _coerce_line(line: LineInput) -> LineItemRequest:
    if isinstance(line, LineItemRequest):
        return LineItemRequest(cell_text(line.sku), to_number(line.qty), to_number(line.line_revenue))
    revenue = line.get("lineRevenue", line.get("line_revenue"))
    return LineItemRequest(
        sku=cell_text(line.get("sku")),
        qty=to_number(line.get("qty")),
        line_revenue=to_number(revenue),
    )


def build_create_order(
    order_id: Any,
    line_items: Iterable[LineInput],
    *,
    order_date: Any = None,
    fulfilment_partner: str | None = None,
    order_total: Any = None,
    today: date | None = None,
) -> CreateOrderRequest:
    """
    Shape a create-order request.

    Lines without a SKU are dropped. The order total falls back to the sum
    of line revenues when it is missing or does not parse.
    """
    order_id = cell_text(order_id)
    if not order_id:
        raise MutationError("Order ID is required")

    lines = tuple(line for line in (_coerce_line(item) for item in line_items) if line.sku)
    if not lines:
        raise MutationError("Add at least one line item with a SKU")

    total = to_number(order_total) or sum(line.line_revenue for line in lines)
    partner = (fulfilment_partner or "").strip() or DEFAULT_PARTNER
    return CreateOrderRequest(
        order_id=order_id,
        order_date=_iso_date(order_date, today),
        fulfilment_partner=partner,
        order_total=round(total, 2),
        line_items=lines,
    )


def build_mark_fulfilled(order_id: Any, fulfilment_date: Any = None, *, today: date | None = None) -> MarkFulfilledRequest:
    order_id = cell_text(order_id)
    if not order_id:
        raise MutationError("Order ID is required")
    return MarkFulfilledRequest(order_id=order_id, fulfilment_date=_iso_date(fulfilment_date, today))
