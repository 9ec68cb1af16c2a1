"""
Header discovery for the hand-maintained product lookup table.

The lookup tab carries settings blocks above the catalog, so the row that
labels the SKU and product columns moves around. Discovery is two-phase:
scan the first rows for a header row, then fall back to matching the
column names of the first row. Neither phase raises; a miss is reported
as a HeaderLookup with ``found=False``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

from sheet_ledger.diagnostics import log_event
from sheet_ledger.engine.aliases import RawRow, cell_text

logger = logging.getLogger(__name__)

HEADER_SCAN_LIMIT = 15
SKU_TOKEN = "sku"
PRODUCT_TOKEN = "product"

STRATEGY_HEADER_ROW = "header_row"
STRATEGY_COLUMN_NAMES = "column_names"
STRATEGY_NONE = "none"


@dataclass(frozen=True)
class HeaderLookup:
    strategy: str
    header_index: int | None = None
    sku_key: Any = None
    product_key: Any = None

    @property
    def found(self) -> bool:
        return self.strategy != STRATEGY_NONE

    @property
    def data_start(self) -> int:
        """Index of the first row that can hold catalog data."""
        if self.strategy == STRATEGY_HEADER_ROW and self.header_index is not None:
            return self.header_index + 1
        return 0


NOT_FOUND = HeaderLookup(strategy=STRATEGY_NONE)


def _is_product_label(text: str) -> bool:
    return text == PRODUCT_TOKEN or PRODUCT_TOKEN in text


def find_header_row(rows: Sequence[RawRow], scan_limit: int = HEADER_SCAN_LIMIT) -> HeaderLookup | None:
    for index, row in enumerate(rows[:scan_limit]):
        labels = [cell_text(value).lower() for value in row.values()]
        if SKU_TOKEN not in labels or not any(_is_product_label(label) for label in labels):
            continue

        sku_key = None
        product_key = None
        for key, value in row.items():
            label = cell_text(value).lower()
            if label == SKU_TOKEN and sku_key is None:
                sku_key = key
            if _is_product_label(label) and product_key is None:
                product_key = key
        return HeaderLookup(
            strategy=STRATEGY_HEADER_ROW,
            header_index=index,
            sku_key=sku_key,
            product_key=product_key,
        )
    return None


def match_column_names(rows: Sequence[RawRow]) -> HeaderLookup | None:
    if not rows:
        return None
    sku_key = None
    product_key = None
    for key in rows[0].keys():
        name = str(key).strip().lower()
        if name == SKU_TOKEN and sku_key is None:
            sku_key = key
        if name == PRODUCT_TOKEN and product_key is None:
            product_key = key
    if sku_key is None or product_key is None:
        return None
    return HeaderLookup(strategy=STRATEGY_COLUMN_NAMES, sku_key=sku_key, product_key=product_key)


def discover_header(rows: Sequence[RawRow], scan_limit: int = HEADER_SCAN_LIMIT) -> HeaderLookup:
    """
    Locate the SKU and product columns of a lookup table.

    Returns NOT_FOUND when neither a header row within the first
    ``scan_limit`` rows nor first-row column names identify both columns.
    """
    if not rows:
        log_event(logger, logging.DEBUG, "lookup_header_skipped", reason="no_rows")
        return NOT_FOUND

    lookup = find_header_row(rows, scan_limit)
    if lookup is not None:
        log_event(
            logger,
            logging.DEBUG,
            "lookup_header_found",
            index=lookup.header_index,
            sku_key=lookup.sku_key,
            product_key=lookup.product_key,
        )
        return lookup

    log_event(logger, logging.INFO, "lookup_header_fallback", scanned=min(len(rows), scan_limit))
    lookup = match_column_names(rows)
    if lookup is not None:
        log_event(
            logger,
            logging.DEBUG,
            "lookup_columns_matched",
            sku_key=lookup.sku_key,
            product_key=lookup.product_key,
        )
        return lookup

    log_event(
        logger,
        logging.WARNING,
        "lookup_header_not_found",
        rows=len(rows),
        first_row_keys=list(rows[0].keys()),
    )
    return NOT_FOUND
