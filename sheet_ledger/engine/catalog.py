"""
Catalog resolver: SKU code -> product display name.

The mapping is rebuilt in full from every lookup-table snapshot. Each code
is stored twice, as given (trimmed) and lowercased, so the common
case-insensitive lookup needs no extra pass.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Mapping, Sequence

from sheet_ledger.diagnostics import log_event
from sheet_ledger.engine.aliases import RawRow, cell_text
from sheet_ledger.engine.headers import (
    PRODUCT_TOKEN,
    SKU_TOKEN,
    STRATEGY_HEADER_ROW,
    HeaderLookup,
    discover_header,
)

logger = logging.getLogger(__name__)

# markers of settings rows that share the lookup tab with the catalog
CONFIG_SKU_MARKER = "global"
CONFIG_PRODUCT_MARKER = "settings"


class Catalog:
    def __init__(
        self,
        entries: Mapping[str, str] | None = None,
        options: Sequence[tuple[str, str]] = (),
        header: HeaderLookup | None = None,
    ) -> None:
        self._entries: Mapping[str, str] = MappingProxyType(dict(entries or {}))
        self._options = tuple(options)
        self.header = header

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.resolve(code) is not None

    def __repr__(self) -> str:
        return f"Catalog(entries={len(self._entries)}, products={len(self._options)})"

    @property
    def entries(self) -> Mapping[str, str]:
        return self._entries

    def as_dict(self) -> dict[str, str]:
        return dict(self._entries)

    def options(self) -> list[tuple[str, str]]:
        """Unique (code, display name) pairs in table order."""
        return list(self._options)

    def resolve(self, code: str) -> str | None:
        """
        Find the display name for ``code``.

        Tries the trimmed code, then its lowercase form, then a
        case-insensitive scan of every key. Returns None when unknown.
        """
        code = (code or "").strip()
        if not code:
            return None
        if code in self._entries:
            return self._entries[code]
        lowered = code.lower()
        if lowered in self._entries:
            return self._entries[lowered]
        for key, name in self._entries.items():
            if key.lower() == lowered:
                return name
        return None


def _is_catalog_row(sku: str, product: str, *, skip_settings: bool) -> bool:
    if not sku or not product:
        return False
    if sku.lower() == SKU_TOKEN or product.lower() == PRODUCT_TOKEN:
        return False
    if skip_settings and (CONFIG_SKU_MARKER in sku.lower() or CONFIG_PRODUCT_MARKER in product.lower()):
        return False
    return True


def build_catalog(lookup_rows: Sequence[RawRow]) -> Catalog:
    """
    Build the SKU catalog from raw lookup-table rows.

    An undiscoverable header yields an empty catalog; every lookup against
    it then resolves to nothing and callers fall back to their sentinel.
    """
    header = discover_header(lookup_rows)
    if not header.found:
        return Catalog(header=header)

    entries: dict[str, str] = {}
    names: dict[str, str] = {}
    skip_settings = header.strategy == STRATEGY_HEADER_ROW
    for row in lookup_rows[header.data_start:]:
        sku = cell_text(row.get(header.sku_key))
        product = cell_text(row.get(header.product_key))
        if not _is_catalog_row(sku, product, skip_settings=skip_settings):
            continue
        entries[sku] = product
        entries[sku.lower()] = product
        names[sku] = product

    log_event(
        logger,
        logging.DEBUG,
        "catalog_built",
        strategy=header.strategy,
        products=len(names),
        entries=len(entries),
    )
    if not entries:
        log_event(logger, logging.WARNING, "catalog_empty", rows=len(lookup_rows), strategy=header.strategy)
    return Catalog(entries, list(names.items()), header)
