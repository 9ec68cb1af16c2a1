"""
sheet_ledger/sources.py

Row Sources for the three logical inputs (orders, settlements, lookup)
and the fetch-then-aggregate entry point used by the CLI.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping, Protocol
from urllib.parse import quote

import requests

from sheet_ledger.diagnostics import log_event
from sheet_ledger.engine.dashboard import Dashboard, build_dashboard
from sheet_ledger.errors import RowSourceError
from sheet_ledger.loader import load_rows

logger = logging.getLogger(__name__)

ORDERS = "orders"
SETTLEMENTS = "settlements"
LOOKUP = "lookup"
LOGICAL_SOURCES = (ORDERS, SETTLEMENTS, LOOKUP)

DEFAULT_TAB_NAMES = {
    ORDERS: "orders_raw",
    SETTLEMENTS: "Chatham_Settlement",
    LOOKUP: "Setup",
}

GVIZ_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:json&sheet={tab}"
# gviz encodes date cells as "Date(year,zeroBasedMonth,day[,h,m,s])"
GVIZ_DATE_RE = re.compile(r"^Date\((\d+),(\d+),(\d+)(?:,(\d+),(\d+),(\d+))?\)$")


class RowSource(Protocol):
    def fetch(self, name: str) -> list[dict[str, Any]]:
        ...


def _check_name(name: str) -> None:
    if name not in LOGICAL_SOURCES:
        raise RowSourceError(name, f"unknown source; expected one of {', '.join(LOGICAL_SOURCES)}")


class FileRowSource:
    """
    Rows from local files: one file per logical source, or one workbook
    whose tabs carry the configured tab names.
    """

    def __init__(
        self,
        paths: Mapping[str, "str | Path"] | None = None,
        *,
        workbook: "str | Path | None" = None,
        tab_names: Mapping[str, str] | None = None,
    ) -> None:
        self.paths = {name: Path(path) for name, path in (paths or {}).items()}
        self.workbook = Path(workbook) if workbook else None
        self.tab_names = dict(DEFAULT_TAB_NAMES, **(tab_names or {}))

    def fetch(self, name: str) -> list[dict[str, Any]]:
        _check_name(name)
        if name in self.paths:
            path, sheet_name = self.paths[name], None
        elif self.workbook is not None:
            path, sheet_name = self.workbook, self.tab_names[name]
        else:
            return []

        try:
            rows = load_rows(path, sheet_name=sheet_name)
        except (OSError, ValueError) as exc:
            log_event(logger, logging.ERROR, "row_source_failed", source=name, path=path, error=exc)
            raise RowSourceError(name, str(exc)) from exc
        log_event(logger, logging.INFO, "rows_loaded", source=name, path=path, rows=len(rows))
        return rows


def _gviz_value(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    match = GVIZ_DATE_RE.match(value)
    if not match:
        return value
    year, month, day, hour, minute, second = (int(part) if part else 0 for part in match.groups())
    try:
        return datetime(year, month + 1, day, hour, minute, second)
    except ValueError:
        return value


def parse_gviz_payload(text: str) -> list[dict[str, Any]]:
    """
    Turn a gviz JSON export into raw rows.

    The export is wrapped in a JavaScript callback; the JSON object is cut
    out at its first brace and matching closing brace.
    """
    start = text.find("{")
    if start == -1:
        raise ValueError("response does not contain a JSON object")
    depth = 0
    end = -1
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                end = index + 1
                break
    if end == -1:
        raise ValueError("response JSON object is not terminated")

    data = json.loads(text[start:end])
    table = data.get("table") or {}
    if not table.get("rows"):
        return []

    headers = [(col or {}).get("label") or "" for col in table.get("cols", [])]
    rows: list[dict[str, Any]] = []
    for raw_row in table["rows"]:
        cells = (raw_row or {}).get("c") or []
        if not cells:
            continue
        row: dict[str, Any] = {}
        for index, cell in enumerate(cells):
            header = headers[index] if index < len(headers) and headers[index] else f"Column{index + 1}"
            value = cell.get("v") if isinstance(cell, dict) else None
            row[header] = "" if value is None else _gviz_value(value)
        if any(value != "" for value in row.values()):
            rows.append(row)
    return rows


class SheetsRowSource:
    """
    Rows from a publicly shared Google Sheet through its gviz JSON export.
    """

    def __init__(
        self,
        sheet_id: str,
        *,
        tab_names: Mapping[str, str] | None = None,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        if not sheet_id:
            raise RowSourceError("sheet", "no sheet id configured")
        self.sheet_id = sheet_id
        self.tab_names = dict(DEFAULT_TAB_NAMES, **(tab_names or {}))
        self.session = session or requests.Session()
        self.timeout = timeout

    def url_for(self, name: str) -> str:
        return GVIZ_URL.format(sheet_id=self.sheet_id, tab=quote(self.tab_names[name], safe=""))

    def fetch(self, name: str) -> list[dict[str, Any]]:
        _check_name(name)
        url = self.url_for(name)
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
            rows = parse_gviz_payload(response.text)
        except requests.RequestException as exc:
            log_event(logger, logging.ERROR, "row_source_failed", source=name, error=exc)
            raise RowSourceError(name, str(exc)) from exc
        except ValueError as exc:
            log_event(logger, logging.ERROR, "row_source_unreadable", source=name, error=exc)
            raise RowSourceError(name, f"could not decode sheet export: {exc}") from exc
        log_event(logger, logging.INFO, "rows_loaded", source=name, tab=self.tab_names[name], rows=len(rows))
        return rows


def load_dashboard(source: RowSource, *, today: date | None = None, debug: bool = False) -> Dashboard:
    """
    Fetch all three sources, then aggregate.

    Order and settlement failures propagate as RowSourceError before any
    aggregation runs. A failing lookup source degrades to an empty catalog.
    """
    order_rows = source.fetch(ORDERS)
    settlement_rows = source.fetch(SETTLEMENTS)
    try:
        lookup_rows = source.fetch(LOOKUP)
    except RowSourceError as exc:
        log_event(logger, logging.WARNING, "lookup_unavailable", error=exc)
        lookup_rows = []
    return build_dashboard(order_rows, settlement_rows, lookup_rows, today=today, debug=debug)
