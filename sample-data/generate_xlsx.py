#!/usr/bin/env python3
"""
Generates sample-data/ledger_sample.xlsx, a small workbook shaped like the
live fulfilment sheet, for trying out sheet-ledger.

Run from the repo root:
    python sample-data/generate_xlsx.py
    sheet-ledger summary --workbook sample-data/ledger_sample.xlsx --today 2024-03-15

Quirks baked in:
  Sheet "orders_raw"
    - Order lines repeat the order id, one row per SKU
    - Dates in ISO, DD/MM/YYYY and MM/DD/YYYY text
    - One row has no order id (dropped), one has no SKU (free-text name)
    - Order #1003 is half fulfilled (lands in both open and completed)
  Sheet "Chatham_Settlement"
    - Currency text with £ and thousands separators
    - A future month and a row with no month key
  Sheet "Setup"
    - Settings block above the catalog; header row is row 5
"""

from pathlib import Path
import openpyxl

OUTPUT = Path(__file__).parent / "ledger_sample.xlsx"

wb = openpyxl.Workbook()

# ── Sheet 1: orders_raw ──────────────────────────────────────────────────────
ws = wb.active
ws.title = "orders_raw"
ws.append(["OrderID", "OrderDate", "SKU", "Qty", "FulfilmentDate", "Product Name"])
for row in [
    ["#1001", "2024-01-04", "WV-HOT", 2, "2024-01-09", None],
    ["#1001", "2024-01-04", "wv-mild", 1, "2024-01-09", None],
    ["#1002", "14/02/2024", "WV-HOT", 3, None, None],
    ["#1003", "02/20/2024", "WV-BBQ", 1, None, None],
    ["#1003", "02/20/2024", "WV-HOT", 1, "2024-02-22", None],
    [None, "2024-02-21", "WV-HOT", 5, None, None],
    ["#1004", "2024-03-01", None, 4, None, "Gift box"],
]:
    ws.append(row)

# ── Sheet 2: Chatham_Settlement ──────────────────────────────────────────────
ws = wb.create_sheet("Chatham_Settlement")
ws.append(["Month", "MonthKey", "Packs", "AmountOwed"])
for row in [
    ["January 2024", "2024-01", "120", "£84.00"],
    ["February 2024", "2024-02", "1,050", "£735.00"],
    ["March 2024", "2024-03", "40", "£28.00"],
    ["April 2024", "2024-04", "10", "£7.00"],
    ["Notes", None, None, None],
]:
    ws.append(row)

# ── Sheet 3: Setup ───────────────────────────────────────────────────────────
ws = wb.create_sheet("Setup")
ws.append(["Wingverse settings", None, None])
ws.append(["Global rate", "0.70", None])
ws.append(["Partner", "CHATHAM", None])
ws.append([None, None, None])
ws.append(["SKU", "Product Name", "Pack size"])
for row in [
    ["WV-HOT", "Hot Wing Sauce", 12],
    ["WV-MILD", "Mild Wing Sauce", 12],
    ["WV-BBQ", "Smoky BBQ Sauce", 6],
    ["GLOBAL-FEE", "Handling", None],
]:
    ws.append(row)

wb.save(OUTPUT)
print(f"Wrote {OUTPUT}")
