import json
import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path
from unittest import mock

import requests
from openpyxl import Workbook

from sheet_ledger.engine.payouts import aggregate_payouts
from sheet_ledger.errors import RowSourceError
from sheet_ledger.sources import (
    LOOKUP,
    ORDERS,
    SETTLEMENTS,
    FileRowSource,
    SheetsRowSource,
    load_dashboard,
    parse_gviz_payload,
)


def gviz_text(cols, rows):
    body = {"version": "0.6", "status": "ok", "table": {"cols": cols, "rows": rows}}
    return "/*O_o*/\ngoogle.visualization.Query.setResponse(" + json.dumps(body) + ");"


class StubSource:
    def __init__(self, rows=None, failing=()):
        self.rows = rows or {}
        self.failing = set(failing)
        self.calls = []

    def fetch(self, name):
        self.calls.append(name)
        if name in self.failing:
            raise RowSourceError(name, "unreachable")
        return self.rows.get(name, [])


class ParseGvizPayloadTests(unittest.TestCase):
    def test_rows_use_labels_and_convert_dates(self):
        text = gviz_text(
            [{"id": "A", "label": "OrderID"}, {"id": "B", "label": ""}, {"id": "C", "label": "OrderDate"}],
            [
                {"c": [{"v": "#1"}, {"v": 2.0}, {"v": "Date(2024,0,5)"}]},
                {"c": [None, None, None]},
                {"c": [{"v": "#2"}, None, {"v": "Date(2024,11,31,8,30,0)"}]},
            ],
        )
        rows = parse_gviz_payload(text)
        self.assertEqual(
            rows,
            [
                {"OrderID": "#1", "Column2": 2.0, "OrderDate": datetime(2024, 1, 5)},
                {"OrderID": "#2", "Column2": "", "OrderDate": datetime(2024, 12, 31, 8, 30)},
            ],
        )

    def test_braces_inside_strings_do_not_end_the_object(self):
        text = gviz_text([{"label": "Note"}], [{"c": [{"v": "curly } brace"}]}])
        self.assertEqual(parse_gviz_payload(text), [{"Note": "curly } brace"}])

    def test_empty_table(self):
        self.assertEqual(parse_gviz_payload(gviz_text([{"label": "OrderID"}], [])), [])

    def test_non_json_response_is_rejected(self):
        with self.assertRaises(ValueError):
            parse_gviz_payload("<html>Sign in</html>")
        with self.assertRaises(ValueError):
            parse_gviz_payload('setResponse({"table": {')


class SheetsRowSourceTests(unittest.TestCase):
    def setUp(self):
        self.session = mock.Mock()
        self.source = SheetsRowSource(
            "sheet123",
            tab_names={SETTLEMENTS: "Payouts 2024"},
            session=self.session,
            timeout=3,
        )

    def test_requests_configured_tab(self):
        response = mock.Mock()
        response.text = gviz_text([{"label": "Month"}], [{"c": [{"v": "Jan"}]}])
        self.session.get.return_value = response

        self.assertEqual(self.source.fetch(SETTLEMENTS), [{"Month": "Jan"}])
        url = self.session.get.call_args[0][0]
        self.assertIn("/d/sheet123/gviz/tq", url)
        self.assertTrue(url.endswith("sheet=Payouts%202024"))
        self.assertEqual(self.session.get.call_args[1], {"timeout": 3})
        self.assertTrue(self.source.url_for(ORDERS).endswith("sheet=orders_raw"))

    def test_http_failure_becomes_row_source_error(self):
        self.session.get.side_effect = requests.ConnectionError("offline")
        with self.assertRaises(RowSourceError) as ctx:
            self.source.fetch(ORDERS)
        self.assertEqual(ctx.exception.source, ORDERS)
        self.assertIn("offline", str(ctx.exception))

    def test_undecodable_export_becomes_row_source_error(self):
        response = mock.Mock()
        response.text = "<html>login</html>"
        self.session.get.return_value = response
        with self.assertRaisesRegex(RowSourceError, "could not decode"):
            self.source.fetch(LOOKUP)

    def test_sheet_id_is_required(self):
        with self.assertRaises(RowSourceError):
            SheetsRowSource("")

    def test_unknown_source_name(self):
        with self.assertRaises(RowSourceError):
            self.source.fetch("refunds")


class FileRowSourceTests(unittest.TestCase):
    def test_per_source_files_and_unconfigured_sources(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            orders = Path(tmpdir) / "orders.csv"
            orders.write_text("OrderID,SKU,Qty\n#1,A1,2\n", encoding="utf-8")
            source = FileRowSource({ORDERS: orders})

            self.assertEqual(source.fetch(ORDERS), [{"OrderID": "#1", "SKU": "A1", "Qty": "2"}])
            self.assertEqual(source.fetch(LOOKUP), [])

    def test_workbook_tabs_follow_tab_names(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "ledger.xlsx"
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = "Catalog"
            sheet.append(["SKU", "Product"])
            sheet.append(["A1", "Widget"])
            workbook.save(path)

            source = FileRowSource(workbook=path, tab_names={LOOKUP: "Catalog"})
            self.assertEqual(source.fetch(LOOKUP), [{"SKU": "A1", "Product": "Widget"}])
            with self.assertRaises(RowSourceError) as ctx:
                source.fetch(ORDERS)
            self.assertEqual(ctx.exception.source, ORDERS)

    def test_workbook_date_month_keys_become_month_keys(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "ledger.xlsx"
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = "Chatham_Settlement"
            sheet.append(["Month", "MonthKey", "Packs", "AmountOwed"])
            sheet.append(["January", datetime(2024, 1, 1), 4, 40])
            sheet.append(["December", "2023-12", 2, 20])
            sheet.append(["February", datetime(2024, 2, 1), 1, 10])
            workbook.save(path)

            rows = FileRowSource(workbook=path).fetch(SETTLEMENTS)
        payouts = aggregate_payouts(rows, today=date(2024, 1, 20))
        self.assertEqual([p.month_key for p in payouts], ["2024-01", "2023-12"])

    def test_jsonl_lines_that_are_not_objects_are_skipped(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "orders.jsonl"
            path.write_text('{"OrderID": "#1"}\n5\n["#2"]\n', encoding="utf-8")
            rows = FileRowSource({ORDERS: path}).fetch(ORDERS)
        self.assertEqual(rows, [{"OrderID": "#1"}])

    def test_jsonl_without_any_object_yields_no_rows(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = Path(tmpdir) / "orders.jsonl"
            path.write_text("5\n\"text\"\n", encoding="utf-8")
            self.assertEqual(FileRowSource({ORDERS: path}).fetch(ORDERS), [])

    def test_missing_file_is_a_row_source_error(self):
        source = FileRowSource({SETTLEMENTS: "does/not/exist.csv"})
        with self.assertRaises(RowSourceError) as ctx:
            source.fetch(SETTLEMENTS)
        self.assertEqual(ctx.exception.source, SETTLEMENTS)


class LoadDashboardTests(unittest.TestCase):
    def test_aggregates_fetched_rows(self):
        source = StubSource(
            {
                ORDERS: [{"OrderID": "#1", "SKU": "a1", "Qty": "2", "OrderDate": "02/01/2024"}],
                SETTLEMENTS: [{"Month": "Jan", "MonthKey": "2024-01", "AmountOwed": "5"}],
                LOOKUP: [{"SKU": "A1", "Product": "Widget"}],
            }
        )
        dashboard = load_dashboard(source, today=date(2024, 1, 20))
        self.assertEqual(source.calls, [ORDERS, SETTLEMENTS, LOOKUP])
        self.assertEqual(dashboard.to_fulfill[0].items[0].name, "Widget")
        self.assertEqual(dashboard.payouts[0].total_payout, 5.0)

    def test_lookup_failure_degrades_to_unknown_products(self):
        source = StubSource({ORDERS: [{"OrderID": "#1", "SKU": "A1", "Qty": "1"}]}, failing={LOOKUP})
        with self.assertLogs("sheet_ledger.sources", level="WARNING") as logs:
            dashboard = load_dashboard(source, today=date(2024, 1, 20))
        self.assertEqual(dashboard.all_orders[0].items[0].name, "Unknown Product")
        self.assertIn("lookup_unavailable", logs.output[0])

    def test_order_failure_propagates_before_aggregation(self):
        source = StubSource(failing={ORDERS})
        with self.assertRaises(RowSourceError):
            load_dashboard(source)
        self.assertEqual(source.calls, [ORDERS])

    def test_settlement_failure_propagates(self):
        source = StubSource(failing={SETTLEMENTS})
        with self.assertRaises(RowSourceError):
            load_dashboard(source)


if __name__ == "__main__":
    unittest.main()
