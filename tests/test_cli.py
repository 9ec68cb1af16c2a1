from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
CLI = [sys.executable, "-m", "sheet_ledger.cli"]
FIXED_TODAY = "2024-01-20"

ORDERS_CSV = (
    "OrderID,SKU,Qty,OrderDate,FulfilmentDate\n"
    "#100,A1,2,01/01/2024,\n"
    "#100,A1,3,,05/01/2024\n"
    "#101,B2,1,2024-01-03,2024-01-04\n"
)
SETTLEMENTS_CSV = (
    "Month,MonthKey,Packs,AmountOwed\n"
    "December,2023-12,6,£60.00\n"
    "February,2024-02,1,10\n"
)
LOOKUP_CSV = (
    "Settings,Column2\n"
    "Global rate,0.7\n"
    "SKU,Product Name\n"
    "A1,Widget\n"
    "B2,Gadget\n"
)


def run_cli(*args: str, env: dict[str, str] | None = None) -> subprocess.CompletedProcess[str]:
    merged_env = {key: value for key, value in os.environ.items() if not key.startswith("SHEET_LEDGER_")}
    merged_env["SHEET_LEDGER_TODAY"] = FIXED_TODAY
    if env:
        merged_env.update(env)
    return subprocess.run(
        [*CLI, *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
        env=merged_env,
    )


def write_inputs(tmpdir: str) -> list[str]:
    paths = {}
    for name, text in (("orders", ORDERS_CSV), ("settlements", SETTLEMENTS_CSV), ("lookup", LOOKUP_CSV)):
        path = Path(tmpdir) / f"{name}.csv"
        path.write_text(text, encoding="utf-8")
        paths[name] = str(path)
    return [
        "--orders",
        paths["orders"],
        "--settlements",
        paths["settlements"],
        "--lookup",
        paths["lookup"],
    ]


class SheetLedgerCliTests(unittest.TestCase):
    def test_summary_json_contract(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            proc = run_cli("summary", *write_inputs(tmpdir), "--json")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "sheet_ledger.dashboard")
        self.assertEqual(payload["run_summary"]["command"], "summary")
        self.assertEqual([o["order_id"] for o in payload["to_fulfill"]], ["#100"])
        self.assertEqual(payload["to_fulfill"][0]["items"][0]["name"], "Widget")
        self.assertEqual([o["order_id"] for o in payload["completed"]], ["#100", "#101"])
        self.assertEqual([p["month_key"] for p in payload["payouts"]], ["2023-12"])
        self.assertEqual(payload["payouts"][0]["total_payout"], 60.0)
        self.assertEqual(payload["overlapping_order_ids"], ["#100"])
        self.assertEqual(payload["run_summary"]["warnings_count"], 1)

    def test_summary_human_output_goes_to_stderr(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            proc = run_cli("summary", *write_inputs(tmpdir))
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(proc.stdout, "")
        self.assertIn("Orders to fulfil: 1", proc.stderr)
        self.assertIn("December (2023-12)", proc.stderr)

    def test_today_flag_moves_the_payout_cutoff(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            proc = run_cli("summary", *write_inputs(tmpdir), "--json", "--today", "2024-02-10")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual([p["month_key"] for p in payload["payouts"]], ["2024-02", "2023-12"])

    def test_summary_without_input_returns_exit_1(self):
        proc = run_cli("summary")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("No input given", proc.stderr)

    def test_unreadable_source_returns_exit_2(self):
        proc = run_cli("summary", "--orders", "does/not/exist.csv")
        self.assertEqual(proc.returncode, 2)
        self.assertIn("Failed to load orders", proc.stderr)

    def test_invalid_environment_returns_exit_1(self):
        proc = run_cli("summary", "--orders", "x.csv", env={"SHEET_LEDGER_TODAY": "tomorrow"})
        self.assertEqual(proc.returncode, 1)
        self.assertIn("SHEET_LEDGER_TODAY", proc.stderr)

    def test_create_order_dry_run_prints_payload(self):
        proc = run_cli(
            "create-order",
            "--order-id",
            "#300",
            "--line",
            "A1:2:10.5",
            "--line",
            "B2:1:4.5",
            "--dry-run",
        )
        self.assertEqual(proc.returncode, 0, proc.stderr)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["orderId"], "#300")
        self.assertEqual(payload["orderDate"], FIXED_TODAY)
        self.assertEqual(payload["fulfilmentPartner"], "CHATHAM")
        self.assertEqual(payload["orderTotal"], 15.0)
        self.assertEqual(len(payload["lineItems"]), 2)

    def test_create_order_without_lines_returns_exit_1(self):
        proc = run_cli("create-order", "--order-id", "#300", "--dry-run")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("Add at least one line item", proc.stderr)

    def test_malformed_line_returns_exit_1(self):
        proc = run_cli("create-order", "--order-id", "#300", "--line", "A1", "--dry-run")
        self.assertEqual(proc.returncode, 1)
        self.assertIn("SKU:QTY", proc.stderr)

    def test_mark_fulfilled_dry_run(self):
        proc = run_cli("mark-fulfilled", "#100", "--date", "2024-01-21", "--dry-run")
        self.assertEqual(proc.returncode, 0, proc.stderr)
        self.assertEqual(
            json.loads(proc.stdout),
            {"action": "markFulfilled", "fulfilmentDate": "2024-01-21", "orderId": "#100"},
        )

    def test_mark_fulfilled_without_endpoint_returns_exit_3(self):
        proc = run_cli("mark-fulfilled", "#100", "--json")
        self.assertEqual(proc.returncode, 3)
        payload = json.loads(proc.stdout)
        self.assertEqual(payload["contract"]["name"], "sheet_ledger.mutation")
        self.assertFalse(payload["result"]["ok"])
        self.assertIn("not configured", proc.stderr)

    def test_missing_subcommand_returns_exit_1(self):
        proc = run_cli()
        self.assertEqual(proc.returncode, 1)

    def test_version(self):
        proc = run_cli("version")
        self.assertEqual(proc.returncode, 0)
        self.assertRegex(proc.stdout.strip(), r"^\d+\.\d+\.\d+$")


if __name__ == "__main__":
    unittest.main()
