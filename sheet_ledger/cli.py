from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from datetime import date
from typing import Any

from sheet_ledger import __version__ as TOOL_VERSION
from sheet_ledger.config import Settings, get_settings
from sheet_ledger.contracts import build_run_summary, wrap_payload
from sheet_ledger.diagnostics import configure_logging
from sheet_ledger.engine.dashboard import Dashboard
from sheet_ledger.engine.mutations import (
    LineItemRequest,
    MutationRequest,
    build_create_order,
    build_mark_fulfilled,
)
from sheet_ledger.engine.normalization import to_number
from sheet_ledger.errors import CliError, ConfigError, MutationError, RowSourceError
from sheet_ledger.sink import HttpMutationSink
from sheet_ledger.sources import LOOKUP, ORDERS, SETTLEMENTS, FileRowSource, RowSource, SheetsRowSource, load_dashboard

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_SOURCE_FAILED = 2
EXIT_MUTATION_REJECTED = 3

PREVIEW_LIMIT = 10


class SheetLedgerArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True, default=str)


def parse_today(raw: str | None, settings: Settings) -> date:
    if not raw:
        return settings.effective_today()
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise CliError(f"--today must be YYYY-MM-DD, got {raw!r}", EXIT_COMMAND_ERROR) from exc


def parse_line(raw: str) -> LineItemRequest:
    """Parse SKU:QTY[:REVENUE]."""
    parts = raw.split(":")
    if len(parts) not in (2, 3) or not parts[0].strip():
        raise CliError(f"Line items must look like SKU:QTY[:REVENUE], got {raw!r}", EXIT_COMMAND_ERROR)
    revenue = to_number(parts[2]) if len(parts) == 3 else 0.0
    return LineItemRequest(sku=parts[0].strip(), qty=to_number(parts[1]), line_revenue=revenue)


def choose_source(args: argparse.Namespace, settings: Settings) -> tuple[RowSource, str]:
    paths = {
        name: value
        for name, value in ((ORDERS, args.orders), (SETTLEMENTS, args.settlements), (LOOKUP, args.lookup))
        if value
    }
    if args.workbook or paths:
        source = FileRowSource(paths, workbook=args.workbook, tab_names=settings.tab_names)
        label = str(args.workbook) if args.workbook else ", ".join(str(path) for path in paths.values())
        return source, label

    sheet_id = args.sheet_id or settings.sheet_id
    if sheet_id:
        try:
            source = SheetsRowSource(sheet_id, tab_names=settings.tab_names, timeout=settings.request_timeout)
        except RowSourceError as exc:
            raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
        return source, f"google-sheet:{sheet_id}"

    raise CliError(
        "No input given. Use --workbook, --orders/--settlements/--lookup, or --sheet-id "
        "(or set SHEET_LEDGER_SHEET_ID).",
        EXIT_COMMAND_ERROR,
    )


def _quantity(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def render_dashboard_text(dashboard: Dashboard, source: str) -> str:
    lines = [
        "sheet-ledger summary",
        f"Source: {source}",
        f"Catalog entries: {dashboard.catalog_size}",
        "",
        f"Orders to fulfil: {len(dashboard.to_fulfill)}",
    ]
    if not dashboard.to_fulfill:
        lines.append("  No orders pending fulfilment")
    for order in dashboard.to_fulfill[:PREVIEW_LIMIT]:
        lines.append(f"  {order.order_id}  ordered {order.order_date}  qty {_quantity(order.total_quantity)}")
        lines.extend(f"    - {item.name} x{_quantity(item.quantity)}" for item in order.items)

    lines.extend(["", f"Completed orders: {len(dashboard.completed)}"])
    if not dashboard.completed:
        lines.append("  No completed orders")
    for order in dashboard.completed[:PREVIEW_LIMIT]:
        lines.append(f"  {order.order_id}  fulfilled {order.fulfilled_date}  qty {_quantity(order.total_quantity)}")

    lines.extend(["", f"All orders: {len(dashboard.all_orders)}"])
    for order in dashboard.all_orders[:PREVIEW_LIMIT]:
        status = f"fulfilled {order.fulfilled_date}" if order.is_fulfilled else "open"
        lines.append(f"  {order.order_id}  ordered {order.order_date}  {status}")

    lines.extend(["", f"Payout months: {len(dashboard.payouts)}"])
    if not dashboard.payouts:
        lines.append("  No payout data available")
    for payout in dashboard.payouts:
        lines.append(
            f"  {payout.month} ({payout.month_key})  packs {_quantity(payout.total_packs)}  "
            f"payout £{payout.total_payout:,.2f}"
        )

    if dashboard.overlapping_order_ids:
        lines.extend(
            [
                "",
                "Warnings:",
                "- Orders listed as both open and completed: " + ", ".join(dashboard.overlapping_order_ids),
            ]
        )
    return "\n".join(lines) + "\n"


def run_summary(args: argparse.Namespace, settings: Settings) -> int:
    today = parse_today(args.today, settings)
    source, label = choose_source(args, settings)
    try:
        dashboard = load_dashboard(source, today=today, debug=settings.debug)
    except RowSourceError as exc:
        eprint(str(exc))
        return EXIT_SOURCE_FAILED

    warnings: list[str] = []
    if dashboard.catalog_size == 0:
        warnings.append("Product lookup table is empty or its header row was not found.")
    if dashboard.overlapping_order_ids:
        warnings.append(
            "Orders listed as both open and completed: " + ", ".join(dashboard.overlapping_order_ids)
        )

    if args.json:
        payload = wrap_payload(
            "sheet_ledger.dashboard",
            dashboard.to_dict(),
            build_run_summary(
                tool="sheet-ledger",
                command="summary",
                source=label,
                metrics=dashboard.metrics(),
                warnings=warnings,
            ),
        )
        print(json_dumps(payload))
    else:
        emit_human(render_dashboard_text(dashboard, label).rstrip(), quiet=args.quiet)
    return EXIT_SUCCESS


def submit_mutation(args: argparse.Namespace, settings: Settings, request: MutationRequest, command: str) -> int:
    payload = request.to_payload()
    if args.dry_run:
        print(json_dumps(payload))
        return EXIT_SUCCESS

    sink = HttpMutationSink(args.url or settings.mutation_url, timeout=settings.request_timeout)
    result = sink.submit(request)
    if args.json:
        body = {"request": payload, "result": result.to_dict()}
        summary = build_run_summary(
            tool="sheet-ledger",
            command=command,
            source=sink.url or "[not configured]",
            status="ok" if result.ok else "rejected",
        )
        print(json_dumps(wrap_payload("sheet_ledger.mutation", body, summary)))
    if not result.ok:
        eprint(result.message or "The sheet rejected the request.")
        return EXIT_MUTATION_REJECTED
    emit_human(f"{command}: {payload['orderId']} accepted", quiet=args.quiet)
    return EXIT_SUCCESS


def run_create_order(args: argparse.Namespace, settings: Settings) -> int:
    today = parse_today(args.today, settings)
    lines = [parse_line(raw) for raw in args.lines or []]
    try:
        request = build_create_order(
            args.order_id,
            lines,
            order_date=args.date,
            fulfilment_partner=args.partner or settings.default_partner,
            order_total=args.total,
            today=today,
        )
    except MutationError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
    return submit_mutation(args, settings, request, "create-order")


def run_mark_fulfilled(args: argparse.Namespace, settings: Settings) -> int:
    today = parse_today(args.today, settings)
    try:
        request = build_mark_fulfilled(args.order_id, args.date, today=today)
    except MutationError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
    return submit_mutation(args, settings, request, "mark-fulfilled")


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("--today", help="Override today's date (YYYY-MM-DD)")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug diagnostics on stderr")


def build_parser() -> argparse.ArgumentParser:
    parser = SheetLedgerArgumentParser(
        prog="sheet-ledger",
        description="Reconcile order, settlement and catalog sheets into fulfilment and payout views.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    summary = subparsers.add_parser("summary", help="Aggregate orders and payouts.")
    summary.add_argument("--workbook", help="Workbook holding the orders, settlement and lookup tabs")
    summary.add_argument("--orders", help="Order lines file")
    summary.add_argument("--settlements", help="Monthly settlement file")
    summary.add_argument("--lookup", help="Product lookup table file")
    summary.add_argument("--sheet-id", dest="sheet_id", help="Public Google Sheet id")
    _add_common(summary)

    create = subparsers.add_parser("create-order", help="Append a new order to the sheet.")
    create.add_argument("--order-id", dest="order_id", required=True, help="Order id, e.g. #1004")
    create.add_argument("--line", dest="lines", action="append", help="Line item SKU:QTY[:REVENUE] (repeatable)")
    create.add_argument("--date", help="Order date (defaults to today)")
    create.add_argument("--partner", help="Fulfilment partner")
    create.add_argument("--total", help="Order total (defaults to the sum of line revenue)")
    create.add_argument("--url", help="Mutation endpoint URL")
    create.add_argument("--dry-run", action="store_true", help="Print the request payload without sending it")
    _add_common(create)

    fulfil = subparsers.add_parser("mark-fulfilled", help="Set the fulfilment date of an order.")
    fulfil.add_argument("order_id", help="Order id, e.g. #1004")
    fulfil.add_argument("--date", help="Fulfilment date (defaults to today)")
    fulfil.add_argument("--url", help="Mutation endpoint URL")
    fulfil.add_argument("--dry-run", action="store_true", help="Print the request payload without sending it")
    _add_common(fulfil)

    subparsers.add_parser("version", help="Print version")
    return parser


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "version":
            return run_version()

        try:
            settings = get_settings()
        except ConfigError as exc:
            raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
        if args.verbose:
            settings = replace(settings, debug=True, log_level="DEBUG")
        configure_logging(settings)

        if args.command == "summary":
            return run_summary(args, settings)
        if args.command == "create-order":
            return run_create_order(args, settings)
        if args.command == "mark-fulfilled":
            return run_mark_fulfilled(args, settings)
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
