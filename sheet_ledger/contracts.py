"""Shared versioned contracts for sheet-ledger JSON outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sheet_ledger import __version__ as TOOL_VERSION

CONTRACT_VERSIONS = {
    "sheet_ledger.dashboard": "1.0.0",
    "sheet_ledger.mutation": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    tool: str,
    command: str,
    source: str,
    status: str = "ok",
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "tool_version": TOOL_VERSION,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "source": source,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def wrap_payload(name: str, body: dict[str, Any], run_summary: dict[str, Any]) -> dict[str, Any]:
    contract = build_contract(name)
    return {
        "contract": contract,
        "schema_version": contract["version"],
        "run_summary": run_summary,
        **body,
    }
