"""
sheet_ledger/sink.py

HTTP mutation sink: posts create-order and mark-fulfilled payloads to the
sheet's web-app endpoint and reports its outcome without retrying.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from sheet_ledger.diagnostics import log_event
from sheet_ledger.engine.mutations import MutationRequest

logger = logging.getLogger(__name__)

NOT_CONFIGURED_MESSAGE = "Mutation endpoint is not configured. Set SHEET_LEDGER_MUTATION_URL."


@dataclass(frozen=True)
class MutationResult:
    ok: bool
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "message": self.message}


def _decode_body(response: requests.Response) -> dict[str, Any]:
    text = response.text
    if not text:
        return {}
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class HttpMutationSink:
    def __init__(self, url: str, *, session: requests.Session | None = None, timeout: float = 30.0) -> None:
        self.url = (url or "").strip()
        self.session = session or requests.Session()
        self.timeout = timeout

    def submit(self, request: MutationRequest) -> MutationResult:
        if not self.url:
            return MutationResult(ok=False, message=NOT_CONFIGURED_MESSAGE)

        payload = request.to_payload()
        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            log_event(logger, logging.ERROR, "mutation_failed", order_id=payload.get("orderId"), error=exc)
            return MutationResult(ok=False, message=str(exc) or "Failed to reach the sheet.")

        data = _decode_body(response)
        if not response.ok:
            message = data.get("error") or f"Server returned {response.status_code}"
            log_event(
                logger,
                logging.WARNING,
                "mutation_rejected",
                order_id=payload.get("orderId"),
                status=response.status_code,
            )
            return MutationResult(ok=False, message=message)

        result = MutationResult(ok=data.get("success") is not False, message=data.get("error"))
        log_event(logger, logging.INFO, "mutation_submitted", order_id=payload.get("orderId"), ok=result.ok)
        return result
