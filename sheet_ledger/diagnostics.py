"""
sheet_ledger/diagnostics.py

Leveled, structured diagnostics. Header mismatches in hand-maintained
sheets are diagnosed from these events, so they are emitted as stable
`event key=value` lines rather than free-form dumps.
"""

from __future__ import annotations

import logging
from typing import Any

from sheet_ledger.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format=LOG_FORMAT,
    )
    logging.getLogger("sheet_ledger").setLevel(getattr(logging, settings.log_level, logging.WARNING))


def _render_value(value: Any) -> str:
    text = str(value)
    if not text or any(ch.isspace() for ch in text) or "=" in text:
        return repr(text)
    return text


def format_event(event: str, **fields: Any) -> str:
    parts = [event]
    parts.extend(f"{key}={_render_value(value)}" for key, value in fields.items())
    return " ".join(parts)


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    if logger.isEnabledFor(level):
        logger.log(level, format_event(event, **fields))
