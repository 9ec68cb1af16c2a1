from __future__ import annotations


class SheetLedgerError(Exception):
    """Base class for every error raised by sheet-ledger."""


class ConfigError(SheetLedgerError):
    pass


class RowSourceError(SheetLedgerError):
    """A Row Source could not deliver rows for a logical source."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Failed to load {source}: {message}")
        self.source = source


class MutationError(SheetLedgerError):
    """A create-order or mark-fulfilled request could not be built."""


class CliError(SheetLedgerError):
    def __init__(self, message: str, code: int = 1) -> None:
        super().__init__(message)
        self.code = code
