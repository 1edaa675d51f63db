"""Storage layer for Daybook."""

from .ledger import Ledger, RecordNotFound, UpsertResult, open_ledger

__all__ = [
    "Ledger",
    "RecordNotFound",
    "UpsertResult",
    "open_ledger",
]
