"""Ledger engine package."""

from src.ledger.engine import (
    LedgerError,
    LedgerPreconditionError,
    collect_participants,
    compute_ledger,
    compute_net_debts,
    debts_involving,
    summarize_by_currency,
)

__all__ = [
    "LedgerError",
    "LedgerPreconditionError",
    "collect_participants",
    "compute_ledger",
    "compute_net_debts",
    "debts_involving",
    "summarize_by_currency",
]
