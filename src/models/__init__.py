"""
Data Models Package

This package contains all Pydantic models used in BillSplit.
All data flowing through the system must conform to these schemas.
"""

from src.models.expense import (
    DEFAULT_CURRENCY,
    SETTLEMENT_EPSILON,
    CurrencyBalance,
    Expense,
    ExpenseDraft,
    LedgerSnapshot,
    NetDebtEdge,
    ValidationIssue,
    ValidationResult,
    normalize_currency,
)
from src.models.account import Session, UserAccount
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "DEFAULT_CURRENCY",
    "SETTLEMENT_EPSILON",
    "CurrencyBalance",
    "Expense",
    "ExpenseDraft",
    "LedgerSnapshot",
    "NetDebtEdge",
    "ValidationIssue",
    "ValidationResult",
    "normalize_currency",
    # Account models
    "Session",
    "UserAccount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
