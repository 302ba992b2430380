"""
Core Data Models for BillSplit

These models define the schemas for everything that flows between the
expense store, the ledger engine and the UI. They are designed to:
1. Enforce the expense invariants at the point an expense is created
2. Provide clear validation error messages
3. Serialize to the same camelCase records the local store has always held
4. Keep derived data (balances, debts) explicitly typed

DESIGN DECISION: Expenses are frozen. The only permitted change after
creation is flipping the paid flag, which produces a new copy.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
    field_validator,
)


DEFAULT_CURRENCY = "USD"

# Amounts below this are treated as settled
SETTLEMENT_EPSILON = Decimal("0.01")

# Stored records keep amounts as plain JSON numbers
Amount = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_expense_id() -> str:
    return str(uuid4())


def normalize_currency(code: Optional[str]) -> str:
    """Upper-case a currency code, defaulting missing or blank codes to USD."""
    if code is None:
        return DEFAULT_CURRENCY
    code = str(code).strip().upper()
    return code or DEFAULT_CURRENCY


# =============================================================================
# EXPENSE RECORD
# =============================================================================

class Expense(BaseModel):
    """
    A single shared expense.

    The amount is split equally among everyone in split_among. The payer
    fronted the whole amount and is owed back by every other participant.

    CRITICAL: split_among is never empty and amount is always positive.
    The ledger engine divides by len(split_among).
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
        frozen=True,
    )

    id: str = Field(
        default_factory=_new_expense_id,
        min_length=1,
        description="Unique expense ID"
    )
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was spent on"
    )
    amount: Amount = Field(
        ...,
        gt=0,
        description="Amount in the expense's currency"
    )
    currency: str = Field(
        default=DEFAULT_CURRENCY,
        pattern="^[A-Z]{3}$",
        description="Currency code, e.g. USD"
    )
    paid_by: str = Field(
        ...,
        alias="paidBy",
        min_length=1,
        max_length=100,
        description="Participant who fronted the money"
    )
    split_among: list[str] = Field(
        ...,
        alias="splitAmong",
        min_length=1,
        description="Participants sharing the amount equally"
    )
    is_paid: bool = Field(
        default=False,
        alias="isPaid",
        description="Settled expenses stay in history but not in balances"
    )
    date: datetime = Field(
        default_factory=_utcnow,
        description="When the expense happened"
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        alias="createdAt",
        description="When the expense was recorded"
    )

    @field_validator('currency', mode='before')
    @classmethod
    def default_currency(cls, v: Optional[str]) -> str:
        """Missing or blank currency groups as USD."""
        return normalize_currency(v)

    @field_validator('split_among')
    @classmethod
    def validate_participants(cls, v: list[str]) -> list[str]:
        """Participant names must be non-blank and unique."""
        cleaned = [name.strip() for name in v]
        if any(not name for name in cleaned):
            raise ValueError("Participant names cannot be blank")
        seen = set()
        for name in cleaned:
            if name in seen:
                raise ValueError(f"Duplicate participant: {name}")
            seen.add(name)
        return cleaned

    @property
    def per_person(self) -> Decimal:
        """Each participant's equal share."""
        return self.amount / len(self.split_among)

    def involves(self, person: str) -> bool:
        """Is this person the payer or one of the participants?"""
        return person == self.paid_by or person in self.split_among

    def mark_paid(self) -> "Expense":
        """Return a settled copy of this expense."""
        return self.model_copy(update={"is_paid": True})

    def to_record(self) -> dict:
        """Serialize to the camelCase record kept in the local store."""
        return self.model_dump(mode="json", by_alias=True)


class ExpenseDraft(BaseModel):
    """
    Raw add-expense form input, before validation.

    Everything is optional or loosely typed here because this is what
    the user typed. ExpenseValidator decides whether it becomes an Expense.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = ""
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    paid_by: str = ""
    split_among: list[str] = Field(default_factory=list)
    date: Optional[datetime] = None


# =============================================================================
# DERIVED LEDGER MODELS
# =============================================================================

class CurrencyBalance(BaseModel):
    """
    Viewpoint totals for one currency, over unpaid expenses only.

    you_owe and you_are_owed are accumulated independently. They are
    NOT netted against each other; see the net property for that.
    """

    currency: str
    you_owe: Decimal = Decimal("0")
    you_are_owed: Decimal = Decimal("0")
    total: Decimal = Decimal("0")

    @property
    def net(self) -> Decimal:
        """Positive when the viewer is owed overall, negative when they owe."""
        return self.you_are_owed - self.you_owe


class NetDebtEdge(BaseModel):
    """debtor owes creditor the amount, after netting reverse obligations."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    debtor: str = Field(..., alias="from")
    creditor: str = Field(..., alias="to")
    amount: Decimal = Field(..., gt=0)
    currency: str = DEFAULT_CURRENCY


class LedgerSnapshot(BaseModel):
    """
    One full recompute of a user's ledger.

    Produced on every dashboard render; never persisted.
    """

    current_user: str
    balances: dict[str, CurrencyBalance] = Field(default_factory=dict)
    debts: dict[str, list[NetDebtEdge]] = Field(default_factory=dict)
    active_count: int = Field(
        default=0,
        ge=0,
        description="Number of unpaid expenses"
    )
    computed_at: datetime = Field(default_factory=_utcnow)

    @property
    def currencies(self) -> list[str]:
        return list(self.balances.keys())

    @property
    def primary_currency(self) -> str:
        """First currency seen among unpaid expenses, USD when there are none."""
        currencies = self.currencies
        return currencies[0] if currencies else DEFAULT_CURRENCY

    @property
    def all_debts(self) -> list[NetDebtEdge]:
        """Every edge across all currencies, currency by currency."""
        edges = []
        for currency_edges in self.debts.values():
            edges.extend(currency_edges)
        return edges

    @property
    def is_settled(self) -> bool:
        return not self.all_debts


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """Result of validating a form submission."""

    validated_at: datetime = Field(default_factory=_utcnow)
    is_valid: bool = Field(
        ...,
        description="Can the submission be admitted?"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def errors_by_field(self) -> dict[str, str]:
        """First error message per field, the way the forms display them."""
        errors: dict[str, str] = {}
        for issue in self.issues:
            if issue.severity == "error" and issue.field not in errors:
                errors[issue.field] = issue.message
        return errors
