"""
Tests for BillSplit

Test strategy:
1. Unit tests for individual components (models, validators, engine)
2. Integration tests for flows (with the in-memory store)
3. No files outside pytest's tmp_path
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from src.models.expense import (
    CurrencyBalance,
    Expense,
    LedgerSnapshot,
    NetDebtEdge,
    ValidationIssue,
    ValidationResult,
    normalize_currency,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseModel:
    """Tests for the Expense record."""

    def test_expense_creation(self):
        """Test Expense model creation with snake_case names."""
        expense = Expense(
            description="Dinner",
            amount=Decimal("90"),
            paid_by="Alice",
            split_among=["Alice", "Bob", "Carol"],
        )
        assert expense.description == "Dinner"
        assert expense.currency == "USD"
        assert expense.is_paid is False
        assert expense.per_person == Decimal("30")
        assert expense.id

    def test_expense_accepts_camel_case_record(self):
        """Stored records use paidBy / splitAmong / isPaid."""
        expense = Expense.model_validate({
            "id": "e1",
            "description": "Taxi",
            "amount": 20,
            "currency": "gbp",
            "paidBy": "Bob",
            "splitAmong": ["Alice", "Bob"],
            "isPaid": True,
            "date": "2024-03-01T12:00:00Z",
            "createdAt": "2024-03-01T12:00:00Z",
        })
        assert expense.paid_by == "Bob"
        assert expense.currency == "GBP"
        assert expense.is_paid is True

    def test_missing_currency_defaults_to_usd(self):
        """Records written before currencies existed group as USD."""
        expense = Expense.model_validate({
            "description": "Old",
            "amount": 10,
            "paidBy": "Alice",
            "splitAmong": ["Alice"],
            "currency": None,
        })
        assert expense.currency == "USD"

    def test_to_record_round_trips_camel_case(self):
        """Test serialization to the stored record shape."""
        expense = Expense(
            description="Lunch",
            amount=Decimal("12.50"),
            paid_by="Alice",
            split_among=["Alice", "Bob"],
        )
        record = expense.to_record()
        assert record["paidBy"] == "Alice"
        assert record["splitAmong"] == ["Alice", "Bob"]
        assert record["isPaid"] is False
        assert record["amount"] == 12.5
        assert "createdAt" in record

    def test_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in ("0", "-5"):
            with pytest.raises(ValidationError):
                Expense(
                    description="Bad",
                    amount=Decimal(amount),
                    paid_by="Alice",
                    split_among=["Alice"],
                )

    def test_rejects_empty_split(self):
        """Test that an expense must have participants."""
        with pytest.raises(ValidationError):
            Expense(
                description="Bad",
                amount=Decimal("10"),
                paid_by="Alice",
                split_among=[],
            )

    def test_rejects_duplicate_participants(self):
        """Test that one person cannot be split twice."""
        with pytest.raises(ValidationError, match="Duplicate participant: Bob"):
            Expense(
                description="Bad",
                amount=Decimal("10"),
                paid_by="Alice",
                split_among=["Bob", "Bob"],
            )

    def test_expense_is_frozen(self):
        """Test that expenses cannot be edited in place."""
        expense = Expense(
            description="Dinner",
            amount=Decimal("10"),
            paid_by="Alice",
            split_among=["Alice"],
        )
        with pytest.raises(ValidationError):
            expense.amount = Decimal("20")

    def test_mark_paid_returns_copy(self):
        """Test that settling produces a new paid copy."""
        expense = Expense(
            description="Dinner",
            amount=Decimal("10"),
            paid_by="Alice",
            split_among=["Alice", "Bob"],
        )
        settled = expense.mark_paid()
        assert settled.is_paid is True
        assert settled.id == expense.id
        assert expense.is_paid is False

    def test_involves(self):
        """Test payer and participant membership."""
        expense = Expense(
            description="Gift",
            amount=Decimal("10"),
            paid_by="Alice",
            split_among=["Bob"],
        )
        assert expense.involves("Alice")
        assert expense.involves("Bob")
        assert not expense.involves("Carol")

    def test_normalize_currency(self):
        """Test currency code normalization."""
        assert normalize_currency(None) == "USD"
        assert normalize_currency("  ") == "USD"
        assert normalize_currency(" eur ") == "EUR"


class TestLedgerModels:
    """Tests for derived ledger models."""

    def test_currency_balance_net(self):
        """Test net is owed minus owe."""
        balance = CurrencyBalance(
            currency="USD",
            you_owe=Decimal("15"),
            you_are_owed=Decimal("40"),
            total=Decimal("100"),
        )
        assert balance.net == Decimal("25")

    def test_net_debt_edge_aliases(self):
        """Test edges accept from/to."""
        edge = NetDebtEdge.model_validate(
            {"from": "Bob", "to": "Alice", "amount": "30", "currency": "USD"}
        )
        assert edge.debtor == "Bob"
        assert edge.creditor == "Alice"
        assert edge.model_dump(by_alias=True)["from"] == "Bob"

    def test_snapshot_defaults(self):
        """Test an empty snapshot."""
        snapshot = LedgerSnapshot(current_user="Alice")
        assert snapshot.primary_currency == "USD"
        assert snapshot.all_debts == []
        assert snapshot.is_settled is True

    def test_snapshot_all_debts_flattens_currencies(self):
        """Test all_debts walks currencies in order."""
        usd = NetDebtEdge(debtor="Bob", creditor="Alice", amount=Decimal("5"), currency="USD")
        eur = NetDebtEdge(debtor="Alice", creditor="Bob", amount=Decimal("3"), currency="EUR")
        snapshot = LedgerSnapshot(
            current_user="Alice",
            balances={
                "USD": CurrencyBalance(currency="USD"),
                "EUR": CurrencyBalance(currency="EUR"),
            },
            debts={"USD": [usd], "EUR": [eur]},
        )
        assert snapshot.primary_currency == "USD"
        assert snapshot.all_debts == [usd, eur]
        assert snapshot.is_settled is False


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_ADDED,
            description="Expense added",
        )
        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            description="Expense deleted",
            username="alice",
            details={"amount": "10"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "expense_deleted"
        assert log_dict["username"] == "alice"
        assert log_dict["details"]["amount"] == "10"

    def test_audit_event_builder_expense_added(self):
        """Test AuditEventBuilder.expense_added."""
        correlation_id = uuid4()

        event = AuditEventBuilder.expense_added(
            expense_id="e1",
            username="alice",
            description="Dinner",
            amount="90",
            currency="USD",
            participant_count=3,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EXPENSE_ADDED
        assert event.entity_id == "e1"
        assert event.correlation_id == correlation_id
        assert event.details["participant_count"] == 3
        assert event.is_user_action is True

    def test_audit_event_builder_ledger_failed(self):
        """Test AuditEventBuilder.ledger_failed."""
        event = AuditEventBuilder.ledger_failed(
            username="alice",
            error_message="Expense e9: split_among is empty",
            expense_id="e9",
        )

        assert event.event_type == AuditEventType.LEDGER_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.entity_type == "expense"
        assert event.entity_id == "e9"
        assert event.is_user_action is False

    def test_login_failed_is_warning(self):
        """Test AuditEventBuilder.login_failed."""
        event = AuditEventBuilder.login_failed(username="mallory")
        assert event.severity == AuditSeverity.WARNING
        assert event.username is None


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Enter a valid amount",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.errors_by_field() == {"amount": "Enter a valid amount"}

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.errors_by_field() == {}

    def test_errors_by_field_keeps_first(self):
        """Test one message per field."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(field="participants", issue_type="missing",
                                message="first", severity="error"),
                ValidationIssue(field="participants", issue_type="duplicate",
                                message="second", severity="error"),
            ],
        )
        assert result.errors_by_field() == {"participants": "first"}

    def test_issue_severity_pattern(self):
        """Test that unknown severities are rejected."""
        with pytest.raises(ValidationError):
            ValidationIssue(
                field="x",
                issue_type="y",
                message="z",
                severity="fatal",
            )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
