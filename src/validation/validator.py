"""
Form Validation

DESIGN DECISION: The ledger engine trusts nothing and refuses malformed
expenses outright. The forms are where malformed expenses are STOPPED,
with messages a person can act on:

EXPENSE FORM:
- Description present
- Amount positive
- At least one participant, no duplicates
- Payer is someone in the group
- Currency is one we offer (warning only - it is just a grouping key)
- Date not absurdly far in the future (warning only)

SIGNUP FORM:
- Username long enough
- Email looks like an email
- Password long enough

IMPORTANT: Validation NEVER silently fixes issues beyond trimming
whitespace. It reports them for the user to correct.
"""

import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import ValidationError

from src.config import get_settings
from src.models.expense import (
    Expense,
    ExpenseDraft,
    ValidationIssue,
    ValidationResult,
    normalize_currency,
)


EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ExpenseRejectedError(Exception):
    """An expense draft failed validation and was not admitted."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = "; ".join(
            issue.message for issue in result.issues if issue.severity == "error"
        )
        super().__init__(f"Expense rejected: {messages}")


def _finish(issues: list[ValidationIssue]) -> ValidationResult:
    return ValidationResult(
        is_valid=not any(issue.severity == "error" for issue in issues),
        issues=issues,
        warnings=[issue.message for issue in issues if issue.severity == "warning"],
    )


class ExpenseValidator:
    """
    Validates add-expense form input before it becomes an Expense.
    """

    def __init__(self):
        self._settings = get_settings().app

    def validate(
        self,
        draft: ExpenseDraft,
        known_participants: Optional[Iterable[str]] = None,
    ) -> ValidationResult:
        """
        Check a draft against the expense rules.

        Args:
            draft: Raw form input
            known_participants: Names already used in the user's ledger.
                The payer may be any of these even if not in the split.

        Returns:
            ValidationResult with all issues found
        """
        issues = []

        if not draft.description.strip():
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
            ))

        if draft.amount is None or draft.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Enter a valid amount",
                severity="error",
                suggested_fix="The amount must be greater than zero",
            ))

        participants = [name.strip() for name in draft.split_among]
        if not any(participants):
            issues.append(ValidationIssue(
                field="participants",
                issue_type="missing",
                message="Add at least one participant",
                severity="error",
            ))
        else:
            if any(not name for name in participants):
                issues.append(ValidationIssue(
                    field="participants",
                    issue_type="invalid_value",
                    message="Participant names cannot be blank",
                    severity="error",
                ))
            seen = set()
            for name in participants:
                if name and name in seen:
                    issues.append(ValidationIssue(
                        field="participants",
                        issue_type="duplicate",
                        message="Already added",
                        severity="error",
                        suggested_fix=f"Remove the second '{name}'",
                    ))
                    break
                seen.add(name)
            if len(participants) > self._settings.max_participants:
                issues.append(ValidationIssue(
                    field="participants",
                    issue_type="invalid_value",
                    message=(
                        f"An expense can be split among at most "
                        f"{self._settings.max_participants} people"
                    ),
                    severity="error",
                ))

        payer = draft.paid_by.strip()
        known = set(known_participants or [])
        if not payer:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="missing",
                message="Choose who paid",
                severity="error",
            ))
        elif payer not in participants and payer not in known:
            issues.append(ValidationIssue(
                field="paid_by",
                issue_type="unknown_participant",
                message=f"{payer} is not part of this expense",
                severity="error",
                suggested_fix="Add the payer to the participants",
            ))

        currency = normalize_currency(draft.currency)
        if currency not in self._settings.supported_currencies_list:
            issues.append(ValidationIssue(
                field="currency",
                issue_type="unsupported",
                message=f"{currency} is not one of the usual currencies",
                severity="warning",
                suggested_fix="Balances in this currency are shown separately",
            ))

        if draft.date is not None:
            when = draft.date
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            limit = datetime.now(timezone.utc) + timedelta(
                days=self._settings.future_date_tolerance_days
            )
            if when > limit:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message=f"Expense date ({when.date()}) is far in the future",
                    severity="warning",
                    suggested_fix="Please verify the date",
                ))

        return _finish(issues)

    def build_expense(
        self,
        draft: ExpenseDraft,
        known_participants: Optional[Iterable[str]] = None,
    ) -> Expense:
        """
        Validate a draft and turn it into an Expense.

        Raises:
            ExpenseRejectedError: If the draft has errors
        """
        known = list(known_participants or [])
        result = self.validate(draft, known)
        if not result.is_valid:
            raise ExpenseRejectedError(result)

        fields = dict(
            description=draft.description.strip(),
            amount=Decimal(draft.amount),
            currency=normalize_currency(draft.currency),
            paid_by=draft.paid_by.strip(),
            split_among=[name.strip() for name in draft.split_among],
        )
        if draft.date is not None:
            fields["date"] = draft.date

        try:
            return Expense(**fields)
        except ValidationError as e:
            # Anything the form rules missed (e.g. a malformed currency code)
            issues = [
                ValidationIssue(
                    field=".".join(str(p) for p in err["loc"]) or "expense",
                    issue_type="invalid_value",
                    message=err["msg"],
                    severity="error",
                )
                for err in e.errors()
            ]
            raise ExpenseRejectedError(_finish(issues))

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ Looks good!"

        lines = []

        if result.has_errors:
            lines.append("❌ Please fix the following:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


class AccountValidator:
    """Validates signup form input."""

    def __init__(self):
        self._settings = get_settings().app

    def validate(
        self,
        username: str,
        email: str,
        password: str,
    ) -> ValidationResult:
        issues = []
        min_username = self._settings.min_username_length
        min_password = self._settings.min_password_length

        if not username.strip():
            issues.append(ValidationIssue(
                field="username",
                issue_type="missing",
                message="Username is required",
                severity="error",
            ))
        elif len(username.strip()) < min_username:
            issues.append(ValidationIssue(
                field="username",
                issue_type="too_short",
                message=f"Username must be at least {min_username} characters",
                severity="error",
            ))

        if not email.strip():
            issues.append(ValidationIssue(
                field="email",
                issue_type="missing",
                message="Email is required",
                severity="error",
            ))
        elif not EMAIL_PATTERN.match(email.strip()):
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message="Please enter a valid email",
                severity="error",
            ))

        if not password:
            issues.append(ValidationIssue(
                field="password",
                issue_type="missing",
                message="Password is required",
                severity="error",
            ))
        elif len(password) < min_password:
            issues.append(ValidationIssue(
                field="password",
                issue_type="too_short",
                message=f"Password must be at least {min_password} characters",
                severity="error",
            ))

        return _finish(issues)
