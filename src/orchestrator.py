"""
Main Orchestrator for BillSplit

This module ties together all the components and defines the
end-to-end flows for:
1. Expenses (add / mark paid / delete → save → recompute dashboard)
2. Accounts (sign up / log in / log out)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches the store without passing form validation
- Every user action is ONE read-modify-write of the user's list
- Balances are recomputed from scratch on every dashboard render
- Every step is audited

The ledger engine itself stays pure; this is the only place that
feeds it from storage.
"""

from typing import Optional
from uuid import UUID

import structlog

from src.accounts import (
    AccountService,
    AuthenticationError,
    RegistrationError,
)
from src.audit import AuditLogger, create_correlation_id
from src.config import get_settings
from src.ledger import LedgerPreconditionError, collect_participants, compute_ledger
from src.models.account import Session, UserAccount
from src.models.expense import Expense, ExpenseDraft, LedgerSnapshot
from src.services.storage import (
    ExpenseStorageInterface,
    KeyValueStore,
    LocalAuditStorage,
    LocalExpenseStorage,
    LocalUserStorage,
    NotFoundError,
    StorageError,
    create_key_value_store,
)
from src.validation import ExpenseRejectedError, ExpenseValidator


logger = structlog.get_logger("billsplit.orchestrator")


class ExpenseFlow:
    """
    Orchestrates everything that happens on the dashboard.

    Flow for each mutation:
    1. Load → the user's full expense list
    2. Change → add / flip paid / remove
    3. Save → the full list back
    4. Audit
    The dashboard then calls get_dashboard() to recompute balances.
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = expense_storage
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger
        self._settings = get_settings().app

    async def _load(
        self,
        username: str,
        correlation_id: Optional[UUID],
    ) -> list[Expense]:
        try:
            return await self._storage.load_expenses(username)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="load_expenses",
                    error_message=str(e),
                    username=username,
                    correlation_id=correlation_id,
                )
            raise

    async def _save(
        self,
        username: str,
        expenses: list[Expense],
        correlation_id: Optional[UUID],
    ) -> None:
        try:
            await self._storage.save_expenses(username, expenses)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="save_expenses",
                    error_message=str(e),
                    username=username,
                    correlation_id=correlation_id,
                )
            raise

    async def list_expenses(
        self,
        username: str,
        include_paid: bool = True,
    ) -> list[Expense]:
        """The user's expenses, newest first."""
        expenses = await self._load(username, None)
        if include_paid:
            return expenses
        return [e for e in expenses if not e.is_paid]

    async def known_participants(self, username: str) -> list[str]:
        """Everyone seen in this user's ledger, the user first."""
        names = collect_participants(await self._load(username, None))
        return [username] + [n for n in names if n != username]

    async def add_expense(
        self,
        username: str,
        draft: ExpenseDraft,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Validate a draft and record it as the newest expense.

        Raises:
            ExpenseRejectedError: If the draft fails validation
            StorageError: If the list cannot be loaded or saved
        """
        correlation_id = correlation_id or create_correlation_id()

        expenses = await self._load(username, correlation_id)
        known = [username] + collect_participants(expenses)

        try:
            expense = self._validator.build_expense(draft, known)
        except ExpenseRejectedError as e:
            if self._audit_logger:
                await self._audit_logger.log_expense_rejected(
                    username=username,
                    issues=[
                        {"field": i.field, "type": i.issue_type, "message": i.message}
                        for i in e.result.issues
                    ],
                    correlation_id=correlation_id,
                )
            raise

        await self._save(username, [expense] + expenses, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_added(
                expense_id=expense.id,
                username=username,
                description=expense.description,
                amount=str(expense.amount),
                currency=expense.currency,
                participant_count=len(expense.split_among),
                correlation_id=correlation_id,
            )

        return expense

    async def mark_paid(
        self,
        username: str,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Settle an expense. Settling twice is a no-op.

        Raises:
            NotFoundError: If the user has no expense with this id
        """
        correlation_id = correlation_id or create_correlation_id()
        expenses = await self._load(username, correlation_id)

        for index, expense in enumerate(expenses):
            if expense.id == expense_id:
                break
        else:
            raise NotFoundError(f"Expense not found: {expense_id}")

        if expense.is_paid:
            return expense

        settled = expense.mark_paid()
        expenses[index] = settled
        await self._save(username, expenses, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_marked_paid(
                expense_id=expense_id,
                username=username,
                correlation_id=correlation_id,
            )

        return settled

    async def delete_expense(
        self,
        username: str,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Remove an expense from history. Returns False if it wasn't there."""
        correlation_id = correlation_id or create_correlation_id()
        expenses = await self._load(username, correlation_id)

        remaining = [e for e in expenses if e.id != expense_id]
        if len(remaining) == len(expenses):
            return False

        await self._save(username, remaining, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                username=username,
                correlation_id=correlation_id,
            )

        return True

    async def get_dashboard(
        self,
        username: str,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerSnapshot:
        """
        Recompute balances and debts for the user's current list.

        Raises:
            LedgerPreconditionError: If a stored record is malformed.
                The UI shows a generic failure; retrying won't help.
        """
        correlation_id = correlation_id or create_correlation_id()
        expenses = await self._load(username, correlation_id)

        try:
            snapshot = compute_ledger(
                expenses,
                username,
                epsilon=self._settings.settlement_epsilon,
            )
        except LedgerPreconditionError as e:
            if self._audit_logger:
                await self._audit_logger.log_ledger_failed(
                    username=username,
                    error_message=str(e),
                    expense_id=e.expense_id,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_ledger_computed(
                username=username,
                expense_count=len(expenses),
                currency_count=len(snapshot.balances),
                edge_count=len(snapshot.all_debts),
                correlation_id=correlation_id,
            )

        return snapshot


class AccountFlow:
    """
    Orchestrates signup, login and logout.

    The session returned by log_in is the "current user" every
    ExpenseFlow call is made for.
    """

    def __init__(
        self,
        account_service: AccountService,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._accounts = account_service
        self._audit_logger = audit_logger

    async def sign_up(
        self,
        username: str,
        email: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> UserAccount:
        """
        Raises:
            RegistrationError: Invalid input, or username/email taken
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            account = await self._accounts.register(username, email, password)
        except RegistrationError as e:
            if self._audit_logger:
                await self._audit_logger.log_registration_rejected(
                    username=username,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_user_registered(
                username=account.username,
                correlation_id=correlation_id,
            )
        return account

    async def log_in(
        self,
        username: str,
        password: str,
        correlation_id: Optional[UUID] = None,
    ) -> Session:
        """
        Raises:
            AuthenticationError: Unknown user or wrong password
        """
        correlation_id = correlation_id or create_correlation_id()
        try:
            session = await self._accounts.login(username, password)
        except AuthenticationError:
            if self._audit_logger:
                await self._audit_logger.log_login_failed(
                    username=username,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_user_logged_in(
                username=session.username,
                correlation_id=correlation_id,
            )
        return session

    async def log_out(
        self,
        session: Session,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_user_logged_out(
                username=session.username,
                correlation_id=correlation_id,
            )


def create_app_components(
    backend: Optional[str] = None,
    data_dir: Optional[str] = None,
) -> tuple[ExpenseFlow, AccountFlow, KeyValueStore]:
    """
    Factory function to create all application components.

    Args:
        backend: "json" or "memory"; defaults to the configured backend
        data_dir: Directory for the JSON backend; defaults to settings

    Returns:
        (expense_flow, account_flow, store)

    Falls back to an in-memory store if the data directory is unusable,
    so the app still starts (nothing will survive a restart).
    """
    try:
        store = create_key_value_store(backend=backend, data_dir=data_dir)
    except StorageError as e:
        logger.warning("storage_unavailable_using_memory", error=str(e))
        store = create_key_value_store(backend="memory")

    audit_logger = AuditLogger(LocalAuditStorage(store))

    expense_flow = ExpenseFlow(
        expense_storage=LocalExpenseStorage(store),
        audit_logger=audit_logger,
    )
    account_flow = AccountFlow(
        account_service=AccountService(LocalUserStorage(store)),
        audit_logger=audit_logger,
    )

    return expense_flow, account_flow, store
