"""
Integration tests for the expense and account flows.

Everything runs against the in-memory store, with the real audit logger
writing to it, so these exercise validation, storage, the ledger engine
and auditing together.
"""

import pytest
from decimal import Decimal

from src.accounts import AccountService, AuthenticationError, RegistrationError
from src.audit import AuditLogger
from src.ledger import LedgerPreconditionError
from src.models.audit import AuditEventType
from src.models.expense import Expense, ExpenseDraft
from src.orchestrator import AccountFlow, ExpenseFlow, create_app_components
from src.services.storage import (
    InMemoryStore,
    JsonFileStore,
    LocalAuditStorage,
    LocalExpenseStorage,
    LocalUserStorage,
    NotFoundError,
    StorageError,
)
from src.validation import ExpenseRejectedError


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def audit_storage(store):
    return LocalAuditStorage(store)


@pytest.fixture
def expense_flow(store, audit_storage):
    return ExpenseFlow(
        expense_storage=LocalExpenseStorage(store),
        audit_logger=AuditLogger(audit_storage),
    )


@pytest.fixture
def account_flow(store, audit_storage):
    return AccountFlow(
        account_service=AccountService(LocalUserStorage(store)),
        audit_logger=AuditLogger(audit_storage),
    )


def draft(**overrides):
    fields = dict(
        description="Dinner",
        amount=Decimal("90"),
        currency="USD",
        paid_by="alice",
        split_among=["alice", "Bob", "Carol"],
    )
    fields.update(overrides)
    return ExpenseDraft(**fields)


async def event_types(audit_storage, username=None):
    events = await audit_storage.get_recent_events(limit=100, username=username)
    return [e.event_type for e in events]


class TestExpenseFlow:
    """Tests for add / settle / delete and the dashboard."""

    @pytest.mark.asyncio
    async def test_empty_dashboard(self, expense_flow):
        snapshot = await expense_flow.get_dashboard("alice")
        assert snapshot.balances == {}
        assert snapshot.is_settled
        assert snapshot.active_count == 0
        assert snapshot.primary_currency == "USD"

    @pytest.mark.asyncio
    async def test_add_expense_updates_dashboard(self, expense_flow):
        await expense_flow.add_expense("alice", draft())

        snapshot = await expense_flow.get_dashboard("alice")
        usd = snapshot.balances["USD"]
        assert usd.you_are_owed == Decimal("60")
        assert usd.total == Decimal("90")
        assert [(e.debtor, e.creditor, e.amount) for e in snapshot.all_debts] == [
            ("Bob", "alice", Decimal("30")),
            ("Carol", "alice", Decimal("30")),
        ]

    @pytest.mark.asyncio
    async def test_newest_expense_first(self, expense_flow):
        first = await expense_flow.add_expense("alice", draft(description="First"))
        second = await expense_flow.add_expense("alice", draft(description="Second"))

        expenses = await expense_flow.list_expenses("alice")
        assert [e.id for e in expenses] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_expenses_are_per_user(self, expense_flow):
        await expense_flow.add_expense("alice", draft())
        assert await expense_flow.list_expenses("bob") == []

    @pytest.mark.asyncio
    async def test_rejected_expense_is_not_saved(self, expense_flow, audit_storage):
        with pytest.raises(ExpenseRejectedError):
            await expense_flow.add_expense("alice", draft(amount=None))

        assert await expense_flow.list_expenses("alice") == []
        assert AuditEventType.EXPENSE_REJECTED in await event_types(audit_storage, "alice")

    @pytest.mark.asyncio
    async def test_payer_can_be_known_participant(self, expense_flow):
        """Once Bob is in the ledger he can pay for others."""
        await expense_flow.add_expense("alice", draft())
        expense = await expense_flow.add_expense(
            "alice",
            draft(paid_by="Bob", split_among=["alice", "Carol"], amount=Decimal("20")),
        )
        assert expense.paid_by == "Bob"

    @pytest.mark.asyncio
    async def test_known_participants_puts_user_first(self, expense_flow):
        await expense_flow.add_expense(
            "alice",
            draft(paid_by="Bob", split_among=["Bob", "alice"]),
        )
        assert await expense_flow.known_participants("alice") == ["alice", "Bob"]

    @pytest.mark.asyncio
    async def test_mark_paid_clears_balances(self, expense_flow, audit_storage):
        expense = await expense_flow.add_expense("alice", draft())

        settled = await expense_flow.mark_paid("alice", expense.id)
        assert settled.is_paid is True

        snapshot = await expense_flow.get_dashboard("alice")
        assert snapshot.balances == {}
        assert snapshot.is_settled
        assert snapshot.active_count == 0

        history = await expense_flow.list_expenses("alice")
        assert len(history) == 1
        assert await expense_flow.list_expenses("alice", include_paid=False) == []
        assert AuditEventType.EXPENSE_MARKED_PAID in await event_types(audit_storage, "alice")

    @pytest.mark.asyncio
    async def test_mark_paid_twice_is_noop(self, expense_flow, audit_storage):
        expense = await expense_flow.add_expense("alice", draft())
        await expense_flow.mark_paid("alice", expense.id)
        await expense_flow.mark_paid("alice", expense.id)

        types = await event_types(audit_storage, "alice")
        assert types.count(AuditEventType.EXPENSE_MARKED_PAID) == 1

    @pytest.mark.asyncio
    async def test_mark_paid_unknown_id(self, expense_flow):
        with pytest.raises(NotFoundError):
            await expense_flow.mark_paid("alice", "missing")

    @pytest.mark.asyncio
    async def test_delete_expense(self, expense_flow):
        keep = await expense_flow.add_expense("alice", draft(description="Keep"))
        drop = await expense_flow.add_expense("alice", draft(description="Drop"))

        assert await expense_flow.delete_expense("alice", drop.id) is True
        assert await expense_flow.delete_expense("alice", drop.id) is False
        assert [e.id for e in await expense_flow.list_expenses("alice")] == [keep.id]

    @pytest.mark.asyncio
    async def test_multi_currency_dashboard(self, expense_flow):
        await expense_flow.add_expense("alice", draft(currency="GBP", amount=Decimal("20"),
                                                      split_among=["alice", "Bob"]))
        await expense_flow.add_expense("alice", draft(currency="USD", amount=Decimal("10"),
                                                      split_among=["alice", "Bob"]))

        snapshot = await expense_flow.get_dashboard("alice")
        assert set(snapshot.currencies) == {"GBP", "USD"}
        assert snapshot.balances["GBP"].you_are_owed == Decimal("10")
        assert snapshot.balances["USD"].you_are_owed == Decimal("5")
        assert {e.currency for e in snapshot.all_debts} == {"GBP", "USD"}

    @pytest.mark.asyncio
    async def test_dashboard_is_audited(self, expense_flow, audit_storage):
        await expense_flow.get_dashboard("alice")
        assert AuditEventType.LEDGER_COMPUTED in await event_types(audit_storage, "alice")

    @pytest.mark.asyncio
    async def test_engine_refusal_is_audited_and_raised(self, store, audit_storage):
        """A record that slips past validation makes the dashboard fail loudly."""

        class RawStorage(LocalExpenseStorage):
            async def load_expenses(self, user_id):
                return [Expense.model_construct(
                    id="broken",
                    description="Broken",
                    amount=Decimal("10"),
                    currency="USD",
                    paid_by="alice",
                    split_among=[],
                    is_paid=False,
                )]

        flow = ExpenseFlow(
            expense_storage=RawStorage(store),
            audit_logger=AuditLogger(audit_storage),
        )
        with pytest.raises(LedgerPreconditionError):
            await flow.get_dashboard("alice")

        events = await audit_storage.get_recent_events(username="alice")
        failed = [e for e in events if e.event_type == AuditEventType.LEDGER_FAILED]
        assert len(failed) == 1
        assert failed[0].entity_id == "broken"

    @pytest.mark.asyncio
    async def test_corrupt_storage_is_audited(self, tmp_path, audit_storage):
        file_store = JsonFileStore(str(tmp_path))
        (tmp_path / "expenses_alice.json").write_text("[{", encoding="utf-8")

        flow = ExpenseFlow(
            expense_storage=LocalExpenseStorage(file_store),
            audit_logger=AuditLogger(audit_storage),
        )
        with pytest.raises(StorageError):
            await flow.list_expenses("alice")

        assert AuditEventType.STORAGE_ERROR in await event_types(audit_storage, "alice")

    @pytest.mark.asyncio
    async def test_works_without_audit_logger(self, store):
        flow = ExpenseFlow(expense_storage=LocalExpenseStorage(store))
        expense = await flow.add_expense("alice", draft())
        assert await flow.delete_expense("alice", expense.id) is True


class TestAccountFlow:
    """Tests for signup, login and logout."""

    @pytest.mark.asyncio
    async def test_sign_up_log_in_log_out(self, account_flow, audit_storage):
        await account_flow.sign_up("alice", "alice@example.com", "secret1")
        session = await account_flow.log_in("alice", "secret1")
        await account_flow.log_out(session)

        types = await event_types(audit_storage, "alice")
        assert AuditEventType.USER_REGISTERED in types
        assert AuditEventType.USER_LOGGED_IN in types
        assert AuditEventType.USER_LOGGED_OUT in types

    @pytest.mark.asyncio
    async def test_failed_login_is_audited(self, account_flow, audit_storage):
        with pytest.raises(AuthenticationError):
            await account_flow.log_in("ghost", "whatever")

        types = await event_types(audit_storage)
        assert AuditEventType.LOGIN_FAILED in types

    @pytest.mark.asyncio
    async def test_rejected_signup_is_audited(self, account_flow, audit_storage):
        with pytest.raises(RegistrationError):
            await account_flow.sign_up("al", "bad", "1")

        types = await event_types(audit_storage)
        assert AuditEventType.REGISTRATION_REJECTED in types


class TestCreateAppComponents:
    """Tests for the component factory."""

    @pytest.mark.asyncio
    async def test_memory_backend(self):
        expense_flow, account_flow, store = create_app_components(backend="memory")
        assert isinstance(store, InMemoryStore)

        await account_flow.sign_up("alice", "alice@example.com", "secret1")
        session = await account_flow.log_in("alice", "secret1")
        await expense_flow.add_expense(session.username, draft())

        assert "expenses_alice" in store.keys()
        assert "billsplit_users" in store.keys()
        assert "billsplit_audit" in store.keys()

    def test_json_backend(self, tmp_path):
        _, _, store = create_app_components(backend="json", data_dir=str(tmp_path))
        assert isinstance(store, JsonFileStore)

    def test_falls_back_to_memory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        _, _, store = create_app_components(backend="json", data_dir=str(blocker))
        assert isinstance(store, InMemoryStore)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
