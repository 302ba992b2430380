"""
Ledger Engine

DESIGN DECISION: Balances are a PURE function of the expense history.
Nothing here reads storage, logs, or caches. The orchestrator loads the
user's expenses, calls in here after every change, and renders whatever
comes back. Recomputing from scratch is cheap at household scale
(O(E + P^2)) and trivially correct.

Two views are produced, both over UNPAID expenses only:
1. summarize_by_currency - what the current user owes / is owed, per currency
2. compute_net_debts     - who owes whom, netted to one edge per pair

Currencies are never mixed. There is no conversion.

IMPORTANT: A malformed record (no participants, non-positive amount,
no payer) is a producer bug. We refuse it loudly instead of returning
a misleading zero.
"""

from decimal import Decimal
from typing import Iterable, Optional

from src.models.expense import (
    SETTLEMENT_EPSILON,
    CurrencyBalance,
    Expense,
    LedgerSnapshot,
    NetDebtEdge,
    normalize_currency,
)


ZERO = Decimal("0")


class LedgerError(Exception):
    """Base exception for ledger computations."""
    pass


class LedgerPreconditionError(LedgerError):
    """An expense record violates the invariants the engine relies on."""

    def __init__(self, expense_id: Optional[str], rule: str):
        self.expense_id = expense_id
        self.rule = rule
        super().__init__(f"Expense {expense_id or '<no id>'}: {rule}")


def _amount_of(expense: Expense) -> Decimal:
    amount = expense.amount
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def _check_record(expense: Expense) -> None:
    """Fail fast on records the engine cannot divide safely."""
    expense_id = getattr(expense, "id", None)

    if not expense.split_among:
        raise LedgerPreconditionError(expense_id, "split_among is empty")

    if expense.amount is None or _amount_of(expense) <= ZERO:
        raise LedgerPreconditionError(expense_id, "amount must be positive")

    if not isinstance(expense.paid_by, str) or not expense.paid_by.strip():
        raise LedgerPreconditionError(expense_id, "paid_by is missing")


def _checked(expenses: Iterable[Expense]) -> list[Expense]:
    records = list(expenses)
    for expense in records:
        _check_record(expense)
    return records


def _unpaid_by_currency(records: list[Expense]) -> dict[str, list[Expense]]:
    """Group unpaid expenses by currency, in first-seen order."""
    buckets: dict[str, list[Expense]] = {}
    for expense in records:
        if expense.is_paid:
            continue
        currency = normalize_currency(expense.currency)
        buckets.setdefault(currency, []).append(expense)
    return buckets


def collect_participants(expenses: Iterable[Expense]) -> list[str]:
    """
    Everyone who appears as a payer or a participant, paid or not.

    Order is first appearance (payer before the split list of each
    expense), which keeps edge order stable between renders.
    """
    seen: dict[str, None] = {}
    for expense in expenses:
        seen.setdefault(expense.paid_by, None)
        for person in expense.split_among:
            seen.setdefault(person, None)
    return list(seen)


def summarize_by_currency(
    expenses: Iterable[Expense],
    current_user: str,
) -> dict[str, CurrencyBalance]:
    """
    Per-currency totals from the current user's point of view.

    - total counts every unpaid expense, whoever was involved
    - the payer is owed everything except their own share
    - a non-paying participant owes their share
    - you_owe and you_are_owed are NOT netted against each other

    Raises:
        LedgerPreconditionError: If any record is malformed
    """
    records = _checked(expenses)
    balances: dict[str, CurrencyBalance] = {}

    for currency, bucket in _unpaid_by_currency(records).items():
        you_owe = ZERO
        you_are_owed = ZERO
        total = ZERO

        for expense in bucket:
            amount = _amount_of(expense)
            per_person = amount / len(expense.split_among)
            total += amount

            if expense.paid_by == current_user:
                own_share = per_person if current_user in expense.split_among else ZERO
                you_are_owed += amount - own_share
            elif current_user in expense.split_among:
                you_owe += per_person

        balances[currency] = CurrencyBalance(
            currency=currency,
            you_owe=you_owe,
            you_are_owed=you_are_owed,
            total=total,
        )

    return balances


def _gross_obligations(
    bucket: list[Expense],
    participants: list[str],
) -> dict[str, dict[str, Decimal]]:
    """owes[u][v]: everything u owes v before netting."""
    owes = {
        u: {v: ZERO for v in participants if v != u}
        for u in participants
    }
    for expense in bucket:
        per_person = _amount_of(expense) / len(expense.split_among)
        for person in expense.split_among:
            if person != expense.paid_by:
                owes[person][expense.paid_by] += per_person
    return owes


def _net_pairs(
    owes: dict[str, dict[str, Decimal]],
    participants: list[str],
    currency: str,
    epsilon: Decimal,
) -> list[NetDebtEdge]:
    """Collapse each unordered pair to at most one directed edge."""
    edges: dict[tuple[str, str], Decimal] = {}

    for i, u in enumerate(participants):
        for v in participants[i + 1:]:
            net = owes[u][v] - owes[v][u]
            if net > epsilon:
                key, amount = (u, v), net
            elif net < -epsilon:
                key, amount = (v, u), -net
            else:
                # settled, or just rounding noise
                continue
            edges[key] = edges.get(key, ZERO) + amount

    return [
        NetDebtEdge(
            debtor=debtor,
            creditor=creditor,
            amount=amount,
            currency=currency,
        )
        for (debtor, creditor), amount in edges.items()
    ]


def compute_net_debts(
    expenses: Iterable[Expense],
    current_user: str,
    epsilon: Decimal = SETTLEMENT_EPSILON,
) -> dict[str, list[NetDebtEdge]]:
    """
    Minimal pairwise debts per currency, over unpaid expenses.

    The participant universe comes from ALL expenses (paid included) so
    it stays stable as expenses get settled; only unpaid expenses move
    money. Every currency with unpaid expenses is present in the result,
    with an empty list if everyone in it is square.

    current_user does not change the edges. It is accepted so both
    engine operations share a call shape.

    Raises:
        LedgerPreconditionError: If any record is malformed
        LedgerError: If epsilon is below one cent
    """
    if epsilon < SETTLEMENT_EPSILON:
        raise LedgerError(
            f"epsilon must be at least {SETTLEMENT_EPSILON}, got {epsilon}"
        )

    records = _checked(expenses)
    participants = collect_participants(records)

    debts: dict[str, list[NetDebtEdge]] = {}
    for currency, bucket in _unpaid_by_currency(records).items():
        owes = _gross_obligations(bucket, participants)
        debts[currency] = _net_pairs(owes, participants, currency, epsilon)

    return debts


def compute_ledger(
    expenses: Iterable[Expense],
    current_user: str,
    epsilon: Decimal = SETTLEMENT_EPSILON,
) -> LedgerSnapshot:
    """Run both engine operations over the same expense list."""
    records = list(expenses)
    return LedgerSnapshot(
        current_user=current_user,
        balances=summarize_by_currency(records, current_user),
        debts=compute_net_debts(records, current_user, epsilon=epsilon),
        active_count=sum(1 for e in records if not e.is_paid),
    )


def debts_involving(edges: Iterable[NetDebtEdge], user: str) -> list[NetDebtEdge]:
    """Edges where the user is the debtor or the creditor."""
    return [e for e in edges if e.debtor == user or e.creditor == user]
