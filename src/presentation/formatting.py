"""
Display Helpers

Turns engine output into the strings and numbers the dashboard shows.
No Streamlit imports here so everything stays testable.
"""

import html
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from src.config import get_settings
from src.models.expense import CurrencyBalance, Expense, NetDebtEdge


CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "GBP": "£",
    "EUR": "€",
    "NGN": "₦",
    "CAD": "C$",
    "AUD": "A$",
}

CURRENCY_NAMES: dict[str, str] = {
    "USD": "US Dollar",
    "GBP": "British Pound",
    "EUR": "Euro",
    "NGN": "Nigerian Naira",
    "CAD": "Canadian Dollar",
    "AUD": "Australian Dollar",
}

CENT = Decimal("0.01")


def currency_symbol(code: str) -> str:
    """Symbol for a currency code; unknown codes show as $."""
    return CURRENCY_SYMBOLS.get(code, "$")


def format_amount(
    amount: Union[Decimal, float, int],
    currency: str,
    signed: bool = False,
) -> str:
    """
    Format an amount with its currency symbol and two decimals.

    >>> format_amount(Decimal("30"), "USD")
    '$30.00'
    >>> format_amount(Decimal("-5"), "GBP", signed=True)
    '-£5.00'
    """
    value = Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP)
    symbol = currency_symbol(currency)
    magnitude = f"{symbol}{abs(value):,.2f}"
    if value < 0:
        return f"-{magnitude}"
    if signed:
        return f"+{magnitude}"
    return magnitude


def is_settled(
    amount: Union[Decimal, float, int],
    epsilon: Optional[Decimal] = None,
) -> bool:
    """Amounts within the settlement threshold of zero count as settled."""
    if epsilon is None:
        epsilon = get_settings().app.settlement_epsilon
    return abs(Decimal(str(amount))) <= epsilon


def display_name(name: str, current_user: str) -> str:
    return "You" if name == current_user else name


def relative_date_label(when: Union[date, datetime], today: Optional[date] = None) -> str:
    """Today / Yesterday / N days ago, then a short month-day label."""
    today = today or date.today()
    day = when.date() if isinstance(when, datetime) else when
    days = (today - day).days
    if days == 0:
        return "Today"
    if days == 1:
        return "Yesterday"
    if 1 < days < 7:
        return f"{days} days ago"
    return f"{day.strftime('%b')} {day.day}"


def balance_split(balance: Optional[CurrencyBalance]) -> tuple[float, float]:
    """
    Bar widths (owed %, owe %) for the balance overview.

    Shows an even 50/50 bar when nothing is outstanding.
    """
    if balance is None:
        return 50.0, 50.0
    total = balance.you_owe + balance.you_are_owed
    if total <= 0:
        return 50.0, 50.0
    owed = float(balance.you_are_owed / total * 100)
    return owed, 100.0 - owed


def expense_share(expense: Expense, user: str) -> tuple[Decimal, Decimal]:
    """
    (you owe, you are owed) on one expense, ignoring its paid flag.

    A payer who is also in the split keeps their own share; a payer
    outside the split is owed the whole amount.
    """
    zero = Decimal("0")
    in_split = user in expense.split_among
    if expense.paid_by == user:
        owed = expense.amount - expense.per_person if in_split else expense.amount
        return zero, owed
    if in_split:
        return expense.per_person, zero
    return zero, zero


def expense_share_label(expense: Expense, user: str) -> Optional[str]:
    """The "You owe ... / N people owe you ..." line under an unpaid expense."""
    if expense.is_paid:
        return None

    you_owe, you_are_owed = expense_share(expense, user)
    if you_owe > 0:
        return f"You owe {format_amount(you_owe, expense.currency)} to {expense.paid_by}"
    if you_are_owed > 0:
        count = len(expense.split_among) - (1 if user in expense.split_among else 0)
        people = "person owes" if count == 1 else "people owe"
        return f"{count} {people} you {format_amount(you_are_owed, expense.currency)}"
    return None


def other_currency_lines(
    balances: dict[str, CurrencyBalance],
    primary_currency: str,
) -> list[str]:
    """One "GBP: £10.00 owed, -£5.00 owe" line per non-primary currency."""
    if len(balances) < 2:
        return []
    return [
        f"{code}: {format_amount(balance.you_are_owed, code)} owed, "
        f"-{format_amount(balance.you_owe, code)} owe"
        for code, balance in balances.items()
        if code != primary_currency
    ]


def debt_row_html(edge: NetDebtEdge, current_user: str) -> str:
    """
    One "Who owes what" row, styled by the viewer's side of the debt.

    Names are user input, so they are escaped before going into markup.
    """
    if edge.debtor == current_user:
        css = "owe-box"
    elif edge.creditor == current_user:
        css = "owed-box"
    else:
        css = "neutral-box"
    debtor = html.escape(display_name(edge.debtor, current_user))
    creditor = html.escape(display_name(edge.creditor, current_user))
    return (
        f'<div class="{css}"><strong>{debtor}</strong>'
        f' → <strong>{creditor}</strong>'
        f'<span style="float:right"><strong>'
        f'{format_amount(edge.amount, edge.currency)}</strong></span></div>'
    )
