"""Display helpers for the Streamlit app."""

from src.presentation.formatting import (
    CURRENCY_NAMES,
    CURRENCY_SYMBOLS,
    balance_split,
    currency_symbol,
    debt_row_html,
    display_name,
    expense_share,
    expense_share_label,
    format_amount,
    is_settled,
    other_currency_lines,
    relative_date_label,
)

__all__ = [
    "CURRENCY_NAMES",
    "CURRENCY_SYMBOLS",
    "balance_split",
    "currency_symbol",
    "debt_row_html",
    "display_name",
    "expense_share",
    "expense_share_label",
    "format_amount",
    "is_settled",
    "other_currency_lines",
    "relative_date_label",
]
