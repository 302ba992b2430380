"""Form validation package."""

from src.validation.validator import (
    AccountValidator,
    ExpenseRejectedError,
    ExpenseValidator,
)

__all__ = ["AccountValidator", "ExpenseRejectedError", "ExpenseValidator"]
