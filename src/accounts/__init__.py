"""Local accounts package."""

from src.accounts.service import (
    AccountError,
    AccountService,
    AuthenticationError,
    RegistrationError,
    hash_password,
    password_strength,
    verify_password,
)

__all__ = [
    "AccountError",
    "AccountService",
    "AuthenticationError",
    "RegistrationError",
    "hash_password",
    "password_strength",
    "verify_password",
]
