"""
Local Account Service

A mock identity provider: the user table lives in the same local store
as the expenses. Its only job is to tell the dashboard whose expense list
to load and who "you" are when classifying debts.

DESIGN DECISION: Passwords are bcrypt-hashed (passlib) even though this is
not a security boundary. Nothing reads them back in plain text.
"""

from typing import Optional

from passlib.context import CryptContext

from src.models.account import Session, UserAccount
from src.models.expense import ValidationResult
from src.services.storage import DuplicateError, UserStorageInterface
from src.validation import AccountValidator


class AccountError(Exception):
    """Base exception for account operations."""
    pass


class RegistrationError(AccountError):
    """Signup was refused."""

    def __init__(self, message: str, result: Optional[ValidationResult] = None):
        self.result = result
        super().__init__(message)


class AuthenticationError(AccountError):
    """Username/password did not match."""
    pass


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def password_strength(password: str) -> int:
    """
    Rough strength meter for the signup form.

    0 = empty, 1 = too short, 2 = okay, 3 = strong
    """
    if not password:
        return 0
    if len(password) < 6:
        return 1
    if len(password) < 10:
        return 2
    return 3


class AccountService:
    """Register users, check credentials, hand out sessions."""

    def __init__(
        self,
        user_storage: UserStorageInterface,
        validator: Optional[AccountValidator] = None,
    ):
        self._users = user_storage
        self._validator = validator or AccountValidator()

    async def register(
        self,
        username: str,
        email: str,
        password: str,
    ) -> UserAccount:
        """
        Create a new account.

        Raises:
            RegistrationError: If the input is invalid or the username
                or email is already taken
        """
        result = self._validator.validate(username, email, password)
        if not result.is_valid:
            first_error = next(
                issue.message for issue in result.issues if issue.severity == "error"
            )
            raise RegistrationError(first_error, result)

        account = UserAccount(
            username=username.strip(),
            email=email.strip(),
            password_hash=hash_password(password),
        )

        try:
            await self._users.add_user(account)
        except DuplicateError as e:
            raise RegistrationError(str(e))

        return account

    async def login(self, username: str, password: str) -> Session:
        """
        Check credentials and start a session.

        Raises:
            AuthenticationError: On unknown user or wrong password
        """
        account = await self._users.get_user(username.strip())
        if account is None:
            raise AuthenticationError("Invalid username or password")

        if not verify_password(password, account.password_hash):
            raise AuthenticationError("Invalid username or password")

        return Session(username=account.username)
