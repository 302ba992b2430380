"""
Local Key-Value Storage Implementation

DESIGN DECISION: Everything lives in a tiny local key-value store, the
same shape the app has always used:
- "billsplit_users"        -> the user table (a JSON array)
- "expenses_<username>"    -> that user's expense list (a JSON array)
- "billsplit_audit"        -> the audit log (a JSON array, append-only)

Two backends:
1. JsonFileStore - one UTF-8 JSON file per key under a data directory
2. InMemoryStore - a dict, for tests and throwaway sessions

TRADEOFFS:
- Whole values are rewritten on every change (fine for personal use)
- No transactions; each write replaces the file atomically via rename
- Filtering happens in Python

The expense, user and audit storages below only talk to the KeyValueStore
protocol, so they work unchanged on either backend.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, unquote
from uuid import UUID

from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.models.account import UserAccount
from src.models.audit import AuditEvent
from src.models.expense import Expense
from src.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    StorageError,
    UserStorageInterface,
)


# =============================================================================
# KEY-VALUE BACKENDS
# =============================================================================

class KeyValueStore(ABC):
    """Minimal key -> JSON value store."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None if the key is absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns False if it was not there."""
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        pass


class InMemoryStore(KeyValueStore):
    """
    Dict-backed store.

    Values are round-tripped through JSON so the in-memory backend
    rejects exactly what the file backend would.
    """

    def __init__(self):
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}")

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        return list(self._data.keys())


class JsonFileStore(KeyValueStore):
    """
    One JSON file per key under a data directory.

    Keys are percent-encoded into file names, so usernames with spaces
    or slashes are safe.
    """

    SUFFIX = ".json"

    def __init__(self, data_dir: Optional[str] = None):
        self._dir = Path(data_dir or get_settings().storage.data_dir)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create data directory {self._dir}: {e}")

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        return self._dir / f"{quote(key, safe='')}{self.SUFFIX}"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            return None
        except json.JSONDecodeError as e:
            raise StorageError(f"Corrupt data for {key} in {path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read {key}: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    def _write(self, path: Path, payload: str) -> None:
        """Write to a temp file in the same directory, then rename over."""
        fd, tmp_name = tempfile.mkstemp(dir=self._dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise

    def set(self, key: str, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}")
        try:
            self._write(self._path(key), payload)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}")

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(f"Failed to delete {key}: {e}")

    def keys(self) -> list[str]:
        return sorted(
            unquote(p.name[: -len(self.SUFFIX)])
            for p in self._dir.glob(f"*{self.SUFFIX}")
        )


def _load_list(store: KeyValueStore, key: str) -> list:
    """Read a key that must hold a JSON array (absent means empty)."""
    value = store.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise StorageError(f"Expected a list under {key}, found {type(value).__name__}")
    return value


# =============================================================================
# EXPENSES
# =============================================================================

class LocalExpenseStorage(ExpenseStorageInterface):
    """
    Expense lists kept under "expenses_<username>".

    Records are stored in the camelCase shape (paidBy, splitAmong, isPaid,
    createdAt) with amounts as JSON numbers.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: Optional[str] = None,
    ):
        self._store = store
        self._prefix = key_prefix or get_settings().storage.expenses_key_prefix

    def key_for(self, user_id: str) -> str:
        return f"{self._prefix}{user_id}"

    async def load_expenses(self, user_id: str) -> list[Expense]:
        """Load and validate a user's expenses."""
        key = self.key_for(user_id)
        records = _load_list(self._store, key)

        expenses = []
        for index, record in enumerate(records):
            try:
                expenses.append(Expense.model_validate(record))
            except ValidationError as e:
                raise StorageError(
                    f"Malformed expense record #{index} under {key}: {e}"
                )
        return expenses

    async def save_expenses(self, user_id: str, expenses: list[Expense]) -> bool:
        """Replace a user's expense list."""
        self._store.set(
            self.key_for(user_id),
            [expense.to_record() for expense in expenses],
        )
        return True


# =============================================================================
# USERS
# =============================================================================

class LocalUserStorage(UserStorageInterface):
    """The user table, a JSON array under "billsplit_users"."""

    def __init__(
        self,
        store: KeyValueStore,
        key: Optional[str] = None,
    ):
        self._store = store
        self._key = key or get_settings().storage.users_key

    async def list_users(self) -> list[UserAccount]:
        users = []
        for record in _load_list(self._store, self._key):
            try:
                users.append(UserAccount.model_validate(record))
            except ValidationError as e:
                raise StorageError(f"Malformed user record under {self._key}: {e}")
        return users

    async def get_user(self, username: str) -> Optional[UserAccount]:
        for user in await self.list_users():
            if user.username == username:
                return user
        return None

    async def find_user(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[UserAccount]:
        wanted_email = email.strip().lower() if email else None
        for user in await self.list_users():
            if username and user.username == username:
                return user
            if wanted_email and user.email.lower() == wanted_email:
                return user
        return None

    async def add_user(self, account: UserAccount) -> bool:
        existing = await self.find_user(username=account.username, email=account.email)
        if existing is not None:
            raise DuplicateError("Username or email already exists")

        records = _load_list(self._store, self._key)
        records.append(account.model_dump(mode="json", by_alias=True))
        self._store.set(self._key, records)
        return True


# =============================================================================
# AUDIT
# =============================================================================

class LocalAuditStorage(AuditStorageInterface):
    """
    Append-only audit log under "billsplit_audit".

    Audit events are append-only.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key: Optional[str] = None,
        max_events: int = 5000,
    ):
        self._store = store
        self._key = key or get_settings().storage.audit_key
        self._max_events = max_events

    def _all_events(self) -> list[AuditEvent]:
        events = []
        for record in _load_list(self._store, self._key):
            try:
                events.append(AuditEvent.model_validate(record))
            except ValidationError:
                continue  # Skip malformed rows
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event, keeping only the newest max_events."""
        records = _load_list(self._store, self._key)
        records.append(event.model_dump(mode="json"))
        self._store.set(self._key, records[-self._max_events:])
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._all_events() if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
        username: Optional[str] = None,
    ) -> list[AuditEvent]:
        events = self._all_events()
        if username is not None:
            events = [e for e in events if e.username == username]
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]


def create_key_value_store(
    backend: Optional[str] = None,
    data_dir: Optional[str] = None,
) -> KeyValueStore:
    """Build the configured backend."""
    backend = backend or get_settings().storage.backend
    if backend == "memory":
        return InMemoryStore()
    if backend == "json":
        return JsonFileStore(data_dir)
    raise StorageError(f"Unknown storage backend: {backend}")
