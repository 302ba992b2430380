"""Services package."""

from src.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    LocalAuditStorage,
    LocalExpenseStorage,
    LocalUserStorage,
    NotFoundError,
    StorageError,
    UserStorageInterface,
    create_key_value_store,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "ExpenseStorageInterface",
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "LocalAuditStorage",
    "LocalExpenseStorage",
    "LocalUserStorage",
    "NotFoundError",
    "StorageError",
    "UserStorageInterface",
    "create_key_value_store",
]
