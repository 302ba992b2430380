"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a local key-value store (JSON files or memory),
but designed to be swappable.
"""

from src.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    StorageError,
    UserStorageInterface,
)
from src.services.storage.local_store import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    LocalAuditStorage,
    LocalExpenseStorage,
    LocalUserStorage,
    create_key_value_store,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # Local implementation
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "LocalAuditStorage",
    "LocalExpenseStorage",
    "LocalUserStorage",
    "create_key_value_store",
]
