"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
Currently implements an in-memory backend, but designed to be swappable.
"""

from potledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from potledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "LedgerStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
]
