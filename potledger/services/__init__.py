"""Services package."""

from potledger.services.storage import (
    AuditStorageInterface,
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # Storage services
    "AuditStorageInterface",
    "DuplicateError",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
