"""
Document store implementations behind a common capability interface
"""
from app.store.base import (
    SERVER_TIMESTAMP,
    DocumentMissingError,
    DocumentStore,
    Snapshot,
    StoreError,
    Transaction,
    TransactionAbortedError,
    TransactionConflictError,
)
from app.store.memory import InMemoryDocumentStore

__all__ = [
    "SERVER_TIMESTAMP",
    "DocumentMissingError",
    "DocumentStore",
    "InMemoryDocumentStore",
    "Snapshot",
    "StoreError",
    "Transaction",
    "TransactionAbortedError",
    "TransactionConflictError",
]
