"""
Document store capability interface

The core only talks to the database through this small surface so that the
SQL-backed store and the in-memory store are interchangeable.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class _ServerTimestamp:
    """Sentinel replaced with the store clock when a document is written"""

    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


def resolve_server_values(fields: Dict[str, Any], now: Any) -> Dict[str, Any]:
    """Copy of ``fields`` with every SERVER_TIMESTAMP replaced by ``now``"""
    return {
        key: (now if value is SERVER_TIMESTAMP else value)
        for key, value in fields.items()
    }


class StoreError(Exception):
    """Store unavailable or operation could not be completed"""


class DocumentMissingError(StoreError):
    """Write targeted a document that does not exist"""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"No document {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class TransactionConflictError(StoreError):
    """A document read in the transaction changed before commit"""


class TransactionAbortedError(StoreError):
    """Transaction kept conflicting until the attempt budget ran out"""


@dataclass
class Snapshot:
    """Document id plus a copy of its stored fields"""
    id: str
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, **self.data}


class Transaction(ABC):
    """
    Read/write handle supplied to a transaction function

    Reads record the version they observed. Writes are buffered and only
    applied at commit, and only if none of the observed versions moved.
    """

    def __init__(self):
        self._reads: Dict[Tuple[str, str], Optional[int]] = {}
        self._writes: List[Tuple[str, str, str, Optional[Dict[str, Any]]]] = []

    def get(self, collection: str, doc_id: str) -> Optional[Snapshot]:
        if self._writes:
            raise StoreError("Transactions require all reads before any writes")
        snapshot, version = self._read(collection, doc_id)
        self._reads[(collection, doc_id)] = version
        return snapshot

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        self._writes.append(("update", collection, doc_id, dict(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(("delete", collection, doc_id, None))

    @abstractmethod
    def _read(self, collection: str, doc_id: str) -> Tuple[Optional[Snapshot], Optional[int]]:
        """Return the current snapshot and its version (None when absent)"""

    @abstractmethod
    def commit(self) -> None:
        """Apply buffered writes atomically or raise TransactionConflictError"""


class DocumentStore(ABC):
    """Get/add/update/delete/query plus optimistic transactions"""

    def __init__(self, max_attempts: int = 5):
        self.max_attempts = max_attempts

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Snapshot]:
        ...

    @abstractmethod
    def add(self, collection: str, fields: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = True,
        limit: Optional[int] = None
    ) -> List[Snapshot]:
        ...

    @abstractmethod
    def transaction(self) -> Transaction:
        """Open a fresh transaction handle"""

    def run_transaction(self, fn: Callable[[Transaction], Any], max_attempts: int = None) -> Any:
        """
        Run ``fn`` inside a transaction, re-running it on write conflicts

        Args:
            fn: Callable receiving the transaction handle
            max_attempts: Attempt budget (defaults to the store setting)

        Returns:
            Whatever ``fn`` returned on the committed attempt

        Raises:
            TransactionAbortedError: every attempt conflicted
        """
        attempts = self.max_attempts if max_attempts is None else max_attempts

        for attempt in range(1, attempts + 1):
            txn = self.transaction()
            result = fn(txn)
            try:
                txn.commit()
                return result
            except TransactionConflictError as e:
                logger.info(f"Transaction conflict (attempt {attempt}/{attempts}): {str(e)}")

        logger.error(f"Transaction aborted after {attempts} attempts")
        raise TransactionAbortedError(f"Transaction aborted after {attempts} attempts")
