"""
In-memory document store

Used by the test suite and for running the API without a database
(STORE_BACKEND=memory). A single lock guards all collections so commits are
atomic with respect to each other.
"""
import copy
import itertools
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.store.base import (
    DocumentMissingError,
    DocumentStore,
    Snapshot,
    Transaction,
    TransactionConflictError,
    resolve_server_values,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Record:
    __slots__ = ("data", "version", "seq")

    def __init__(self, data: Dict[str, Any], seq: int):
        self.data = data
        self.version = 1
        self.seq = seq


class InMemoryTransaction(Transaction):

    def __init__(self, store: "InMemoryDocumentStore"):
        super().__init__()
        self._store = store

    def _read(self, collection: str, doc_id: str) -> Tuple[Optional[Snapshot], Optional[int]]:
        with self._store._lock:
            record = self._store._collection(collection).get(doc_id)
            if record is None:
                return None, None
            return Snapshot(doc_id, copy.deepcopy(record.data)), record.version

    def commit(self) -> None:
        store = self._store
        with store._lock:
            for (collection, doc_id), version in self._reads.items():
                record = store._collection(collection).get(doc_id)
                current = record.version if record else None
                if current != version:
                    raise TransactionConflictError(f"{collection}/{doc_id} changed since read")

            for op, collection, doc_id, _ in self._writes:
                if op == "update" and doc_id not in store._collection(collection):
                    raise DocumentMissingError(collection, doc_id)

            now = store._clock()
            for op, collection, doc_id, fields in self._writes:
                docs = store._collection(collection)
                if op == "delete":
                    docs.pop(doc_id, None)
                    continue
                record = docs[doc_id]
                record.data.update(copy.deepcopy(resolve_server_values(fields, now)))
                record.version += 1


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed store with per-document versions"""

    def __init__(self, clock: Callable[[], Any] = None, max_attempts: int = 5):
        super().__init__(max_attempts=max_attempts)
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._collections: Dict[str, Dict[str, _Record]] = {}
        self._seq = itertools.count()

    def _collection(self, name: str) -> Dict[str, _Record]:
        return self._collections.setdefault(name, {})

    def get(self, collection: str, doc_id: str) -> Optional[Snapshot]:
        with self._lock:
            record = self._collection(collection).get(doc_id)
            if record is None:
                return None
            return Snapshot(doc_id, copy.deepcopy(record.data))

    def add(self, collection: str, fields: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        with self._lock:
            data = copy.deepcopy(resolve_server_values(fields, self._clock()))
            self._collection(collection)[doc_id] = _Record(data, next(self._seq))
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            record = self._collection(collection).get(doc_id)
            if record is None:
                raise DocumentMissingError(collection, doc_id)
            record.data.update(copy.deepcopy(resolve_server_values(fields, self._clock())))
            record.version += 1

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._lock:
            return self._collection(collection).pop(doc_id, None) is not None

    def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = True,
        limit: Optional[int] = None
    ) -> List[Snapshot]:
        with self._lock:
            # Documents missing the field are excluded, as an ordered index would
            items = [
                (doc_id, record) for doc_id, record in self._collection(collection).items()
                if record.data.get(order_by) is not None
            ]
            items.sort(key=lambda item: (item[1].data[order_by], item[1].seq), reverse=descending)
            if limit is not None:
                items = items[:limit]
            return [Snapshot(doc_id, copy.deepcopy(record.data)) for doc_id, record in items]

    def transaction(self) -> InMemoryTransaction:
        return InMemoryTransaction(self)
