"""
SQLAlchemy-backed document store

Each document is a row in the ``documents`` table. Writes bump the row
version; updates and transactional commits use ``UPDATE ... WHERE version = :seen`` so a
concurrent writer turns into a conflict instead of a lost update.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.models import Document
from app.store.base import (
    SERVER_TIMESTAMP,
    DocumentMissingError,
    DocumentStore,
    Snapshot,
    StoreError,
    Transaction,
    TransactionAbortedError,
    TransactionConflictError,
    resolve_server_values,
)

logger = logging.getLogger(__name__)

# Fixed width so lexicographic order on the JSON value matches time order
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def _server_now(session: Session) -> datetime:
    """Current time according to the database, as an aware UTC datetime"""
    if session.get_bind().dialect.name == "sqlite":
        # CURRENT_TIMESTAMP on SQLite has whole-second precision only
        raw = session.scalar(select(func.strftime("%Y-%m-%d %H:%M:%f", "now")))
        return datetime.strptime(raw, "%Y-%m-%d %H:%M:%S.%f").replace(tzinfo=timezone.utc)

    value = session.scalar(select(func.now()))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _encode(value: Any) -> Any:
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


def _prepare(session: Session, fields: Dict[str, Any]) -> Dict[str, Any]:
    if any(value is SERVER_TIMESTAMP for value in fields.values()):
        fields = resolve_server_values(fields, _server_now(session))
    return _encode(fields)


class SqlTransaction(Transaction):

    def __init__(self, store: "SqlDocumentStore"):
        super().__init__()
        self._store = store

    def _read(self, collection: str, doc_id: str) -> Tuple[Optional[Snapshot], Optional[int]]:
        with self._store._session() as session:
            row = session.get(Document, (collection, doc_id))
            if row is None:
                return None, None
            return Snapshot(doc_id, dict(row.data)), row.version

    def commit(self) -> None:
        pending: Dict[Tuple[str, str], Dict[str, Any]] = {}
        deletes = set()
        for op, collection, doc_id, fields in self._writes:
            key = (collection, doc_id)
            if op == "delete":
                deletes.add(key)
                pending.pop(key, None)
            else:
                pending.setdefault(key, {}).update(fields)

        with self._store._session() as session:
            try:
                for key, seen in self._reads.items():
                    if key in pending or key in deletes:
                        continue
                    row = session.get(Document, key)
                    if (row.version if row else None) != seen:
                        raise TransactionConflictError(f"{key[0]}/{key[1]} changed since read")

                for (collection, doc_id), fields in pending.items():
                    self._write(session, collection, doc_id, _prepare(session, fields))

                for collection, doc_id in deletes:
                    stmt = delete(Document).where(
                        Document.collection == collection, Document.id == doc_id
                    )
                    seen = self._reads.get((collection, doc_id))
                    if seen is not None:
                        stmt = stmt.where(Document.version == seen)
                    result = session.execute(stmt)
                    if seen is not None and result.rowcount == 0:
                        raise TransactionConflictError(f"{collection}/{doc_id} changed since read")

                session.commit()
            except (TransactionConflictError, DocumentMissingError):
                session.rollback()
                raise
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreError(f"Transaction commit failed: {str(e)}") from e

    def _write(self, session: Session, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        key = (collection, doc_id)
        seen = self._reads.get(key)
        if key in self._reads and seen is None:
            # Read as absent; a document appearing since is still a conflict
            if session.get(Document, key) is not None:
                raise TransactionConflictError(f"{collection}/{doc_id} changed since read")
            raise DocumentMissingError(collection, doc_id)

        row = session.get(Document, key)
        if row is None:
            raise DocumentMissingError(collection, doc_id)
        if seen is None:
            seen = row.version

        result = session.execute(
            update(Document)
            .where(
                Document.collection == collection,
                Document.id == doc_id,
                Document.version == seen,
            )
            .values(data={**row.data, **fields}, version=seen + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise TransactionConflictError(f"{collection}/{doc_id} changed since read")


class SqlDocumentStore(DocumentStore):
    """Document store persisted through a SQLAlchemy session factory"""

    def __init__(self, session_factory: sessionmaker, max_attempts: int = 5):
        super().__init__(max_attempts=max_attempts)
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, collection: str, doc_id: str) -> Optional[Snapshot]:
        with self._session() as session:
            row = session.get(Document, (collection, doc_id))
            if row is None:
                return None
            return Snapshot(doc_id, dict(row.data))

    def add(self, collection: str, fields: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        with self._session() as session:
            try:
                session.add(Document(collection=collection, id=doc_id, data=_prepare(session, fields), version=1))
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreError(f"Failed to add document to {collection}: {str(e)}") from e
        return doc_id

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        """
        Merge ``fields`` into the stored document

        The merged row is written only if its version is still the one read,
        so a transaction committing in between is re-read rather than
        overwritten.

        Raises:
            DocumentMissingError: no such document
            TransactionAbortedError: the row kept changing under us
        """
        for attempt in range(1, self.max_attempts + 1):
            with self._session() as session:
                try:
                    row = session.get(Document, (collection, doc_id))
                    if row is None:
                        raise DocumentMissingError(collection, doc_id)
                    seen = row.version
                    data = {**row.data, **_prepare(session, fields)}

                    result = session.execute(
                        update(Document)
                        .where(
                            Document.collection == collection,
                            Document.id == doc_id,
                            Document.version == seen,
                        )
                        .values(data=data, version=seen + 1)
                        .execution_options(synchronize_session=False)
                    )
                    if result.rowcount == 1:
                        session.commit()
                        return
                    session.rollback()
                except SQLAlchemyError as e:
                    session.rollback()
                    raise StoreError(f"Failed to update {collection}/{doc_id}: {str(e)}") from e

            logger.info(f"Update conflict on {collection}/{doc_id} (attempt {attempt}/{self.max_attempts})")

        raise TransactionAbortedError(f"Update of {collection}/{doc_id} aborted after {self.max_attempts} attempts")

    def delete(self, collection: str, doc_id: str) -> bool:
        with self._session() as session:
            try:
                result = session.execute(
                    delete(Document).where(Document.collection == collection, Document.id == doc_id)
                )
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreError(f"Failed to delete {collection}/{doc_id}: {str(e)}") from e
        return result.rowcount > 0

    def query(
        self,
        collection: str,
        order_by: str,
        descending: bool = True,
        limit: Optional[int] = None
    ) -> List[Snapshot]:
        sort_key = Document.data[order_by].as_string()
        stmt = (
            select(Document)
            .where(Document.collection == collection, sort_key.is_not(None))
            .order_by(
                sort_key.desc() if descending else sort_key.asc(),
                Document.id.desc() if descending else Document.id.asc(),
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        with self._session() as session:
            rows = session.execute(stmt).scalars().all()
            return [Snapshot(row.id, dict(row.data)) for row in rows]

    def transaction(self) -> SqlTransaction:
        return SqlTransaction(self)
