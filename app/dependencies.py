"""
FastAPI dependencies - the single document store handle shared by routes
"""
import logging
from functools import lru_cache

from app.config import settings
from app.store import DocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)


def build_store(backend: str = None) -> DocumentStore:
    """Create the configured document store"""
    backend = (backend or settings.STORE_BACKEND).lower()

    if backend == "memory":
        logger.info("Using in-memory document store")
        return InMemoryDocumentStore(max_attempts=settings.TRANSACTION_MAX_ATTEMPTS)

    if backend == "sql":
        from app.database import SessionLocal
        from app.store.sql import SqlDocumentStore

        logger.info("Using SQL document store")
        return SqlDocumentStore(SessionLocal, max_attempts=settings.TRANSACTION_MAX_ATTEMPTS)

    raise ValueError(f"Unknown STORE_BACKEND: {backend}")


@lru_cache
def get_store() -> DocumentStore:
    return build_store()
