"""
Document model - one row per stored document across all collections
"""
from sqlalchemy import Column, String, Integer, JSON
from app.database import Base


class Document(Base):
    """
    Documents table - schemaless JSON payload keyed by (collection, id)

    ``version`` is bumped on every write and drives optimistic concurrency.
    """
    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(64), primary_key=True)
    data = Column(JSON, nullable=False)
    version = Column(Integer, nullable=False, default=1)

    def __repr__(self):
        return f"<Document(collection={self.collection}, id={self.id}, version={self.version})>"
