"""
Quiz operations over the ``quizzes`` collection
"""
import logging
from typing import Any, Dict, List, Optional

from app.config import settings
from app.errors import NotFoundError
from app.store import SERVER_TIMESTAMP, DocumentMissingError, DocumentStore

logger = logging.getLogger(__name__)

QUIZZES_COLLECTION = "quizzes"

# Maintained by the system only; never taken from a request payload
PROTECTED_QUIZ_FIELDS = frozenset({"id", "userCount", "createdOn"})


class QuizService:
    """Quiz CRUD plus the recent-quizzes listing"""

    def create_quiz(
        self,
        store: DocumentStore,
        name: str,
        description: Optional[str] = None,
        active: bool = False
    ) -> Dict[str, Any]:
        """
        Insert a quiz with a zero user count and a server-side creation time

        Returns:
            Stored fields (including the resolved timestamp) plus the id
        """
        quiz = {"name": name, "active": bool(active)}
        if description is not None:
            quiz["description"] = description
        quiz["userCount"] = 0
        quiz["createdOn"] = SERVER_TIMESTAMP

        quiz_id = store.add(QUIZZES_COLLECTION, quiz)
        logger.info(f"Quiz created: {quiz_id}")

        snapshot = store.get(QUIZZES_COLLECTION, quiz_id)
        if snapshot is None:
            raise NotFoundError("Quiz not found")
        return snapshot.to_dict()

    def update_quiz(self, store: DocumentStore, quiz_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply a partial update and return the merged view

        Protected fields are dropped here even if validation let them through.
        """
        changes = {
            key: value for key, value in fields.items()
            if key not in PROTECTED_QUIZ_FIELDS
        }

        snapshot = store.get(QUIZZES_COLLECTION, quiz_id)
        if snapshot is None:
            raise NotFoundError("Quiz not found")

        if changes:
            try:
                store.update(QUIZZES_COLLECTION, quiz_id, changes)
            except DocumentMissingError:
                raise NotFoundError("Quiz not found")
            logger.info(f"Quiz updated: {quiz_id} fields={sorted(changes)}")

        return {**snapshot.to_dict(), **changes}

    def get_quiz(self, store: DocumentStore, quiz_id: str) -> Dict[str, Any]:
        snapshot = store.get(QUIZZES_COLLECTION, quiz_id)
        if snapshot is None:
            raise NotFoundError("Quiz not found")
        return snapshot.to_dict()

    def delete_quiz(self, store: DocumentStore, quiz_id: str) -> Dict[str, Any]:
        """Delete a quiz and return its pre-deletion values"""
        snapshot = store.get(QUIZZES_COLLECTION, quiz_id)
        if snapshot is None:
            raise NotFoundError("Quiz not found")

        if not store.delete(QUIZZES_COLLECTION, quiz_id):
            logger.info(f"Quiz {quiz_id} vanished before delete")
            raise NotFoundError("Quiz not found")

        logger.info(f"Quiz deleted: {quiz_id}")
        return snapshot.to_dict()

    def list_recent_quizzes(self, store: DocumentStore, limit: int = None) -> List[Dict[str, Any]]:
        """Most recently created quizzes, newest first"""
        if limit is None:
            limit = settings.RECENT_QUIZZES_LIMIT
        snapshots = store.query(QUIZZES_COLLECTION, order_by="createdOn", descending=True, limit=limit)
        return [s.to_dict() for s in snapshots]


# Global instance
quiz_service = QuizService()
