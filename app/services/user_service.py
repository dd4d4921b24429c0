"""
User operations over the ``users`` collection
"""
import logging
from typing import Any, Dict

from app.errors import NotFoundError
from app.store import DocumentStore

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"


class UserService:
    """Create, fetch and delete users"""

    def create_user(self, store: DocumentStore, name: str) -> Dict[str, Any]:
        """
        Insert a user with an empty quiz list

        Returns:
            Stored fields plus the generated id
        """
        user_id = store.add(USERS_COLLECTION, {"name": name, "quizIds": []})
        logger.info(f"User created: {user_id}")

        snapshot = store.get(USERS_COLLECTION, user_id)
        if snapshot is None:
            raise NotFoundError("User not found")
        return snapshot.to_dict()

    def get_user(self, store: DocumentStore, user_id: str) -> Dict[str, Any]:
        snapshot = store.get(USERS_COLLECTION, user_id)
        if snapshot is None:
            raise NotFoundError("User not found")
        return snapshot.to_dict()

    def delete_user(self, store: DocumentStore, user_id: str) -> Dict[str, Any]:
        """
        Delete a user and return the values it held before deletion

        Raises:
            NotFoundError: user absent at lookup, or removed by a concurrent
                caller between lookup and delete
        """
        snapshot = store.get(USERS_COLLECTION, user_id)
        if snapshot is None:
            raise NotFoundError("User not found")

        if not store.delete(USERS_COLLECTION, user_id):
            logger.info(f"User {user_id} vanished before delete")
            raise NotFoundError("User not found")

        logger.info(f"User deleted: {user_id}")
        return snapshot.to_dict()


# Global instance
user_service = UserService()
