"""
Enrollment service - adds a user to a quiz exactly once

The user's ``quizIds`` and the quiz's ``userCount`` are denormalized copies of
the same relationship, so both are written in one optimistic transaction.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from app.errors import NotFoundError
from app.services.quiz_service import QUIZZES_COLLECTION
from app.services.user_service import USERS_COLLECTION
from app.store import DocumentStore, Transaction

logger = logging.getLogger(__name__)

ALREADY_ENROLLED_MESSAGE = "Quiz already added"


@dataclass
class EnrollmentResult:
    """Outcome of an enrollment; ``user``/``quiz`` are None when already enrolled"""
    already_enrolled: bool
    user: Optional[Dict[str, Any]] = None
    quiz: Optional[Dict[str, Any]] = None


class EnrollmentService:

    def enroll(self, store: DocumentStore, user_id: str, quiz_id: str) -> EnrollmentResult:
        """
        Enroll a user in a quiz

        Reads happen inside the transaction, so a concurrent enrollment that
        commits first makes this attempt conflict and re-run against fresh
        data instead of writing a stale ``userCount``.

        Raises:
            NotFoundError: user missing (checked first) or quiz missing
            StoreError: store failure or retry budget exhausted
        """

        def attempt(txn: Transaction) -> EnrollmentResult:
            user = txn.get(USERS_COLLECTION, user_id)
            quiz = txn.get(QUIZZES_COLLECTION, quiz_id)

            if user is None:
                raise NotFoundError("User not found")
            if quiz is None:
                raise NotFoundError("Quiz not found")

            quiz_ids = list(user.data.get("quizIds") or [])
            if quiz_id in quiz_ids:
                return EnrollmentResult(already_enrolled=True)

            quiz_ids.append(quiz_id)
            user_count = (quiz.data.get("userCount") or 0) + 1

            txn.update(QUIZZES_COLLECTION, quiz_id, {"userCount": user_count})
            txn.update(USERS_COLLECTION, user_id, {"quizIds": quiz_ids})

            return EnrollmentResult(
                already_enrolled=False,
                user={**user.to_dict(), "quizIds": quiz_ids},
                quiz={**quiz.to_dict(), "userCount": user_count},
            )

        result = store.run_transaction(attempt)

        if result.already_enrolled:
            logger.info(f"User {user_id} already enrolled in quiz {quiz_id}")
        else:
            logger.info(
                f"User {user_id} enrolled in quiz {quiz_id} "
                f"(userCount={result.quiz['userCount']})"
            )
        return result


# Global instance
enrollment_service = EnrollmentService()
