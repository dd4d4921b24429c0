"""
User API endpoints, including enrollment into a quiz
"""
from fastapi import APIRouter, Depends
from typing import Union
import logging

from app.dependencies import get_store
from app.schemas.common import ErrorResponse, MessageResponse
from app.schemas.quiz import EnrollmentResponse
from app.schemas.user import UserCreate, UserResponse
from app.services.enrollment_service import ALREADY_ENROLLED_MESSAGE, enrollment_service
from app.services.user_service import user_service
from app.store import DocumentStore

router = APIRouter(prefix="/users", tags=["users"])
logger = logging.getLogger(__name__)

NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post("", response_model=UserResponse)
def create_user(request: UserCreate, store: DocumentStore = Depends(get_store)):
    """
    Create a user

    - `name` is required (min length 1)
    - `quizIds` always starts empty
    """
    user = user_service.create_user(store, name=request.name)
    return {"user": user}


@router.get("/{user_id}", response_model=UserResponse, responses=NOT_FOUND)
def get_user(user_id: str, store: DocumentStore = Depends(get_store)):
    return {"user": user_service.get_user(store, user_id)}


@router.delete("/{user_id}", response_model=UserResponse, responses=NOT_FOUND)
def delete_user(user_id: str, store: DocumentStore = Depends(get_store)):
    """Delete a user and return the values it held"""
    return {"user": user_service.delete_user(store, user_id)}


@router.post(
    "/{user_id}/quizzes/{quiz_id}",
    response_model=Union[EnrollmentResponse, MessageResponse],
    response_model_exclude_none=True,
    responses=NOT_FOUND,
)
@router.post(
    "/{user_id}/quizes/{quiz_id}",
    response_model=Union[EnrollmentResponse, MessageResponse],
    response_model_exclude_none=True,
    include_in_schema=False,
)
def enroll_user(user_id: str, quiz_id: str, store: DocumentStore = Depends(get_store)):
    """
    Add a user to a quiz

    Appends the quiz id to the user's `quizIds` and increments the quiz
    `userCount` in one transaction. Enrolling twice is not an error: the
    second call answers with a message and changes nothing.
    """
    result = enrollment_service.enroll(store, user_id, quiz_id)
    if result.already_enrolled:
        return MessageResponse(message=ALREADY_ENROLLED_MESSAGE)
    return EnrollmentResponse(quiz=result.quiz, user=result.user)
