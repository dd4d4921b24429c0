"""
Quiz API endpoints
"""
from fastapi import APIRouter, Depends
import logging

from app.dependencies import get_store
from app.schemas.common import ErrorResponse
from app.schemas.quiz import QuizCreate, QuizListResponse, QuizResponse, QuizUpdate
from app.services.quiz_service import quiz_service
from app.store import DocumentStore

router = APIRouter(prefix="/quizzes", tags=["quizzes"])
logger = logging.getLogger(__name__)

NOT_FOUND = {404: {"model": ErrorResponse}}


@router.post("", response_model=QuizResponse, response_model_exclude_none=True)
def create_quiz(request: QuizCreate, store: DocumentStore = Depends(get_store)):
    """
    Create a quiz

    - `name`: required, not blank
    - `description`: optional, not blank
    - `active`: optional, defaults to false
    - `userCount` starts at 0 and `createdOn` is set by the store
    """
    quiz = quiz_service.create_quiz(
        store,
        name=request.name,
        description=request.description,
        active=request.active,
    )
    return {"quiz": quiz}


@router.get("", response_model=QuizListResponse, response_model_exclude_none=True)
def list_quizzes(store: DocumentStore = Depends(get_store)):
    """Latest quizzes by creation time, newest first (no pagination)"""
    return {"quizzes": quiz_service.list_recent_quizzes(store)}


@router.get("/{quiz_id}", response_model=QuizResponse, response_model_exclude_none=True, responses=NOT_FOUND)
def get_quiz(quiz_id: str, store: DocumentStore = Depends(get_store)):
    return {"quiz": quiz_service.get_quiz(store, quiz_id)}


@router.post("/{quiz_id}", response_model=QuizResponse, response_model_exclude_none=True, responses=NOT_FOUND)
@router.patch("/{quiz_id}", response_model=QuizResponse, response_model_exclude_none=True, responses=NOT_FOUND)
def update_quiz(quiz_id: str, request: QuizUpdate, store: DocumentStore = Depends(get_store)):
    """
    Partially update a quiz

    Only the supplied fields change. `userCount` and `createdOn` can never be
    set through this endpoint.
    """
    fields = request.model_dump(exclude_unset=True)
    return {"quiz": quiz_service.update_quiz(store, quiz_id, fields)}


@router.delete("/{quiz_id}", response_model=QuizResponse, response_model_exclude_none=True, responses=NOT_FOUND)
def delete_quiz(quiz_id: str, store: DocumentStore = Depends(get_store)):
    """Delete a quiz and return the values it held"""
    return {"quiz": quiz_service.delete_quiz(store, quiz_id)}
