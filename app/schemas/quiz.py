"""
Pydantic schemas for quiz-related requests and responses
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime

from app.schemas.user import UserOut


def _reject_null(value):
    # Optional means "may be omitted", not "may be null"
    if value is None:
        raise ValueError("must not be null")
    return value


class QuizCreate(BaseModel):
    """Request schema for quiz creation; unknown fields such as userCount are dropped"""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="Quiz name")
    description: Optional[str] = Field(None, min_length=1, description="Quiz description")
    active: bool = Field(False, description="Whether the quiz is open")

    @field_validator("description", mode="before")
    @classmethod
    def description_not_null(cls, value):
        return _reject_null(value)


class QuizUpdate(BaseModel):
    """Partial update - send any subset of the creation fields"""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)
    active: Optional[bool] = None

    @field_validator("name", "description", "active", mode="before")
    @classmethod
    def fields_not_null(cls, value):
        return _reject_null(value)


class QuizOut(BaseModel):
    """Stored quiz document plus its id"""
    id: str
    name: str
    description: Optional[str] = None
    active: bool = False
    userCount: int = 0
    createdOn: Optional[datetime] = None


class QuizResponse(BaseModel):
    quiz: QuizOut


class QuizListResponse(BaseModel):
    quizzes: List[QuizOut]


class EnrollmentResponse(BaseModel):
    """Quiz and user after a new enrollment"""
    quiz: QuizOut
    user: UserOut
