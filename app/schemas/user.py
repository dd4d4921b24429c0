"""
Pydantic schemas for user-related requests and responses
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List


class UserCreate(BaseModel):
    """Request schema for user creation"""
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1, description="Display name")


class UserOut(BaseModel):
    id: str
    name: str
    quizIds: List[str] = []


class UserResponse(BaseModel):
    user: UserOut
