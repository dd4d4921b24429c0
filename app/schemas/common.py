"""
Shared response envelopes
"""
from pydantic import BaseModel
from typing import Optional


class MessageResponse(BaseModel):
    """Informational result, e.g. an enrollment that already existed"""
    message: str


class ErrorResponse(BaseModel):
    error: str
    stack: Optional[str] = None
