# medicare/schemas/common/common.py
from pydantic import BaseModel
from typing import Optional


class ErrorResponse(BaseModel):
    success: bool = False
    data: None = None
    error: str


class MessageResponse(BaseModel):
    message: str


class PartySummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: Optional[str] = None
