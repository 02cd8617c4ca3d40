"""
Pydantic models for authentication requests and responses.
"""
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class UserRole(str, Enum):
    user = "user"
    admin = "admin"


class UserLogin(BaseModel):
    """Login request body. Fields are optional so missing ones map to 400, not 422."""
    email: Optional[str] = Field(None, description="User email address")
    password: Optional[str] = Field(None, description="User password")


class SessionUser(BaseModel):
    """Current session, as returned by /api/me and /api/login."""
    id: str
    email: str
    name: str
    role: UserRole


class MessageResponse(BaseModel):
    """Generic message response."""
    ok: bool = True
    message: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response."""
    error: str
    detail: Optional[str] = None
