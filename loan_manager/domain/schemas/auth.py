"""Pydantic schemas for registration and login."""

from typing import Any, Dict, Optional

from pydantic import BaseModel


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    phone: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class LoginResponse(MessageResponse):
    user: Dict[str, Any]
