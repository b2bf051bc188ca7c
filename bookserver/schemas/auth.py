"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel


class RegisterRequest(BaseModel):
    """Request model for user registration."""
    email: str
    name: str
    password: str


class RegisterResponse(BaseModel):
    """Response model for user registration."""
    api_key: str
    user_id: str


class LoginRequest(BaseModel):
    """Request model for user login."""
    email: str
    password: str


class LoginResponse(BaseModel):
    """Response model for user login."""
    api_key: str
