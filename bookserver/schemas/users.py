"""Pydantic schemas for user endpoints."""

from datetime import datetime

from pydantic import BaseModel


class UserResponse(BaseModel):
    """Response model for the current user's profile."""
    user_id: str
    email: str
    name: str
    book_storage_limit: int
    used_book_storage: int
    created_at: datetime


class DeleteUserResponse(BaseModel):
    """Response model for account deletion."""
    deleted_books: int
