"""Pydantic schemas for API requests and responses."""

from bookserver.schemas.auth import (
    RegisterRequest,
    RegisterResponse,
    LoginRequest,
    LoginResponse
)
from bookserver.schemas.books import (
    TagIn,
    TagOut,
    BookIn,
    BookOut,
    BookUpdateRequest,
    ListBooksResponse,
    DeleteBooksRequest,
    DeleteBooksResponse,
    UploadResponse,
    FormatResponse
)
from bookserver.schemas.common import ErrorResponse
from bookserver.schemas.users import UserResponse, DeleteUserResponse

__all__ = [
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "LoginResponse",
    "TagIn",
    "TagOut",
    "BookIn",
    "BookOut",
    "BookUpdateRequest",
    "ListBooksResponse",
    "DeleteBooksRequest",
    "DeleteBooksResponse",
    "UploadResponse",
    "FormatResponse",
    "ErrorResponse",
    "UserResponse",
    "DeleteUserResponse"
]
