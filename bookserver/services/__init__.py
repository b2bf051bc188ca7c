"""Service layer for business logic."""

from bookserver.services.auth_service import AuthService
from bookserver.services.book_service import BookService
from bookserver.services.user_service import UserService

__all__ = [
    "AuthService",
    "BookService",
    "UserService",
]
