"""API routes package."""

from bookserver.routes.auth_routes import router as auth_router
from bookserver.routes.book_routes import router as book_router
from bookserver.routes.user_routes import router as user_router

__all__ = ["auth_router", "book_router", "user_router"]
