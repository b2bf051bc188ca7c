"""User account API routes."""

from fastapi import APIRouter, Depends

from bookserver.auth import get_current_user
from bookserver.schemas.common import ErrorResponse
from bookserver.schemas.users import DeleteUserResponse, UserResponse
from bookserver.services.user_service import UserService

router = APIRouter(prefix="/user", tags=["User"], responses={401: {"model": ErrorResponse}})


@router.get("", response_model=UserResponse)
async def get_user(current_user: str = Depends(get_current_user)):
    """
    Get the authenticated user's profile and storage usage.
    """
    profile = UserService().get_user(current_user)

    return UserResponse(
        user_id=profile.user_id,
        email=profile.email,
        name=profile.name,
        book_storage_limit=profile.book_storage_limit,
        used_book_storage=profile.used_book_storage,
        created_at=profile.created_at,
    )


@router.delete("", response_model=DeleteUserResponse)
async def delete_user(current_user: str = Depends(get_current_user)):
    """
    Delete the authenticated user's account together with all books,
    tags, book files and covers.
    """
    deleted_books = await UserService().delete_user(current_user)

    return DeleteUserResponse(deleted_books=deleted_books)
