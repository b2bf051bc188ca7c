"""Book API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import StreamingResponse

from bookserver.auth import get_current_user
from bookserver.schemas.common import ErrorResponse
from bookserver.schemas.books import (
    BookIn,
    BookOut,
    BookUpdateRequest,
    DeleteBooksRequest,
    DeleteBooksResponse,
    FormatResponse,
    ListBooksResponse,
    UploadResponse
)
from bookserver.domain import BookView
from bookserver.routes.streaming import iter_upload
from bookserver.services.book_service import BookService

router = APIRouter(
    prefix="/books",
    tags=["Books"],
    responses={401: {"model": ErrorResponse}, 404: {"model": ErrorResponse}}
)


@router.post("", response_model=BookOut, status_code=status.HTTP_201_CREATED)
async def create_book(
    request: BookIn,
    current_user: str = Depends(get_current_user)
):
    """
    Create a book's metadata. The book file is uploaded separately
    through POST /books/{guid}/data.

    Raises:
        - 400: A book with this guid exists, or two new tags share a name
        - 401: Invalid or missing API Key
        - 426: Book storage limit reached
    """
    book_service = BookService()

    book = book_service.create_book(
        current_user,
        str(request.guid),
        request.field_values(),
        [tag.to_spec() for tag in request.tags],
    )
    user = book_service.user_repo.get(current_user, track_changes=True)

    return BookOut.from_view(BookView(book=book, tags=user.tags_of(book)))


@router.get("", response_model=ListBooksResponse)
async def list_books(current_user: str = Depends(get_current_user)):
    """
    List all of the authenticated user's books with their tags.
    """
    views = BookService().get_books(current_user)

    return ListBooksResponse(books=[BookOut.from_view(view) for view in views])


@router.put("", response_model=BookOut)
async def update_book(
    request: BookUpdateRequest,
    current_user: str = Depends(get_current_user)
):
    """
    Update the fields present in the request body of the book named by guid.

    Raises:
        - 400: Unknown field, or a new tag's name collides on the book
        - 404: Book not found
    """
    book_service = BookService()

    book = book_service.update_book(current_user, str(request.guid), request.update_document())
    user = book_service.user_repo.get(current_user, track_changes=True)

    return BookOut.from_view(BookView(book=book, tags=user.tags_of(book)))


@router.delete("", response_model=DeleteBooksResponse)
async def delete_books(
    request: DeleteBooksRequest,
    current_user: str = Depends(get_current_user)
):
    """
    Delete books by guid, including their files and covers.

    Raises:
        - 404: Any of the guids is not one of the user's books (nothing is deleted)
    """
    deleted = await BookService().delete_books(current_user, [str(guid) for guid in request.guids])

    return DeleteBooksResponse(deleted_count=len(deleted), book_ids=deleted)


@router.post("/{book_id}/data", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_book_data(
    book_id: UUID,
    file: UploadFile = File(...),
    current_user: str = Depends(get_current_user)
):
    """
    Upload the book file. If the upload fails the book itself is deleted.

    Raises:
        - 404: Book not found
        - 413: Book file too large
        - 500: Upload failed
    """
    size = await BookService().add_book_data(current_user, str(book_id), iter_upload(file))

    return UploadResponse(guid=str(book_id), size=size)


@router.get("/{book_id}/data")
async def download_book_data(
    book_id: UUID,
    current_user: str = Depends(get_current_user)
):
    """
    Download the book file.

    Raises:
        - 404: Book or book file not found
    """
    book, stream = await BookService().get_book_data(current_user, str(book_id))

    extension = f".{book.format.lower()}" if book.format else ""
    return StreamingResponse(
        stream,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{book.book_id}{extension}"',
        }
    )


@router.post("/{book_id}/cover", response_model=UploadResponse)
async def change_book_cover(
    book_id: UUID,
    file: UploadFile = File(...),
    current_user: str = Depends(get_current_user)
):
    """
    Upload or replace the book's cover.

    Raises:
        - 404: Book not found
        - 413: Cover too large
    """
    size = await BookService().change_book_cover(current_user, str(book_id), iter_upload(file))

    return UploadResponse(guid=str(book_id), size=size)


@router.get("/{book_id}/cover")
async def get_book_cover(
    book_id: UUID,
    current_user: str = Depends(get_current_user)
):
    """
    Download the book's cover.

    Raises:
        - 404: Book or cover not found
    """
    _, stream = await BookService().get_book_cover(current_user, str(book_id))

    return StreamingResponse(stream, media_type="application/octet-stream")


@router.delete("/{book_id}/cover", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book_cover(
    book_id: UUID,
    current_user: str = Depends(get_current_user)
):
    """
    Delete the book's cover.

    Raises:
        - 404: Book not found
    """
    await BookService().delete_book_cover(current_user, str(book_id))


@router.get("/{book_id}/format", response_model=FormatResponse)
async def get_book_format(
    book_id: UUID,
    current_user: str = Depends(get_current_user)
):
    """
    Get the format (e.g. pdf, epub) of a book.
    """
    book_format = BookService().get_book_format(current_user, str(book_id))

    return FormatResponse(guid=str(book_id), format=book_format)
