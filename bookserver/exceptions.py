"""Custom exception classes for the book server.

Every exception carries the HTTP-style status, a human-readable message and a
numeric error kind, so the transport layer can map it onto a response without
knowing what went wrong.
"""

from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    INVALID_PARAMETER = 0
    INVALID_CREDENTIALS = 1
    USER_ALREADY_EXISTS = 2
    INVALID_API_KEY = 3
    BOOK_NOT_FOUND = 4
    INSUFFICIENT_STORAGE = 5
    TAG_NAME_EXISTS = 6
    BOOK_ALREADY_EXISTS = 7
    UPLOAD_FAILED = 8
    USER_NOT_FOUND = 9
    BLOB_NOT_FOUND = 10
    BLOB_TOO_LARGE = 11
    INTERNAL_ERROR = 12


class BookServerException(Exception):
    """
    Base exception class for all book server errors.
    """
    status_code: int = 500
    error_code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {
            "status": self.status_code,
            "message": self.message,
            "code": int(self.error_code),
        }


class UnknownFieldError(BookServerException):
    """
    Raised when an update document names a field the book does not have.
    """
    status_code = 400
    error_code = ErrorCode.INVALID_PARAMETER


class InvalidFieldValueError(UnknownFieldError):
    """
    Raised when a field value cannot be converted to the field's type.
    """


class InvalidCredentialsError(BookServerException):
    """
    Raised when login credentials are invalid.
    """
    status_code = 401
    error_code = ErrorCode.INVALID_CREDENTIALS


class UserAlreadyExistsError(BookServerException):
    """
    Raised when attempting to register an email that already exists.
    """
    status_code = 400
    error_code = ErrorCode.USER_ALREADY_EXISTS


class InvalidAPIKeyError(BookServerException):
    """
    Raised when an API Key is missing, malformed or unknown.
    """
    status_code = 401
    error_code = ErrorCode.INVALID_API_KEY


class BookNotFoundError(BookServerException):
    """
    Raised when an operation names a book the user does not have.
    """
    status_code = 404
    error_code = ErrorCode.BOOK_NOT_FOUND


class QuotaExceededError(BookServerException):
    """
    Raised when the user's used book storage already meets their limit.
    """
    status_code = 426
    error_code = ErrorCode.INSUFFICIENT_STORAGE


class DuplicateNameError(BookServerException):
    """
    Raised when a new tag's name collides with another tag on the same book.
    """
    status_code = 400
    error_code = ErrorCode.TAG_NAME_EXISTS


class DuplicateBookError(BookServerException):
    """
    Raised when creating a book whose id already exists for the user.
    """
    status_code = 400
    error_code = ErrorCode.BOOK_ALREADY_EXISTS


class UploadFailedError(BookServerException):
    """
    Raised when the blob store rejects or aborts a book upload.
    The original failure is available as __cause__.
    """
    status_code = 500
    error_code = ErrorCode.UPLOAD_FAILED


class UserNotFoundError(BookServerException):
    """
    Raised when no user exists for the given identity.
    """
    status_code = 404
    error_code = ErrorCode.USER_NOT_FOUND


class BlobNotFoundError(BookServerException):
    """
    Raised when a blob does not exist in the blob store.
    """
    status_code = 404
    error_code = ErrorCode.BLOB_NOT_FOUND


class BlobTooLargeError(BookServerException):
    """
    Raised when an uploaded payload exceeds the configured size limit.
    """
    status_code = 413
    error_code = ErrorCode.BLOB_TOO_LARGE
