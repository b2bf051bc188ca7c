"""Helpers shared by the test modules."""

from typing import AsyncIterator, Iterable

from bookserver.repositories.user_repository import UserRepository
from bookserver.utils import generate_uuid, utcnow

TEST_EMAIL = "reader@example.com"


def make_user(email: str = TEST_EMAIL, book_storage_limit: int = 10_000) -> str:
    """Insert a user directly and return its user_id."""
    user_id = generate_uuid()
    UserRepository.create_user(
        user_id=user_id,
        email=email,
        name="Reader",
        password_hash="not-a-real-hash",
        api_key=f"lbr_{generate_uuid().replace('-', '')}",
        book_storage_limit=book_storage_limit,
        created_at=utcnow(),
    )
    return user_id


async def stream_of(pieces: Iterable[bytes]) -> AsyncIterator[bytes]:
    for piece in pieces:
        yield piece


async def failing_stream(pieces: Iterable[bytes], error: Exception) -> AsyncIterator[bytes]:
    for piece in pieces:
        yield piece
    raise error


async def collect(stream: AsyncIterator[bytes]) -> bytes:
    return b"".join([piece async for piece in stream])
