"""Adapters between FastAPI uploads and the blob store's byte streams."""

from typing import AsyncIterator

from fastapi import UploadFile

from common.constants import STREAM_PIECE_SIZE_BYTES


async def iter_upload(file: UploadFile, piece_size: int = STREAM_PIECE_SIZE_BYTES) -> AsyncIterator[bytes]:
    """Yield an uploaded file in pieces without reading it into memory."""
    while True:
        piece = await file.read(piece_size)
        if not piece:
            break
        yield piece
