"""Utility helper functions for the book server."""

import uuid
from datetime import datetime
from typing import Optional


def generate_uuid() -> str:
    """
    Generate a new UUID4 string.

    Returns:
        UUID4 string
    """
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.utcnow()


def to_iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def normalize_uuid(value) -> str:
    """
    Normalize a UUID (or its string form) to the canonical lowercase string.

    Raises:
        ValueError: If the value is not a valid UUID
    """
    return str(uuid.UUID(str(value)))
