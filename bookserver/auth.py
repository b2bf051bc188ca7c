"""Authentication and security utilities."""

import uuid
from typing import Optional

import bcrypt
from fastapi import Header

from bookserver.config import API_KEY_PREFIX
from bookserver.exceptions import InvalidAPIKeyError


def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Bcrypt hash of the password
    """
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against a bcrypt hash.

    Returns:
        True if password matches hash, False otherwise
    """
    password_bytes = password.encode('utf-8')
    hash_bytes = password_hash.encode('utf-8')
    return bcrypt.checkpw(password_bytes, hash_bytes)


def generate_api_key() -> str:
    """
    Generate a new API Key with the configured prefix.

    Returns:
        API Key string in format: {prefix}{uuid4 hex}
    """
    return f"{API_KEY_PREFIX}{uuid.uuid4().hex}"


async def get_current_user(authorization: Optional[str] = Header(None)) -> str:
    """
    FastAPI dependency to validate the API Key and resolve the caller.

    Args:
        authorization: Authorization header value (format: "Bearer <api_key>")

    Returns:
        Email of the authenticated user

    Raises:
        InvalidAPIKeyError: If the header is missing, malformed or the key is unknown
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise InvalidAPIKeyError("Invalid authorization header format")

    api_key = authorization[len("Bearer "):].strip()
    if not api_key:
        raise InvalidAPIKeyError("Invalid authorization header format")

    from bookserver.services.auth_service import AuthService

    email = AuthService().validate_api_key(api_key)
    if email is None:
        raise InvalidAPIKeyError("Invalid API Key")
    return email
