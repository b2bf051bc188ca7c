"""Authentication service for business logic."""

import sqlite3
from typing import Optional, Tuple

from common.logging_config import get_logger
from bookserver.auth import generate_api_key, hash_password, verify_password
from bookserver.config import DEFAULT_BOOK_STORAGE_LIMIT
from bookserver.exceptions import InvalidCredentialsError, UserAlreadyExistsError
from bookserver.repositories.user_repository import UserRepository
from bookserver.utils import generate_uuid, utcnow

logger = get_logger(__name__)


class AuthService:
    def __init__(self, user_repo: Optional[UserRepository] = None):
        self.user_repo = user_repo if user_repo is not None else UserRepository()

    def register_user(self, email: str, name: str, password: str) -> Tuple[str, str]:
        logger.info(f"Attempting to register user: {email}")
        if self.user_repo.email_exists(email):
            logger.warning(f"Registration failed: email '{email}' already exists")
            raise UserAlreadyExistsError(f"A user with email '{email}' already exists")

        user_id = generate_uuid()
        api_key = generate_api_key()

        try:
            self.user_repo.create_user(
                user_id=user_id,
                email=email,
                name=name,
                password_hash=hash_password(password),
                api_key=api_key,
                book_storage_limit=DEFAULT_BOOK_STORAGE_LIMIT,
                created_at=utcnow(),
            )
        except sqlite3.IntegrityError:
            logger.warning(f"Registration failed due to integrity error: email '{email}'")
            raise UserAlreadyExistsError(f"A user with email '{email}' already exists")

        logger.info(f"Successfully registered user: {email} [user_id={user_id}]")
        return api_key, user_id

    def login_user(self, email: str, password: str) -> str:
        logger.info(f"Login attempt for user: {email}")
        if not self.user_repo.email_exists(email):
            logger.warning(f"Login failed: email '{email}' not found")
            raise InvalidCredentialsError("Invalid email or password")

        user = self.user_repo.get(email, track_changes=False)
        if not verify_password(password, user.password_hash):
            logger.warning(f"Login failed: invalid password for email '{email}'")
            raise InvalidCredentialsError("Invalid email or password")

        new_api_key = generate_api_key()
        self.user_repo.update_api_key(user.user_id, new_api_key, utcnow())
        logger.info(f"Successfully logged in user: {email} [user_id={user.user_id}]")
        return new_api_key

    def validate_api_key(self, api_key: str) -> Optional[str]:
        logger.debug("Validating API key")
        user = self.user_repo.get_by_api_key(api_key)
        if user is None:
            logger.warning("API key validation failed: invalid key")
            return None
        logger.debug(f"API key validated for user_id={user.user_id}")
        return user.email
