"""User repository for database operations."""

from datetime import datetime
from typing import Optional

from common.logging_config import get_logger
from bookserver.database import get_db_connection
from bookserver.domain import User
from bookserver.exceptions import UserNotFoundError
from bookserver.repositories.data_context import DataContext
from bookserver.repositories.rows import load_books, load_tag_arena, user_from_row
from bookserver.utils import to_iso

logger = get_logger(__name__)

USER_SELECT = """SELECT user_id, email, name, password_hash, api_key, book_storage_limit,
                        created_at, key_updated_at
                 FROM users"""


class UserRepository:
    def __init__(self, context: Optional[DataContext] = None):
        self.context = context if context is not None else DataContext()

    def get(self, email: str, track_changes: bool) -> User:
        """
        Load a user together with their books and tag arena.

        Args:
            email: Identity of the user
            track_changes: If True, the user is registered with the data
                context and mutations are persisted by save_changes().
                If False, the returned aggregate is a detached read-only copy.

        Raises:
            UserNotFoundError: If no user has this email
        """
        if track_changes:
            tracked = self.context.find_tracked(email)
            if tracked is not None:
                return tracked

        logger.debug(f"Fetching user by email: {email} [tracked={track_changes}]")
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"{USER_SELECT} WHERE email = ?", (email,))
            row = cursor.fetchone()

            if row is None:
                logger.debug(f"User not found: {email}")
                raise UserNotFoundError(f"No user with email '{email}' exists")

            user = user_from_row(row)
            user.tags = load_tag_arena(cursor, user.user_id)
            user.books = load_books(cursor, user.user_id)

        logger.debug(f"User loaded: {email} [user_id={user.user_id}] books={len(user.books)} tags={len(user.tags)}")
        return self.context.track(user) if track_changes else user

    @staticmethod
    def get_by_api_key(api_key: str) -> Optional[User]:
        logger.debug("Fetching user by API key")
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"{USER_SELECT} WHERE api_key = ?", (api_key,))
            row = cursor.fetchone()

            if row is None:
                logger.debug("User not found for provided API key")
                return None

            logger.debug(f"User found by API key [user_id={row['user_id']}]")
            return user_from_row(row)

    @staticmethod
    def get_by_user_id(user_id: str) -> Optional[User]:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"{USER_SELECT} WHERE user_id = ?", (user_id,))
            row = cursor.fetchone()
            return user_from_row(row) if row is not None else None

    @staticmethod
    def email_exists(email: str) -> bool:
        with get_db_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT 1 FROM users WHERE email = ?", (email,))
            return cursor.fetchone() is not None

    @staticmethod
    def create_user(
        user_id: str,
        email: str,
        name: str,
        password_hash: str,
        api_key: str,
        book_storage_limit: int,
        created_at: datetime,
    ) -> User:
        logger.debug(f"Creating user: {email} [user_id={user_id}]")

        with get_db_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    """
                    INSERT INTO users (user_id, email, name, password_hash, api_key,
                                       book_storage_limit, created_at, key_updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (user_id, email, name, password_hash, api_key, book_storage_limit,
                     to_iso(created_at), to_iso(created_at))
                )
                conn.commit()
                logger.info(f"User created successfully: {email} [user_id={user_id}]")
            except Exception as e:
                logger.error(f"Failed to create user {email}: {e}", exc_info=True)
                raise

        return User(
            user_id=user_id,
            email=email,
            name=name,
            password_hash=password_hash,
            book_storage_limit=book_storage_limit,
            created_at=created_at,
            api_key=api_key,
            key_updated_at=created_at,
        )

    @staticmethod
    def update_api_key(user_id: str, new_api_key: str, updated_at: datetime) -> None:
        logger.debug(f"Updating API key [user_id={user_id}]")
        with get_db_connection() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(
                    "UPDATE users SET api_key = ?, key_updated_at = ? WHERE user_id = ?",
                    (new_api_key, to_iso(updated_at), user_id)
                )
                conn.commit()
                logger.info(f"API key updated successfully [user_id={user_id}]")
            except Exception as e:
                logger.error(f"Failed to update API key [user_id={user_id}]: {e}", exc_info=True)
                raise

    def delete(self, user: User) -> None:
        self.context.remove_user(user)

    def save_changes(self) -> int:
        return self.context.save_changes()
