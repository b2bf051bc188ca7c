"""Reconcile a book's tags against the desired tag set sent by a client.

The desired list is the source of truth for which tags a book has. Tags live
in the owner's tag arena; books only reference them by id, so renaming a tag
through one book renames it everywhere and removing it from a book never
deletes it from the arena.
"""

from typing import Iterable, List

from common.logging_config import get_logger
from bookserver.domain import Book, Tag, TagSpec, User
from bookserver.exceptions import DuplicateNameError
from bookserver.utils import utcnow

logger = get_logger(__name__)


def reconcile_tags(book: Book, desired_tags: Iterable[TagSpec], user: User) -> None:
    """
    Make book.tag_ids match desired_tags, creating new tags in the user's arena.

    Removal runs before the merge so that a tag can take over the name of a
    tag removed in the same call.

    Raises:
        DuplicateNameError: If a brand-new tag has the name of another tag
            already on this book
    """
    desired: List[TagSpec] = list(desired_tags)

    removed = remove_tags_missing_from(book, desired)
    if removed:
        logger.debug(f"Detached {len(removed)} tags from book {book.book_id}")

    for spec in desired:
        if book.has_tag(spec.tag_id):
            tag = user.tags[spec.tag_id]
            if tag.name != spec.name:
                logger.debug(f"Renaming tag {tag.tag_id}: '{tag.name}' -> '{spec.name}'")
                tag.name = spec.name
            continue

        add_tag_to_book(book, spec, user)


def remove_tags_missing_from(book: Book, desired: List[TagSpec]) -> List[str]:
    desired_ids = {spec.tag_id for spec in desired}
    removed = [tag_id for tag_id in book.tag_ids if tag_id not in desired_ids]
    book.tag_ids[:] = [tag_id for tag_id in book.tag_ids if tag_id in desired_ids]
    return removed


def add_tag_to_book(book: Book, spec: TagSpec, user: User) -> None:
    if book.has_tag(spec.tag_id):
        return

    existing = user.tags.get(spec.tag_id)
    if existing is not None:
        book.tag_ids.append(existing.tag_id)
        return

    if any(tag.name == spec.name for tag in user.tags_of(book)):
        raise DuplicateNameError(f"A tag with the name '{spec.name}' already exists on this book")

    tag = Tag(
        tag_id=spec.tag_id,
        user_id=user.user_id,
        name=spec.name,
        created_at=utcnow(),
    )
    user.tags[tag.tag_id] = tag
    book.tag_ids.append(tag.tag_id)
    logger.debug(f"Created tag '{tag.name}' [tag_id={tag.tag_id}] for book {book.book_id}")
