"""Apply sparse update documents onto books.

Every assignable book field has a FieldSetter in BOOK_FIELD_SETTERS. Identity
and storage-accounting fields are skipped, 'tags' goes through the tag
reconciler, and any other name is rejected. Values are converted for every
field before any of them is assigned.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Mapping

from bookserver.domain import Book, TagSpec, User
from bookserver.exceptions import InvalidFieldValueError, UnknownFieldError
from bookserver.services.tag_reconciler import reconcile_tags
from bookserver.utils import normalize_uuid

IDENTITY_FIELDS = frozenset({"guid", "book_id", "user_id"})

SERVER_MANAGED_FIELDS = frozenset({"size_in_bytes", "cover_size"})

TAGS_FIELD = "tags"


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


def _as_int(value: Any) -> int:
    return 0 if value is None else int(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _as_datetime(value: Any):
    """Parse ISO 8601 (a trailing 'Z' included) into a naive UTC datetime."""
    if value is None:
        return None
    if not isinstance(value, datetime):
        text = str(value).strip()
        if text[-1:] in ("Z", "z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass(frozen=True)
class FieldSetter:
    field_name: str
    convert: Callable[[Any], Any]

    def parse(self, value: Any) -> Any:
        try:
            return self.convert(value)
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidFieldValueError(f"Invalid value for property {self.field_name}: {value!r}") from e

    def assign(self, book: Book, value: Any) -> None:
        setattr(book, self.field_name, value)


BOOK_FIELD_SETTERS: Dict[str, FieldSetter] = {
    "title": FieldSetter("title", _as_str),
    "authors": FieldSetter("authors", _as_str),
    "creator": FieldSetter("creator", _as_str),
    "format": FieldSetter("format", _as_str),
    "language": FieldSetter("language", _as_str),
    "document_size": FieldSetter("document_size", _as_str),
    "file_hash": FieldSetter("file_hash", _as_str),
    "pages": FieldSetter("pages", _as_int),
    "current_page": FieldSetter("current_page", _as_int),
    "project_gutenberg_id": FieldSetter("project_gutenberg_id", _as_int),
    "has_cover": FieldSetter("has_cover", _as_bool),
    "added_to_library": FieldSetter("added_to_library", _as_datetime),
    "last_opened": FieldSetter("last_opened", _as_datetime),
    "last_modified": FieldSetter("last_modified", _as_datetime),
    "cover_last_modified": FieldSetter("cover_last_modified", _as_datetime),
}


def to_tag_specs(tags: Iterable[Any]) -> List[TagSpec]:
    """
    Convert client tag entries (TagSpec or mappings with 'guid'/'tag_id' and
    'name') into TagSpecs with normalized ids.
    """
    specs = []
    for entry in tags or []:
        if isinstance(entry, TagSpec):
            specs.append(TagSpec(tag_id=normalize_uuid(entry.tag_id), name=entry.name))
            continue
        tag_id = entry.get("guid", entry.get("tag_id"))
        specs.append(TagSpec(tag_id=normalize_uuid(tag_id), name=_as_str(entry.get("name"))))
    return specs


def _check_field_names(names: Iterable[str]) -> None:
    for name in names:
        if name in IDENTITY_FIELDS or name in SERVER_MANAGED_FIELDS or name == TAGS_FIELD:
            continue
        if name not in BOOK_FIELD_SETTERS:
            raise UnknownFieldError(f"Book contains no property called: {name}")


def assign_fields(book: Book, fields: Mapping[str, Any]) -> None:
    """
    Assign plain (non-tag) fields onto a book.

    Raises:
        UnknownFieldError: If any name is not a book field
        InvalidFieldValueError: If any value does not convert to its field's type
    """
    _check_field_names(fields.keys())
    parsed = [
        (BOOK_FIELD_SETTERS[name], BOOK_FIELD_SETTERS[name].parse(value))
        for name, value in fields.items()
        if name in BOOK_FIELD_SETTERS
    ]
    for setter, value in parsed:
        setter.assign(book, value)


def apply_update(book: Book, update_document: Mapping[str, Any], user: User) -> None:
    """
    Apply only the fields present in update_document.

    All names and values are checked before anything is assigned, so an
    unknown field or a badly typed value leaves the book untouched.

    Raises:
        UnknownFieldError: If the document names a field the book does not have
        InvalidFieldValueError: If a value does not convert to its field's type
        DuplicateNameError: If tag reconciliation hits a name collision
    """
    _check_field_names(update_document.keys())

    assign_fields(book, {
        name: value for name, value in update_document.items() if name != TAGS_FIELD
    })

    if TAGS_FIELD in update_document:
        reconcile_tags(book, to_tag_specs(update_document[TAGS_FIELD]), user)
