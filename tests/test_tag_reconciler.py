"""Tests for tag reconciliation against a user's tag arena."""

from datetime import datetime

from unittest.mock import patch

import pytest

from bookserver.domain import Book, Tag, TagSpec, User
from bookserver.exceptions import DuplicateNameError
from bookserver.services.tag_reconciler import reconcile_tags
from bookserver.utils import generate_uuid


def make_user_with_tags(*names):
    user = User(
        user_id=generate_uuid(),
        email="reader@example.com",
        name="Reader",
        password_hash="hash",
        book_storage_limit=1000,
        created_at=datetime.utcnow(),
    )
    tags = []
    for name in names:
        tag = Tag(tag_id=generate_uuid(), user_id=user.user_id, name=name, created_at=datetime.utcnow())
        user.tags[tag.tag_id] = tag
        tags.append(tag)
    return user, tags


def make_book(user, tags=()):
    book = Book(book_id=generate_uuid(), user_id=user.user_id, tag_ids=[tag.tag_id for tag in tags])
    user.books.append(book)
    return book


class TestReconcileTags:
    def test_removes_tags_missing_from_desired_list(self):
        user, (fiction, classic) = make_user_with_tags("fiction", "classic")
        book = make_book(user, [fiction, classic])

        reconcile_tags(book, [TagSpec(fiction.tag_id, "fiction")], user)

        assert book.tag_ids == [fiction.tag_id]
        assert classic.tag_id in user.tags

    def test_empty_desired_list_clears_book_tags(self):
        user, (fiction,) = make_user_with_tags("fiction")
        book = make_book(user, [fiction])

        reconcile_tags(book, [], user)

        assert book.tag_ids == []
        assert fiction.tag_id in user.tags

    def test_renames_existing_tag_everywhere(self):
        user, (fiction,) = make_user_with_tags("fiction")
        first = make_book(user, [fiction])
        second = make_book(user, [fiction])

        reconcile_tags(first, [TagSpec(fiction.tag_id, "novels")], user)

        assert [tag.name for tag in user.tags_of(second)] == ["novels"]
        assert len(user.tags) == 1

    def test_attaches_existing_arena_tag_without_creating_a_new_one(self):
        user, (fiction,) = make_user_with_tags("fiction")
        book = make_book(user)

        reconcile_tags(book, [TagSpec(fiction.tag_id, "fiction")], user)

        assert book.tag_ids == [fiction.tag_id]
        assert len(user.tags) == 1

    def test_creates_new_tag_in_arena(self):
        user, _ = make_user_with_tags()
        book = make_book(user)
        tag_id = generate_uuid()

        reconcile_tags(book, [TagSpec(tag_id, "poetry")], user)

        assert book.tag_ids == [tag_id]
        assert user.tags[tag_id].name == "poetry"
        assert user.tags[tag_id].user_id == user.user_id

    def test_new_tag_is_stamped_with_server_clock(self):
        user, _ = make_user_with_tags()
        book = make_book(user)
        tag_id = generate_uuid()
        stamp = datetime(2024, 5, 1, 10, 0, 0)

        with patch("bookserver.services.tag_reconciler.utcnow", return_value=stamp):
            reconcile_tags(book, [TagSpec(tag_id, "new")], user)

        assert user.tags[tag_id].created_at == stamp

    def test_new_tag_with_name_already_on_book_is_rejected(self):
        user, (fiction,) = make_user_with_tags("fiction")
        book = make_book(user, [fiction])

        with pytest.raises(DuplicateNameError) as exc_info:
            reconcile_tags(
                book,
                [TagSpec(fiction.tag_id, "fiction"), TagSpec(generate_uuid(), "fiction")],
                user,
            )

        assert exc_info.value.status_code == 400
        assert exc_info.value.error_code == 6

    def test_two_new_tags_with_same_name_are_rejected(self):
        user, _ = make_user_with_tags()
        book = make_book(user)

        with pytest.raises(DuplicateNameError):
            reconcile_tags(book, [TagSpec(generate_uuid(), "a"), TagSpec(generate_uuid(), "a")], user)

    def test_new_tag_may_take_name_of_tag_removed_in_same_call(self):
        user, (old,) = make_user_with_tags("fiction")
        book = make_book(user, [old])
        new_id = generate_uuid()

        reconcile_tags(book, [TagSpec(new_id, "fiction")], user)

        assert book.tag_ids == [new_id]

    def test_same_name_on_another_book_is_allowed(self):
        user, (fiction,) = make_user_with_tags("fiction")
        make_book(user, [fiction])
        book = make_book(user)
        new_id = generate_uuid()

        reconcile_tags(book, [TagSpec(new_id, "fiction")], user)

        assert book.tag_ids == [new_id]
        assert len(user.tags) == 2

    def test_result_follows_desired_list(self):
        user, (a, b) = make_user_with_tags("a", "b")
        book = make_book(user, [a, b])
        c_id = generate_uuid()
        desired = [TagSpec(b.tag_id, "b2"), TagSpec(c_id, "c")]

        reconcile_tags(book, desired, user)

        assert set(book.tag_ids) == {b.tag_id, c_id}
        assert sorted(tag.name for tag in user.tags_of(book)) == ["b2", "c"]
