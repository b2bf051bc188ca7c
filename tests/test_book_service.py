"""Tests for the book lifecycle across the metadata and blob stores."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from bookserver.cleanup_task import OrphanedBlobCleaner
from bookserver.domain import TagSpec
from bookserver.exceptions import (
    BlobNotFoundError,
    BlobTooLargeError,
    BookNotFoundError,
    DuplicateBookError,
    DuplicateNameError,
    QuotaExceededError,
    UnknownFieldError,
    UploadFailedError,
    UserNotFoundError,
)
from bookserver.repositories.book_repository import BookRepository
from bookserver.repositories.orphaned_blob_repository import OrphanedBlobRepository
from bookserver.repositories.user_repository import UserRepository
from bookserver.services.book_service import BookService
from bookserver.storage.blob_store import BlobNamespace
from bookserver.storage.book_blob_manager import BookBlobStorageManager
from bookserver.utils import generate_uuid
from helpers import TEST_EMAIL, collect, failing_stream, make_user, stream_of


@pytest.fixture
def service(user_id, blob_manager):
    return BookService(blob_manager=blob_manager)


def fresh_service(blob_manager):
    """Each request gets its own service and unit of work."""
    return BookService(blob_manager=blob_manager)


def reload_user():
    return UserRepository().get(TEST_EMAIL, track_changes=False)


class TestCreateBook:
    def test_create_persists_metadata_and_tags(self, service):
        book_id = generate_uuid()
        tag_id = generate_uuid()

        service.create_book(TEST_EMAIL, book_id, {"title": "Dune", "format": "epub"}, [TagSpec(tag_id, "sf")])

        user = reload_user()
        book = user.find_book(book_id)
        assert book.title == "Dune"
        assert book.format == "epub"
        assert book.added_to_library is not None
        assert [tag.name for tag in user.tags_of(book)] == ["sf"]

    def test_create_for_unknown_user_fails(self, service):
        with pytest.raises(UserNotFoundError):
            service.create_book("ghost@example.com", generate_uuid(), {})

    def test_create_duplicate_fails(self, service, blob_manager):
        book_id = generate_uuid()
        service.create_book(TEST_EMAIL, book_id, {"title": "First"})

        with pytest.raises(DuplicateBookError) as exc_info:
            fresh_service(blob_manager).create_book(TEST_EMAIL, book_id, {"title": "Second"})

        assert exc_info.value.status_code == 400
        assert reload_user().find_book(book_id).title == "First"

    def test_same_book_id_is_allowed_for_different_users(self, service, blob_manager):
        make_user("other@example.com")
        book_id = generate_uuid()
        service.create_book(TEST_EMAIL, book_id, {})

        fresh_service(blob_manager).create_book("other@example.com", book_id, {})

        other = UserRepository().get("other@example.com", track_changes=False)
        assert other.find_book(book_id) is not None

    def test_create_at_quota_fails_and_persists_nothing(self, test_db, blob_manager):
        user_id = make_user("full@example.com", book_storage_limit=10)
        service = BookService(blob_manager=blob_manager)
        first = service.create_book("full@example.com", generate_uuid(), {})
        first.size_in_bytes = 10
        service.context.save_changes()

        second = generate_uuid()
        with pytest.raises(QuotaExceededError) as exc_info:
            fresh_service(blob_manager).create_book("full@example.com", second, {})

        assert exc_info.value.status_code == 426
        assert not BookRepository.exists(user_id, second)

    def test_create_below_quota_succeeds(self, test_db, blob_manager):
        user_id = make_user("roomy@example.com", book_storage_limit=10)
        service = BookService(blob_manager=blob_manager)

        book = service.create_book("roomy@example.com", generate_uuid(), {})

        assert BookRepository.exists(user_id, book.book_id)

    def test_create_with_colliding_new_tags_persists_nothing(self, service):
        book_id = generate_uuid()

        with pytest.raises(DuplicateNameError):
            service.create_book(
                TEST_EMAIL, book_id, {},
                [TagSpec(generate_uuid(), "sf"), TagSpec(generate_uuid(), "sf")],
            )

        assert reload_user().find_book(book_id) is None

    def test_create_with_unknown_field_fails(self, service):
        with pytest.raises(UnknownFieldError):
            service.create_book(TEST_EMAIL, generate_uuid(), {"shelf": "top"})


class TestGetBooks:
    def test_lists_books_with_resolved_tags(self, service, blob_manager):
        tag_id = generate_uuid()
        first = service.create_book(TEST_EMAIL, generate_uuid(), {"title": "A"}, [TagSpec(tag_id, "sf")])
        second = service.create_book(TEST_EMAIL, generate_uuid(), {"title": "B"}, [TagSpec(tag_id, "sf")])

        views = fresh_service(blob_manager).get_books(TEST_EMAIL)

        assert [view.book.book_id for view in views] == [first.book_id, second.book_id]
        assert all([tag.name for tag in view.tags] == ["sf"] for view in views)

    def test_listing_is_read_only(self, service, blob_manager):
        service.create_book(TEST_EMAIL, generate_uuid(), {"title": "A"})
        reader = fresh_service(blob_manager)

        views = reader.get_books(TEST_EMAIL)
        views[0].book.title = "Mutated"
        reader.context.save_changes()

        assert reload_user().books[0].title == "A"


class TestUpdateBook:
    def test_update_unknown_book_fails(self, service):
        with pytest.raises(BookNotFoundError) as exc_info:
            service.update_book(TEST_EMAIL, generate_uuid(), {"title": "x"})

        assert exc_info.value.status_code == 404

    def test_update_with_malformed_id_is_not_found(self, service):
        with pytest.raises(BookNotFoundError):
            service.update_book(TEST_EMAIL, "not-a-uuid", {"title": "x"})

    def test_sparse_update_persists(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {"title": "Dune", "pages": 412})

        fresh_service(blob_manager).update_book(TEST_EMAIL, book.book_id, {"current_page": 7})

        stored = reload_user().find_book(book.book_id)
        assert stored.current_page == 7
        assert stored.title == "Dune"
        assert stored.pages == 412

    def test_unknown_field_leaves_book_unchanged(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {"title": "Dune"})

        with pytest.raises(UnknownFieldError):
            fresh_service(blob_manager).update_book(TEST_EMAIL, book.book_id, {"title": "X", "shelf": 1})

        assert reload_user().find_book(book.book_id).title == "Dune"

    def test_rename_through_one_book_is_visible_on_the_other(self, service, blob_manager):
        tag_id = generate_uuid()
        first = service.create_book(TEST_EMAIL, generate_uuid(), {}, [TagSpec(tag_id, "scifi")])
        second = service.create_book(TEST_EMAIL, generate_uuid(), {}, [TagSpec(tag_id, "scifi")])

        fresh_service(blob_manager).update_book(
            TEST_EMAIL, first.book_id, {"tags": [TagSpec(tag_id, "sci-fi")]}
        )

        user = reload_user()
        assert [tag.name for tag in user.tags_of(user.find_book(second.book_id))] == ["sci-fi"]

    def test_reconciling_twice_is_idempotent(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})
        desired = [TagSpec(generate_uuid(), "a"), TagSpec(generate_uuid(), "b")]

        fresh_service(blob_manager).update_book(TEST_EMAIL, book.book_id, {"tags": desired})
        after_first = reload_user().find_book(book.book_id).tag_ids
        fresh_service(blob_manager).update_book(TEST_EMAIL, book.book_id, {"tags": desired})
        after_second = reload_user().find_book(book.book_id).tag_ids

        assert set(after_first) == set(after_second) == {spec.tag_id for spec in desired}
        assert len(reload_user().tags) == 2

    def test_duplicate_name_on_same_book_fails_but_other_book_succeeds(self, service, blob_manager):
        existing = generate_uuid()
        first = service.create_book(TEST_EMAIL, generate_uuid(), {}, [TagSpec(existing, "sf")])
        second = service.create_book(TEST_EMAIL, generate_uuid(), {})

        with pytest.raises(DuplicateNameError):
            fresh_service(blob_manager).update_book(
                TEST_EMAIL, first.book_id,
                {"tags": [TagSpec(existing, "sf"), TagSpec(generate_uuid(), "sf")]},
            )

        fresh_service(blob_manager).update_book(
            TEST_EMAIL, second.book_id, {"tags": [TagSpec(generate_uuid(), "sf")]}
        )
        user = reload_user()
        assert [tag.name for tag in user.tags_of(user.find_book(second.book_id))] == ["sf"]


class TestDeleteBooks:
    @pytest.mark.asyncio
    async def test_delete_unknown_book_fails_and_deletes_nothing(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        with pytest.raises(BookNotFoundError):
            await fresh_service(blob_manager).delete_books(TEST_EMAIL, [book.book_id, generate_uuid()])

        assert reload_user().find_book(book.book_id) is not None

    @pytest.mark.asyncio
    async def test_delete_removes_metadata_and_both_blobs(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})
        await blob_manager.upload_book_blob(book.book_id, stream_of([b"content"]))
        await blob_manager.change_book_cover(book.book_id, stream_of([b"cover"]))

        deleted = await fresh_service(blob_manager).delete_books(TEST_EMAIL, [book.book_id])

        assert deleted == [book.book_id]
        assert reload_user().find_book(book.book_id) is None
        assert not await blob_manager.blob_store.exists(BlobNamespace.BOOKS, book.book_id)
        assert not await blob_manager.blob_store.exists(BlobNamespace.COVERS, book.book_id)

    @pytest.mark.asyncio
    async def test_delete_tolerates_missing_blobs(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        deleted = await fresh_service(blob_manager).delete_books(TEST_EMAIL, [book.book_id])

        assert deleted == [book.book_id]
        assert OrphanedBlobRepository.get_all() == []

    @pytest.mark.asyncio
    async def test_delete_keeps_tags_in_arena(self, service, blob_manager):
        tag_id = generate_uuid()
        book = service.create_book(TEST_EMAIL, generate_uuid(), {}, [TagSpec(tag_id, "sf")])

        await fresh_service(blob_manager).delete_books(TEST_EMAIL, [book.book_id])

        assert tag_id in reload_user().tags

    @pytest.mark.asyncio
    async def test_metadata_is_deleted_even_if_blob_deletion_fails(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        with patch.object(blob_manager, "delete_blob", AsyncMock(side_effect=OSError("disk gone"))):
            await fresh_service(blob_manager).delete_books(TEST_EMAIL, [book.book_id])

        assert reload_user().find_book(book.book_id) is None
        assert {(o.namespace, o.blob_id) for o in OrphanedBlobRepository.get_all()} == {
            ("books", book.book_id),
            ("covers", book.book_id),
        }

    @pytest.mark.asyncio
    async def test_repeated_ids_are_deleted_once(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        deleted = await fresh_service(blob_manager).delete_books(
            TEST_EMAIL, [book.book_id, book.book_id.upper()]
        )

        assert deleted == [book.book_id]

    @pytest.mark.asyncio
    async def test_recreated_book_survives_cleanup_of_its_old_blobs(self, service, blob_manager):
        book_id = generate_uuid()
        service.create_book(TEST_EMAIL, book_id, {})
        await fresh_service(blob_manager).add_book_data(TEST_EMAIL, book_id, stream_of([b"old content"]))

        with patch.object(blob_manager, "delete_blob", AsyncMock(side_effect=OSError("disk gone"))):
            await fresh_service(blob_manager).delete_books(TEST_EMAIL, [book_id])
        assert OrphanedBlobRepository.get_all() != []

        fresh_service(blob_manager).create_book(TEST_EMAIL, book_id, {})
        await fresh_service(blob_manager).add_book_data(TEST_EMAIL, book_id, stream_of([b"new content"]))
        await OrphanedBlobCleaner(blob_manager=blob_manager).cleanup_cycle()

        assert reload_user().find_book(book_id).size_in_bytes == len(b"new content")
        assert await collect(await blob_manager.download_book_blob(book_id)) == b"new content"
        assert OrphanedBlobRepository.get_all() == []


class TestAddBookData:
    @pytest.mark.asyncio
    async def test_upload_records_size(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        size = await fresh_service(blob_manager).add_book_data(TEST_EMAIL, book.book_id, stream_of([b"abc", b"de"]))

        assert size == 5
        assert reload_user().find_book(book.book_id).size_in_bytes == 5
        assert await collect(await blob_manager.download_book_blob(book.book_id)) == b"abcde"

    @pytest.mark.asyncio
    async def test_upload_for_unknown_book_fails(self, service):
        with pytest.raises(BookNotFoundError):
            await service.add_book_data(TEST_EMAIL, generate_uuid(), stream_of([b"x"]))

    @pytest.mark.asyncio
    async def test_failed_upload_deletes_book_record(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})
        cause = ConnectionError("client disconnected")

        with pytest.raises(UploadFailedError) as exc_info:
            await fresh_service(blob_manager).add_book_data(
                TEST_EMAIL, book.book_id, failing_stream([b"partial"], cause)
            )

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.status_code == 500
        assert reload_user().find_book(book.book_id) is None
        assert not await blob_manager.blob_store.exists(BlobNamespace.BOOKS, book.book_id)

    @pytest.mark.asyncio
    async def test_oversized_upload_deletes_book_record(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        with pytest.raises(UploadFailedError) as exc_info:
            await fresh_service(blob_manager).add_book_data(TEST_EMAIL, book.book_id, stream_of([b"x" * 2000]))

        assert isinstance(exc_info.value.__cause__, BlobTooLargeError)
        assert exc_info.value.status_code == 413
        assert reload_user().find_book(book.book_id) is None

    @pytest.mark.asyncio
    async def test_cancelled_upload_deletes_book_record(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        with pytest.raises(asyncio.CancelledError):
            await fresh_service(blob_manager).add_book_data(
                TEST_EMAIL, book.book_id, failing_stream([b"x"], asyncio.CancelledError())
            )

        assert reload_user().find_book(book.book_id) is None


class TestCovers:
    @pytest.mark.asyncio
    async def test_change_cover_records_size_and_flag(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        size = await fresh_service(blob_manager).change_book_cover(TEST_EMAIL, book.book_id, stream_of([b"png!"]))

        stored = reload_user().find_book(book.book_id)
        assert size == 4
        assert stored.cover_size == 4
        assert stored.has_cover is True
        assert stored.cover_last_modified is not None

        _, stream = await fresh_service(blob_manager).get_book_cover(TEST_EMAIL, book.book_id)
        assert await collect(stream) == b"png!"

    @pytest.mark.asyncio
    async def test_delete_cover_clears_flag_and_size(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})
        await fresh_service(blob_manager).change_book_cover(TEST_EMAIL, book.book_id, stream_of([b"png"]))

        existed = await fresh_service(blob_manager).delete_book_cover(TEST_EMAIL, book.book_id)

        stored = reload_user().find_book(book.book_id)
        assert existed is True
        assert stored.has_cover is False
        assert stored.cover_size == 0
        assert not await blob_manager.blob_store.exists(BlobNamespace.COVERS, book.book_id)

    @pytest.mark.asyncio
    async def test_cover_of_unknown_book_fails(self, service):
        with pytest.raises(BookNotFoundError):
            await service.change_book_cover(TEST_EMAIL, generate_uuid(), stream_of([b"x"]))

    @pytest.mark.asyncio
    async def test_missing_cover_blob_raises(self, service, blob_manager):
        book = service.create_book(TEST_EMAIL, generate_uuid(), {})

        with pytest.raises(BlobNotFoundError):
            await fresh_service(blob_manager).get_book_cover(TEST_EMAIL, book.book_id)


def test_get_book_format(service):
    book = service.create_book(TEST_EMAIL, generate_uuid(), {"format": "pdf"})

    assert service.get_book_format(TEST_EMAIL, book.book_id) == "pdf"


@pytest.mark.asyncio
async def test_library_lifecycle(test_db, blob_store):
    """Create, upload, duplicate create, then tag add, rename and detach."""
    user_id = make_user("u@example.com", book_storage_limit=1_000_000)
    manager = BookBlobStorageManager(blob_store, max_book_size=1_000_000, max_cover_size=1024)
    g1 = generate_uuid()
    t1 = generate_uuid()

    BookService(blob_manager=manager).create_book("u@example.com", g1, {"title": "G1"})
    pieces = [b"x" * 100_000] * 4
    await BookService(blob_manager=manager).add_book_data("u@example.com", g1, stream_of(pieces))
    assert BookRepository.get_used_book_storage(user_id) == 400_000

    with pytest.raises(DuplicateBookError):
        BookService(blob_manager=manager).create_book("u@example.com", g1, {})

    BookService(blob_manager=manager).update_book("u@example.com", g1, {"tags": [TagSpec(t1, "scifi")]})
    user = UserRepository().get("u@example.com", track_changes=False)
    assert [tag.name for tag in user.tags_of(user.find_book(g1))] == ["scifi"]

    BookService(blob_manager=manager).update_book("u@example.com", g1, {"tags": [TagSpec(t1, "sci-fi")]})
    user = UserRepository().get("u@example.com", track_changes=False)
    assert list(user.tags) == [t1]
    assert user.tags[t1].name == "sci-fi"

    BookService(blob_manager=manager).update_book("u@example.com", g1, {"tags": []})
    user = UserRepository().get("u@example.com", track_changes=False)
    assert user.find_book(g1).tag_ids == []
    assert user.tags[t1].name == "sci-fi"
