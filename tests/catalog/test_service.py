"""
Tests for BookService against the in-memory repository.
"""

import pytest
from bson import ObjectId

from catalog.models import WriteStatus
from catalog.service import strip_immutable_fields


def test_strip_immutable_fields():
    payload = {"_id": "x", "id": "y", "createdAt": "a", "updatedAt": "b", "price": 3}
    assert strip_immutable_fields(payload) == {"price": 3}


class TestBookService:
    """Test cases for BookService operations."""

    @pytest.mark.asyncio
    async def test_create_book(self, book_service, repository, sample_book_payload):
        result = await book_service.create_book(sample_book_payload)

        assert result.status == WriteStatus.OK
        assert ObjectId.is_valid(result.book.id)
        assert len(repository.documents) == 1

    @pytest.mark.asyncio
    async def test_create_ignores_client_timestamps(self, book_service, sample_book_payload):
        sample_book_payload["createdAt"] = "1999-01-01T00:00:00Z"

        result = await book_service.create_book(sample_book_payload)

        assert result.book.created_at.year != 1999

    @pytest.mark.asyncio
    async def test_create_invalid_is_not_persisted(self, book_service, repository, sample_book_payload):
        """Test a book missing author is rejected before reaching the store."""
        del sample_book_payload["author"]

        result = await book_service.create_book(sample_book_payload)

        assert result.status == WriteStatus.INVALID
        assert any(error.startswith("author") for error in result.errors)
        assert repository.documents == {}

    @pytest.mark.asyncio
    async def test_create_duplicate_isbn(self, book_service, repository, sample_book_payload):
        await book_service.create_book(sample_book_payload)
        sample_book_payload["title"] = "Another Title"

        result = await book_service.create_book(sample_book_payload)

        assert result.status == WriteStatus.DUPLICATE
        assert result.field == "isbn"
        assert len(repository.documents) == 1

    @pytest.mark.asyncio
    async def test_update_changes_only_supplied_fields(self, book_service, sample_book_payload):
        created = (await book_service.create_book(sample_book_payload)).book

        result = await book_service.update_book(created.id, {
            "price": 20.0,
            "inStock": False,
            "createdAt": "2000-01-01T00:00:00Z"
        })

        updated = result.book
        assert result.status == WriteStatus.OK
        assert updated.price == 20.0
        assert updated.in_stock is False
        assert updated.title == created.title
        assert updated.created_at == created.created_at
        assert updated.updated_at > created.updated_at

    @pytest.mark.asyncio
    async def test_update_invalid(self, book_service, sample_book_payload):
        created = (await book_service.create_book(sample_book_payload)).book

        result = await book_service.update_book(created.id, {"price": -1})

        assert result.status == WriteStatus.INVALID
        assert (await book_service.get_book_by_id(created.id)).price == 12.99

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, book_service):
        result = await book_service.update_book(str(ObjectId()), {"price": 1})
        assert result.status == WriteStatus.NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_twice(self, book_service, sample_book_payload):
        created = (await book_service.create_book(sample_book_payload)).book

        assert (await book_service.delete_book(created.id)).id == created.id
        assert await book_service.delete_book(created.id) is None
        assert await book_service.get_book_by_id(created.id) is None

    @pytest.mark.asyncio
    async def test_list_operations_newest_first(self, book_service, sample_book_payload):
        first = (await book_service.create_book(sample_book_payload)).book
        sample_book_payload.update(isbn="0261102214", title="Farmer Giles of Ham", inStock=False)
        second = (await book_service.create_book(sample_book_payload)).book

        assert [book.id for book in await book_service.get_all_books()] == [second.id, first.id]
        assert [book.id for book in await book_service.get_in_stock_books()] == [first.id]
        assert len(await book_service.get_books_by_genre("Fantasy")) == 2
        assert await book_service.get_books_by_genre("fantasy") == []
        assert [book.id for book in await book_service.search_books("tolkien")] == [second.id, first.id]
