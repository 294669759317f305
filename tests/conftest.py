"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from api.books import get_book_service
from api.main import app
from catalog.database import BookRepository, parse_object_id
from catalog.models import BookCreate, BookRecord, WriteResult
from catalog.service import BookService


class InMemoryBookRepository(BookRepository):
    """
    Test double for BookRepository keeping documents in a dict.
    Mirrors the unique isbn index and newest-first ordering of the real store.
    """

    def __init__(self):
        super().__init__(collection=None)
        self.documents: Dict[ObjectId, Dict[str, Any]] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _isbn_taken(self, isbn: str, exclude: Optional[ObjectId] = None) -> bool:
        return any(
            doc["isbn"] == isbn for oid, doc in self.documents.items() if oid != exclude
        )

    def _sorted(self, documents) -> List[BookRecord]:
        ordered = sorted(documents, key=lambda doc: (doc["createdAt"], doc["_id"]), reverse=True)
        return [BookRecord.from_document(doc) for doc in ordered]

    async def insert(self, book: BookCreate) -> WriteResult:
        document = book.to_document()
        if self._isbn_taken(document["isbn"]):
            return WriteResult.duplicate("isbn")
        now = self._now()
        document.update({"_id": ObjectId(), "createdAt": now, "updatedAt": now})
        self.documents[document["_id"]] = document
        return WriteResult.ok(BookRecord.from_document(document))

    async def find_all(self) -> List[BookRecord]:
        return self._sorted(self.documents.values())

    async def find_by_id(self, book_id: str) -> Optional[BookRecord]:
        document = self.documents.get(parse_object_id(book_id))
        return BookRecord.from_document(document) if document else None

    async def update(self, book_id: str, changes: Dict[str, Any]) -> WriteResult:
        object_id = parse_object_id(book_id)
        document = self.documents.get(object_id)
        if document is None:
            return WriteResult.not_found()
        if "isbn" in changes and self._isbn_taken(changes["isbn"], exclude=object_id):
            return WriteResult.duplicate("isbn")
        document.update(changes)
        document["updatedAt"] = self._now()
        return WriteResult.ok(BookRecord.from_document(document))

    async def delete(self, book_id: str) -> Optional[BookRecord]:
        document = self.documents.pop(parse_object_id(book_id), None)
        return BookRecord.from_document(document) if document else None

    async def search(self, text: str) -> List[BookRecord]:
        needle = text.lower()
        return self._sorted(
            doc for doc in self.documents.values()
            if needle in doc["title"].lower() or needle in doc["author"].lower()
        )

    async def find_by_genre(self, genre: str) -> List[BookRecord]:
        return self._sorted(doc for doc in self.documents.values() if doc["genre"] == genre)

    async def find_in_stock(self) -> List[BookRecord]:
        return self._sorted(doc for doc in self.documents.values() if doc["inStock"] is True)


@pytest.fixture
def repository():
    """Empty in-memory repository."""
    return InMemoryBookRepository()


@pytest.fixture
def book_service(repository):
    """Service backed by the in-memory repository."""
    return BookService(repository)


@pytest.fixture
def client(book_service):
    """Test client with the book service injected."""
    app.dependency_overrides[get_book_service] = lambda: book_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def mock_collection():
    """Mock motor collection; find() returns a cursor chain ending in to_list."""
    collection = MagicMock()
    collection.insert_one = AsyncMock()
    collection.find_one = AsyncMock(return_value=None)
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.find_one_and_delete = AsyncMock(return_value=None)
    collection.find.return_value.sort.return_value.to_list = AsyncMock(return_value=[])
    return collection


@pytest.fixture
def sample_book_payload():
    """Valid create payload as a client would send it."""
    return {
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "isbn": "978-0-261-10221-7",
        "publishedYear": 1937,
        "genre": "Fantasy",
        "price": 12.99,
        "inStock": True
    }


@pytest.fixture
def sample_book_document():
    """Stored book document as MongoDB returns it."""
    created = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return {
        "_id": ObjectId("65f1c0ffee0000000000abcd"),
        "title": "Dune",
        "author": "Frank Herbert",
        "isbn": "9780441013593",
        "publishedYear": 1965,
        "genre": "Fiction",
        "price": 9.99,
        "inStock": False,
        "createdAt": created,
        "updatedAt": created
    }
