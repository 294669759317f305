"""
Business service for book operations.
One method per API operation, each delegating to the BookRepository.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from utilities.logger import get_logger

from .database import BookRepository
from .models import (
    BookCreate, BookRecord, BookUpdate, WriteResult,
    IMMUTABLE_FIELDS, format_validation_errors
)

logger = get_logger(__name__)


def strip_immutable_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Drop id and timestamp fields a client may not set."""
    return {key: value for key, value in payload.items() if key not in IMMUTABLE_FIELDS}


class BookService:
    """Service layer between the HTTP handlers and the persistence gateway."""

    def __init__(self, repository: BookRepository):
        self.repository = repository

    async def create_book(self, payload: Dict[str, Any]) -> WriteResult:
        """
        Validate and store a new book.

        Args:
            payload: Raw request body

        Returns:
            WriteResult: ok with the stored book, invalid, or duplicate
        """
        try:
            book = BookCreate.model_validate(strip_immutable_fields(payload))
        except ValidationError as e:
            errors = format_validation_errors(e)
            logger.info("Book validation failed", errors=errors)
            return WriteResult.invalid(errors)

        result = await self.repository.insert(book)
        if result.book:
            logger.info("Book created", book_id=result.book.id, isbn=result.book.isbn)
        return result

    async def get_all_books(self) -> List[BookRecord]:
        return await self.repository.find_all()

    async def get_book_by_id(self, book_id: str) -> Optional[BookRecord]:
        return await self.repository.find_by_id(book_id)

    async def update_book(self, book_id: str, payload: Dict[str, Any]) -> WriteResult:
        """
        Apply a partial update after removing immutable fields.

        Args:
            book_id: Id of the book to update
            payload: Raw request body with the fields to change

        Returns:
            WriteResult: ok, invalid, duplicate, or not_found
        """
        try:
            changes = BookUpdate.model_validate(strip_immutable_fields(payload)).to_changes()
        except ValidationError as e:
            errors = format_validation_errors(e)
            logger.info("Book update validation failed", book_id=book_id, errors=errors)
            return WriteResult.invalid(errors)

        result = await self.repository.update(book_id, changes)
        if result.book:
            logger.info("Book updated", book_id=book_id, fields=sorted(changes))
        return result

    async def delete_book(self, book_id: str) -> Optional[BookRecord]:
        book = await self.repository.delete(book_id)
        if book:
            logger.info("Book deleted", book_id=book_id)
        return book

    async def search_books(self, query: str) -> List[BookRecord]:
        """Case-insensitive substring search over title and author."""
        return await self.repository.search(query)

    async def get_books_by_genre(self, genre: str) -> List[BookRecord]:
        return await self.repository.find_by_genre(genre)

    async def get_in_stock_books(self) -> List[BookRecord]:
        return await self.repository.find_in_stock()
