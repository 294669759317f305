"""
Request handlers for the book endpoints.

Each handler checks its parameters, delegates to the BookService and shapes
the envelope. Failures are raised as APIError subclasses and rendered by the
exception handlers registered in api.main.
"""

from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from api.errors import (
    BookNotFoundError, BookValidationError, DuplicateKeyViolation,
    MalformedRequestError, StoreUnavailableError
)
from api.models import APIResponse
from catalog.models import BookRecord, WriteResult, WriteStatus
from catalog.service import BookService


REQUIRED_ON_CREATE = ("title", "author", "isbn")


def get_book_service(request: Request) -> BookService:
    """Return the service injected into app state by the lifespan."""
    service = getattr(request.app.state, "book_service", None)
    if service is None:
        raise StoreUnavailableError()
    return service


def respond(
    message: str,
    data: Any = None,
    count: Optional[int] = None,
    status_code: int = status.HTTP_200_OK
) -> JSONResponse:
    """Build a success envelope."""
    envelope = APIResponse(success=True, message=message, data=data, count=count)
    return JSONResponse(status_code=status_code, content=envelope.render())


def respond_with_books(message: str, books: List[BookRecord]) -> JSONResponse:
    """Success envelope for a list payload, always carrying count."""
    return respond(message, data=[book.to_response() for book in books], count=len(books))


def unwrap(result: WriteResult, failure_message: str) -> BookRecord:
    """Return the written book or raise the error matching the outcome."""
    if result.status == WriteStatus.OK:
        return result.book
    if result.status == WriteStatus.INVALID:
        raise BookValidationError(result.errors, message=failure_message)
    if result.status == WriteStatus.DUPLICATE:
        raise DuplicateKeyViolation(result.field or "isbn")
    raise BookNotFoundError()


async def create_book(
    payload: Dict[str, Any] = Body(...),
    service: BookService = Depends(get_book_service)
) -> JSONResponse:
    """POST /api/books - create a new book."""
    missing = [field for field in REQUIRED_ON_CREATE if not payload.get(field)]
    if missing:
        raise MalformedRequestError(
            "Missing required fields: title, author, and isbn are required",
            f"Missing: {', '.join(missing)}"
        )

    book = unwrap(await service.create_book(payload), "Failed to create book")
    return respond(
        "Book created successfully",
        data=book.to_response(),
        status_code=status.HTTP_201_CREATED
    )


async def get_all_books(service: BookService = Depends(get_book_service)) -> JSONResponse:
    """GET /api/books - list every book, newest first."""
    books = await service.get_all_books()
    return respond_with_books("Books retrieved successfully", books)


async def search_books(
    q: Optional[str] = Query(None, description="Text matched against title and author"),
    service: BookService = Depends(get_book_service)
) -> JSONResponse:
    """GET /api/books/search?q= - substring search on title or author."""
    if not q or not q.strip():
        raise MalformedRequestError("Search query is required")

    books = await service.search_books(q)
    return respond_with_books("Search completed successfully", books)


async def get_in_stock_books(service: BookService = Depends(get_book_service)) -> JSONResponse:
    """GET /api/books/stock/available - books with inStock set."""
    books = await service.get_in_stock_books()
    return respond_with_books("In-stock books retrieved successfully", books)


async def get_books_by_genre(
    genre: str,
    service: BookService = Depends(get_book_service)
) -> JSONResponse:
    """GET /api/books/genre/{genre} - exact, case-sensitive genre filter."""
    books = await service.get_books_by_genre(genre)
    return respond_with_books("Books retrieved successfully", books)


async def get_book(
    book_id: str,
    service: BookService = Depends(get_book_service)
) -> JSONResponse:
    """GET /api/books/{book_id} - fetch one book."""
    book = await service.get_book_by_id(book_id)
    if book is None:
        raise BookNotFoundError()
    return respond("Book retrieved successfully", data=book.to_response())


async def update_book(
    book_id: str,
    payload: Dict[str, Any] = Body(...),
    service: BookService = Depends(get_book_service)
) -> JSONResponse:
    """PUT /api/books/{book_id} - partial update."""
    book = unwrap(await service.update_book(book_id, payload), "Failed to update book")
    return respond("Book updated successfully", data=book.to_response())


async def delete_book(
    book_id: str,
    service: BookService = Depends(get_book_service)
) -> JSONResponse:
    """DELETE /api/books/{book_id} - hard delete, returning the removed book."""
    book = await service.delete_book(book_id)
    if book is None:
        raise BookNotFoundError()
    return respond("Book deleted successfully", data=book.to_response())
