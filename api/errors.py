"""
Error taxonomy for the API.
Each exception carries the HTTP status and envelope text it renders as.
"""

from typing import List, Optional

from fastapi import status


class APIError(Exception):
    """Base class for errors rendered as an envelope by the exception handler."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None, error: Optional[str] = None):
        self.message = message or self.message
        self.error = error
        super().__init__(self.message)


class MalformedRequestError(APIError):
    """Required parameter missing or of the wrong shape."""
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Malformed request"


class BookValidationError(APIError):
    """Book fields failed schema validation."""
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Book validation failed"

    def __init__(self, errors: List[str], message: Optional[str] = None):
        self.errors = errors
        super().__init__(message, "; ".join(errors))


class DuplicateKeyViolation(APIError):
    """A unique field (isbn) already belongs to another book."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: str = "isbn"):
        self.field = field
        label = "ISBN" if field == "isbn" else field
        super().__init__(
            f"A book with this {label} already exists",
            f"Duplicate value for unique field '{field}'"
        )


class BookNotFoundError(APIError):
    """No book has the requested id."""
    status_code = status.HTTP_404_NOT_FOUND
    message = "Book not found"


class StoreUnavailableError(APIError):
    """The book store was never initialised for this process."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Database service not available"
