"""
Pydantic models for book data validation and serialization.
Implements the Book schema, its partial-update variant and the typed
outcome returned by write operations.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


ISBN_PATTERN = re.compile(r"^(?:[0-9]{10}|[0-9]{13})$")

# Fields the store owns; never accepted from a client payload.
IMMUTABLE_FIELDS = frozenset({"id", "_id", "createdAt", "updatedAt", "created_at", "updated_at"})


class Genre(str, Enum):
    """Enum for the fixed set of book genres."""
    FICTION = "Fiction"
    NON_FICTION = "Non-Fiction"
    SCIENCE = "Science"
    TECHNOLOGY = "Technology"
    BIOGRAPHY = "Biography"
    HISTORY = "History"
    FANTASY = "Fantasy"
    MYSTERY = "Mystery"
    ROMANCE = "Romance"
    THRILLER = "Thriller"
    OTHER = "Other"


def validate_isbn(value: str) -> str:
    """Accept ISBN-10 or ISBN-13, ignoring hyphens."""
    if not ISBN_PATTERN.match(value.replace("-", "")):
        raise ValueError("Please provide a valid ISBN-10 or ISBN-13")
    return value


def validate_published_year(value: int) -> int:
    """Published year must fall between 1000 and the current year."""
    if value < 1000:
        raise ValueError("Published year must be after 1000")
    if value > datetime.now().year:
        raise ValueError("Published year cannot be in the future")
    return value


def format_validation_errors(exc: ValidationError) -> List[str]:
    """Flatten a pydantic ValidationError into 'field: message' strings."""
    messages = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "body"
        message = error["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        messages.append(f"{field}: {message}")
    return messages


class BookCreate(BaseModel):
    """
    Full book payload accepted by the create operation.
    Every required field must be present and valid.
    """
    title: str = Field(..., min_length=1, max_length=200, description="Book title")
    author: str = Field(..., min_length=2, description="Author name")
    isbn: str = Field(..., description="ISBN-10 or ISBN-13, hyphens allowed")
    published_year: int = Field(..., alias="publishedYear", description="Year of publication")
    genre: Genre = Field(..., description="Book genre")
    price: float = Field(..., ge=0, description="Price, never negative")
    in_stock: bool = Field(default=True, alias="inStock", description="Availability flag")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
        "json_schema_extra": {
            "example": {
                "title": "The Hobbit",
                "author": "J.R.R. Tolkien",
                "isbn": "978-0-261-10221-7",
                "publishedYear": 1937,
                "genre": "Fantasy",
                "price": 12.99,
                "inStock": True
            }
        }
    }

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v):
        return validate_isbn(v)

    @field_validator("published_year")
    @classmethod
    def check_published_year(cls, v):
        return validate_published_year(v)

    def to_document(self) -> Dict[str, Any]:
        """Render the payload with the camelCase keys used in the collection."""
        return self.model_dump(mode="json", by_alias=True)


class BookUpdate(BaseModel):
    """
    Partial book payload accepted by the update operation.
    Only supplied fields are validated and applied.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    author: Optional[str] = Field(None, min_length=2)
    isbn: Optional[str] = None
    published_year: Optional[int] = Field(None, alias="publishedYear")
    genre: Optional[Genre] = None
    price: Optional[float] = Field(None, ge=0)
    in_stock: Optional[bool] = Field(None, alias="inStock")

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "extra": "ignore",
    }

    @field_validator("isbn")
    @classmethod
    def check_isbn(cls, v):
        if v is None:
            return v
        return validate_isbn(v)

    @field_validator("published_year")
    @classmethod
    def check_published_year(cls, v):
        if v is None:
            return v
        return validate_published_year(v)

    @model_validator(mode="after")
    def reject_explicit_nulls(self):
        """A supplied field may not be cleared; every book field is required."""
        fields = type(self).model_fields
        cleared = [
            fields[name].alias or name
            for name in self.model_fields_set
            if getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(sorted(cleared))}")
        return self

    def to_changes(self) -> Dict[str, Any]:
        """Only the fields the client supplied, keyed as stored."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class BookRecord(BaseModel):
    """Book as stored, including the store-assigned id and timestamps."""
    id: str = Field(..., description="Unique book identifier")
    title: str
    author: str
    isbn: str
    published_year: int = Field(..., alias="publishedYear")
    genre: str
    price: float
    in_stock: bool = Field(..., alias="inStock")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "BookRecord":
        """Build a record from a raw MongoDB document."""
        data = dict(document)
        data["id"] = str(data.pop("_id"))
        return cls(**data)

    def to_response(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys and ISO timestamps."""
        return self.model_dump(mode="json", by_alias=True)


class WriteStatus(str, Enum):
    """Outcome of a write against the books collection."""
    OK = "ok"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    NOT_FOUND = "not_found"


class WriteResult(BaseModel):
    """
    Typed result of create/update operations.
    Replaces driver exceptions as the signal for duplicates and misses.
    """
    status: WriteStatus
    book: Optional[BookRecord] = None
    field: Optional[str] = None
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, book: BookRecord) -> "WriteResult":
        return cls(status=WriteStatus.OK, book=book)

    @classmethod
    def duplicate(cls, field: str) -> "WriteResult":
        return cls(status=WriteStatus.DUPLICATE, field=field)

    @classmethod
    def invalid(cls, errors: List[str]) -> "WriteResult":
        return cls(status=WriteStatus.INVALID, errors=errors)

    @classmethod
    def not_found(cls) -> "WriteResult":
        return cls(status=WriteStatus.NOT_FOUND)
