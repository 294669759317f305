"""
MongoDB database utilities for async operations.
Handles the connection lifecycle, indexing, and CRUD operations for books.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError

from utilities.logger import get_logger

from .models import BookCreate, BookRecord, WriteResult

logger = get_logger(__name__)

NEWEST_FIRST = [("createdAt", DESCENDING), ("_id", DESCENDING)]


def utc_now() -> datetime:
    """Current UTC time at the millisecond precision BSON dates store."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


class MongoDBManager:
    """
    Async MongoDB manager owning the client for the lifetime of the process.
    Opened once at startup and closed at shutdown by the API lifespan.
    """

    def __init__(
        self,
        connection_url: str,
        collection_name: str,
        default_database: str = "bookstore",
        timeout_ms: int = 5000
    ):
        """
        Initialize MongoDB manager.

        Args:
            connection_url: MongoDB connection URL, optionally naming the database
            collection_name: Name of the books collection
            default_database: Database used when the URL names none
            timeout_ms: Server selection timeout in milliseconds
        """
        self.connection_url = connection_url
        self.collection_name = collection_name
        self.default_database = default_database
        self.timeout_ms = timeout_ms
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.collection: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """
        Create the client, verify the server answers and ensure indexes.

        The client handle is kept even when the ping fails so that requests
        can succeed once the server becomes reachable.
        """
        self.client = AsyncIOMotorClient(
            self.connection_url,
            serverSelectionTimeoutMS=self.timeout_ms,
            tz_aware=True,
            tzinfo=timezone.utc
        )
        self.database = self.client.get_default_database(default=self.default_database)
        self.collection = self.database[self.collection_name]

        await self.client.admin.command("ping")
        logger.info("Successfully connected to MongoDB",
                    database=self.database.name,
                    collection=self.collection_name)

        await self._create_indexes()

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            self.client = None
            logger.info("Disconnected from MongoDB")

    async def ping(self) -> bool:
        """Return True when the server answers a ping."""
        if not self.client:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except Exception as e:
            logger.warning("MongoDB ping failed", error=str(e))
            return False

    async def _create_indexes(self) -> None:
        """Create indexes for uniqueness and the list/filter queries."""
        try:
            # ISBN uniqueness is enforced by the store
            await self.collection.create_index("isbn", unique=True)

            await self.collection.create_index("title")
            await self.collection.create_index("author")
            await self.collection.create_index("genre")
            await self.collection.create_index("inStock")
            await self.collection.create_index(NEWEST_FIRST)

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise


def parse_object_id(book_id: str) -> Optional[ObjectId]:
    """Convert a path id to an ObjectId, or None when it is not well formed."""
    if not ObjectId.is_valid(book_id):
        return None
    return ObjectId(book_id)


def duplicate_field(error: DuplicateKeyError) -> str:
    """Name the unique field a DuplicateKeyError refers to."""
    details = error.details or {}
    key_pattern = details.get("keyPattern") or details.get("keyValue") or {}
    if key_pattern:
        return next(iter(key_pattern))
    return "isbn"


class BookRepository:
    """
    Persistence gateway for the books collection.
    Every method is a single collection call; write methods return a WriteResult.
    """

    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def insert(self, book: BookCreate) -> WriteResult:
        """
        Insert a validated book, stamping both timestamps.

        Args:
            book: Validated create payload

        Returns:
            WriteResult with the stored record, or a duplicate outcome
        """
        now = utc_now()
        document = book.to_document()
        document["createdAt"] = now
        document["updatedAt"] = now

        try:
            result = await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            field = duplicate_field(e)
            logger.warning("Duplicate key on insert", field=field, isbn=book.isbn)
            return WriteResult.duplicate(field)
        except Exception as e:
            logger.error("Failed to insert book", isbn=book.isbn, error=str(e))
            raise

        document["_id"] = result.inserted_id
        logger.debug("Successfully inserted book", book_id=str(result.inserted_id))
        return WriteResult.ok(BookRecord.from_document(document))

    async def find_all(self) -> List[BookRecord]:
        """All books, newest first."""
        return await self._find({})

    async def find_by_id(self, book_id: str) -> Optional[BookRecord]:
        """
        Get a book by its id.

        Returns:
            BookRecord or None if the id is unknown or malformed
        """
        object_id = parse_object_id(book_id)
        if object_id is None:
            logger.debug("Malformed book id", book_id=book_id)
            return None

        try:
            document = await self.collection.find_one({"_id": object_id})
        except Exception as e:
            logger.error("Failed to get book by ID", book_id=book_id, error=str(e))
            raise

        return BookRecord.from_document(document) if document else None

    async def update(self, book_id: str, changes: Dict[str, Any]) -> WriteResult:
        """
        Apply validated field changes to an existing book.

        Args:
            book_id: Id of the book to update
            changes: Stored-key field values to set

        Returns:
            WriteResult with the updated record, not_found, or duplicate
        """
        object_id = parse_object_id(book_id)
        if object_id is None:
            return WriteResult.not_found()

        update_data = dict(changes)
        update_data["updatedAt"] = utc_now()

        try:
            document = await self.collection.find_one_and_update(
                {"_id": object_id},
                {"$set": update_data},
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            field = duplicate_field(e)
            logger.warning("Duplicate key on update", field=field, book_id=book_id)
            return WriteResult.duplicate(field)
        except Exception as e:
            logger.error("Failed to update book by ID", book_id=book_id, error=str(e))
            raise

        if document is None:
            logger.warning("Book not found for update", book_id=book_id)
            return WriteResult.not_found()

        logger.debug("Successfully updated book by ID", book_id=book_id)
        return WriteResult.ok(BookRecord.from_document(document))

    async def delete(self, book_id: str) -> Optional[BookRecord]:
        """
        Delete a book by id.

        Returns:
            The book as it was before removal, or None if not found
        """
        object_id = parse_object_id(book_id)
        if object_id is None:
            return None

        try:
            document = await self.collection.find_one_and_delete({"_id": object_id})
        except Exception as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise

        if document is None:
            logger.warning("Book not found for deletion", book_id=book_id)
            return None

        logger.debug("Successfully deleted book", book_id=book_id)
        return BookRecord.from_document(document)

    async def search(self, text: str) -> List[BookRecord]:
        """Books whose title or author contains text, case-insensitively."""
        pattern = {"$regex": re.escape(text), "$options": "i"}
        return await self._find({"$or": [{"title": pattern}, {"author": pattern}]})

    async def find_by_genre(self, genre: str) -> List[BookRecord]:
        """Books with exactly this genre (case-sensitive)."""
        return await self._find({"genre": genre})

    async def find_in_stock(self) -> List[BookRecord]:
        """Books currently in stock."""
        return await self._find({"inStock": True})

    async def _find(self, filter_query: Dict[str, Any]) -> List[BookRecord]:
        """Run a filter and materialize every match, newest first."""
        try:
            cursor = self.collection.find(filter_query).sort(NEWEST_FIRST)
            documents = await cursor.to_list(length=None)
        except Exception as e:
            logger.error("Failed to query books", filter=filter_query, error=str(e))
            raise

        return [BookRecord.from_document(document) for document in documents]
