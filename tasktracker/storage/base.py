"""
Storage abstraction layer.

All persistence goes through DocumentStore. This allows swapping
implementations (in-memory for development and tests, MongoDB in
production) without changing service code.

Filters use a small Mongo-style subset so both backends can share them:

    {"user_id": "abc"}                                  equality
    {"due_date": {"$lte": when}}                        $lt $lte $gt $gte $ne $in
    {"$or": [{"title": {"$regex": "x", "$options": "i"}}, ...]}
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


SortSpec = list[tuple[str, int]]

ASCENDING = 1
DESCENDING = -1


class DuplicateKeyError(Exception):
    """A write would break a unique field."""

    def __init__(self, collection: str, field: str):
        self.collection = collection
        self.field = field
        super().__init__(f"Duplicate value for {collection}.{field}")


class DocumentStore(ABC):
    """
    Storage for structured documents, one dict per record.

    Every document has a string "id" key. Single-document writes are
    atomic; concurrent updates to one document are last-writer-wins.

    MongoDB Implementation: motor
    Local Implementation: in-memory
    """

    @abstractmethod
    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        """Insert a document. Raises DuplicateKeyError on unique violations."""
        pass

    @abstractmethod
    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        """Get a document by ID."""
        pass

    @abstractmethod
    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """First document matching filters."""
        pass

    @abstractmethod
    async def find(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        """Query documents. `limit=0` means no limit."""
        pass

    @abstractmethod
    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        pass

    @abstractmethod
    async def update(
        self, collection: str, id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        """
        Partial update of a document.

        Returns the updated document, or None if it does not exist.
        Raises DuplicateKeyError on unique violations.
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, id: str) -> bool:
        """Delete a document."""
        pass

    @abstractmethod
    async def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        """Delete every matching document, return how many went."""
        pass

    async def init_indexes(self) -> None:
        """Create indexes. Called once at startup."""
        pass

    async def close(self) -> None:
        pass


# =============================================================================
# Collection Names
# =============================================================================


class Collections:
    """Standard collection names."""

    USERS = "users"
    TASKS = "tasks"


UNIQUE_FIELDS: dict[str, tuple[str, ...]] = {
    Collections.USERS: ("email",),
}
