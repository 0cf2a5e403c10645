"""
Storage abstractions.

- DocumentStore → MongoDB (motor) or in-memory
"""

from tasktracker.storage.base import (
    ASCENDING,
    DESCENDING,
    Collections,
    DocumentStore,
    DuplicateKeyError,
)
from tasktracker.storage.memory import InMemoryDocumentStore


def create_store(settings) -> DocumentStore:
    """Pick the backend from settings.database_url."""
    if settings.use_mongo:
        from tasktracker.storage.mongo import MongoDocumentStore
        return MongoDocumentStore(settings.database_url, settings.database_name)
    return InMemoryDocumentStore()


__all__ = [
    "ASCENDING",
    "DESCENDING",
    "Collections",
    "DocumentStore",
    "DuplicateKeyError",
    "InMemoryDocumentStore",
    "create_store",
]
