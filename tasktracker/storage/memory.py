"""
In-memory document store for development and tests.

Works without any external services. Documents are copied on the way
in and out so callers never share mutable state with the store.
"""

from __future__ import annotations

import copy
import re
from typing import Any

from tasktracker.storage.base import (
    DocumentStore,
    DuplicateKeyError,
    SortSpec,
    UNIQUE_FIELDS,
)


def _compare(op: str, actual: Any, expected: Any) -> bool:
    if op == "$ne":
        return actual != expected
    if op == "$in":
        return actual in expected
    if op == "$regex":
        return False  # handled by the caller, needs $options
    # Ordering operators never match a missing value (same as MongoDB)
    if actual is None:
        return False
    if op == "$lt":
        return actual < expected
    if op == "$lte":
        return actual <= expected
    if op == "$gt":
        return actual > expected
    if op == "$gte":
        return actual >= expected
    raise ValueError(f"Unsupported operator: {op}")


def _match_condition(actual: Any, condition: Any) -> bool:
    if not isinstance(condition, dict):
        return actual == condition

    if "$regex" in condition:
        flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
        if not isinstance(actual, str) or not re.search(condition["$regex"], actual, flags):
            return False

    for op, expected in condition.items():
        if op in ("$regex", "$options"):
            continue
        if not _compare(op, actual, expected):
            return False
    return True


def matches(document: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    """Evaluate a filter dict against one document."""
    if not filters:
        return True
    for key, condition in filters.items():
        if key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _match_condition(document.get(key), condition):
            return False
    return True


def _sort_key(field: str):
    # None sorts before everything else, like MongoDB
    def key(doc: dict[str, Any]):
        value = doc.get(field)
        return (value is not None, value)
    return key


class InMemoryDocumentStore(DocumentStore):
    """In-memory document storage for development."""

    def __init__(self, unique_fields: dict[str, tuple[str, ...]] | None = None):
        self._data: dict[str, dict[str, dict[str, Any]]] = {}
        self._unique = unique_fields if unique_fields is not None else UNIQUE_FIELDS

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._data.setdefault(name, {})

    def _check_unique(self, collection: str, document: dict[str, Any], exclude_id: str | None) -> None:
        for field in self._unique.get(collection, ()):
            value = document.get(field)
            if value is None:
                continue
            for other in self._collection(collection).values():
                if other["id"] != exclude_id and other.get(field) == value:
                    raise DuplicateKeyError(collection, field)

    async def insert(self, collection: str, document: dict[str, Any]) -> dict[str, Any]:
        docs = self._collection(collection)
        if document["id"] in docs:
            raise DuplicateKeyError(collection, "id")
        self._check_unique(collection, document, exclude_id=None)
        docs[document["id"]] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def get(self, collection: str, id: str) -> dict[str, Any] | None:
        doc = self._collection(collection).get(id)
        return copy.deepcopy(doc) if doc else None

    async def find_one(self, collection: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        for doc in self._collection(collection).values():
            if matches(doc, filters):
                return copy.deepcopy(doc)
        return None

    async def find(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int = 0,
    ) -> list[dict[str, Any]]:
        results = [doc for doc in self._collection(collection).values() if matches(doc, filters)]

        # Stable sorts applied last key first give a multi-key ordering
        for field, direction in reversed(sort or []):
            results.sort(key=_sort_key(field), reverse=direction < 0)

        results = results[skip:]
        if limit:
            results = results[:limit]
        return [copy.deepcopy(doc) for doc in results]

    async def count(self, collection: str, filters: dict[str, Any] | None = None) -> int:
        return sum(1 for doc in self._collection(collection).values() if matches(doc, filters))

    async def update(
        self, collection: str, id: str, updates: dict[str, Any]
    ) -> dict[str, Any] | None:
        docs = self._collection(collection)
        if id not in docs:
            return None
        merged = {**docs[id], **copy.deepcopy(updates), "id": id}
        self._check_unique(collection, merged, exclude_id=id)
        docs[id] = merged
        return copy.deepcopy(merged)

    async def delete(self, collection: str, id: str) -> bool:
        return self._collection(collection).pop(id, None) is not None

    async def delete_many(self, collection: str, filters: dict[str, Any]) -> int:
        docs = self._collection(collection)
        doomed = [doc_id for doc_id, doc in docs.items() if matches(doc, filters)]
        for doc_id in doomed:
            del docs[doc_id]
        return len(doomed)
