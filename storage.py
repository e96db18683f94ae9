"""Durable key-value storage used for wallet configuration and payment records.

Keys are plain strings, values are strings. A ``namespace`` keeps unrelated
data (``wallet_config`` vs ``payments``) from colliding in one backend.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterator, Optional, Tuple


class KeyValueStore:
    """Abstract base for string key -> string value storage."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def items(self) -> Iterator[Tuple[str, str]]:
        raise NotImplementedError

    def namespace(self, name: str) -> "NamespacedStore":
        return NamespacedStore(self, name)


class InMemoryKeyValueStore(KeyValueStore):
    """Process-local storage. Used when no database is configured and in tests."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._data.items()))


class MongoKeyValueStore(KeyValueStore):
    """Storage backed by a MongoDB collection, one document per key."""

    def __init__(self, collection) -> None:
        self.collection = collection

    def get(self, key: str) -> Optional[str]:
        doc = self.collection.find_one({"_id": key})
        return doc.get("value") if doc else None

    def set(self, key: str, value: str) -> None:
        self.collection.update_one(
            {"_id": key},
            {"$set": {"value": value, "updated_at": datetime.now(timezone.utc)}},
            upsert=True,
        )

    def delete(self, key: str) -> None:
        self.collection.delete_one({"_id": key})

    def items(self) -> Iterator[Tuple[str, str]]:
        for doc in self.collection.find({}):
            yield doc["_id"], doc.get("value", "")


class NamespacedStore(KeyValueStore):
    """View over another store that prefixes every key with ``<name>:``."""

    def __init__(self, backend: KeyValueStore, name: str) -> None:
        self.backend = backend
        self.prefix = f"{name}:"

    def get(self, key: str) -> Optional[str]:
        return self.backend.get(self.prefix + key)

    def set(self, key: str, value: str) -> None:
        self.backend.set(self.prefix + key, value)

    def delete(self, key: str) -> None:
        self.backend.delete(self.prefix + key)

    def items(self) -> Iterator[Tuple[str, str]]:
        for key, value in self.backend.items():
            if key.startswith(self.prefix):
                yield key[len(self.prefix):], value

    def namespace(self, name: str) -> "NamespacedStore":
        return NamespacedStore(self.backend, self.prefix + name)
