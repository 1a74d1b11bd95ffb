from typing import Any
from uuid import uuid4

import structlog
from pymongo import ReturnDocument
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase

from orderspec.core.core import Service
from orderspec.core.modules.allocator.models import AllocatorState, PositionAllocator
from orderspec.errors import ValidationError

logger = structlog.get_logger(__name__)


class AllocatorService(Service):
    """Service owning one position allocator per ordered collection.

    With a database the counters are persisted and advanced with atomic
    MongoDB operations; otherwise each collection gets an in-memory allocator.
    """

    def __init__(self, database: AsyncDatabase[dict[str, Any]] | None) -> None:
        super().__init__(database)
        self._allocators: dict[str, PositionAllocator] = {}

    @property
    def _collection(self) -> AsyncCollection[dict[str, Any]] | None:
        if self.database is None:
            return None
        return self.database.get_collection(self.core.config.allocators_collection)

    async def on_start(self) -> None:
        """Create indexes on startup."""
        if self._collection is not None:
            await self._collection.create_index([("collection", 1)], unique=True)

    def get_allocator(self, collection: str) -> PositionAllocator:
        """Get the in-memory allocator of a collection, creating it on first use."""
        if collection not in self._allocators:
            self._allocators[collection] = PositionAllocator()
        return self._allocators[collection]

    async def next_position(self, collection: str) -> int:
        """Issue the next fresh position of a collection."""
        async with self.core.lock(collection):
            states = self._collection
            if states is None:
                return self.get_allocator(collection).next_position()

            # Document before the increment holds the value to issue; a fresh upsert returns None
            doc = await states.find_one_and_update(
                {"collection": collection},
                {"$inc": {"fresh_position": 1}, "$setOnInsert": {"_id": uuid4()}},
                upsert=True,
                return_document=ReturnDocument.BEFORE,
            )
            return 0 if doc is None else int(doc["fresh_position"])

    async def current(self, collection: str) -> int:
        """Get the value the next call to next_position will issue, without consuming it."""
        states = self._collection
        if states is None:
            return self.get_allocator(collection).peek()
        doc = await states.find_one({"collection": collection})
        if doc is None:
            return 0
        return AllocatorState.from_mongo(doc).fresh_position

    async def reset(self, collection: str) -> None:
        """Restart the counter at 0. Meant for a collection that is empty or being cleared."""
        await self.set_counter(collection, 0)

    async def set_counter(self, collection: str, value: int) -> None:
        """Resynchronize the counter of a collection to an explicit value."""
        async with self.core.lock(collection):
            await self.store_counter(collection, value)

    async def store_counter(self, collection: str, value: int) -> None:
        """Write the counter without taking the collection lock; the caller must hold it."""
        if value < 0:
            raise ValidationError(f"Position counter must not be negative, got {value}")
        states = self._collection
        if states is None:
            self.get_allocator(collection).set_counter(value)
        else:
            await states.update_one(
                {"collection": collection},
                {"$set": {"fresh_position": value}, "$setOnInsert": {"_id": uuid4()}},
                upsert=True,
            )
        logger.debug("allocator_counter_set", collection=collection, fresh_position=value)

    async def delete_allocator(self, collection: str) -> bool:
        """Forget the counter of a collection. Returns True if one existed."""
        async with self.core.lock(collection):
            states = self._collection
            if states is None:
                return self._allocators.pop(collection, None) is not None
            result = await states.delete_one({"collection": collection})
            return result.deleted_count > 0
