"""MongoDB collaborator: range queries with find/sort, commits in a transaction."""

from collections.abc import Sequence
from typing import Any
from uuid import UUID

import structlog
from pymongo import AsyncMongoClient, UpdateOne
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.errors import PyMongoError

from orderspec.core.modules.record.collaborator import OrderingCollaborator
from orderspec.core.modules.record.models import ExclusiveBound, PositionUpdate, RangeQuery, Record
from orderspec.errors import CommitError, NotFoundError, QueryError

logger = structlog.get_logger(__name__)


def build_range_filter(collection: str, query: RangeQuery) -> dict[str, Any]:
    """Build the MongoDB filter selecting a position range of one collection.

    Args:
        collection: Slug of the ordered collection
        query: The position range

    Returns:
        MongoDB filter document
    """
    position: dict[str, int] = {}
    if query.low is not None:
        position["$gt" if query.exclusive == ExclusiveBound.LOW else "$gte"] = query.low
    if query.high is not None:
        position["$lt" if query.exclusive == ExclusiveBound.HIGH else "$lte"] = query.high

    result: dict[str, Any] = {"collection": collection}
    if position:
        result["position"] = position
    return result


def build_position_sort(ascending: bool) -> list[tuple[str, int]]:
    """Build the MongoDB sort specification on position."""
    return [("position", 1 if ascending else -1)]


def build_position_updates(collection: str, updates: Sequence[PositionUpdate]) -> list[UpdateOne]:
    """Build one ``$set`` operation per position write, scoped to the collection."""
    return [
        UpdateOne({"_id": update.record_id, "collection": collection}, {"$set": {"position": update.position}})
        for update in updates
    ]


async def ensure_record_indexes(mongo_collection: AsyncCollection[dict[str, Any]]) -> None:
    """Create indexes for position range lookups."""
    await mongo_collection.create_index([("collection", 1), ("position", 1)])
    await mongo_collection.create_index([("collection", 1)])


class MongoCollaborator(OrderingCollaborator):
    """Ordered collection stored as documents of a shared MongoDB collection.

    Commits need a replica set or sharded cluster, since they run inside a
    multi-document transaction.
    """

    def __init__(
        self,
        client: AsyncMongoClient[dict[str, Any]],
        mongo_collection: AsyncCollection[dict[str, Any]],
        collection: str,
    ) -> None:
        self.collection = collection
        self._client = client
        self._collection = mongo_collection

    async def fetch_range(self, query: RangeQuery) -> list[Record]:
        try:
            cursor = self._collection.find(build_range_filter(self.collection, query)).sort(
                build_position_sort(query.ascending)
            )
            return await Record.list_cursor(cursor)
        except PyMongoError as exc:
            raise QueryError(f"Range query on '{self.collection}' failed: {exc}") from exc

    async def commit(self, updates: Sequence[PositionUpdate]) -> None:
        if not updates:
            return
        operations = build_position_updates(self.collection, updates)

        async def write_batch(session: AsyncClientSession) -> None:
            result = await self._collection.bulk_write(operations, ordered=True, session=session)
            # Raising inside the callback aborts the transaction
            if result.matched_count != len(operations):
                raise CommitError(
                    f"Commit on '{self.collection}' matched {result.matched_count} of {len(operations)} records"
                )

        try:
            async with self._client.start_session() as session:
                await session.with_transaction(write_batch)
        except PyMongoError as exc:
            raise CommitError(f"Commit on '{self.collection}' failed: {exc}") from exc
        logger.debug("positions_committed", collection=self.collection, count=len(operations))

    async def get(self, record_id: UUID) -> Record:
        try:
            doc = await self._collection.find_one({"_id": record_id, "collection": self.collection})
        except PyMongoError as exc:
            raise QueryError(f"Lookup of record '{record_id}' failed: {exc}") from exc
        if doc is None:
            raise NotFoundError(f"Record '{record_id}' not found in '{self.collection}'")
        return Record.from_mongo(doc)

    async def max_position(self) -> int | None:
        """Return the highest position in the collection, or None when empty."""
        try:
            doc = await self._collection.find_one({"collection": self.collection}, sort=build_position_sort(ascending=False))
        except PyMongoError as exc:
            raise QueryError(f"Lookup of last position in '{self.collection}' failed: {exc}") from exc
        return None if doc is None else int(doc["position"])
