from typing import Any
from uuid import UUID

import structlog
from pymongo.asynchronous.database import AsyncDatabase

from orderspec.core.core import Service
from orderspec.core.modules.record.models import PositionUpdate, Record
from orderspec.core.modules.record.mongo import ensure_record_indexes
from orderspec.core.modules.reorder.engine import ReorderEngine
from orderspec.core.modules.reorder.models import MoveResult
from orderspec.errors import CommitError, QueryError

logger = structlog.get_logger(__name__)


class ReorderService(Service):
    """Moves and renumbers records, one critical section per collection."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]] | None) -> None:
        super().__init__(database)
        self._engines: dict[str, ReorderEngine] = {}

    async def on_start(self) -> None:
        """Create record indexes on startup."""
        if self.database is not None:
            await ensure_record_indexes(self.database.get_collection(self.core.config.records_collection))

    def get_engine(self, collection: str) -> ReorderEngine:
        """Get the reorder engine of a collection, creating it on first use."""
        if collection not in self._engines:
            self._engines[collection] = ReorderEngine(self.core.collaborator(collection), self.core.config.target_policy)
        return self._engines[collection]

    async def move(self, collection: str, record_id: UUID, to_position: int) -> MoveResult:
        """Move a record to a new position, shifting the records in between."""
        async with self.core.lock(collection):
            record = await self.core.collaborator(collection).get(record_id)
            try:
                return await self.get_engine(collection).move(record, to_position)
            except (QueryError, CommitError) as exc:
                logger.warning(
                    "move_failed", collection=collection, record_id=record_id, to_position=to_position, error=str(exc)
                )
                raise

    async def compact(self, collection: str) -> int:
        """Close gaps left by deleted records and return how many records were renumbered."""
        async with self.core.lock(collection):
            collaborator = self.core.collaborator(collection)
            records = await collaborator.list_all()
            updates = [
                PositionUpdate(record_id=record.id, position=index)
                for index, record in enumerate(records)
                if record.position != index
            ]
            if updates:
                await collaborator.commit(updates)
            logger.info("collection_compacted", collection=collection, total=len(records), renumbered=len(updates))
            return len(updates)

    async def list_records(self, collection: str) -> list[Record]:
        """Get all records of a collection in position order."""
        return await self.core.collaborator(collection).list_all()

    async def resync_allocator(self, collection: str) -> int:
        """Point the allocator just past the highest position in use and return its new value."""
        async with self.core.lock(collection):
            last = await self.core.collaborator(collection).max_position()
            value = 0 if last is None else last + 1
            await self.core.services.allocator.store_counter(collection, value)
            logger.info("allocator_resynced", collection=collection, fresh_position=value)
            return value
