"""Storage collaborators that hold the records of one ordered collection."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from uuid import UUID

from orderspec.core.modules.record.models import PositionUpdate, RangeQuery, Record
from orderspec.errors import CommitError, NotFoundError, ValidationError


class OrderingCollaborator(ABC):
    """Backing store of one ordered collection.

    The reorder engine relies on ``get``, ``fetch_range`` and ``commit``; the other
    methods serve the service layer.
    """

    collection: str

    @abstractmethod
    async def fetch_range(self, query: RangeQuery) -> list[Record]:
        """Return all records inside the range, sorted by position.

        Raises QueryError when the store cannot answer.
        """
        raise NotImplementedError

    @abstractmethod
    async def commit(self, updates: Sequence[PositionUpdate]) -> None:
        """Apply all position writes as one unit, or none of them.

        Raises CommitError when the batch is not persisted.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, record_id: UUID) -> Record:
        """Return a record by id. Raises NotFoundError if it is not in the collection."""
        raise NotImplementedError

    async def list_all(self) -> list[Record]:
        """Return every record of the collection in ascending position order."""
        return await self.fetch_range(RangeQuery())

    async def max_position(self) -> int | None:
        """Return the highest position in the collection, or None when empty."""
        records = await self.fetch_range(RangeQuery(ascending=False))
        return records[0].position if records else None


class InMemoryCollaborator(OrderingCollaborator):
    """Dict-backed collection; callers only ever see copies of stored records."""

    def __init__(self, collection: str, records: Iterable[Record] = ()) -> None:
        self.collection = collection
        self._records: dict[UUID, Record] = {}
        for record in records:
            self.add(record)

    def add(self, record: Record) -> Record:
        """Store a record as it is, without touching positions of others."""
        if record.collection != self.collection:
            raise ValidationError(f"Record belongs to '{record.collection}', not '{self.collection}'")
        self._records[record.id] = record.model_copy(deep=True)
        return record

    def __len__(self) -> int:
        return len(self._records)

    async def fetch_range(self, query: RangeQuery) -> list[Record]:
        matched = [record.model_copy(deep=True) for record in self._records.values() if query.contains(record.position)]
        matched.sort(key=lambda record: record.position, reverse=not query.ascending)
        return matched

    async def commit(self, updates: Sequence[PositionUpdate]) -> None:
        # Validate the whole batch before the first write
        missing = [str(update.record_id) for update in updates if update.record_id not in self._records]
        if missing:
            raise CommitError(f"Unknown records in '{self.collection}': {', '.join(missing)}")
        for update in updates:
            self._records[update.record_id].position = update.position

    async def get(self, record_id: UUID) -> Record:
        if record_id not in self._records:
            raise NotFoundError(f"Record '{record_id}' not found in '{self.collection}'")
        return self._records[record_id].model_copy(deep=True)
