"""Records kept in a dense position order, and the range queries over them."""

from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from orderspec.core.db import MongoModel


class Record(MongoModel):
    """Persisted entity ranked by ``position`` within its ordered collection.

    Indexed on (collection, position).
    """

    collection: str  # Slug of the ordered collection the record belongs to
    position: int
    data: dict[str, Any] = Field(default_factory=dict)  # Opaque payload, never interpreted


class PositionUpdate(BaseModel):
    """One write of a commit batch."""

    record_id: UUID
    position: int


class ExclusiveBound(StrEnum):
    """Which end of a position range is open."""

    LOW = "low"
    HIGH = "high"
    NONE = "none"


class RangeQuery(BaseModel):
    """Position range over an ordered collection.

    ``None`` for ``low`` or ``high`` leaves that side unbounded.
    """

    low: int | None = None
    high: int | None = None
    exclusive: ExclusiveBound = ExclusiveBound.NONE
    ascending: bool = True

    def contains(self, position: int) -> bool:
        """Check whether a position falls inside the range."""
        if self.low is not None:
            if position < self.low or (self.exclusive == ExclusiveBound.LOW and position == self.low):
                return False
        if self.high is not None:
            if position > self.high or (self.exclusive == ExclusiveBound.HIGH and position == self.high):
                return False
        return True
