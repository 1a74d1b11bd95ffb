from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field

from orderspec.core.modules.record.models import PositionUpdate, RangeQuery


class TargetPolicy(StrEnum):
    """How a move handles a target position outside the collection."""

    STRICT = "strict"  # Reject with InvalidTargetError
    CLAMP = "clamp"  # Move to the nearest occupied end instead


class ShiftPlan(BaseModel):
    """Records to shift for one move, and by how much."""

    query: RangeQuery
    delta: int  # +1 when moving left, -1 when moving right


class MoveResult(BaseModel):
    """Outcome of a committed (or no-op) move."""

    record_id: UUID
    from_position: int
    to_position: int
    updates: list[PositionUpdate] = Field(default_factory=list)  # Every position written, moved record last

    @property
    def changed(self) -> int:
        """Number of records whose position changed."""
        return len(self.updates)

    @property
    def is_noop(self) -> bool:
        return not self.updates
