"""Moves one record to a new position by shifting only the records in between."""

import structlog

from orderspec.core.modules.record.collaborator import OrderingCollaborator
from orderspec.core.modules.record.models import ExclusiveBound, PositionUpdate, RangeQuery, Record
from orderspec.core.modules.reorder.models import MoveResult, ShiftPlan, TargetPolicy
from orderspec.errors import InvalidTargetError

logger = structlog.get_logger(__name__)


def plan_move(current: int, target: int) -> ShiftPlan | None:
    """Compute the affected range of a move.

    Moving left, records in [target, current) slide right by one. Moving
    right, records in (current, target] slide left by one.

    Args:
        current: Position the record occupies now
        target: Position the record should end up at

    Returns:
        The shift plan, or None when the record is already in place
    """
    if target == current:
        return None
    if target < current:
        return ShiftPlan(query=RangeQuery(low=target, high=current, exclusive=ExclusiveBound.HIGH), delta=1)
    return ShiftPlan(query=RangeQuery(low=current, high=target, exclusive=ExclusiveBound.LOW), delta=-1)


class ReorderEngine:
    """Reorders records of one collection through its collaborator.

    Callers must hold the collection's lock for the whole move: the range read
    and the commit form one critical section.
    """

    def __init__(self, collaborator: OrderingCollaborator, target_policy: TargetPolicy = TargetPolicy.STRICT) -> None:
        self._collaborator = collaborator
        self._target_policy = target_policy

    @property
    def collection(self) -> str:
        return self._collaborator.collection

    async def move(self, record: Record, to_position: int) -> MoveResult:
        """Move a record to ``to_position`` and commit every shifted position at once.

        The current position is read from the collaborator, so a caller holding
        a record whose position changed through an earlier shift still gets a
        correct move. ``record.position`` is updated only after the commit
        succeeds. QueryError and CommitError from the collaborator propagate
        unchanged.
        """
        current = (await self._collaborator.get(record.id)).position
        target = self._check_lower_bound(to_position)

        plan = plan_move(current, target)
        if plan is None:
            record.position = current
            return MoveResult(record_id=record.id, from_position=current, to_position=current)

        affected = [item for item in await self._collaborator.fetch_range(plan.query) if item.id != record.id]

        # The target slot must be occupied: the nearest end of the range when moving left, the far end moving right
        if plan.delta > 0:
            occupied = affected[0].position if affected else current
        else:
            occupied = affected[-1].position if affected else current
        if occupied != target:
            if self._target_policy == TargetPolicy.STRICT:
                raise InvalidTargetError(f"Position {target} is not occupied in '{self.collection}'")
            target = occupied
            if target == current:
                record.position = current
                return MoveResult(record_id=record.id, from_position=current, to_position=current)

        updates = [PositionUpdate(record_id=item.id, position=item.position + plan.delta) for item in affected]
        updates.append(PositionUpdate(record_id=record.id, position=target))

        await self._collaborator.commit(updates)
        record.position = target

        logger.info(
            "record_moved",
            collection=self.collection,
            record_id=record.id,
            from_position=current,
            to_position=target,
            shifted=len(affected),
        )
        return MoveResult(record_id=record.id, from_position=current, to_position=target, updates=updates)

    def _check_lower_bound(self, to_position: int) -> int:
        if to_position >= 0:
            return to_position
        if self._target_policy == TargetPolicy.STRICT:
            raise InvalidTargetError(f"Position {to_position} is negative")
        return 0
