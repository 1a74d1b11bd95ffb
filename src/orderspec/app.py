from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from uuid import UUID

from orderspec import utils
from orderspec.config import Config
from orderspec.core.core import Core
from orderspec.core.modules.record.models import Record
from orderspec.core.modules.reorder.models import MoveResult
from orderspec.errors import ValidationError


class App:
    """Facade for all ordering operations, validates collection slugs before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    # === Position allocation ===
    async def next_position(self, collection: str) -> int:
        """Issue a fresh position for a record about to be appended."""
        return await self._core.services.allocator.next_position(self._resolve_collection(collection))

    async def get_fresh_position(self, collection: str) -> int:
        """Get the next fresh position without consuming it."""
        return await self._core.services.allocator.current(self._resolve_collection(collection))

    async def reset_positions(self, collection: str) -> None:
        """Restart position allocation at 0 (collection is being cleared)."""
        await self._core.services.allocator.reset(self._resolve_collection(collection))

    async def set_position_counter(self, collection: str, value: int) -> None:
        """Resynchronize position allocation to an explicit value."""
        await self._core.services.allocator.set_counter(self._resolve_collection(collection), value)

    async def resync_allocator(self, collection: str) -> int:
        """Resynchronize position allocation with the highest position in use."""
        return await self._core.services.reorder.resync_allocator(self._resolve_collection(collection))

    # === Reordering ===
    async def move_record(self, collection: str, record_id: UUID, to_position: int) -> MoveResult:
        """Move a record to a new position within its collection."""
        return await self._core.services.reorder.move(self._resolve_collection(collection), record_id, to_position)

    async def compact_collection(self, collection: str) -> int:
        """Renumber a collection to contiguous positions starting at 0."""
        return await self._core.services.reorder.compact(self._resolve_collection(collection))

    async def get_records(self, collection: str) -> list[Record]:
        """Get all records of a collection in position order."""
        return await self._core.services.reorder.list_records(self._resolve_collection(collection))

    # === Private resolver methods ===
    def _resolve_collection(self, slug: str) -> str:
        """Validate a collection slug. Raises ValidationError if malformed."""
        if not utils.is_slug(slug):
            raise ValidationError(f"Invalid collection slug: '{slug}'")
        return slug
