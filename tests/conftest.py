"""Shared pytest fixtures."""

from collections.abc import Awaitable, Callable, Iterable, Sequence
from uuid import UUID

import pytest

from orderspec.config import Config
from orderspec.core.core import Core
from orderspec.core.modules.record.collaborator import InMemoryCollaborator, OrderingCollaborator
from orderspec.core.modules.record.models import PositionUpdate, RangeQuery, Record
from orderspec.errors import CommitError, QueryError

COLLECTION = "tasks"


class FailingCollaborator(InMemoryCollaborator):
    """In-memory collaborator whose reads or writes can be made to fail."""

    def __init__(self, collection: str, records: Iterable[Record] = ()) -> None:
        super().__init__(collection, records)
        self.fail_fetch = False
        self.fail_commit = False
        self.fetches: list[RangeQuery] = []

    async def fetch_range(self, query: RangeQuery) -> list[Record]:
        self.fetches.append(query)
        if self.fail_fetch:
            raise QueryError("store unavailable")
        return await super().fetch_range(query)

    async def commit(self, updates: Sequence[PositionUpdate]) -> None:
        if self.fail_commit:
            raise CommitError("write conflict")
        await super().commit(updates)


def make_records(names: str = "ABCDE", positions: Iterable[int] | None = None) -> dict[str, Record]:
    """Create one record per letter, at positions 0..N-1 unless given."""
    positions = range(len(names)) if positions is None else positions
    return {
        name: Record(
            id=UUID(int=index + 1),
            collection=COLLECTION,
            position=position,
            data={"name": name},
        )
        for index, (name, position) in enumerate(zip(names, positions, strict=True))
    }


@pytest.fixture
def records() -> dict[str, Record]:
    """Records A, B, C, D, E at positions 0..4."""
    return make_records()


@pytest.fixture
def collaborator(records) -> FailingCollaborator:
    """Collection 'tasks' holding A..E."""
    return FailingCollaborator(COLLECTION, records.values())


@pytest.fixture
def snapshot() -> Callable[[OrderingCollaborator], Awaitable[dict[str, int]]]:
    """Read the stored position of every record, keyed by record name."""

    async def read(collaborator: OrderingCollaborator) -> dict[str, int]:
        return {record.data["name"]: record.position for record in await collaborator.list_all()}

    return read


@pytest.fixture
def core(monkeypatch) -> Core:
    """Core on the in-memory backend."""
    monkeypatch.delenv("ORDERSPEC_BACKEND", raising=False)
    return Core(Config(backend="memory", _env_file=None))


@pytest.fixture
def seeded_core(core, records) -> Core:
    """In-memory core whose 'tasks' collection holds A..E."""
    collaborator = core.collaborator(COLLECTION)
    assert isinstance(collaborator, InMemoryCollaborator)
    for record in records.values():
        collaborator.add(record)
    return core


@pytest.fixture
def build_collection() -> Callable[..., tuple[dict[str, Record], FailingCollaborator]]:
    """Factory for a fresh 'tasks' collection with custom names and positions."""

    def build(names: str = "ABCDE", positions: Iterable[int] | None = None) -> tuple[dict[str, Record], FailingCollaborator]:
        records = make_records(names, positions)
        return records, FailingCollaborator(COLLECTION, records.values())

    return build
