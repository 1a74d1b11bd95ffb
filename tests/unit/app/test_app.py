"""Tests for the App facade on the in-memory backend."""

import pytest

from orderspec.app import App
from orderspec.config import Config
from orderspec.core.modules.record.collaborator import InMemoryCollaborator
from orderspec.core.modules.record.models import Record
from orderspec.errors import ValidationError


@pytest.fixture
def app() -> App:
    return App(Config(backend="memory", _env_file=None))


async def append(app: App, collection: str, name: str) -> Record:
    """Append a record the way callers do: allocate a position, then store."""
    collaborator = app._core.collaborator(collection)
    assert isinstance(collaborator, InMemoryCollaborator)
    record = Record(collection=collection, position=await app.next_position(collection), data={"name": name})
    return collaborator.add(record)


class TestApp:
    """Tests for the facade operations."""

    async def test_allocate_append_and_move(self, app):
        """Test the allocate-then-append flow followed by a move."""
        async with app.lifespan():
            appended = [await append(app, "shopping-list", name) for name in "ABCDE"]
            assert [record.position for record in appended] == [0, 1, 2, 3, 4]

            result = await app.move_record("shopping-list", appended[0].id, 3)
            assert result.changed == 4

            records = await app.get_records("shopping-list")
            assert [record.data["name"] for record in records] == ["B", "C", "D", "A", "E"]
            assert await app.get_fresh_position("shopping-list") == 5

    async def test_reset_and_set_counter(self, app):
        """Test allocator controls through the facade."""
        await app.set_position_counter("tasks", 3)
        assert await app.next_position("tasks") == 3
        await app.reset_positions("tasks")
        assert await app.next_position("tasks") == 0

    async def test_compact_and_resync(self, app):
        """Test compaction followed by allocator resynchronization."""
        collaborator = app._core.collaborator("tasks")
        assert isinstance(collaborator, InMemoryCollaborator)
        for position in (1, 4, 9):
            collaborator.add(Record(collection="tasks", position=position))

        assert await app.compact_collection("tasks") == 3
        assert await app.resync_allocator("tasks") == 3

    @pytest.mark.parametrize("slug", ["", "Tasks", "my tasks", "-tasks", "tasks-"])
    async def test_invalid_slug(self, app, slug):
        """Test that malformed collection slugs are rejected."""
        with pytest.raises(ValidationError):
            await app.next_position(slug)
