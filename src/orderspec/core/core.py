from __future__ import annotations

import asyncio
import importlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, cast
from urllib.parse import urlparse

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase

from orderspec.config import Config
from orderspec.core.modules.record.collaborator import InMemoryCollaborator, OrderingCollaborator
from orderspec.core.modules.record.mongo import MongoCollaborator

if TYPE_CHECKING:
    from orderspec.core.modules.allocator.service import AllocatorService
    from orderspec.core.modules.reorder.service import ReorderService


class Service:
    """Base class for services, with direct database access when a database is configured."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]] | None) -> None:
        self.database = database
        self._core: Core | None = None

    async def on_start(self) -> None:
        """Initialize service on startup."""

    async def on_stop(self) -> None:
        """Cleanup service on shutdown."""

    @property
    def core(self) -> Core:
        """Get the core context."""
        if self._core is None:
            raise RuntimeError("Core not set for service")
        return self._core

    def set_core(self, core: Core) -> None:
        """Set the core context."""
        self._core = core


class Services:
    """Service registry that discovers and initializes services."""

    allocator: AllocatorService
    reorder: ReorderService

    def __init__(self, database: AsyncDatabase[dict[str, Any]] | None) -> None:
        self._services: list[Service] = []

        # Service configuration: (attribute_name, module_path, class_name)
        service_configs = [
            ("allocator", "orderspec.core.modules.allocator.service", "AllocatorService"),
            ("reorder", "orderspec.core.modules.reorder.service", "ReorderService"),
        ]

        for attr_name, module_path, class_name in service_configs:
            module = importlib.import_module(module_path)
            service_class = cast(type[Service], getattr(module, class_name))
            service_instance = service_class(database)
            setattr(self, attr_name, service_instance)
            self._services.append(service_instance)

    def set_core(self, core: Core) -> None:
        """Set core reference for all services."""
        for service in self._services:
            service.set_core(core)

    async def start_all(self) -> None:
        for service in self._services:
            await service.on_start()

    async def stop_all(self) -> None:
        for service in self._services:
            await service.on_stop()


class Core:
    """Container providing config, storage, per-collection locks and all service instances."""

    config: Config
    mongo_client: AsyncMongoClient[dict[str, Any]] | None
    database: AsyncDatabase[dict[str, Any]] | None
    services: Services

    def __init__(self, config: Config) -> None:
        """Initialize core with config, the configured backend, and services."""
        self.config = config
        self.mongo_client = None
        self.database = None
        if config.backend == "mongo" and config.database_url:
            self.mongo_client = AsyncMongoClient(config.database_url, uuidRepresentation="standard")
            self.database = self.mongo_client.get_database(urlparse(config.database_url).path[1:])
        self._collaborators: dict[str, OrderingCollaborator] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self.services = Services(self.database)
        self.services.set_core(self)

    def collaborator(self, collection: str) -> OrderingCollaborator:
        """Get the storage collaborator of an ordered collection."""
        if collection not in self._collaborators:
            if self.mongo_client is None or self.database is None:
                self._collaborators[collection] = InMemoryCollaborator(collection)
            else:
                records = self.database.get_collection(self.config.records_collection)
                self._collaborators[collection] = MongoCollaborator(self.mongo_client, records, collection)
        return self._collaborators[collection]

    def lock(self, collection: str) -> asyncio.Lock:
        """Get the mutual-exclusion scope guarding all position writes of a collection.

        Only serializes work inside this process; separate processes sharing one
        database are not excluded from each other.
        """
        if collection not in self._locks:
            self._locks[collection] = asyncio.Lock()
        return self._locks[collection]

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Manage lifecycle - startup and shutdown."""
        await self.on_start()
        try:
            yield
        finally:
            await self.on_stop()

    async def on_start(self) -> None:
        await self.services.start_all()

    async def on_stop(self) -> None:
        """Stop services and close the MongoDB connection, if any."""
        await self.services.stop_all()
        if self.mongo_client is not None:
            await self.mongo_client.aclose()
