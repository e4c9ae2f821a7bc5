"""MongoDB sink for request log entries."""

import logging
from typing import TYPE_CHECKING

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from domain.models.request_log import RequestLogEntry
from domain.repositories.request_log_repository import RequestLogRepository

if TYPE_CHECKING:
    from neuroglia.hosting.web import WebApplicationBuilder

logger = logging.getLogger(__name__)


class MotorRequestLogRepository(RequestLogRepository):
    """Appends RequestLogEntry documents to a MongoDB collection.

    Entries are plain documents, not aggregates, so this talks to Motor
    directly instead of going through MotorRepository.
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection

    async def add_async(self, entry: RequestLogEntry) -> None:
        await self._collection.insert_one(entry.to_dict())
        logger.debug(f"Stored request log entry {entry.id} ({entry.request_type.value}, {entry.response_time_ms}ms)")

    @staticmethod
    def configure(builder: "WebApplicationBuilder") -> "MotorRequestLogRepository":
        """Register the repository as a singleton.

        Args:
            builder: The WebApplicationBuilder to configure

        Returns:
            The configured repository
        """
        from application.settings import app_settings

        mongo_url = app_settings.connection_strings.get("mongo", "mongodb://localhost:27017")
        client = AsyncIOMotorClient(mongo_url)
        collection = client[app_settings.database_name][app_settings.request_log_collection]
        repository = MotorRequestLogRepository(collection)
        builder.services.add_singleton(RequestLogRepository, singleton=repository)
        logger.info(f"✅ Configured MotorRequestLogRepository (collection={app_settings.request_log_collection})")
        return repository
