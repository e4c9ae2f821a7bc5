"""MongoDB repository implementation for Conversation."""

from neuroglia.data.infrastructure.mongo import MotorRepository

from domain.entities.conversation import Conversation
from domain.repositories.conversation_repository import ConversationRepository


class MotorConversationRepository(MotorRepository[Conversation, str], ConversationRepository):
    """
    MongoDB-based repository for Conversation aggregates.

    Extends Neuroglia's MotorRepository to inherit standard CRUD operations
    and implements ConversationRepository for the per-user listings.

    The AggregateState fields are flattened to the document root, so filters
    address ``user_id`` and ``is_deleted`` directly.
    """

    async def get_by_user_async(self, user_id: str) -> list[Conversation]:
        """Retrieve the user's non-deleted conversations, most recently updated first."""
        cursor = self.collection.find({"user_id": user_id, "is_deleted": {"$ne": True}}).sort("updated_at", -1)
        return await self._deserialize_cursor(cursor)

    async def get_recent_by_user_async(self, user_id: str, limit: int = 10) -> list[Conversation]:
        """Retrieve the most recent conversations for a user."""
        cursor = self.collection.find({"user_id": user_id, "is_deleted": {"$ne": True}}).sort("updated_at", -1).limit(limit)
        return await self._deserialize_cursor(cursor)

    async def _deserialize_cursor(self, cursor) -> list[Conversation]:
        results = []
        async for doc in cursor:
            entity = self._deserialize_entity(doc)
            if entity:
                results.append(entity)
        return results
