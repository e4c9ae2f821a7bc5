"""In-memory conversation repository (development and tests)."""

import logging
from datetime import UTC, datetime

from domain.entities.conversation import Conversation
from domain.repositories.conversation_repository import ConversationRepository

logger = logging.getLogger(__name__)


class InMemoryConversationRepository(ConversationRepository):
    """Keeps Conversation aggregates in a dict keyed by id.

    Soft-deleted conversations stay retrievable by id and are excluded from
    the per-user listings, matching the Mongo implementation.
    """

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}

    async def get_async(self, id: str) -> Conversation | None:
        return self._conversations.get(id)

    async def add_async(self, entity: Conversation) -> Conversation:
        entity.state.updated_at = datetime.now(UTC)
        self._conversations[entity.id()] = entity
        logger.debug(f"Added conversation {entity.id()} for user {entity.state.user_id}")
        return entity

    async def update_async(self, entity: Conversation) -> Conversation:
        entity.state.updated_at = datetime.now(UTC)
        self._conversations[entity.id()] = entity
        logger.debug(f"Updated conversation {entity.id()}")
        return entity

    async def remove_async(self, id: str) -> None:
        if self._conversations.pop(id, None) is not None:
            logger.debug(f"Removed conversation {id}")

    async def contains_async(self, id: str) -> bool:
        return id in self._conversations

    async def _do_add_async(self, entity: Conversation) -> Conversation:
        return await self.add_async(entity)

    async def _do_update_async(self, entity: Conversation) -> Conversation:
        return await self.update_async(entity)

    async def _do_remove_async(self, id: str) -> None:
        await self.remove_async(id)

    async def get_by_user_async(self, user_id: str) -> list[Conversation]:
        conversations = [c for c in self._conversations.values() if c.state.user_id == user_id and not c.state.is_deleted]
        return sorted(conversations, key=lambda c: c.state.updated_at, reverse=True)

    async def get_recent_by_user_async(self, user_id: str, limit: int = 10) -> list[Conversation]:
        conversations = await self.get_by_user_async(user_id)
        return conversations[:limit]

    def clear_all(self) -> None:
        self._conversations.clear()
