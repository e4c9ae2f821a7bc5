"""Abstract repository for Conversation aggregate.

Implementation: MotorConversationRepository (MongoDB)
Configuration: MotorRepository.configure() in main.py
"""

from abc import ABC, abstractmethod

from neuroglia.data.infrastructure.abstractions import Repository

from domain.entities.conversation import Conversation


class ConversationRepository(Repository[Conversation, str], ABC):
    """Abstract repository for Conversation aggregate.

    Query methods exclude soft-deleted conversations and return the most
    recently updated first.
    """

    @abstractmethod
    async def get_by_user_async(self, user_id: str) -> list[Conversation]:
        """Retrieve the non-deleted conversations of a user."""
        pass

    @abstractmethod
    async def get_recent_by_user_async(self, user_id: str, limit: int = 10) -> list[Conversation]:
        """Retrieve the most recent conversations for a user."""
        pass
