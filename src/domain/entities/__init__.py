"""Domain entities (aggregate roots)."""

from domain.entities.conversation import Conversation, ConversationState

__all__ = ["Conversation", "ConversationState"]
