"""Repository implementations that do not depend on MongoDB."""

from .in_memory_conversation_repository import InMemoryConversationRepository

__all__ = ["InMemoryConversationRepository"]
