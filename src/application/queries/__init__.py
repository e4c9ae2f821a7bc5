"""Application queries package."""

from .get_conversations_query import (
    GetConversationQuery,
    GetConversationQueryHandler,
    GetConversationsQuery,
    GetConversationsQueryHandler,
)
from .get_tool_providers_query import (
    GetDiscoveredToolsQuery,
    GetDiscoveredToolsQueryHandler,
    GetToolProviderStatusQuery,
    GetToolProviderStatusQueryHandler,
)

__all__ = [
    # Conversation queries
    "GetConversationsQuery",
    "GetConversationsQueryHandler",
    "GetConversationQuery",
    "GetConversationQueryHandler",
    # Tool provider queries
    "GetToolProviderStatusQuery",
    "GetToolProviderStatusQueryHandler",
    "GetDiscoveredToolsQuery",
    "GetDiscoveredToolsQueryHandler",
]
