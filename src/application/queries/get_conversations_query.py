"""Conversation queries with handlers.

Provides:
- GetConversationsQuery: the caller's live conversations, most recently updated first
- GetConversationQuery: one conversation with its turns, owner only
"""

import logging
from dataclasses import dataclass

from neuroglia.core import OperationResult
from neuroglia.mediation import Query, QueryHandler
from neuroglia.observability.tracing import add_span_attributes

from domain.entities.conversation import Conversation
from domain.repositories.conversation_repository import ConversationRepository
from integration.models.conversation_dto import ConversationDto, ConversationSummaryDto

log = logging.getLogger(__name__)


@dataclass
class GetConversationsQuery(Query[OperationResult[list[ConversationSummaryDto]]]):
    """Query to list a user's conversations."""

    user_id: str
    limit: int | None = None


class GetConversationsQueryHandler(QueryHandler[GetConversationsQuery, OperationResult[list[ConversationSummaryDto]]]):
    """Handle conversation listings."""

    def __init__(self, conversation_repository: ConversationRepository):
        super().__init__()
        self.conversation_repository = conversation_repository

    async def handle_async(self, request: GetConversationsQuery) -> OperationResult[list[ConversationSummaryDto]]:
        query = request
        add_span_attributes({"conversations.limit": query.limit or 0})

        if query.limit is not None and query.limit < 1:
            return self.bad_request("limit must be a positive integer")

        if query.limit:
            conversations = await self.conversation_repository.get_recent_by_user_async(query.user_id, query.limit)
        else:
            conversations = await self.conversation_repository.get_by_user_async(query.user_id)
        return self.ok([ConversationSummaryDto.from_conversation(c) for c in conversations])


@dataclass
class GetConversationQuery(Query[OperationResult[ConversationDto]]):
    """Query to retrieve one conversation."""

    conversation_id: str
    user_id: str


class GetConversationQueryHandler(QueryHandler[GetConversationQuery, OperationResult[ConversationDto]]):
    """Handle conversation retrieval with ownership validation."""

    def __init__(self, conversation_repository: ConversationRepository):
        super().__init__()
        self.conversation_repository = conversation_repository

    async def handle_async(self, request: GetConversationQuery) -> OperationResult[ConversationDto]:
        query = request
        add_span_attributes({"conversation.id": query.conversation_id})

        conversation = await self.conversation_repository.get_async(query.conversation_id)
        if conversation is None or conversation.state.is_deleted:
            return self.not_found(Conversation, query.conversation_id)
        if not conversation.is_owned_by(query.user_id):
            return self.forbidden("You don't have access to this conversation")
        return self.ok(ConversationDto.from_conversation(conversation))
