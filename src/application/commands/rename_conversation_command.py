"""Rename conversation command with handler."""

import logging
from dataclasses import dataclass

from neuroglia.core import OperationResult
from neuroglia.mapping import Mapper
from neuroglia.mediation import Command, CommandHandler, Mediator
from neuroglia.observability.tracing import add_span_attributes

from domain.entities.conversation import Conversation
from domain.repositories.conversation_repository import ConversationRepository
from integration.models.conversation_dto import ConversationSummaryDto

from .command_handler_base import ConversationCommandHandlerBase

log = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200


@dataclass
class RenameConversationCommand(Command[OperationResult[ConversationSummaryDto]]):
    """Command to set a conversation's title."""

    conversation_id: str
    title: str
    user_id: str


class RenameConversationCommandHandler(
    ConversationCommandHandlerBase,
    CommandHandler[RenameConversationCommand, OperationResult[ConversationSummaryDto]],
):
    """Handle conversation renames."""

    def __init__(self, mediator: Mediator, mapper: Mapper, conversation_repository: ConversationRepository):
        super().__init__(mediator, mapper, conversation_repository)

    async def handle_async(self, request: RenameConversationCommand) -> OperationResult[ConversationSummaryDto]:
        command = request
        add_span_attributes({"conversation.id": command.conversation_id})

        title = (command.title or "").strip()
        if not title:
            return self.bad_request("Title is required")
        if len(title) > MAX_TITLE_LENGTH:
            return self.bad_request(f"Title must be at most {MAX_TITLE_LENGTH} characters")

        conversation, failure = await self.load_owned_conversation_async(command.conversation_id, command.user_id)
        if failure == "not_found":
            return self.not_found(Conversation, command.conversation_id)
        if failure == "forbidden":
            return self.forbidden("You don't have access to this conversation")

        if conversation.update_title(title):
            await self.conversation_repository.update_async(conversation)
            log.info(f"Renamed conversation {command.conversation_id}")
        return self.ok(ConversationSummaryDto.from_conversation(conversation))
