"""Delete conversation command with handler."""

import logging
from dataclasses import dataclass

from neuroglia.core import OperationResult
from neuroglia.mapping import Mapper
from neuroglia.mediation import Command, CommandHandler, Mediator
from neuroglia.observability.tracing import add_span_attributes

from domain.entities.conversation import Conversation
from domain.repositories.conversation_repository import ConversationRepository

from .command_handler_base import ConversationCommandHandlerBase

log = logging.getLogger(__name__)


@dataclass
class DeleteConversationCommand(Command[OperationResult[bool]]):
    """Command to soft-delete a conversation."""

    conversation_id: str
    user_id: str


class DeleteConversationCommandHandler(
    ConversationCommandHandlerBase,
    CommandHandler[DeleteConversationCommand, OperationResult[bool]],
):
    """Handle conversation deletion.

    Deletion only flags the aggregate; the document stays in the store and
    disappears from listings and lookups.
    """

    def __init__(self, mediator: Mediator, mapper: Mapper, conversation_repository: ConversationRepository):
        super().__init__(mediator, mapper, conversation_repository)

    async def handle_async(self, request: DeleteConversationCommand) -> OperationResult[bool]:
        command = request
        add_span_attributes({"conversation.id": command.conversation_id})

        conversation, failure = await self.load_owned_conversation_async(command.conversation_id, command.user_id)
        if failure == "not_found":
            return self.not_found(Conversation, command.conversation_id)
        if failure == "forbidden":
            return self.forbidden("You don't have access to this conversation")

        conversation.delete()
        await self.conversation_repository.update_async(conversation)
        log.info(f"Deleted conversation {command.conversation_id}")
        return self.ok(True)
