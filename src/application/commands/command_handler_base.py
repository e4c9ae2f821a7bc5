import logging

from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator

from domain.entities.conversation import Conversation
from domain.repositories.conversation_repository import ConversationRepository

log = logging.getLogger(__name__)


class CommandHandlerBase:
    """Represents the base class for all services used to handle Conversation Host commands."""

    mediator: Mediator
    """ Gets the service used to mediate calls """

    mapper: Mapper
    """ Gets the service used to map objects """

    def __init__(self, mediator: Mediator, mapper: Mapper):
        self.mediator = mediator
        self.mapper = mapper


class ConversationCommandHandlerBase(CommandHandlerBase):
    """Base for commands addressing one of the caller's conversations."""

    conversation_repository: ConversationRepository
    """ Gets the repository of Conversation aggregates """

    def __init__(self, mediator: Mediator, mapper: Mapper, conversation_repository: ConversationRepository):
        super().__init__(mediator, mapper)
        self.conversation_repository = conversation_repository

    async def load_owned_conversation_async(self, conversation_id: str, user_id: str) -> tuple[Conversation | None, str | None]:
        """Load a live conversation and check ownership.

        Returns:
            (conversation, None) on success, (None, "not_found") or (None, "forbidden") otherwise
        """
        conversation = await self.conversation_repository.get_async(conversation_id)
        if conversation is None or conversation.state.is_deleted:
            return None, "not_found"
        if not conversation.is_owned_by(user_id):
            log.warning(f"User {user_id} attempted to access conversation {conversation_id}")
            return None, "forbidden"
        return conversation, None
