"""Transcript persistence for a single streamed exchange."""

import logging

from opentelemetry import trace

from domain.entities.conversation import Conversation
from domain.exceptions import ConversationAccessDeniedError, ConversationNotFoundError
from domain.models.turn import Turn
from domain.repositories.conversation_repository import ConversationRepository
from observability.metrics import transcript_commits

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class TranscriptPersister:
    """Loads, stages and commits the conversation touched by one request.

    The user turn is committed before generation starts, so the prompt
    survives even if the stream dies. Everything generated afterwards is
    staged on the in-memory aggregate and written by exactly one
    :meth:`commit_async`.
    """

    def __init__(self, repository: ConversationRepository) -> None:
        self._repository = repository
        self._conversation: Conversation | None = None
        self._is_new = False
        self._committed = False

    @property
    def conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def conversation_id(self) -> str | None:
        return self._conversation.id() if self._conversation is not None else None

    @property
    def committed(self) -> bool:
        return self._committed

    async def load_async(self, user_id: str, conversation_id: str | None = None) -> Conversation:
        """Load the caller's conversation, or create a new one when no id is given.

        Raises:
            ConversationNotFoundError: The id is unknown or the conversation is deleted
            ConversationAccessDeniedError: The conversation belongs to another user
        """
        if conversation_id is None:
            self._conversation = Conversation(user_id=user_id)
            self._is_new = True
            return self._conversation

        conversation = await self._repository.get_async(conversation_id)
        if conversation is None or conversation.state.is_deleted:
            raise ConversationNotFoundError(conversation_id)
        if not conversation.is_owned_by(user_id):
            raise ConversationAccessDeniedError(conversation_id, user_id)

        self._conversation = conversation
        self._is_new = False
        return conversation

    async def open_async(self, user_turn: Turn) -> None:
        """Append the user turn and write it before streaming starts."""
        conversation = self._require_conversation()
        conversation.append_turn(user_turn)
        await self._save_async(conversation)

    def stage(self, turn: Turn) -> None:
        """Append a generated turn in memory; written by the final commit."""
        self._require_conversation().append_turn(turn)

    async def commit_async(self) -> None:
        """Write staged turns. Runs at most once per request; failures propagate."""
        if self._committed:
            logger.debug(f"Transcript for conversation {self.conversation_id} already committed")
            return
        conversation = self._require_conversation()
        self._committed = True
        with tracer.start_as_current_span("transcript.commit") as span:
            span.set_attribute("conversation.id", conversation.id())
            span.set_attribute("conversation.turns", len(conversation.state.turns))
            try:
                await self._save_async(conversation)
            except Exception:
                transcript_commits.add(1, {"outcome": "failed"})
                raise
        transcript_commits.add(1, {"outcome": "committed"})

    async def _save_async(self, conversation: Conversation) -> None:
        if self._is_new:
            await self._repository.add_async(conversation)
            self._is_new = False
            logger.info(f"Created conversation {conversation.id()} for user {conversation.state.user_id}")
        else:
            await self._repository.update_async(conversation)

    def _require_conversation(self) -> Conversation:
        if self._conversation is None:
            raise RuntimeError("No conversation loaded; call load_async first")
        return self._conversation
