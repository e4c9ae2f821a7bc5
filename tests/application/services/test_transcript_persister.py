"""Tests for TranscriptPersister."""

from unittest.mock import AsyncMock

import pytest

from application.services.transcript_persister import TranscriptPersister
from domain.exceptions import ConversationAccessDeniedError, ConversationNotFoundError
from domain.models.turn import Turn, TurnRole
from infrastructure.repositories import InMemoryConversationRepository
from tests.fixtures.factories import ConversationFactory
from tests.fixtures.mixins import BaseTestCase


class TestLoad(BaseTestCase):
    """Test loading the caller's conversation."""

    @pytest.mark.asyncio
    async def test_new_conversation_when_no_id(self, conversation_repository: InMemoryConversationRepository) -> None:
        persister = TranscriptPersister(conversation_repository)

        conversation = await persister.load_async("user-1")

        assert conversation.state.user_id == "user-1"
        assert persister.conversation_id == conversation.id()
        assert not await conversation_repository.contains_async(conversation.id())

    @pytest.mark.asyncio
    async def test_unknown_id_raises_not_found(self, conversation_repository: InMemoryConversationRepository) -> None:
        with pytest.raises(ConversationNotFoundError):
            await TranscriptPersister(conversation_repository).load_async("user-1", "missing")

    @pytest.mark.asyncio
    async def test_deleted_conversation_raises_not_found(self, conversation_repository: InMemoryConversationRepository) -> None:
        conversation = ConversationFactory.create_deleted()
        await conversation_repository.add_async(conversation)

        with pytest.raises(ConversationNotFoundError):
            await TranscriptPersister(conversation_repository).load_async("user-1", conversation.id())

    @pytest.mark.asyncio
    async def test_foreign_conversation_raises_access_denied(self, conversation_repository: InMemoryConversationRepository) -> None:
        conversation = ConversationFactory.create(user_id="owner")
        await conversation_repository.add_async(conversation)

        with pytest.raises(ConversationAccessDeniedError):
            await TranscriptPersister(conversation_repository).load_async("intruder", conversation.id())


class TestOpenAndCommit(BaseTestCase):
    """Test the write sequence."""

    @pytest.mark.asyncio
    async def test_user_turn_written_before_commit(self, conversation_repository: InMemoryConversationRepository) -> None:
        persister = TranscriptPersister(conversation_repository)
        await persister.load_async("user-1")

        await persister.open_async(Turn.user("Hello"))

        stored = await conversation_repository.get_async(persister.conversation_id)
        self.assert_roles(stored, [TurnRole.USER])
        assert not persister.committed

    @pytest.mark.asyncio
    async def test_new_conversation_added_then_updated(self) -> None:
        repository = AsyncMock()
        persister = TranscriptPersister(repository)
        await persister.load_async("user-1")

        await persister.open_async(Turn.user("Hello"))
        persister.stage(Turn.assistant("Hi"))
        await persister.commit_async()

        repository.add_async.assert_awaited_once()
        repository.update_async.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_commit_runs_once(self) -> None:
        repository = AsyncMock()
        repository.get_async.return_value = ConversationFactory.create()
        persister = TranscriptPersister(repository)
        await persister.load_async("user-1", "conv-1")
        persister.stage(Turn.assistant("Hi"))

        await persister.commit_async()
        await persister.commit_async()

        assert repository.update_async.await_count == 1
        assert persister.committed

    @pytest.mark.asyncio
    async def test_commit_failure_propagates_and_is_not_retried(self) -> None:
        repository = AsyncMock()
        repository.get_async.return_value = ConversationFactory.create()
        repository.update_async.side_effect = ConnectionError("db down")
        persister = TranscriptPersister(repository)
        await persister.load_async("user-1", "conv-1")

        with pytest.raises(ConnectionError):
            await persister.commit_async()
        await persister.commit_async()

        assert repository.update_async.await_count == 1

    def test_stage_without_load_raises(self, conversation_repository: InMemoryConversationRepository) -> None:
        with pytest.raises(RuntimeError):
            TranscriptPersister(conversation_repository).stage(Turn.assistant("Hi"))
