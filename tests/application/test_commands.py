"""Application layer command handler tests."""

from typing import Any
from unittest.mock import MagicMock

import pytest
from neuroglia.core import OperationResult
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator

from application.commands import (
    DeleteConversationCommand,
    DeleteConversationCommandHandler,
    ReconnectToolProviderCommand,
    ReconnectToolProviderCommandHandler,
    RenameConversationCommand,
    RenameConversationCommandHandler,
)
from infrastructure.mcp.connection_manager import McpConnectionManager
from infrastructure.mcp.models import McpServerConfig
from tests.fixtures.factories import ConversationFactory, FakeMcpTransport
from tests.fixtures.mixins import BaseTestCase


class TestRenameConversationCommand(BaseTestCase):
    """Test RenameConversationCommand handler."""

    @pytest.fixture
    def handler(self, mock_repository: MagicMock) -> RenameConversationCommandHandler:
        return RenameConversationCommandHandler(
            mediator=MagicMock(spec=Mediator),
            mapper=MagicMock(spec=Mapper),
            conversation_repository=mock_repository,
        )

    @pytest.mark.asyncio
    async def test_rename_own_conversation(self, handler: RenameConversationCommandHandler, mock_repository: MagicMock) -> None:
        """Test renaming persists the new title and returns the summary."""
        # Arrange
        conversation = ConversationFactory.create_with_exchange()
        mock_repository.get_async = self.create_async_mock(return_value=conversation)

        # Act
        result: OperationResult[Any] = await handler.handle_async(
            RenameConversationCommand(conversation_id=conversation.id(), title="  Trip planning ", user_id="user-1")
        )

        # Assert
        assert result.is_success
        assert result.data.title == "Trip planning"
        assert result.data.turn_count == 2
        mock_repository.update_async.assert_awaited_once_with(conversation)

    @pytest.mark.asyncio
    async def test_rename_foreign_conversation_forbidden(self, handler: RenameConversationCommandHandler, mock_repository: MagicMock) -> None:
        conversation = ConversationFactory.create(user_id="owner")
        mock_repository.get_async = self.create_async_mock(return_value=conversation)

        result = await handler.handle_async(RenameConversationCommand(conversation_id=conversation.id(), title="Mine now", user_id="intruder"))

        assert not result.is_success
        assert result.status_code == 403
        mock_repository.update_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_rename_missing_conversation(self, handler: RenameConversationCommandHandler) -> None:
        result = await handler.handle_async(RenameConversationCommand(conversation_id="missing", title="x", user_id="user-1"))

        assert result.status_code == 404

    @pytest.mark.asyncio
    @pytest.mark.parametrize("title", ["", "   ", "x" * 201])
    async def test_rename_invalid_title(self, title: str, handler: RenameConversationCommandHandler) -> None:
        result = await handler.handle_async(RenameConversationCommand(conversation_id="c", title=title, user_id="user-1"))

        assert result.status_code == 400


class TestDeleteConversationCommand(BaseTestCase):
    """Test DeleteConversationCommand handler."""

    @pytest.fixture
    def handler(self, mock_repository: MagicMock) -> DeleteConversationCommandHandler:
        return DeleteConversationCommandHandler(
            mediator=MagicMock(spec=Mediator),
            mapper=MagicMock(spec=Mapper),
            conversation_repository=mock_repository,
        )

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, handler: DeleteConversationCommandHandler, mock_repository: MagicMock) -> None:
        conversation = ConversationFactory.create_with_exchange()
        mock_repository.get_async = self.create_async_mock(return_value=conversation)

        result = await handler.handle_async(DeleteConversationCommand(conversation_id=conversation.id(), user_id="user-1"))

        assert result.is_success
        assert conversation.state.is_deleted
        assert len(conversation.state.turns) == 2
        mock_repository.update_async.assert_awaited_once_with(conversation)
        mock_repository.remove_async.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_already_deleted_is_not_found(self, handler: DeleteConversationCommandHandler, mock_repository: MagicMock) -> None:
        mock_repository.get_async = self.create_async_mock(return_value=ConversationFactory.create_deleted())

        result = await handler.handle_async(DeleteConversationCommand(conversation_id="c", user_id="user-1"))

        assert result.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_foreign_conversation_forbidden(self, handler: DeleteConversationCommandHandler, mock_repository: MagicMock) -> None:
        conversation = ConversationFactory.create(user_id="owner")
        mock_repository.get_async = self.create_async_mock(return_value=conversation)

        result = await handler.handle_async(DeleteConversationCommand(conversation_id=conversation.id(), user_id="intruder"))

        assert result.status_code == 403
        assert not conversation.state.is_deleted


class TestReconnectToolProviderCommand:
    """Test ReconnectToolProviderCommand handler."""

    @staticmethod
    def build(transport: FakeMcpTransport) -> ReconnectToolProviderCommandHandler:
        manager = McpConnectionManager([McpServerConfig(name="weather", url="http://weather")], transport_factory=lambda config: transport)
        return ReconnectToolProviderCommandHandler(mediator=MagicMock(spec=Mediator), mapper=MagicMock(spec=Mapper), connection_manager=manager)

    @pytest.mark.asyncio
    async def test_reconnect_known_provider(self) -> None:
        handler = self.build(FakeMcpTransport())

        result = await handler.handle_async(ReconnectToolProviderCommand(name="weather"))

        assert result.is_success
        assert result.data == {"name": "weather", "connected": True}

    @pytest.mark.asyncio
    async def test_reconnect_unreachable_provider_reports_disconnected(self) -> None:
        handler = self.build(FakeMcpTransport(fail_connect=True))

        result = await handler.handle_async(ReconnectToolProviderCommand(name="weather"))

        assert result.is_success
        assert result.data == {"name": "weather", "connected": False}

    @pytest.mark.asyncio
    async def test_reconnect_unknown_provider(self) -> None:
        handler = self.build(FakeMcpTransport())

        result = await handler.handle_async(ReconnectToolProviderCommand(name="nope"))

        assert result.status_code == 404
