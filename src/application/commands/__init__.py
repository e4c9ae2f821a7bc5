"""Application commands package."""

from .command_handler_base import CommandHandlerBase, ConversationCommandHandlerBase
from .delete_conversation_command import DeleteConversationCommand, DeleteConversationCommandHandler
from .reconnect_tool_provider_command import ReconnectToolProviderCommand, ReconnectToolProviderCommandHandler
from .rename_conversation_command import RenameConversationCommand, RenameConversationCommandHandler

__all__ = [
    "CommandHandlerBase",
    "ConversationCommandHandlerBase",
    # Conversation commands
    "RenameConversationCommand",
    "RenameConversationCommandHandler",
    "DeleteConversationCommand",
    "DeleteConversationCommandHandler",
    # Tool provider commands
    "ReconnectToolProviderCommand",
    "ReconnectToolProviderCommandHandler",
]
