"""Reconnect tool provider command with handler."""

import logging
from dataclasses import dataclass
from typing import Any

from neuroglia.core import OperationResult
from neuroglia.mapping import Mapper
from neuroglia.mediation import Command, CommandHandler, Mediator
from neuroglia.observability.tracing import add_span_attributes

from infrastructure.mcp.connection_manager import McpConnectionManager

from .command_handler_base import CommandHandlerBase

log = logging.getLogger(__name__)


@dataclass
class ReconnectToolProviderCommand(Command[OperationResult[dict[str, Any]]]):
    """Command to drop and re-open the connection to one configured tool provider."""

    name: str


class ReconnectToolProviderCommandHandler(
    CommandHandlerBase,
    CommandHandler[ReconnectToolProviderCommand, OperationResult[dict[str, Any]]],
):
    """Handle tool provider reconnects. A failed connect is reported as ``connected: false``, not as an error."""

    def __init__(self, mediator: Mediator, mapper: Mapper, connection_manager: McpConnectionManager):
        super().__init__(mediator, mapper)
        self.connection_manager = connection_manager

    async def handle_async(self, request: ReconnectToolProviderCommand) -> OperationResult[dict[str, Any]]:
        command = request
        add_span_attributes({"tool_provider.name": command.name})

        status = await self.connection_manager.reconnect_async(command.name)
        if status is None:
            return self.not_found(McpConnectionManager, command.name)

        log.info(f"Reconnect of tool provider '{command.name}': connected={status.connected}")
        return self.ok(status.to_dict())
