"""Tool provider queries with handlers.

Provides:
- GetToolProviderStatusQuery: connection status of every configured provider
- GetDiscoveredToolsQuery: tools currently offered by the connected providers
"""

import logging
from dataclasses import dataclass
from typing import Any

from neuroglia.core import OperationResult
from neuroglia.mediation import Query, QueryHandler

from infrastructure.mcp.connection_manager import McpConnectionManager

log = logging.getLogger(__name__)


@dataclass
class GetToolProviderStatusQuery(Query[OperationResult[list[dict[str, Any]]]]):
    """Query the ``{name, connected}`` status of all configured tool providers."""


class GetToolProviderStatusQueryHandler(QueryHandler[GetToolProviderStatusQuery, OperationResult[list[dict[str, Any]]]]):
    def __init__(self, connection_manager: McpConnectionManager):
        super().__init__()
        self.connection_manager = connection_manager

    async def handle_async(self, request: GetToolProviderStatusQuery) -> OperationResult[list[dict[str, Any]]]:
        return self.ok([status.to_dict() for status in self.connection_manager.get_status()])


@dataclass
class GetDiscoveredToolsQuery(Query[OperationResult[list[dict[str, Any]]]]):
    """Query the tools exposed by connected tool providers."""


class GetDiscoveredToolsQueryHandler(QueryHandler[GetDiscoveredToolsQuery, OperationResult[list[dict[str, Any]]]]):
    """Runs a fresh discovery; providers that fail contribute nothing."""

    def __init__(self, connection_manager: McpConnectionManager):
        super().__init__()
        self.connection_manager = connection_manager

    async def handle_async(self, request: GetDiscoveredToolsQuery) -> OperationResult[list[dict[str, Any]]]:
        tools = []
        for discovery in await self.connection_manager.discover_tools_async():
            for tool in discovery.tools:
                tools.append({"name": tool.name, "description": tool.description, "server": discovery.provider})
        return self.ok(tools)
