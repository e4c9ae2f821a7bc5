"""MCP API controller for tool-provider status and tools."""

import logging
from typing import Any

from classy_fastapi.decorators import get, post
from fastapi import Depends
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase

from api.dependencies import get_current_user, require_admin
from application.commands import ReconnectToolProviderCommand
from application.queries import GetDiscoveredToolsQuery, GetToolProviderStatusQuery

logger = logging.getLogger(__name__)


class McpController(ControllerBase):
    """Controller for the configured MCP tool providers."""

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)

    @get("/servers")
    async def list_servers(self, user: dict = Depends(require_admin)) -> Any:
        """List every configured tool provider as `{name, connected}`. Admin only."""
        return self.process(await self.mediator.execute_async(GetToolProviderStatusQuery()))

    @post("/servers/{name}/reconnect")
    async def reconnect_server(self, name: str, user: dict = Depends(require_admin)) -> Any:
        """Drop and re-open the connection to a tool provider. Admin only.

        A provider that still cannot be reached is reported with `connected: false`.
        """
        logger.info(f"User {user['user_id']} requested reconnect of tool provider '{name}'")
        return self.process(await self.mediator.execute_async(ReconnectToolProviderCommand(name=name)))

    @get("/tools")
    async def list_tools(self, user: dict = Depends(get_current_user)) -> Any:
        """List tools currently offered by connected providers as `{name, description, server}`."""
        return self.process(await self.mediator.execute_async(GetDiscoveredToolsQuery()))
