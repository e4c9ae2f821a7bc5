"""Registry of long-lived connections to tool-provider (MCP) servers.

Connections are opened at startup, read by every request for tool
discovery, and only mutated by explicit connect, reconnect or shutdown
operations. Each provider's ``{transport, connected}`` pair is held in one
immutable ToolProviderConnection that is swapped in a single assignment, so
readers never observe a connected flag paired with a missing transport.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from neuroglia.hosting.abstractions import HostedService
from opentelemetry import trace

from domain.models.tool import ToolDescriptor
from observability import tool_discovery_failures, tool_provider_connections

from .http_transport import HttpTransport
from .models import McpServerConfig, McpToolDefinition
from .transport import IMcpTransport

if TYPE_CHECKING:
    from neuroglia.hosting.web import WebApplicationBuilder

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

TransportFactory = Callable[[McpServerConfig], IMcpTransport]


def create_http_transport(config: McpServerConfig) -> IMcpTransport:
    return HttpTransport(server_url=config.url, timeout=config.timeout, headers=config.headers)


@dataclass(frozen=True)
class ToolProviderConnection:
    """Connection state of one provider. The transport is present only while connected."""

    name: str
    transport: IMcpTransport | None = None
    last_error: str | None = None

    @property
    def connected(self) -> bool:
        return self.transport is not None


@dataclass(frozen=True)
class ToolProviderStatus:
    """Connectivity status reported to administrators."""

    name: str
    connected: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "connected": self.connected}


@dataclass(frozen=True)
class ToolDiscovery:
    """Outcome of discovering one provider's tools: tools on success, error text on failure."""

    provider: str
    tools: list[ToolDescriptor] = field(default_factory=list)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


class McpConnectionManager:
    """Owns the connections to every configured tool provider.

    Failures never propagate out of connect, reconnect, discovery or
    shutdown; they are captured as a disconnected state or a failed
    ToolDiscovery and logged.
    """

    def __init__(
        self,
        configs: list[McpServerConfig],
        transport_factory: TransportFactory = create_http_transport,
        discovery_timeout: float = 10.0,
    ) -> None:
        self._configs: dict[str, McpServerConfig] = {c.name: c for c in configs}
        self._transport_factory = transport_factory
        self._discovery_timeout = discovery_timeout
        self._connections: dict[str, ToolProviderConnection] = {name: ToolProviderConnection(name=name) for name in self._configs}
        self._lock = asyncio.Lock()

    @property
    def has_providers(self) -> bool:
        return bool(self._configs)

    def get_status(self) -> list[ToolProviderStatus]:
        """Return the connectivity status of every configured provider, in configuration order."""
        return [ToolProviderStatus(name=c.name, connected=c.connected, error=c.last_error) for c in self._connections.values()]

    def get_connection(self, name: str) -> ToolProviderConnection | None:
        return self._connections.get(name)

    async def connect_all_async(self) -> list[ToolProviderStatus]:
        """Connect to every configured provider concurrently."""
        async with self._lock:
            connections = await asyncio.gather(*(self._open_async(config) for config in self._configs.values()))
            for connection in connections:
                self._connections[connection.name] = connection

        connected = sum(1 for c in connections if c.connected)
        logger.info(f"🔌 Tool providers connected: {connected}/{len(connections)}")
        return self.get_status()

    async def reconnect_async(self, name: str) -> ToolProviderStatus | None:
        """Close (best effort) and reopen the connection to one provider.

        Returns:
            The updated status, or None when no provider has that name
        """
        config = self._configs.get(name)
        if config is None:
            return None

        async with self._lock:
            existing = self._connections[name]
            self._connections[name] = ToolProviderConnection(name=name)
            await self._close_quietly(existing)
            connection = await self._open_async(config)
            self._connections[name] = connection

        return ToolProviderStatus(name=name, connected=connection.connected, error=connection.last_error)

    async def disconnect_all_async(self) -> None:
        """Close every open connection, ignoring individual close failures."""
        async with self._lock:
            for name, connection in list(self._connections.items()):
                self._connections[name] = ToolProviderConnection(name=name)
                await self._close_quietly(connection)
        logger.info("🔌 Tool providers disconnected")

    async def discover_tools_async(self) -> list[ToolDiscovery]:
        """Ask every connected provider for its tools, concurrently.

        Each provider is isolated: a timeout, disconnect or malformed answer
        yields a failed ToolDiscovery for that provider only. Results follow
        configuration order regardless of response order.
        """
        connected = [c for c in self._connections.values() if c.connected]
        if not connected:
            return []
        return list(await asyncio.gather(*(self._discover_one_async(c) for c in connected)))

    async def _open_async(self, config: McpServerConfig) -> ToolProviderConnection:
        transport = self._transport_factory(config)
        try:
            await transport.connect()
            tool_provider_connections.add(1, {"provider": config.name, "status": "connected"})
            logger.info(f"✅ Connected to tool provider '{config.name}' at {config.url}")
            return ToolProviderConnection(name=config.name, transport=transport)
        except Exception as e:
            tool_provider_connections.add(1, {"provider": config.name, "status": "failed"})
            logger.warning(f"❌ Failed to connect to tool provider '{config.name}': {e}")
            await self._close_transport_quietly(config.name, transport)
            return ToolProviderConnection(name=config.name, last_error=str(e))

    async def _close_quietly(self, connection: ToolProviderConnection) -> None:
        if connection.transport is not None:
            await self._close_transport_quietly(connection.name, connection.transport)

    @staticmethod
    async def _close_transport_quietly(name: str, transport: IMcpTransport) -> None:
        try:
            await transport.disconnect()
        except Exception as e:
            logger.debug(f"Ignoring close failure for tool provider '{name}': {e}")

    async def _discover_one_async(self, connection: ToolProviderConnection) -> ToolDiscovery:
        transport = connection.transport
        if transport is None:
            return ToolDiscovery(provider=connection.name, error="not connected")

        with tracer.start_as_current_span("mcp.discover_tools") as span:
            span.set_attribute("mcp.provider", connection.name)
            try:
                definitions = await asyncio.wait_for(transport.list_tools(), timeout=self._discovery_timeout)
                tools = [self._to_descriptor(connection.name, transport, d) for d in definitions]
                span.set_attribute("mcp.tool_count", len(tools))
                return ToolDiscovery(provider=connection.name, tools=tools)
            except Exception as e:
                tool_discovery_failures.add(1, {"provider": connection.name})
                logger.warning(f"Tool discovery failed for provider '{connection.name}': {e!r}")
                return ToolDiscovery(provider=connection.name, error=str(e) or type(e).__name__)

    def _to_descriptor(self, provider: str, transport: IMcpTransport, definition: McpToolDefinition) -> ToolDescriptor:
        timeout = self._configs[provider].timeout

        async def invoke(arguments: dict[str, Any]) -> Any:
            result = await transport.call_tool(definition.name, arguments, timeout=timeout)
            return result.to_payload()

        return ToolDescriptor(
            name=definition.name,
            description=definition.description,
            parameters=definition.input_schema or {"type": "object", "properties": {}},
            invoke=invoke,
            source=provider,
        )


class ToolProviderConnectionService(HostedService):
    """Hosted service tying provider connections to the application lifespan.

    - start_async(): connect every configured provider
    - stop_async(): close every connection
    """

    def __init__(self, manager: McpConnectionManager) -> None:
        self._manager = manager

    async def start_async(self) -> None:
        if not self._manager.has_providers:
            logger.info("No tool providers configured")
            return
        await self._manager.connect_all_async()

    async def stop_async(self) -> None:
        await self._manager.disconnect_all_async()

    @staticmethod
    def configure(builder: "WebApplicationBuilder") -> McpConnectionManager:
        """Register the connection manager and its hosted service.

        Args:
            builder: The WebApplicationBuilder to configure

        Returns:
            The connection manager singleton
        """
        from application.settings import app_settings

        logger.info("🔧 Configuring tool-provider connections...")
        configs = [McpServerConfig.from_dict(entry) for entry in app_settings.mcp_servers]
        manager = McpConnectionManager(configs, discovery_timeout=app_settings.mcp_discovery_timeout)

        builder.services.add_singleton(McpConnectionManager, singleton=manager)
        builder.services.add_singleton(HostedService, singleton=ToolProviderConnectionService(manager))

        logger.info(f"✅ Tool-provider connections configured ({len(configs)} providers)")
        return manager
