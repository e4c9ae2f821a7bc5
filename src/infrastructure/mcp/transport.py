"""MCP transport interface.

Defines the abstract base class for MCP client transports and the errors
they raise.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import McpServerInfo, McpToolDefinition, McpToolResult


class McpTransportError(Exception):
    """Base exception for MCP transport errors.

    Raised when transport-level operations fail (connection, send, receive).
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class McpConnectionError(McpTransportError):
    """Error establishing or maintaining connection to MCP server."""

    pass


class McpProtocolError(McpTransportError):
    """Error in MCP protocol communication (invalid messages, etc.)."""

    pass


class McpTimeoutError(McpTransportError):
    """Timeout waiting for MCP server response."""

    pass


class IMcpTransport(ABC):
    """Abstract base class for MCP transport implementations.

    Implementations:
        - HttpTransport: JSON-RPC over Streamable HTTP

    Usage:
        transport = HttpTransport(server_url="http://weather-mcp:8000")
        await transport.connect()
        try:
            tools = await transport.list_tools()
            result = await transport.call_tool("forecast", {"city": "Oslo"})
        finally:
            await transport.disconnect()
    """

    @abstractmethod
    async def connect(self) -> "McpServerInfo":
        """Establish connection and perform the initialize handshake.

        Raises:
            McpConnectionError: If connection cannot be established
            McpProtocolError: If initialization handshake fails
            McpTimeoutError: If server does not respond in time
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection. Idempotent."""
        ...

    @abstractmethod
    async def list_tools(self) -> list["McpToolDefinition"]:
        """Discover available tools via 'tools/list'."""
        ...

    @abstractmethod
    async def call_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        timeout: float | None = None,
    ) -> "McpToolResult":
        """Execute a tool via 'tools/call'."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True if connected and ready to send/receive messages."""
        ...

    @property
    @abstractmethod
    def server_info(self) -> "McpServerInfo | None":
        """Server info if connected, None otherwise."""
        ...
