"""MCP client infrastructure: transports and the provider connection registry."""

from .connection_manager import (
    McpConnectionManager,
    ToolDiscovery,
    ToolProviderConnection,
    ToolProviderConnectionService,
    ToolProviderStatus,
)
from .http_transport import HttpTransport
from .models import McpContent, McpServerConfig, McpServerInfo, McpToolDefinition, McpToolResult
from .transport import IMcpTransport, McpConnectionError, McpProtocolError, McpTimeoutError, McpTransportError

__all__ = [
    "HttpTransport",
    "IMcpTransport",
    "McpConnectionError",
    "McpConnectionManager",
    "McpContent",
    "McpProtocolError",
    "McpServerConfig",
    "McpServerInfo",
    "McpTimeoutError",
    "McpToolDefinition",
    "McpToolResult",
    "McpTransportError",
    "ToolDiscovery",
    "ToolProviderConnection",
    "ToolProviderConnectionService",
    "ToolProviderStatus",
]
