"""MCP protocol models used by the tool-provider client."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class McpServerConfig:
    """Static configuration of one tool-provider server.

    Attributes:
        name: Unique provider name used for status and reconnect
        url: Base URL of the server (JSON-RPC endpoint is ``{url}/mcp``)
        headers: Extra HTTP headers (e.g. authorization)
        timeout: Request timeout in seconds
    """

    name: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float = 30.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpServerConfig":
        return cls(
            name=data["name"],
            url=data["url"],
            headers=dict(data.get("headers") or {}),
            timeout=float(data.get("timeout", 30.0)),
        )


@dataclass
class McpContent:
    """Content block within an MCP tool result.

    Attributes:
        type: Content type (text, image, resource)
        text: Text content (for type="text")
        data: Binary data as base64 (for type="image")
        mime_type: MIME type for binary content
        uri: Resource URI (for type="resource")
    """

    type: str
    text: str | None = None
    data: str | None = None
    mime_type: str | None = None
    uri: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpContent":
        resource = data.get("resource") or {}
        return cls(
            type=data.get("type", "text"),
            text=data.get("text", resource.get("text")),
            data=data.get("data", resource.get("blob")),
            mime_type=data.get("mimeType", resource.get("mimeType")),
            uri=data.get("uri", resource.get("uri")),
        )


@dataclass
class McpToolResult:
    """Result from an MCP tool call.

    Attributes:
        content: List of content blocks returned by the tool
        is_error: Whether the tool execution resulted in an error
    """

    content: list[McpContent] = field(default_factory=list)
    is_error: bool = False

    def get_text(self) -> str:
        """Get combined text from all text content blocks."""
        return "\n".join(c.text or "" for c in self.content if c.type == "text")

    def to_payload(self) -> dict[str, Any]:
        """Convert to the tool result payload handed back to the model and caller.

        The first binary block is exposed as an inline ``fileData`` data URL with
        its ``mimeType`` and ``filename``; the stream engine strips it before the
        payload is forwarded or stored.
        """
        payload: dict[str, Any] = {"text": self.get_text(), "isError": self.is_error}
        for block in self.content:
            if block.data and block.mime_type:
                payload["fileData"] = f"data:{block.mime_type};base64,{block.data}"
                payload["mimeType"] = block.mime_type
                payload["filename"] = (block.uri or "").rsplit("/", 1)[-1] or "document"
                break
        return payload

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpToolResult":
        """Create from tools/call response."""
        return cls(
            content=[McpContent.from_dict(c) for c in data.get("content", [])],
            is_error=data.get("isError", False),
        )


@dataclass
class McpToolDefinition:
    """Definition of an MCP tool from tools/list.

    Attributes:
        name: Unique tool name
        description: Human-readable description
        input_schema: JSON Schema for input parameters
    """

    name: str
    description: str = ""
    input_schema: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpToolDefinition":
        """Create from tools/list response item."""
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            input_schema=data.get("inputSchema", {}),
        )


@dataclass
class McpServerInfo:
    """Information about an MCP server, returned during the initialize handshake."""

    name: str
    version: str
    protocol_version: str = "2024-11-05"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "McpServerInfo":
        """Create from initialize response."""
        server_info = data.get("serverInfo", {})
        return cls(
            name=server_info.get("name", "unknown"),
            version=server_info.get("version", "unknown"),
            protocol_version=data.get("protocolVersion", "2024-11-05"),
        )
