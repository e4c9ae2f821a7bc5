"""MCP HTTP Transport for remote tool-provider servers.

Implements the Streamable HTTP transport: JSON-RPC 2.0 requests are POSTed
to ``{server_url}/mcp`` and answered either with plain JSON or with a short
Server-Sent Events body carrying the JSON-RPC response.
"""

import json
import logging
from typing import Any

import httpx

from .models import McpServerInfo, McpToolDefinition, McpToolResult
from .transport import IMcpTransport, McpConnectionError, McpProtocolError, McpTimeoutError

logger = logging.getLogger(__name__)

SESSION_HEADER = "mcp-session-id"


class HttpTransport(IMcpTransport):
    """HTTP transport for remote MCP servers.

    Usage:
        transport = HttpTransport(server_url="http://weather-mcp:8000", timeout=30.0)
        await transport.connect()
        tools = await transport.list_tools()
        result = await transport.call_tool("forecast", {"city": "Oslo"})
        await transport.disconnect()
    """

    MCP_PROTOCOL_VERSION = "2024-11-05"
    CLIENT_NAME = "conversation-host"
    CLIENT_VERSION = "1.0.0"

    def __init__(
        self,
        server_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HTTP transport.

        Args:
            server_url: Base URL of the MCP server (e.g., http://localhost:9000)
            timeout: Request timeout in seconds
            headers: Optional additional HTTP headers (e.g., for authentication)
            transport: Optional httpx transport (used to inject a mock transport)
        """
        self._server_url = server_url.rstrip("/")
        self._timeout = timeout
        self._headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._server_info: McpServerInfo | None = None
        self._session_id: str | None = None
        self._is_connected = False
        self._request_id = 0

    def _next_request_id(self) -> int:
        self._request_id += 1
        return self._request_id

    async def _post(self, payload: dict[str, Any], timeout: float | None = None) -> httpx.Response:
        if self._client is None:
            raise McpConnectionError("Not connected to MCP server")
        headers = {SESSION_HEADER: self._session_id} if self._session_id else None
        return await self._client.post(f"{self._server_url}/mcp", json=payload, headers=headers, timeout=timeout or self._timeout)

    async def _send_request(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> dict[str, Any]:
        """Send a JSON-RPC request and return its ``result`` member.

        Raises:
            McpConnectionError: If not connected or connection fails
            McpProtocolError: If response contains an error
            McpTimeoutError: If request times out
        """
        if not self._is_connected:
            raise McpConnectionError("Not connected to MCP server")

        request: dict[str, Any] = {"jsonrpc": "2.0", "id": self._next_request_id(), "method": method}
        if params is not None:
            request["params"] = params
        logger.debug(f"Sending MCP request: {method}")

        try:
            response = await self._post(request, timeout=timeout)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise McpTimeoutError(f"Request '{method}' timed out after {timeout or self._timeout}s", e) from e
        except httpx.HTTPStatusError as e:
            raise McpProtocolError(f"HTTP error {e.response.status_code}: {e.response.text}", e) from e
        except httpx.RequestError as e:
            raise McpConnectionError(f"Connection error: {e}", e) from e

        if SESSION_HEADER in response.headers:
            self._session_id = response.headers[SESSION_HEADER]

        data = self._decode_response(response)
        if "error" in data:
            error = data["error"]
            raise McpProtocolError(f"MCP error {error.get('code', 'unknown')}: {error.get('message', 'Unknown error')}")
        result = data.get("result", {})
        if not isinstance(result, dict):
            raise McpProtocolError(f"Malformed MCP result for '{method}': {result!r}")
        return result

    def _decode_response(self, response: httpx.Response) -> dict[str, Any]:
        content_type = response.headers.get("content-type", "")
        text = response.text
        if "text/event-stream" in content_type or text.startswith("event:"):
            return self._parse_sse_response(text)
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise McpProtocolError(f"Invalid JSON response: {text[:200]}", e) from e

    @staticmethod
    def _parse_sse_response(text: str) -> dict[str, Any]:
        """Extract the JSON payload from the first ``data:`` line of an SSE body.

        Raises:
            McpProtocolError: If SSE format is invalid or JSON parsing fails
        """
        for line in text.split("\n"):
            line = line.strip()
            if line.startswith("data:"):
                json_str = line[5:].strip()
                if json_str:
                    try:
                        return json.loads(json_str)
                    except json.JSONDecodeError as e:
                        raise McpProtocolError(f"Failed to parse SSE JSON data: {e}", e) from e

        raise McpProtocolError(f"No data found in SSE response: {text[:200]}")

    async def connect(self) -> McpServerInfo:
        """Establish connection to the MCP server.

        Sends 'initialize', then the 'notifications/initialized' notification.

        Raises:
            McpConnectionError: If connection fails
            McpProtocolError: If initialization fails
        """
        if self._is_connected and self._server_info is not None:
            return self._server_info

        logger.info(f"Connecting to remote MCP server: {self._server_url}")
        self._client = httpx.AsyncClient(
            headers={
                "Content-Type": "application/json",
                "Accept": "application/json, text/event-stream",
                **self._headers,
            },
            timeout=self._timeout,
            transport=self._transport,
        )

        try:
            self._is_connected = True
            init_result = await self._send_request(
                "initialize",
                {
                    "protocolVersion": self.MCP_PROTOCOL_VERSION,
                    "capabilities": {"tools": {}},
                    "clientInfo": {"name": self.CLIENT_NAME, "version": self.CLIENT_VERSION},
                },
            )
            self._server_info = McpServerInfo.from_dict(init_result)

            try:
                await self._post({"jsonrpc": "2.0", "method": "notifications/initialized"}, timeout=5.0)
            except httpx.HTTPError as e:
                logger.debug(f"Initialized notification failed (may be expected): {e}")

            logger.info(f"Connected to MCP server: {self._server_info.name} v{self._server_info.version}")
            return self._server_info

        except Exception as e:
            await self.disconnect()
            if isinstance(e, McpConnectionError | McpProtocolError | McpTimeoutError):
                raise
            raise McpConnectionError(f"Failed to connect to MCP server: {e}", e) from e

    async def disconnect(self) -> None:
        """Close the HTTP connection."""
        self._is_connected = False
        self._server_info = None
        self._session_id = None
        if self._client:
            client, self._client = self._client, None
            await client.aclose()
        logger.debug(f"Disconnected from MCP server: {self._server_url}")

    async def list_tools(self) -> list[McpToolDefinition]:
        """Discover available tools from the MCP server."""
        result = await self._send_request("tools/list")
        tools = result.get("tools")
        if not isinstance(tools, list):
            raise McpProtocolError(f"Malformed tools/list result from {self._server_url}")
        return [McpToolDefinition.from_dict(tool) for tool in tools]

    async def call_tool(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        timeout: float | None = None,
    ) -> McpToolResult:
        """Execute a tool call on the MCP server.

        Tool-level failures come back as a result with ``is_error`` set;
        protocol failures raise.
        """
        logger.debug(f"Calling remote tool '{tool_name}'")
        result = await self._send_request("tools/call", {"name": tool_name, "arguments": arguments}, timeout=timeout)
        return McpToolResult.from_dict(result)

    @property
    def is_connected(self) -> bool:
        """Check if connected to the MCP server."""
        return self._is_connected and self._client is not None

    @property
    def server_info(self) -> McpServerInfo | None:
        """Get server information."""
        return self._server_info

    @property
    def server_url(self) -> str:
        """Get the server URL."""
        return self._server_url
