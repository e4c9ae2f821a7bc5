"""Tests for the MCP HTTP transport using httpx.MockTransport."""

import json
from typing import Any

import httpx
import pytest

from infrastructure.mcp.http_transport import SESSION_HEADER, HttpTransport
from infrastructure.mcp.models import McpToolResult
from infrastructure.mcp.transport import McpConnectionError, McpProtocolError


class McpServerStub:
    """Answers JSON-RPC requests from canned results, recording every request."""

    def __init__(self, results: dict[str, Any], sse: bool = False) -> None:
        self.results = results
        self.sse = sse
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        body = json.loads(request.content)
        if "id" not in body:
            return httpx.Response(202)
        result = self.results.get(body["method"])
        payload = {"jsonrpc": "2.0", "id": body["id"]}
        if isinstance(result, dict) and "error" in result:
            payload["error"] = result["error"]
        else:
            payload["result"] = result
        headers = {SESSION_HEADER: "session-1"}
        if self.sse:
            return httpx.Response(200, text=f"event: message\ndata: {json.dumps(payload)}\n\n", headers={**headers, "content-type": "text/event-stream"})
        return httpx.Response(200, json=payload, headers=headers)


INITIALIZE = {"protocolVersion": "2024-11-05", "serverInfo": {"name": "weather", "version": "2.0"}}


def build(stub: McpServerStub) -> HttpTransport:
    return HttpTransport("http://weather:8000/", timeout=5.0, headers={"Authorization": "Bearer t"}, transport=httpx.MockTransport(stub))


class TestHttpTransport:
    """Test the JSON-RPC exchange."""

    @pytest.mark.asyncio
    async def test_connect_handshake(self) -> None:
        stub = McpServerStub({"initialize": INITIALIZE})
        transport = build(stub)

        info = await transport.connect()

        assert info.name == "weather"
        assert transport.is_connected
        assert [json.loads(r.content)["method"] for r in stub.requests] == ["initialize", "notifications/initialized"]
        assert stub.requests[0].url == "http://weather:8000/mcp"
        assert stub.requests[0].headers["Authorization"] == "Bearer t"

    @pytest.mark.asyncio
    async def test_session_header_echoed(self) -> None:
        stub = McpServerStub({"initialize": INITIALIZE, "tools/list": {"tools": []}})
        transport = build(stub)
        await transport.connect()

        await transport.list_tools()

        assert stub.requests[-1].headers[SESSION_HEADER] == "session-1"

    @pytest.mark.asyncio
    async def test_list_and_call_over_sse(self) -> None:
        stub = McpServerStub(
            {
                "initialize": INITIALIZE,
                "tools/list": {"tools": [{"name": "forecast", "description": "Weather", "inputSchema": {"type": "object"}}]},
                "tools/call": {"content": [{"type": "text", "text": "Sunny"}], "isError": False},
            },
            sse=True,
        )
        transport = build(stub)
        await transport.connect()

        tools = await transport.list_tools()
        result = await transport.call_tool("forecast", {"city": "Oslo"})

        assert tools[0].name == "forecast"
        assert tools[0].input_schema == {"type": "object"}
        assert result.get_text() == "Sunny"
        assert json.loads(stub.requests[-1].content)["params"] == {"name": "forecast", "arguments": {"city": "Oslo"}}

    @pytest.mark.asyncio
    async def test_jsonrpc_error_raises_protocol_error(self) -> None:
        stub = McpServerStub({"initialize": INITIALIZE, "tools/list": {"error": {"code": -32601, "message": "Method not found"}}})
        transport = build(stub)
        await transport.connect()

        with pytest.raises(McpProtocolError):
            await transport.list_tools()

    @pytest.mark.asyncio
    async def test_malformed_tools_list_raises(self) -> None:
        stub = McpServerStub({"initialize": INITIALIZE, "tools/list": {"tools": "nope"}})
        transport = build(stub)
        await transport.connect()

        with pytest.raises(McpProtocolError):
            await transport.list_tools()

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        transport = HttpTransport("http://down:8000", transport=httpx.MockTransport(refuse))

        with pytest.raises(McpConnectionError):
            await transport.connect()
        assert not transport.is_connected

    @pytest.mark.asyncio
    async def test_requests_require_connection(self) -> None:
        with pytest.raises(McpConnectionError):
            await build(McpServerStub({})).list_tools()


class TestToolResultPayload:
    """Test conversion of tool results to payloads."""

    def test_binary_block_exposed_as_inline_file(self) -> None:
        result = McpToolResult.from_dict(
            {
                "content": [
                    {"type": "text", "text": "Report ready"},
                    {"type": "resource", "resource": {"uri": "file:///reports/q3.pdf", "mimeType": "application/pdf", "blob": "JVBERi0="}},
                ]
            }
        )

        payload = result.to_payload()

        assert payload["text"] == "Report ready"
        assert payload["fileData"] == "data:application/pdf;base64,JVBERi0="
        assert payload["filename"] == "q3.pdf"
        assert payload["mimeType"] == "application/pdf"
