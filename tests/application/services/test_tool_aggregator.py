"""Tests for ToolAggregator."""

import pytest

from application.services.tool_aggregator import ToolAggregator, ToolRequestContext
from infrastructure.mcp.connection_manager import McpConnectionManager
from infrastructure.mcp.models import McpServerConfig, McpToolDefinition
from tests.fixtures.factories import FakeMcpTransport, ToolFactory

CONTEXT = ToolRequestContext(user_id="user-1", resolve_conversation_id=lambda: "conv-1")


async def connected_manager(transports: dict[str, FakeMcpTransport]) -> McpConnectionManager:
    configs = [McpServerConfig(name=name, url=f"http://{name}") for name in transports]
    manager = McpConnectionManager(configs, transport_factory=lambda config: transports[config.name])
    await manager.connect_all_async()
    return manager


class TestToolApplicability:
    """Test when a request gets no tools at all."""

    @pytest.mark.asyncio
    async def test_no_sources_gives_none(self) -> None:
        assert await ToolAggregator().aggregate_async("gpt-4o", CONTEXT) is None

    @pytest.mark.asyncio
    async def test_tool_incapable_model_gives_none(self) -> None:
        aggregator = ToolAggregator(static_tools={"lookup": ToolFactory.create("lookup")})

        assert not aggregator.supports_tools("gpt-image-1")
        assert await aggregator.aggregate_async("gpt-image-1", CONTEXT) is None

    @pytest.mark.asyncio
    async def test_empty_marker_allows_every_model(self) -> None:
        aggregator = ToolAggregator(static_tools={"lookup": ToolFactory.create("lookup")}, tool_incapable_marker="")

        assert aggregator.supports_tools("gpt-image-1")


class TestMerge:
    """Test merging across sources."""

    @pytest.mark.asyncio
    async def test_static_then_request_then_providers(self) -> None:
        """Test later sources replace same-named tools from earlier ones."""
        seen: list[ToolRequestContext] = []

        def request_tools(context: ToolRequestContext):
            seen.append(context)
            return {"shared": ToolFactory.create("shared", source="request"), "mine": ToolFactory.create("mine", source="request")}

        manager = await connected_manager(
            {"weather": FakeMcpTransport(tools=[McpToolDefinition(name="mine", description="remote"), McpToolDefinition(name="forecast")])}
        )
        aggregator = ToolAggregator(
            static_tools={"shared": ToolFactory.create("shared"), "clock": ToolFactory.create("clock")},
            request_tool_factory=request_tools,
            connection_manager=manager,
        )

        tools = await aggregator.aggregate_async("gpt-4o", CONTEXT)

        assert set(tools) == {"shared", "clock", "mine", "forecast"}
        assert tools["shared"].source == "request"
        assert tools["mine"].source == "weather"
        assert seen == [CONTEXT]

    @pytest.mark.asyncio
    async def test_failing_provider_isolated(self) -> None:
        """Test a provider whose discovery fails contributes nothing while others still do."""
        manager = await connected_manager(
            {
                "broken": FakeMcpTransport(list_error=RuntimeError("malformed")),
                "weather": FakeMcpTransport(tools=[McpToolDefinition(name="forecast")]),
            }
        )
        aggregator = ToolAggregator(connection_manager=manager)

        tools = await aggregator.aggregate_async("gpt-4o", CONTEXT)

        assert set(tools) == {"forecast"}

    @pytest.mark.asyncio
    async def test_only_failing_providers_gives_empty_set(self) -> None:
        manager = await connected_manager({"down": FakeMcpTransport(fail_connect=True)})
        aggregator = ToolAggregator(connection_manager=manager)

        assert await aggregator.aggregate_async("gpt-4o", CONTEXT) == {}
