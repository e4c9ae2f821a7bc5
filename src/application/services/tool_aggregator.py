"""Merges tool descriptors from static, per-request and provider sources."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from opentelemetry import trace

from domain.models.tool import ToolDescriptor
from infrastructure.mcp.connection_manager import McpConnectionManager

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class ToolRequestContext:
    """What per-request tool factories know about the caller.

    The conversation id is resolved when a tool runs, so a conversation
    created for this request is already known by then.
    """

    user_id: str
    resolve_conversation_id: Callable[[], str | None] | None = None

    @property
    def conversation_id(self) -> str | None:
        return self.resolve_conversation_id() if self.resolve_conversation_id is not None else None


RequestToolFactory = Callable[[ToolRequestContext], dict[str, ToolDescriptor]]


class ToolAggregator:
    """Builds the merged, name-keyed tool set for one request.

    Merge order is static tools, then per-request tools, then tools from
    every connected provider in configuration order. A later source replaces
    a same-named tool from an earlier one.
    """

    def __init__(
        self,
        static_tools: dict[str, ToolDescriptor] | None = None,
        request_tool_factory: RequestToolFactory | None = None,
        connection_manager: McpConnectionManager | None = None,
        tool_incapable_marker: str = "image",
    ) -> None:
        self._static_tools = static_tools
        self._request_tool_factory = request_tool_factory
        self._connection_manager = connection_manager
        self._tool_incapable_marker = tool_incapable_marker

    def supports_tools(self, model_id: str) -> bool:
        """Models whose id contains the marker (e.g. image generators) never receive tools."""
        return not (self._tool_incapable_marker and self._tool_incapable_marker in model_id)

    @property
    def has_sources(self) -> bool:
        return self._static_tools is not None or self._request_tool_factory is not None or self._connection_manager is not None

    async def aggregate_async(self, model_id: str, context: ToolRequestContext) -> dict[str, ToolDescriptor] | None:
        """Return the merged tool set, or None when tools do not apply.

        Provider discovery failures are already isolated by the connection
        manager; a failing provider simply contributes nothing.
        """
        if not self.supports_tools(model_id) or not self.has_sources:
            return None

        with tracer.start_as_current_span("tools.aggregate") as span:
            tools: dict[str, ToolDescriptor] = {}
            tools.update(self._static_tools or {})
            if self._request_tool_factory is not None:
                tools.update(self._request_tool_factory(context))

            if self._connection_manager is not None:
                for discovery in await self._connection_manager.discover_tools_async():
                    if not discovery.succeeded:
                        logger.debug(f"Provider '{discovery.provider}' contributed no tools: {discovery.error}")
                        continue
                    for tool in discovery.tools:
                        tools[tool.name] = tool

            span.set_attribute("tools.count", len(tools))
            return tools
