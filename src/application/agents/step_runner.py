"""Multi-step generation loop that turns provider chunks into stream events.

Each step streams one chat completion. When the model requests tools, they
are invoked, their results are fed back, and another step starts, up to
``max_steps``. Provider failures are reported as ErrorEvent and end the run.
Errors the provider reports inside a stream are forwarded without ending
the step.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from opentelemetry import trace

from application.agents.llm_provider import (
    LlmMessage,
    LlmProvider,
    LlmProviderError,
    LlmToolCall,
    LlmToolDefinition,
)
from application.agents.stream_events import (
    ErrorEvent,
    FileEvent,
    StepFinish,
    StepStart,
    StreamEvent,
    TextDelta,
    ToolCallEvent,
    ToolResultEvent,
)
from domain.models.tool import ToolDescriptor
from observability import tool_calls_executed

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

INLINE_FILE_KEY = "fileData"


class StepRunner:
    """Drives a generation capability through one or more tool-using steps."""

    def __init__(
        self,
        provider: LlmProvider,
        tools: dict[str, ToolDescriptor] | None = None,
        max_steps: int = 1,
        tool_choice: str | None = None,
    ) -> None:
        self._provider = provider
        self._tools = tools or {}
        self._max_steps = max(1, max_steps)
        self._tool_choice = tool_choice if self._tools else None

    def _tool_definitions(self) -> list[LlmToolDefinition] | None:
        if not self._tools:
            return None
        return [LlmToolDefinition(name=t.name, description=t.description, parameters=t.parameters) for t in self._tools.values()]

    async def run(self, messages: list[LlmMessage]) -> AsyncIterator[StreamEvent]:
        """Run the loop over a copy of ``messages``.

        Args:
            messages: Conversation messages, system prompt first

        Yields:
            Stream events in generation order
        """
        conversation = list(messages)
        definitions = self._tool_definitions()

        for step in range(self._max_steps):
            yield StepStart(step=step)

            content = ""
            tool_calls: list[LlmToolCall] = []
            finish_reason = "stop"
            usage = None
            try:
                async for chunk in self._provider.chat_stream(conversation, tools=definitions, tool_choice=self._tool_choice):
                    if chunk.content:
                        content += chunk.content
                        yield TextDelta(text=chunk.content)
                    if chunk.error:
                        yield ErrorEvent(message=chunk.error, error_code="provider_stream_error")
                    for generated in chunk.files:
                        yield FileEvent(mime_type=generated.mime_type, base64=generated.base64)
                    if chunk.done:
                        tool_calls = chunk.tool_calls or []
                        finish_reason = chunk.finish_reason or finish_reason
                        usage = chunk.usage
                        break
            except LlmProviderError as e:
                logger.error(f"❌ Generation failed at step {step}: {e.message}")
                yield ErrorEvent(message=e.message, error_code=e.error_code)
                yield StepFinish(step=step, finish_reason="error", usage=usage)
                return

            conversation.append(LlmMessage.assistant(content=content, tool_calls=tool_calls or None))

            for tool_call in tool_calls:
                yield ToolCallEvent(tool_call_id=tool_call.id, tool_name=tool_call.name, args=tool_call.arguments)
                result, error = await self._invoke_tool(tool_call)
                if error is not None:
                    yield ErrorEvent(message=error, error_code="tool_execution_failed")
                yield ToolResultEvent(tool_call_id=tool_call.id, tool_name=tool_call.name, result=result)
                conversation.append(LlmMessage.tool_result(tool_call.id, tool_call.name, _serialize_for_model(result)))

            yield StepFinish(step=step, finish_reason=finish_reason, usage=usage)

            if not tool_calls:
                return

        logger.info(f"Stopped after reaching max_steps={self._max_steps}")

    async def _invoke_tool(self, tool_call: LlmToolCall) -> tuple[Any, str | None]:
        """Invoke a tool, returning (result, error message)."""
        tool = self._tools.get(tool_call.name)
        if tool is None:
            message = f"Unknown tool: {tool_call.name}"
            logger.warning(message)
            return {"error": message}, message

        with tracer.start_as_current_span("tool.invoke") as span:
            span.set_attribute("tool.name", tool_call.name)
            span.set_attribute("tool.source", tool.source)
            try:
                result = await tool.invoke(tool_call.arguments)
                tool_calls_executed.add(1, {"tool_name": tool_call.name, "status": "success"})
                return result, None
            except Exception as e:
                logger.warning(f"Tool {tool_call.name} failed: {e}")
                span.record_exception(e)
                tool_calls_executed.add(1, {"tool_name": tool_call.name, "status": "error"})
                message = f"Tool {tool_call.name} failed: {e}"
                return {"error": message}, message


def _serialize_for_model(result: Any) -> str:
    """Render a tool result for the model, without inline binary payloads."""
    if isinstance(result, dict) and INLINE_FILE_KEY in result:
        result = {k: v for k, v in result.items() if k != INLINE_FILE_KEY}
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)
