"""Tests for StepRunner.

Tests cover:
- Single-step text generation
- Tool invocation and follow-up steps
- Unknown and failing tools
- Provider failures, mid-stream errors and the max_steps limit
"""

import json

import pytest

from application.agents.llm_provider import LlmMessage, LlmMessageRole, LlmStreamChunk
from application.agents.step_runner import StepRunner
from application.agents.stream_events import (
    ErrorEvent,
    FileEvent,
    StepFinish,
    StepStart,
    TextDelta,
    ToolCallEvent,
    ToolResultEvent,
)
from domain.models.request_log import TokenUsage
from tests.fixtures.factories import ScriptedLlmProvider, ToolFactory, image_chunks, provider_error, text_chunks, tool_call_chunks


async def collect(runner: StepRunner, messages: list[LlmMessage] | None = None) -> list:
    return [event async for event in runner.run(messages or [LlmMessage.user("Hello")])]


class TestSingleStep:
    """Test runs without tools."""

    @pytest.mark.asyncio
    async def test_text_step(self) -> None:
        usage = TokenUsage(3, 4, 7)
        provider = ScriptedLlmProvider([text_chunks("Hi ", "there!", usage=usage)])

        events = await collect(StepRunner(provider))

        assert events == [
            StepStart(step=0),
            TextDelta(text="Hi "),
            TextDelta(text="there!"),
            StepFinish(step=0, finish_reason="stop", usage=usage),
        ]

    @pytest.mark.asyncio
    async def test_generated_image_reported(self) -> None:
        provider = ScriptedLlmProvider([image_chunks("image/png", "aGk=")])

        events = await collect(StepRunner(provider))

        assert FileEvent(mime_type="image/png", base64="aGk=") in events

    @pytest.mark.asyncio
    async def test_no_tools_means_no_tool_choice(self) -> None:
        provider = ScriptedLlmProvider([text_chunks("ok")])

        await collect(StepRunner(provider, tools=None, tool_choice="required"))

        assert provider.stream_calls[0]["tools"] is None
        assert provider.stream_calls[0]["tool_choice"] is None

    @pytest.mark.asyncio
    async def test_caller_messages_not_mutated(self) -> None:
        tool = ToolFactory.create("lookup")
        provider = ScriptedLlmProvider([tool_call_chunks("lookup", {}), text_chunks("done")])
        messages = [LlmMessage.user("Hello")]

        await collect(StepRunner(provider, tools={"lookup": tool}, max_steps=3), messages)

        assert len(messages) == 1


class TestToolSteps:
    """Test tool calls across steps."""

    @pytest.mark.asyncio
    async def test_tool_called_and_result_fed_back(self) -> None:
        """Test a tool call runs the tool and a second step sees its result."""
        tool = ToolFactory.create("lookup", result={"value": 42})
        provider = ScriptedLlmProvider([tool_call_chunks("lookup", {"q": "x"}, "thinking..."), text_chunks("It is 42.")])

        events = await collect(StepRunner(provider, tools={"lookup": tool}, max_steps=5, tool_choice="auto"))

        assert ToolCallEvent(tool_call_id="call_1", tool_name="lookup", args={"q": "x"}) in events
        assert ToolResultEvent(tool_call_id="call_1", tool_name="lookup", result={"value": 42}) in events
        assert events[-1] == StepFinish(step=1, finish_reason="stop", usage=None)
        assert tool.calls == [{"q": "x"}]

        second_call = provider.stream_calls[1]["messages"]
        assert second_call[-2].role == LlmMessageRole.ASSISTANT
        assert second_call[-2].tool_calls[0].name == "lookup"
        assert second_call[-1].role == LlmMessageRole.TOOL
        assert json.loads(second_call[-1].content) == {"value": 42}
        assert provider.stream_calls[0]["tool_choice"] == "auto"
        assert provider.stream_calls[0]["tools"][0].name == "lookup"

    @pytest.mark.asyncio
    async def test_inline_file_not_sent_back_to_model(self) -> None:
        tool = ToolFactory.create("export", result={"text": "r", "fileData": "data:application/pdf;base64,AAA"})
        provider = ScriptedLlmProvider([tool_call_chunks("export", {}), text_chunks("Here you go")])

        await collect(StepRunner(provider, tools={"export": tool}, max_steps=2))

        assert "fileData" not in provider.stream_calls[1]["messages"][-1].content

    @pytest.mark.asyncio
    async def test_unknown_tool_reports_error(self) -> None:
        provider = ScriptedLlmProvider([tool_call_chunks("missing", {}), text_chunks("Sorry")])

        events = await collect(StepRunner(provider, tools={"lookup": ToolFactory.create()}, max_steps=2))

        assert ErrorEvent(message="Unknown tool: missing", error_code="tool_execution_failed") in events
        result = next(e for e in events if isinstance(e, ToolResultEvent))
        assert result.result == {"error": "Unknown tool: missing"}

    @pytest.mark.asyncio
    async def test_failing_tool_reports_error_and_continues(self) -> None:
        tool = ToolFactory.create("lookup", error=TimeoutError("too slow"))
        provider = ScriptedLlmProvider([tool_call_chunks("lookup", {}), text_chunks("I could not look that up.")])

        events = await collect(StepRunner(provider, tools={"lookup": tool}, max_steps=2))

        errors = [e for e in events if isinstance(e, ErrorEvent)]
        assert errors[0].message == "Tool lookup failed: too slow"
        assert TextDelta(text="I could not look that up.") in events

    @pytest.mark.asyncio
    async def test_stops_at_max_steps(self) -> None:
        tool = ToolFactory.create("lookup")
        provider = ScriptedLlmProvider([tool_call_chunks("lookup", {}, call_id=f"call_{i}") for i in range(5)])

        events = await collect(StepRunner(provider, tools={"lookup": tool}, max_steps=2))

        assert len(provider.stream_calls) == 2
        assert sum(1 for e in events if isinstance(e, StepStart)) == 2


class TestProviderFailure:
    """Test provider errors."""

    @pytest.mark.asyncio
    async def test_provider_error_becomes_error_event(self) -> None:
        provider = ScriptedLlmProvider([provider_error("Rate limited")])

        events = await collect(StepRunner(provider))

        assert events == [
            StepStart(step=0),
            ErrorEvent(message="Rate limited", error_code="test_error"),
            StepFinish(step=0, finish_reason="error", usage=None),
        ]

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self) -> None:
        provider = ScriptedLlmProvider([text_chunks("a", "b")], fail_after=1)

        with pytest.raises(RuntimeError):
            await collect(StepRunner(provider))

    @pytest.mark.asyncio
    async def test_mid_stream_error_forwarded_without_ending_step(self) -> None:
        provider = ScriptedLlmProvider(
            [
                [
                    LlmStreamChunk(content="Partial"),
                    LlmStreamChunk(error="upstream overloaded"),
                    LlmStreamChunk(content=" answer"),
                    LlmStreamChunk(done=True, finish_reason="stop"),
                ]
            ]
        )

        events = await collect(StepRunner(provider))

        assert events == [
            StepStart(step=0),
            TextDelta(text="Partial"),
            ErrorEvent(message="upstream overloaded", error_code="provider_stream_error"),
            TextDelta(text=" answer"),
            StepFinish(step=0, finish_reason="stop", usage=None),
        ]
