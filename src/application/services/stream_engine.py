"""Streaming step engine.

Consumes the typed event sequence of a generation run and turns it into the
frames pushed to the caller, while accumulating the turns that describe the
exchange. Text is buffered per step and only released when the step closes
without having invoked a tool; text that precedes a tool call is leaked
reasoning and is dropped.
"""

import logging
import re
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, assert_never

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
from domain.models.request_log import TokenUsage
from domain.models.turn import ContentPart, Turn

logger = logging.getLogger(__name__)

INLINE_FILE_KEY = "fileData"
IMAGE_ONLY_PLACEHOLDER = "(image)"

# A JSON object with an "action" key dangling at the end of the text, optionally fenced.
# One level of nested objects is allowed.
LEAKED_ACTION_PATTERN = re.compile(r"\s*(?:```(?:json)?\s*)?\{\s*\"action\"\s*:[^{}]*(?:\{[^{}]*\}[^{}]*)*\}\s*(?:```)?\s*$")


def strip_leaked_action(text: str) -> str:
    """Remove a trailing leaked ``{"action": ...}`` fragment from model text."""
    return LEAKED_ACTION_PATTERN.sub("", text)


class EngineState(str, Enum):
    IDLE = "idle"
    STEP_OPEN = "step-open"
    TEXT_ACCUM = "text-accum"
    TOOL_PENDING = "tool-pending"
    STEP_CLOSED = "step-closed"
    FINISHED = "finished"
    FAILED = "failed"


# =============================================================================
# Frames
# =============================================================================


@dataclass(frozen=True)
class TextFrame:
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"text": self.text}


@dataclass(frozen=True)
class ToolCallFrame:
    tool_name: str
    tool_call_id: str
    args: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"toolCall": {"toolName": self.tool_name, "toolCallId": self.tool_call_id, "args": self.args}}


@dataclass(frozen=True)
class ToolResultFrame:
    tool_name: str
    tool_call_id: str
    result: Any

    def to_dict(self) -> dict[str, Any]:
        return {"toolResult": {"toolName": self.tool_name, "toolCallId": self.tool_call_id, "result": self.result}}


@dataclass(frozen=True)
class ImageFrame:
    mime_type: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"image": {"mimeType": self.mime_type, "url": self.url}}


@dataclass(frozen=True)
class FileFrame:
    filename: str
    mime_type: str
    url: str

    def to_dict(self) -> dict[str, Any]:
        return {"file": {"filename": self.filename, "mimeType": self.mime_type, "url": self.url}}


@dataclass(frozen=True)
class ErrorFrame:
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


@dataclass(frozen=True)
class DoneFrame:
    history_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        frame: dict[str, Any] = {"done": True}
        if self.history_id:
            frame["historyId"] = self.history_id
        return frame


Frame = TextFrame | ToolCallFrame | ToolResultFrame | ImageFrame | FileFrame | ErrorFrame | DoneFrame


@dataclass
class _StepBuffer:
    text: list[str] = field(default_factory=list)
    had_tool_call: bool = False

    def reset(self) -> None:
        self.text.clear()
        self.had_tool_call = False


class StreamingStepEngine:
    """Filters a generation run into caller frames and transcript turns.

    One engine serves one request. Feed it events with :meth:`process` and
    close it with :meth:`finish` (source exhausted) or :meth:`fail` (source
    raised); or hand the whole event source to :meth:`run`.

    Tool-call and tool-result turns are passed to ``turn_sink`` as they
    happen. The assistant turn is available on :attr:`assistant_turn` once
    the engine is closed.
    """

    def __init__(self, model_id: str, turn_sink: Callable[[Turn], None] | None = None) -> None:
        self.model_id = model_id
        self.state = EngineState.IDLE
        self.full_response = ""
        self.generated_images: list[ContentPart] = []
        self.usage: TokenUsage | None = None
        self.error_count = 0
        self.assistant_turn: Turn | None = None
        self._turn_sink = turn_sink
        self._step = _StepBuffer()

    @property
    def is_closed(self) -> bool:
        return self.state in (EngineState.FINISHED, EngineState.FAILED)

    def process(self, event: StreamEvent) -> list[Frame]:
        """Apply one event and return the frames it releases, in order."""
        if self.is_closed:
            raise RuntimeError(f"Engine is {self.state.value}; no further events accepted")

        match event:
            case StepStart():
                self._step.reset()
                self.state = EngineState.STEP_OPEN
                return []
            case TextDelta(text=text):
                self._ensure_step_open()
                self._step.text.append(text)
                if self.state != EngineState.TOOL_PENDING:
                    self.state = EngineState.TEXT_ACCUM
                return []
            case ToolCallEvent(tool_call_id=tool_call_id, tool_name=tool_name, args=args):
                self._ensure_step_open()
                self._step.had_tool_call = True
                self.state = EngineState.TOOL_PENDING
                self._emit_turn(Turn.tool_call(tool_name, tool_call_id, args))
                return [ToolCallFrame(tool_name=tool_name, tool_call_id=tool_call_id, args=args)]
            case ToolResultEvent(tool_call_id=tool_call_id, tool_name=tool_name, result=result):
                return self._on_tool_result(tool_call_id, tool_name, result)
            case FileEvent() as file_event:
                if not file_event.is_image:
                    logger.debug(f"Ignoring generated file of type {file_event.mime_type}")
                    return []
                url = file_event.data_url
                self.generated_images.append(ContentPart.image_part(url, file_event.mime_type))
                return [ImageFrame(mime_type=file_event.mime_type, url=url)]
            case ErrorEvent(message=message):
                self.error_count += 1
                logger.warning(f"Stream error reported by model: {message}")
                return [ErrorFrame(error=message)]
            case StepFinish(usage=usage):
                frames = self._flush()
                if usage is not None:
                    self.usage = usage if self.usage is None else self.usage + usage
                self.state = EngineState.STEP_CLOSED
                return frames
            case _:
                assert_never(event)

    def finish(self) -> list[Frame]:
        """Close after the source is exhausted: flush what is buffered and build the assistant turn."""
        frames = self._flush()
        self.assistant_turn = self._build_assistant_turn()
        self.state = EngineState.FINISHED
        return frames

    def fail(self, error: BaseException | str) -> list[Frame]:
        """Close after the source raised: drop the open buffer and build the assistant turn from flushed text."""
        message = str(error) or type(error).__name__
        self._step.reset()
        self.assistant_turn = self._build_assistant_turn()
        self.state = EngineState.FAILED
        return [ErrorFrame(error=message)]

    async def run(self, events: AsyncIterator[StreamEvent]) -> AsyncIterator[Frame]:
        """Drive the engine over an event source, yielding frames as they are released."""
        try:
            async for event in events:
                for frame in self.process(event):
                    yield frame
        except Exception as e:
            logger.error(f"Generation stream failed: {e}", exc_info=True)
            for frame in self.fail(e):
                yield frame
            return
        for frame in self.finish():
            yield frame

    def _ensure_step_open(self) -> None:
        # Sources that never announce steps get an implicit one.
        if self.state in (EngineState.IDLE, EngineState.STEP_CLOSED):
            self._step.reset()
            self.state = EngineState.STEP_OPEN

    def _on_tool_result(self, tool_call_id: str, tool_name: str, result: Any) -> list[Frame]:
        frames: list[Frame] = []
        if isinstance(result, dict) and isinstance(result.get(INLINE_FILE_KEY), str):
            frames.append(
                FileFrame(
                    filename=result.get("filename") or "document",
                    mime_type=result.get("mimeType") or "application/octet-stream",
                    url=result[INLINE_FILE_KEY],
                )
            )
        if isinstance(result, dict):
            result = {key: value for key, value in result.items() if key != INLINE_FILE_KEY}

        self._emit_turn(Turn.tool_result(tool_name, tool_call_id, result))
        frames.append(ToolResultFrame(tool_name=tool_name, tool_call_id=tool_call_id, result=result))
        return frames

    def _flush(self) -> list[Frame]:
        buffered = "".join(self._step.text)
        had_tool_call = self._step.had_tool_call
        self._step.reset()
        if had_tool_call or not buffered:
            if had_tool_call and buffered:
                logger.debug(f"Discarding {len(buffered)} chars of text buffered before a tool call")
            return []
        cleaned = strip_leaked_action(buffered)
        if not cleaned.strip():
            return []
        self.full_response += cleaned
        return [TextFrame(text=cleaned)]

    def _build_assistant_turn(self) -> Turn | None:
        if not self.full_response and not self.generated_images:
            return None
        return Turn.assistant(
            self.full_response or IMAGE_ONLY_PLACEHOLDER,
            model=self.model_id,
            content=list(self.generated_images) or None,
        )

    def _emit_turn(self, turn: Turn) -> None:
        if self._turn_sink is not None:
            self._turn_sink(turn)
