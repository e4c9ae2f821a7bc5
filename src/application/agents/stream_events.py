"""Typed events produced while a generation run streams.

The run emits one flat sequence of these variants. Consumers dispatch with
``match`` and close the match with ``assert_never`` so that adding a variant
is caught by the type checker.
"""

from dataclasses import dataclass
from typing import Any

from domain.models.request_log import TokenUsage


@dataclass(frozen=True)
class StepStart:
    """A generation round begins."""

    step: int


@dataclass(frozen=True)
class StepFinish:
    """A generation round ends."""

    step: int
    finish_reason: str = "stop"
    usage: TokenUsage | None = None


@dataclass(frozen=True)
class TextDelta:
    """A fragment of model text."""

    text: str


@dataclass(frozen=True)
class ToolCallEvent:
    """The model invoked a tool."""

    tool_call_id: str
    tool_name: str
    args: dict[str, Any]


@dataclass(frozen=True)
class ToolResultEvent:
    """A tool invocation returned."""

    tool_call_id: str
    tool_name: str
    result: Any


@dataclass(frozen=True)
class FileEvent:
    """Media generated by the model, as a base64 payload."""

    mime_type: str
    base64: str

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


@dataclass(frozen=True)
class ErrorEvent:
    """A recoverable error reported mid-stream."""

    message: str
    error_code: str | None = None


StreamEvent = StepStart | StepFinish | TextDelta | ToolCallEvent | ToolResultEvent | FileEvent | ErrorEvent
