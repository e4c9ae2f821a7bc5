"""Generation capability abstraction and the multi-step run loop."""

from application.agents.llm_provider import (
    LlmConfig,
    LlmContentPart,
    LlmGeneratedFile,
    LlmMessage,
    LlmMessageRole,
    LlmProvider,
    LlmProviderError,
    LlmProviderType,
    LlmResponse,
    LlmStreamChunk,
    LlmToolCall,
    LlmToolDefinition,
)
from application.agents.step_runner import StepRunner
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

__all__ = [
    "ErrorEvent",
    "FileEvent",
    "LlmConfig",
    "LlmContentPart",
    "LlmGeneratedFile",
    "LlmMessage",
    "LlmMessageRole",
    "LlmProvider",
    "LlmProviderError",
    "LlmProviderType",
    "LlmResponse",
    "LlmStreamChunk",
    "LlmToolCall",
    "LlmToolDefinition",
    "StepFinish",
    "StepRunner",
    "StepStart",
    "StreamEvent",
    "TextDelta",
    "ToolCallEvent",
    "ToolResultEvent",
]
