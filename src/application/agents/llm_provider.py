"""Generation capability abstraction for Conversation Host.

This module defines the interface every language-model backend implements,
so the orchestrator never couples to one provider's wire format.

Design Principles:
- Interface-based design for swappable LLM backends
- Dataclasses for configuration and message structures
- Multi-part (text/image/file) user content as first-class citizen
- Tool/function calling support
- Unified error handling across providers
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator

from domain.models.request_log import TokenUsage

logger = logging.getLogger(__name__)


# =============================================================================
# Provider Enumeration
# =============================================================================


class LlmProviderType(str, Enum):
    """Supported LLM provider types."""

    OPENAI = "openai"


# =============================================================================
# Unified Error Handling
# =============================================================================


class LlmProviderError(Exception):
    """Base error class for all LLM provider errors.

    Attributes:
        message: Human-readable error message
        error_code: Categorized error code for programmatic handling
        provider: The provider that raised the error
        is_retryable: Whether the operation might succeed on retry
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str,
        provider: str,
        is_retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.provider = provider
        self.is_retryable = is_retryable
        self.details = details or {}

    def __repr__(self) -> str:
        return f"LlmProviderError({self.provider}:{self.error_code}: {self.message})"


# =============================================================================
# Messages
# =============================================================================


class LlmMessageRole(str, Enum):
    """Role of a message in the LLM conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class LlmContentPart:
    """One part of a multi-part user message.

    Attributes:
        type: "text", "image" or "file"
        text: Text content for text parts
        url: Location of image or file bytes
        mime_type: Media type for image and file parts
        filename: Optional file name for file parts
    """

    type: str
    text: str | None = None
    url: str | None = None
    mime_type: str | None = None
    filename: str | None = None


@dataclass
class LlmToolCall:
    """A tool call requested by the LLM.

    Attributes:
        id: Unique identifier for this tool call (for matching with results)
        name: Name of the tool to call
        arguments: Arguments to pass to the tool (as dict)
    """

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass
class LlmMessage:
    """A message in the LLM conversation.

    Attributes:
        role: Role of the message sender
        content: Text content, or ordered parts for multi-part user messages
        name: Optional name (used for tool results)
        tool_calls: Optional list of tool calls (for assistant messages)
        tool_call_id: Optional ID linking to a tool call (for tool result messages)
    """

    role: LlmMessageRole
    content: str | list[LlmContentPart]
    name: str | None = None
    tool_calls: list[LlmToolCall] | None = None
    tool_call_id: str | None = None

    @property
    def is_multipart(self) -> bool:
        return isinstance(self.content, list)

    @classmethod
    def system(cls, content: str) -> "LlmMessage":
        """Create a system message."""
        return cls(role=LlmMessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str | list[LlmContentPart]) -> "LlmMessage":
        """Create a user message."""
        return cls(role=LlmMessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: list[LlmToolCall] | None = None) -> "LlmMessage":
        """Create an assistant message."""
        return cls(role=LlmMessageRole.ASSISTANT, content=content, tool_calls=tool_calls)

    @classmethod
    def tool_result(cls, tool_call_id: str, tool_name: str, content: str) -> "LlmMessage":
        """Create a tool result message."""
        return cls(role=LlmMessageRole.TOOL, content=content, name=tool_name, tool_call_id=tool_call_id)


@dataclass
class LlmGeneratedFile:
    """Media produced by the model (base64 payload)."""

    mime_type: str
    base64: str


@dataclass
class LlmResponse:
    """Complete (non-streaming) response from an LLM.

    Attributes:
        content: Text content of the response
        tool_calls: Optional list of tool calls requested
        finish_reason: Why the response ended (stop, tool_calls, length, etc.)
        usage: Optional token usage statistics
    """

    content: str
    tool_calls: list[LlmToolCall] | None = None
    finish_reason: str = "stop"
    usage: TokenUsage | None = None

    @property
    def has_tool_calls(self) -> bool:
        """Check if response contains tool calls."""
        return bool(self.tool_calls)


@dataclass
class LlmStreamChunk:
    """A chunk from a streaming LLM response.

    Attributes:
        content: Text content delta
        files: Media generated in this chunk
        tool_calls: Fully accumulated tool calls (only on the final chunk)
        done: Whether this is the final chunk
        finish_reason: Why the response ended (only on final chunk)
        usage: Token usage (only on the final chunk, when reported)
        error: Error reported by the provider mid-stream, if any
    """

    content: str = ""
    files: list[LlmGeneratedFile] = field(default_factory=list)
    tool_calls: list[LlmToolCall] | None = None
    done: bool = False
    finish_reason: str | None = None
    usage: TokenUsage | None = None
    error: str | None = None


@dataclass
class LlmToolDefinition:
    """Provider-agnostic definition of a tool the LLM may call.

    Attributes:
        name: Unique name of the tool
        description: Human-readable description of what the tool does
        parameters: JSON Schema defining the tool's parameters
    """

    name: str
    description: str
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI function calling format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters or {"type": "object", "properties": {}},
            },
        }


@dataclass
class LlmConfig:
    """Configuration for an LLM provider.

    Attributes:
        model: Model identifier (e.g., "gpt-4o-mini")
        temperature: Default sampling temperature
        max_tokens: Maximum tokens to generate (None = model default)
        timeout: Request timeout in seconds
        base_url: Base URL for the API
        api_key: API key
    """

    model: str
    temperature: float = 1.0
    max_tokens: int | None = None
    timeout: float = 120.0
    base_url: str | None = None
    api_key: str | None = None


class LlmProvider(ABC):
    """Abstract base class for generation capabilities.

    Implementations:
    - OpenAiLlmProvider: OpenAI-compatible chat completions API

    Usage:
        provider = OpenAiLlmProvider(config)
        messages = [LlmMessage.system("You are helpful."), LlmMessage.user("Hi")]
        response = await provider.chat(messages)
    """

    def __init__(self, config: LlmConfig) -> None:
        self._config = config

    @property
    @abstractmethod
    def provider_type(self) -> LlmProviderType:
        """Get the provider type identifier."""
        pass

    @property
    def config(self) -> LlmConfig:
        """Get the provider configuration."""
        return self._config

    @property
    def model(self) -> str:
        """Get the model identifier."""
        return self._config.model

    @abstractmethod
    async def chat(
        self,
        messages: list[LlmMessage],
        tools: list[LlmToolDefinition] | None = None,
        temperature: float | None = None,
    ) -> LlmResponse:
        """Send a chat completion request.

        Args:
            messages: Conversation messages
            tools: Optional list of available tools
            temperature: Optional sampling temperature override

        Returns:
            Complete response from the LLM
        """
        pass

    @abstractmethod
    def chat_stream(
        self,
        messages: list[LlmMessage],
        tools: list[LlmToolDefinition] | None = None,
        tool_choice: str | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Send a streaming chat completion request.

        Implementations are async generators. The final chunk has
        ``done=True`` and carries the accumulated tool calls and usage.

        Args:
            messages: Conversation messages
            tools: Optional list of available tools
            tool_choice: Optional tool choice policy ("auto", "required", "none")

        Yields:
            Streaming chunks from the LLM
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """Close any resources held by the provider."""
        pass
