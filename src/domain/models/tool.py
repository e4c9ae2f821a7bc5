"""Tool descriptor model exposed to the language model for one request."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

ToolInvoker = Callable[[dict[str, Any]], Awaitable[Any]]


@dataclass
class ToolDescriptor:
    """A callable capability offered to the model.

    Descriptors are rebuilt for every request from static configuration,
    per-request factories and connected tool providers. They are never
    persisted.

    Attributes:
        name: Tool name, unique within one request's merged tool set
        description: Human readable description shown to the model
        parameters: JSON Schema describing the tool arguments
        invoke: Coroutine function receiving the parsed arguments
        source: Where the descriptor came from (static, request, or a provider name)
    """

    name: str
    description: str
    invoke: ToolInvoker
    parameters: dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})
    source: str = "static"
