"""Request log entry model for the out-of-band audit trail."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4


class RequestType(str, Enum):
    """Kind of generation request being logged."""

    GENERAL = "general"
    REMIX = "remix"
    SUMMARIZATION = "summarization"
    TRANSLATION = "translation"


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported by a generation capability."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass(frozen=True)
class RequestLogEntry:
    """Append-only record of one generation call. Never mutated after creation."""

    model: str
    request_type: RequestType
    prompt: str
    response: str | None
    response_time_ms: int
    tokens_used: TokenUsage | None = None
    error: str | None = None
    user_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: str(uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "model": self.model,
            "request_type": self.request_type.value,
            "prompt": self.prompt,
            "response": self.response,
            "response_time_ms": self.response_time_ms,
            "tokens_used": self.tokens_used.to_dict() if self.tokens_used else None,
            "error": self.error,
            "user_id": self.user_id,
            "metadata": self.metadata,
            "created_at": self.created_at,
        }
