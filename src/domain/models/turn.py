"""Turn and content part models for conversation transcripts."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class TurnRole(str, Enum):
    """Role of a turn within a conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL_CALL = "tool-call"
    TOOL_RESULT = "tool-result"


class ContentPartType(str, Enum):
    """Kind of a multi-modal content part."""

    TEXT = "text"
    IMAGE = "image"
    FILE = "file"


@dataclass(frozen=True)
class ContentPart:
    """One piece of multi-modal content attached to a turn.

    A text part duplicates the owning turn's text and only records where the
    text sits relative to image and file parts.
    """

    type: ContentPartType
    text: str | None = None
    url: str | None = None
    mime_type: str | None = None
    filename: str | None = None

    @classmethod
    def text_part(cls, text: str) -> "ContentPart":
        return cls(type=ContentPartType.TEXT, text=text)

    @classmethod
    def image_part(cls, url: str, mime_type: str) -> "ContentPart":
        return cls(type=ContentPartType.IMAGE, url=url, mime_type=mime_type)

    @classmethod
    def file_part(cls, url: str, mime_type: str, filename: str | None = None) -> "ContentPart":
        return cls(type=ContentPartType.FILE, url=url, mime_type=mime_type, filename=filename)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type.value}
        if self.type == ContentPartType.TEXT:
            data["text"] = self.text or ""
            return data
        data["url"] = self.url
        data["mime_type"] = self.mime_type
        if self.filename is not None:
            data["filename"] = self.filename
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentPart":
        return cls(
            type=ContentPartType(data["type"]),
            text=data.get("text"),
            url=data.get("url"),
            mime_type=data.get("mime_type") or data.get("mimeType"),
            filename=data.get("filename"),
        )


@dataclass
class Turn:
    """A single message-like unit in a conversation.

    Tool-call and tool-result turns are bookkeeping: they record what the
    model invoked and what came back, but are never replayed to the model
    as conversation context.
    """

    role: TurnRole
    text: str
    content: list[ContentPart] | None = None
    tool_name: str | None = None
    tool_call_id: str | None = None
    args: dict[str, Any] | None = None
    result: Any = None
    model: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def user(cls, text: str, content: list[ContentPart] | None = None) -> "Turn":
        return cls(role=TurnRole.USER, text=text, content=content)

    @classmethod
    def assistant(cls, text: str, model: str | None = None, content: list[ContentPart] | None = None) -> "Turn":
        return cls(role=TurnRole.ASSISTANT, text=text, content=content, model=model)

    @classmethod
    def tool_call(cls, tool_name: str, tool_call_id: str, args: dict[str, Any]) -> "Turn":
        return cls(
            role=TurnRole.TOOL_CALL,
            text=f"Tool call: {tool_name}",
            tool_name=tool_name,
            tool_call_id=tool_call_id,
            args=args,
        )

    @classmethod
    def tool_result(cls, tool_name: str, tool_call_id: str, result: Any) -> "Turn":
        return cls(
            role=TurnRole.TOOL_RESULT,
            text=f"Tool result: {tool_name}",
            tool_name=tool_name,
            tool_call_id=tool_call_id,
            result=result,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the persisted dictionary shape (optional fields omitted)."""
        data: dict[str, Any] = {
            "role": self.role.value,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
        }
        if self.content is not None:
            data["content"] = [part.to_dict() for part in self.content]
        if self.tool_name is not None:
            data["tool_name"] = self.tool_name
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.args is not None:
            data["args"] = self.args
        if self.role == TurnRole.TOOL_RESULT:
            data["result"] = self.result
        if self.model is not None:
            data["model"] = self.model
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Turn":
        created_at = data.get("created_at")
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        content = data.get("content")
        return cls(
            role=TurnRole(data["role"]),
            text=data.get("text", ""),
            content=[ContentPart.from_dict(part) for part in content] if content else None,
            tool_name=data.get("tool_name"),
            tool_call_id=data.get("tool_call_id"),
            args=data.get("args"),
            result=data.get("result"),
            model=data.get("model"),
            created_at=created_at or datetime.now(UTC),
        )
