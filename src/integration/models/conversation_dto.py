"""Conversation DTOs returned by the query handlers."""

import datetime
from dataclasses import dataclass, field
from typing import Any

from domain.entities.conversation import Conversation


@dataclass
class ConversationSummaryDto:
    """Listing entry for a conversation, without its turns."""

    id: str
    title: str | None = None
    turn_count: int = 0
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationSummaryDto":
        state = conversation.state
        return cls(
            id=conversation.id(),
            title=state.title,
            turn_count=len(state.turns),
            created_at=state.created_at,
            updated_at=state.updated_at,
        )


@dataclass
class ConversationDto:
    """Full conversation with its ordered turns."""

    id: str
    user_id: str
    title: str | None = None
    turns: list[dict[str, Any]] = field(default_factory=list)
    created_at: datetime.datetime | None = None
    updated_at: datetime.datetime | None = None

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> "ConversationDto":
        state = conversation.state
        return cls(
            id=conversation.id(),
            user_id=state.user_id,
            title=state.title,
            turns=list(state.turns),
            created_at=state.created_at,
            updated_at=state.updated_at,
        )
