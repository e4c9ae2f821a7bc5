"""Conversation domain events.

Events emitted by the Conversation aggregate to capture state changes.
Field names use snake_case.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from neuroglia.data.abstractions import DomainEvent
from neuroglia.eventing.cloud_events.decorators import cloudevent


@cloudevent("conversation.created.v1")
@dataclass
class ConversationCreatedDomainEvent(DomainEvent):
    """Emitted when a new conversation is created."""

    aggregate_id: str
    user_id: str
    title: str | None
    created_at: datetime

    def __init__(
        self,
        aggregate_id: str,
        user_id: str,
        title: str | None = None,
        created_at: datetime | None = None,
    ) -> None:
        super().__init__(aggregate_id)
        self.aggregate_id = aggregate_id
        self.user_id = user_id
        self.title = title
        self.created_at = created_at or datetime.now(UTC)


@cloudevent("conversation.turn.appended.v1")
@dataclass
class TurnAppendedDomainEvent(DomainEvent):
    """Emitted when a turn is appended to a conversation."""

    aggregate_id: str
    turn: dict[str, Any]

    def __init__(self, aggregate_id: str, turn: dict[str, Any]) -> None:
        super().__init__(aggregate_id)
        self.aggregate_id = aggregate_id
        self.turn = turn


@cloudevent("conversation.title.updated.v1")
@dataclass
class ConversationTitleUpdatedDomainEvent(DomainEvent):
    """Emitted when the conversation title changes."""

    aggregate_id: str
    new_title: str

    def __init__(self, aggregate_id: str, new_title: str) -> None:
        super().__init__(aggregate_id)
        self.aggregate_id = aggregate_id
        self.new_title = new_title


@cloudevent("conversation.deleted.v1")
@dataclass
class ConversationDeletedDomainEvent(DomainEvent):
    """Emitted when a conversation is soft-deleted."""

    aggregate_id: str
    deleted_at: datetime

    def __init__(self, aggregate_id: str, deleted_at: datetime | None = None) -> None:
        super().__init__(aggregate_id)
        self.aggregate_id = aggregate_id
        self.deleted_at = deleted_at or datetime.now(UTC)
