"""Conversation aggregate definition using the AggregateState pattern.

A Conversation is owned by one user and holds the ordered transcript of
turns. Turns are only ever appended; the aggregate never reorders or
rewrites them. Deletion is soft: the flag is set and normal reads skip it.
"""

from datetime import UTC, datetime
from typing import Any, cast
from uuid import uuid4

from multipledispatch import dispatch
from neuroglia.data.abstractions import AggregateRoot, AggregateState

from domain.events.conversation import (
    ConversationCreatedDomainEvent,
    ConversationDeletedDomainEvent,
    ConversationTitleUpdatedDomainEvent,
    TurnAppendedDomainEvent,
)
from domain.models.turn import Turn, TurnRole

TITLE_MAX_LENGTH = 50


class ConversationState(AggregateState[str]):
    """Encapsulates the persisted state for the Conversation aggregate."""

    id: str
    user_id: str
    title: str | None
    turns: list[dict[str, Any]]
    is_deleted: bool
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None

    def __init__(self) -> None:
        super().__init__()
        self.id = ""
        self.user_id = ""
        self.title = None
        self.turns = []
        self.is_deleted = False
        now = datetime.now(UTC)
        self.created_at = now
        self.updated_at = now
        self.deleted_at = None

    @dispatch(ConversationCreatedDomainEvent)
    def on(self, event: ConversationCreatedDomainEvent) -> None:  # type: ignore[override]
        """Apply the creation event to the state."""
        self.id = event.aggregate_id
        self.user_id = event.user_id
        self.title = event.title
        self.created_at = event.created_at
        self.updated_at = event.created_at

    @dispatch(TurnAppendedDomainEvent)
    def on(self, event: TurnAppendedDomainEvent) -> None:  # type: ignore[override]
        """Apply the turn appended event to the state."""
        self.turns.append(event.turn)
        self.updated_at = datetime.now(UTC)

        # Auto-derive the title from the first assistant reply
        if self.title is None and event.turn.get("role") == TurnRole.ASSISTANT.value:
            text = (event.turn.get("text") or "").strip()
            if text:
                self.title = text[:TITLE_MAX_LENGTH]

    @dispatch(ConversationTitleUpdatedDomainEvent)
    def on(self, event: ConversationTitleUpdatedDomainEvent) -> None:  # type: ignore[override]
        """Apply the title updated event to the state."""
        self.title = event.new_title
        self.updated_at = datetime.now(UTC)

    @dispatch(ConversationDeletedDomainEvent)
    def on(self, event: ConversationDeletedDomainEvent) -> None:  # type: ignore[override]
        """Apply the deleted event to the state."""
        self.is_deleted = True
        self.deleted_at = event.deleted_at
        self.updated_at = event.deleted_at


class Conversation(AggregateRoot[ConversationState, str]):
    """Conversation aggregate root: one user's ordered transcript with the model."""

    def __init__(
        self,
        user_id: str,
        title: str | None = None,
        created_at: datetime | None = None,
        conversation_id: str | None = None,
    ) -> None:
        super().__init__()
        self.state.on(
            self.register_event(  # type: ignore
                ConversationCreatedDomainEvent(
                    aggregate_id=conversation_id or str(uuid4()),
                    user_id=user_id,
                    title=title,
                    created_at=created_at or datetime.now(UTC),
                )
            )
        )

    def id(self) -> str:
        """Return the aggregate identifier with a precise type."""
        aggregate_id = super().id()
        if aggregate_id is None:
            raise ValueError("Conversation aggregate identifier has not been initialized")
        return cast(str, aggregate_id)

    def is_owned_by(self, user_id: str) -> bool:
        return self.state.user_id == user_id

    def append_turn(self, turn: Turn) -> int:
        """Append a turn to the transcript.

        Returns:
            The index of the appended turn
        """
        if self.state.is_deleted:
            raise ValueError(f"Cannot append to deleted conversation {self.id()}")
        self.state.on(
            self.register_event(  # type: ignore
                TurnAppendedDomainEvent(aggregate_id=self.id(), turn=turn.to_dict())
            )
        )
        return len(self.state.turns) - 1

    def update_title(self, new_title: str) -> bool:
        """Update the conversation title."""
        if self.state.title == new_title:
            return False
        self.state.on(
            self.register_event(  # type: ignore
                ConversationTitleUpdatedDomainEvent(aggregate_id=self.id(), new_title=new_title)
            )
        )
        return True

    def delete(self) -> bool:
        """Mark the conversation as deleted."""
        if self.state.is_deleted:
            return False
        self.state.on(
            self.register_event(  # type: ignore
                ConversationDeletedDomainEvent(aggregate_id=self.id())
            )
        )
        return True

    def get_turns(self) -> list[Turn]:
        """Get all turns as Turn objects, in append order."""
        return [Turn.from_dict(t) for t in self.state.turns]
