"""Domain layer tests for the Conversation aggregate and turns.

Tests the core domain logic including:
- Conversation creation and ownership
- Turn appending, ordering and title derivation
- Title updates and soft deletion
- Domain events generation
- Turn serialization
"""

import pytest

from domain.entities import Conversation
from domain.entities.conversation import TITLE_MAX_LENGTH
from domain.events.conversation import (
    ConversationCreatedDomainEvent,
    ConversationDeletedDomainEvent,
    ConversationTitleUpdatedDomainEvent,
    TurnAppendedDomainEvent,
)
from domain.models.turn import ContentPart, ContentPartType, Turn, TurnRole
from tests.fixtures.factories import ConversationFactory


class TestConversationCreation:
    """Test Conversation aggregate creation."""

    def test_create_conversation_with_defaults(self) -> None:
        """Test creating a conversation with only an owner."""
        conversation = Conversation(user_id="user-1")

        assert conversation.id() != ""
        assert conversation.state.user_id == "user-1"
        assert conversation.state.title is None
        assert conversation.state.turns == []
        assert conversation.state.is_deleted is False
        assert conversation.is_owned_by("user-1")
        assert not conversation.is_owned_by("user-2")

    def test_create_conversation_raises_created_event(self) -> None:
        """Test the creation event carries the owner."""
        conversation = Conversation(user_id="user-1", conversation_id="conv-1")

        events = conversation.domain_events
        assert len(events) == 1
        assert isinstance(events[0], ConversationCreatedDomainEvent)
        assert events[0].aggregate_id == "conv-1"
        assert events[0].user_id == "user-1"


class TestConversationTurns:
    """Test appending turns to the transcript."""

    def test_turns_keep_append_order(self) -> None:
        """Test turns are stored in the order they are appended."""
        conversation = ConversationFactory.create()

        conversation.append_turn(Turn.user("Hello"))
        conversation.append_turn(Turn.tool_call("lookup", "call_1", {"q": "x"}))
        conversation.append_turn(Turn.tool_result("lookup", "call_1", {"ok": True}))
        index = conversation.append_turn(Turn.assistant("Hi there!", model="test-model"))

        assert index == 3
        assert [t.role for t in conversation.get_turns()] == [
            TurnRole.USER,
            TurnRole.TOOL_CALL,
            TurnRole.TOOL_RESULT,
            TurnRole.ASSISTANT,
        ]

    def test_append_raises_turn_appended_event(self) -> None:
        conversation = ConversationFactory.create()
        conversation.append_turn(Turn.user("Hello"))

        assert isinstance(conversation.domain_events[-1], TurnAppendedDomainEvent)

    def test_title_derived_from_first_assistant_reply(self) -> None:
        """Test the first non-empty assistant reply becomes the title."""
        conversation = ConversationFactory.create()
        conversation.append_turn(Turn.user("Tell me a long story"))
        conversation.append_turn(Turn.assistant("x" * 80))
        conversation.append_turn(Turn.assistant("Another reply"))

        assert conversation.state.title == "x" * TITLE_MAX_LENGTH

    def test_explicit_title_not_overwritten_by_reply(self) -> None:
        conversation = ConversationFactory.create(title="Trip planning")
        conversation.append_turn(Turn.assistant("Sure!"))

        assert conversation.state.title == "Trip planning"

    def test_cannot_append_to_deleted_conversation(self) -> None:
        conversation = ConversationFactory.create_deleted()

        with pytest.raises(ValueError):
            conversation.append_turn(Turn.user("Hello"))


class TestConversationTitleAndDeletion:
    """Test title updates and soft deletion."""

    def test_update_title(self) -> None:
        conversation = ConversationFactory.create()

        assert conversation.update_title("Renamed") is True
        assert conversation.state.title == "Renamed"
        assert isinstance(conversation.domain_events[-1], ConversationTitleUpdatedDomainEvent)

    def test_update_title_to_same_value_is_noop(self) -> None:
        conversation = ConversationFactory.create(title="Same")

        assert conversation.update_title("Same") is False

    def test_delete_is_soft_and_idempotent(self) -> None:
        conversation = ConversationFactory.create_with_exchange()

        assert conversation.delete() is True
        assert conversation.delete() is False
        assert conversation.state.is_deleted is True
        assert conversation.state.deleted_at is not None
        assert len(conversation.state.turns) == 2
        assert isinstance(conversation.domain_events[-1], ConversationDeletedDomainEvent)


class TestTurnSerialization:
    """Test Turn and ContentPart persistence shapes."""

    def test_user_turn_with_parts_round_trips(self) -> None:
        """Test multi-part content survives serialization."""
        turn = Turn.user(
            "Describe this",
            content=[
                ContentPart.text_part("Describe this"),
                ContentPart.image_part("https://files/cat.png", "image/png"),
                ContentPart.file_part("https://files/doc.pdf", "application/pdf", "doc.pdf"),
            ],
        )

        restored = Turn.from_dict(turn.to_dict())

        assert restored.role == TurnRole.USER
        assert restored.text == "Describe this"
        assert [p.type for p in restored.content or []] == [ContentPartType.TEXT, ContentPartType.IMAGE, ContentPartType.FILE]
        assert restored.content[2].filename == "doc.pdf"

    def test_optional_fields_omitted(self) -> None:
        data = Turn.assistant("Hi").to_dict()

        assert set(data) == {"role", "text", "created_at"}

    def test_tool_result_keeps_null_result(self) -> None:
        data = Turn.tool_result("lookup", "call_1", None).to_dict()

        assert data["result"] is None
        assert data["tool_call_id"] == "call_1"
