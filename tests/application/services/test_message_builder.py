"""Tests for MessageBuilder."""

from application.agents.llm_provider import LlmMessageRole
from application.services.message_builder import MessageBuilder
from domain.models.attachment import Attachment
from domain.models.turn import ContentPartType, Turn


class TestBuildUserTurn:
    """Test user turn construction from a prompt and attachments."""

    def test_plain_prompt_has_no_parts(self) -> None:
        turn = MessageBuilder().build_user_turn("Hello")

        assert turn.text == "Hello"
        assert turn.content is None

    def test_attachments_follow_prompt_in_order(self) -> None:
        """Test the prompt text part comes first, then each attachment in order."""
        attachments = [
            Attachment(type="image", url="https://files/a.png", mime_type="image/png"),
            Attachment(type="file", url="https://files/b.pdf", mime_type="application/pdf", filename="b.pdf"),
        ]

        turn = MessageBuilder().build_user_turn("Compare these", attachments)

        assert [p.type for p in turn.content] == [ContentPartType.TEXT, ContentPartType.IMAGE, ContentPartType.FILE]
        assert turn.content[0].text == "Compare these"
        assert turn.content[2].filename == "b.pdf"


class TestBuildMessages:
    """Test transcript to message conversion."""

    def test_system_prompt_first_and_history_in_order(self) -> None:
        history = [Turn.user("Hi"), Turn.assistant("Hello!"), Turn.user("How are you?"), Turn.assistant("Fine.")]

        built = MessageBuilder().build(history, "And you?", system_prompt="Be brief.")

        assert [m.role for m in built.messages] == [
            LlmMessageRole.SYSTEM,
            LlmMessageRole.USER,
            LlmMessageRole.ASSISTANT,
            LlmMessageRole.USER,
            LlmMessageRole.ASSISTANT,
            LlmMessageRole.USER,
        ]
        assert built.messages[0].content == "Be brief."
        assert built.messages[-1].content == "And you?"
        assert built.user_turn.text == "And you?"

    def test_tool_turns_never_replayed(self) -> None:
        history = [
            Turn.user("What time is it?"),
            Turn.tool_call("get_current_time", "call_1", {}),
            Turn.tool_result("get_current_time", "call_1", {"iso": "2026-01-01T00:00:00"}),
            Turn.assistant("Midnight."),
        ]

        messages = MessageBuilder().build_messages(history)

        assert [m.role for m in messages] == [LlmMessageRole.USER, LlmMessageRole.ASSISTANT]

    def test_multipart_user_turn_becomes_parts(self) -> None:
        attachment = Attachment(type="image", url="https://files/cat.png", mime_type="image/png")

        built = MessageBuilder().build([], "What is this?", [attachment])

        message = built.messages[-1]
        assert message.is_multipart
        assert [p.type for p in message.content] == ["text", "image"]
        assert message.content[1].url == "https://files/cat.png"

    def test_build_is_deterministic(self) -> None:
        history = [Turn.user("Hi"), Turn.assistant("Hello!")]
        builder = MessageBuilder()

        first = builder.build(history, "Again", system_prompt="S")
        second = builder.build(history, "Again", system_prompt="S")

        assert first.messages == second.messages
