"""Builds the model-facing message list from a conversation transcript."""

from dataclasses import dataclass

from application.agents.llm_provider import LlmContentPart, LlmMessage, LlmMessageRole
from domain.models.attachment import Attachment
from domain.models.turn import ContentPart, Turn, TurnRole

_ROLE_MAP = {
    TurnRole.USER: LlmMessageRole.USER,
    TurnRole.ASSISTANT: LlmMessageRole.ASSISTANT,
    TurnRole.SYSTEM: LlmMessageRole.SYSTEM,
}


@dataclass
class BuiltPrompt:
    """Messages ready for the generation capability plus the user turn to append."""

    messages: list[LlmMessage]
    user_turn: Turn


class MessageBuilder:
    """Converts turns into LlmMessages.

    The conversion is pure: the same transcript, prompt and attachments
    always yield the same messages. Tool-call and tool-result turns are
    bookkeeping and are never replayed to the model.
    """

    def build_user_turn(self, prompt: str, attachments: list[Attachment] | None = None) -> Turn:
        """Create the user turn for a new prompt.

        The prompt becomes a text part followed by one image or file part per
        attachment, in order. Parts are only kept when there is more than one.
        """
        parts = [ContentPart.text_part(prompt)]
        for attachment in attachments or []:
            if attachment.is_image:
                parts.append(ContentPart.image_part(attachment.url, attachment.mime_type))
            else:
                parts.append(ContentPart.file_part(attachment.url, attachment.mime_type, attachment.filename))
        return Turn.user(prompt, content=parts if len(parts) > 1 else None)

    def to_message(self, turn: Turn) -> LlmMessage | None:
        """Map one turn to a message, or None for tool bookkeeping turns."""
        if turn.role in (TurnRole.TOOL_CALL, TurnRole.TOOL_RESULT):
            return None
        if turn.role == TurnRole.USER and turn.content:
            return LlmMessage.user([self._to_llm_part(part) for part in turn.content])
        return LlmMessage(role=_ROLE_MAP[turn.role], content=turn.text)

    def build_messages(self, turns: list[Turn], system_prompt: str | None = None) -> list[LlmMessage]:
        messages = [LlmMessage.system(system_prompt)] if system_prompt else []
        for turn in turns:
            message = self.to_message(turn)
            if message is not None:
                messages.append(message)
        return messages

    def build(
        self,
        history: list[Turn],
        prompt: str,
        attachments: list[Attachment] | None = None,
        system_prompt: str | None = None,
    ) -> BuiltPrompt:
        """Build the messages for a new prompt on top of an existing transcript.

        Args:
            history: Turns already in the conversation
            prompt: The new prompt text
            attachments: Optional attachments, in display order
            system_prompt: Optional system prompt placed first

        Returns:
            The messages (history, then the new prompt) and the new user turn
        """
        user_turn = self.build_user_turn(prompt, attachments)
        return BuiltPrompt(messages=self.build_messages([*history, user_turn], system_prompt), user_turn=user_turn)

    @staticmethod
    def _to_llm_part(part: ContentPart) -> LlmContentPart:
        return LlmContentPart(
            type=part.type.value,
            text=part.text,
            url=part.url,
            mime_type=part.mime_type,
            filename=part.filename,
        )
