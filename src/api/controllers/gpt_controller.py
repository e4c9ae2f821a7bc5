"""GPT API controller: streamed prompts, text transforms and conversation history.

Provides endpoints for:
- Submitting a prompt and streaming the reply as Server-Sent Events
- Remixing, summarizing and translating text
- Listing, reading, renaming and deleting the caller's conversations
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any, Literal

from classy_fastapi.decorators import delete, get, post, put
from fastapi import Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse
from neuroglia.dependency_injection import ServiceProviderBase
from neuroglia.mapping import Mapper
from neuroglia.mediation import Mediator
from neuroglia.mvc import ControllerBase
from pydantic import BaseModel, ConfigDict, Field

from api.dependencies import get_chat_service, get_current_user, get_request_api_key
from application.agents.llm_provider import LlmProviderError
from application.commands import DeleteConversationCommand, RenameConversationCommand
from application.queries import GetConversationQuery, GetConversationsQuery
from application.services.chat_service import ChatService, PromptRequest, PromptValidationError
from domain.exceptions import ConversationAccessDeniedError, ConversationNotFoundError
from domain.models.attachment import Attachment

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}

# ============================================================================
# REQUEST MODELS
# ============================================================================


class AttachmentModel(BaseModel):
    """An attachment referenced by a prompt."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["image", "file"]
    url: str = Field(..., min_length=1)
    mime_type: str = Field(..., alias="mimeType", min_length=1)
    filename: str | None = None


class PromptRequestModel(BaseModel):
    """Request body for a streamed prompt."""

    model_config = ConfigDict(populate_by_name=True)

    prompt: str = Field(..., description="The user prompt")
    history_id: str | None = Field(default=None, alias="historyId", description="Conversation to continue; omit to start a new one")
    system_prompt: str | None = Field(default=None, alias="systemPrompt", description="Overrides the default system prompt")
    attachments: list[AttachmentModel] = Field(default_factory=list)

    def to_prompt_request(self) -> PromptRequest:
        return PromptRequest(
            prompt=self.prompt,
            conversation_id=self.history_id,
            system_prompt=self.system_prompt,
            attachments=[Attachment(type=a.type, url=a.url, mime_type=a.mime_type, filename=a.filename) for a in self.attachments],
        )


class TextRequest(BaseModel):
    """Request body for remix and summarize."""

    text: str = Field(..., description="The text to transform")


class TranslateRequest(BaseModel):
    """Request body for translate."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., description="The text to translate")
    target_language: str = Field(..., alias="targetLanguage", min_length=1)
    source_language: str | None = Field(default=None, alias="sourceLanguage")


class RenameConversationRequest(BaseModel):
    """Request body for renaming a conversation."""

    title: str = Field(..., min_length=1, max_length=200, description="New conversation title")


def _encode_sse(frame: dict[str, Any]) -> str:
    return f"data: {json.dumps(frame, default=str)}\n\n"


async def _sse_stream(frames: AsyncIterator[dict[str, Any]]) -> AsyncIterator[str]:
    async for frame in frames:
        yield _encode_sse(frame)


class GptController(ControllerBase):
    """Controller for the conversational model endpoints.

    All endpoints require a JWT bearer token. A caller may supply their own
    model credential in the ``x-ai-api-key`` header.
    """

    def __init__(self, service_provider: ServiceProviderBase, mapper: Mapper, mediator: Mediator):
        super().__init__(service_provider, mapper, mediator)

    # =========================================================================
    # STREAMED PROMPT
    # =========================================================================

    @post("/prompt")
    async def submit_prompt(
        self,
        body: PromptRequestModel,
        user: dict = Depends(get_current_user),
        chat_service: ChatService = Depends(get_chat_service),
        api_key: str | None = Depends(get_request_api_key),
    ) -> StreamingResponse:
        """
        Submit a prompt and stream the reply.

        **Output:** ``text/event-stream`` of ``data: {json}`` frames:
        - `{text}`: released model text
        - `{toolCall: {toolName, toolCallId, args}}` / `{toolResult: {toolName, toolCallId, result}}`
        - `{image: {mimeType, url}}` / `{file: {filename, mimeType, url}}`
        - `{error}`: a problem during generation; the stream may continue
        - `{done: true, historyId}`: terminal frame

        Without a usable model the stream is a single demo `{text}` then `{done: true}`.
        """
        try:
            prepared = await chat_service.prepare_async(body.to_prompt_request(), user["user_id"], api_key)
        except PromptValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except ConversationNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message)
        except ConversationAccessDeniedError:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You don't have access to this conversation")

        if prepared is None:
            logger.info(f"No model available for user {user['user_id']}; sending demo response")
            return StreamingResponse(_sse_stream(chat_service.demo_stream()), media_type="text/event-stream", headers=SSE_HEADERS)

        return StreamingResponse(_sse_stream(chat_service.stream_async(prepared)), media_type="text/event-stream", headers=SSE_HEADERS)

    # =========================================================================
    # TEXT TRANSFORMS
    # =========================================================================

    @post("/remix")
    async def remix(
        self,
        body: TextRequest,
        user: dict = Depends(get_current_user),
        chat_service: ChatService = Depends(get_chat_service),
        api_key: str | None = Depends(get_request_api_key),
    ) -> dict[str, str]:
        """Reword text to sound more natural while keeping its meaning."""
        return {"text": await self._transform(chat_service.remix_async(body.text, user["user_id"], api_key))}

    @post("/summarize")
    async def summarize(
        self,
        body: TextRequest,
        user: dict = Depends(get_current_user),
        chat_service: ChatService = Depends(get_chat_service),
        api_key: str | None = Depends(get_request_api_key),
    ) -> dict[str, str]:
        """Summarize text in two paragraphs."""
        return {"text": await self._transform(chat_service.summarize_async(body.text, user["user_id"], api_key))}

    @post("/translate")
    async def translate(
        self,
        body: TranslateRequest,
        user: dict = Depends(get_current_user),
        chat_service: ChatService = Depends(get_chat_service),
        api_key: str | None = Depends(get_request_api_key),
    ) -> dict[str, str]:
        """Translate text into the target language."""
        kwargs: dict[str, Any] = {"user_id": user["user_id"], "api_key": api_key}
        if body.source_language:
            kwargs["source_language"] = body.source_language
        return {"text": await self._transform(chat_service.translate_async(body.text, body.target_language, **kwargs))}

    @staticmethod
    async def _transform(operation) -> str:
        try:
            return await operation
        except PromptValidationError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
        except LlmProviderError as e:
            logger.error(f"Text transform failed: {e.message} ({e.error_code})")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    # =========================================================================
    # CONVERSATION HISTORY
    # =========================================================================

    @get("/histories")
    async def list_histories(
        self,
        limit: int | None = Query(default=None, ge=1, le=100, description="Maximum number of conversations"),
        user: dict = Depends(get_current_user),
    ) -> Any:
        """List the caller's conversations, most recently updated first."""
        return self.process(await self.mediator.execute_async(GetConversationsQuery(user_id=user["user_id"], limit=limit)))

    @get("/histories/{history_id}")
    async def get_history(self, history_id: str, user: dict = Depends(get_current_user)) -> Any:
        """Get one conversation with its turns."""
        return self.process(await self.mediator.execute_async(GetConversationQuery(conversation_id=history_id, user_id=user["user_id"])))

    @put("/histories/{history_id}")
    async def rename_history(self, history_id: str, body: RenameConversationRequest, user: dict = Depends(get_current_user)) -> Any:
        """Rename a conversation."""
        command = RenameConversationCommand(conversation_id=history_id, title=body.title, user_id=user["user_id"])
        return self.process(await self.mediator.execute_async(command))

    @delete("/histories/{history_id}")
    async def delete_history(self, history_id: str, user: dict = Depends(get_current_user)) -> Any:
        """Soft-delete a conversation."""
        return self.process(await self.mediator.execute_async(DeleteConversationCommand(conversation_id=history_id, user_id=user["user_id"])))
