"""Chat service: the streaming conversation orchestrator.

A prompt request runs in two phases:

1. ``prepare_async`` validates the request, resolves the generation
   capability, loads the conversation and builds messages and tools. Every
   failure here is raised before a single frame is sent, so the HTTP layer
   can still answer 400/403/404. ``None`` means no model is available and
   the caller gets the demo stream.
2. ``stream_async`` drives the step runner through the streaming step
   engine and yields caller frames. The transcript is committed once, also
   when the caller goes away, and the request log is always written.

Remix, summarize and translate are single-shot completions over the same
resolved capability.
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any

from neuroglia.hosting.abstractions import ApplicationBuilderBase
from opentelemetry import trace

from application.agents.llm_provider import LlmMessage, LlmProvider
from application.agents.step_runner import StepRunner
from application.services.message_builder import BuiltPrompt, MessageBuilder
from application.services.model_resolver import ModelResolver, ResolvedModel
from application.services.prompts import CONTENT_SUMMARY_PROMPT, REMIX_PROMPT, TRANSLATION_PROMPT, TemperaturePresets
from application.services.request_logger import RequestLogger
from application.services.stream_engine import DoneFrame, ErrorFrame, StreamingStepEngine
from application.services.tool_aggregator import ToolAggregator, ToolRequestContext
from application.services.transcript_persister import TranscriptPersister
from application.settings import Settings
from domain.models.attachment import Attachment
from domain.models.request_log import RequestType
from domain.models.tool import ToolDescriptor
from domain.repositories.conversation_repository import ConversationRepository
from observability.metrics import demo_responses, prompts_submitted, stream_duration, stream_errors

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DEFAULT_MAX_STEPS_WITH_TOOLS = 5


class PromptValidationError(ValueError):
    """Raised when a prompt request is rejected before streaming."""


@dataclass
class PromptRequest:
    """A caller's prompt submission."""

    prompt: str
    conversation_id: str | None = None
    system_prompt: str | None = None
    attachments: list[Attachment] = field(default_factory=list)


@dataclass
class PreparedPrompt:
    """Everything the streaming phase needs, resolved before the first frame."""

    request: PromptRequest
    user_id: str
    model: ResolvedModel
    persister: TranscriptPersister
    built: BuiltPrompt
    tools: dict[str, ToolDescriptor] | None

    @property
    def conversation_id(self) -> str | None:
        return self.persister.conversation_id


class ChatService:
    """Orchestrates streamed prompts and single-shot text transforms for one request scope."""

    def __init__(
        self,
        conversation_repository: ConversationRepository,
        model_resolver: ModelResolver,
        tool_aggregator: ToolAggregator,
        request_logger: RequestLogger,
        settings: Settings,
        message_builder: MessageBuilder | None = None,
    ) -> None:
        """
        Initialize the chat service.

        Args:
            conversation_repository: Store for Conversation aggregates
            model_resolver: Chooses the generation capability per request
            tool_aggregator: Merges static, per-request and discovered tools
            request_logger: Best-effort request log writer
            settings: Application settings (demo text, prompts, step limits)
            message_builder: Converts transcripts into model messages
        """
        self._conversation_repository = conversation_repository
        self._model_resolver = model_resolver
        self._tool_aggregator = tool_aggregator
        self._request_logger = request_logger
        self._settings = settings
        self._message_builder = message_builder or MessageBuilder()

    # =========================================================================
    # Streaming prompt
    # =========================================================================

    async def prepare_async(self, request: PromptRequest, user_id: str, api_key: str | None = None) -> PreparedPrompt | None:
        """Resolve everything a streamed prompt needs.

        Args:
            request: The prompt submission
            user_id: The authenticated caller
            api_key: Optional caller-supplied credential

        Returns:
            The prepared prompt, or None when no model is available (demo mode)

        Raises:
            PromptValidationError: The prompt is empty
            ConversationNotFoundError: The conversation id is unknown or deleted
            ConversationAccessDeniedError: The conversation belongs to another user
        """
        if not request.prompt or not request.prompt.strip():
            raise PromptValidationError("Prompt is required")

        resolved = self._model_resolver.resolve(api_key)
        if resolved is None:
            return None

        with tracer.start_as_current_span("chat.prepare") as span:
            span.set_attribute("chat.model", resolved.model_id)
            span.set_attribute("chat.request_scoped_model", resolved.request_scoped)
            persister = TranscriptPersister(self._conversation_repository)
            system_prompt = request.system_prompt or self._settings.default_system_prompt
            context = ToolRequestContext(user_id=user_id, resolve_conversation_id=lambda: persister.conversation_id)

            async def load_and_build() -> BuiltPrompt:
                conversation = await persister.load_async(user_id, request.conversation_id)
                return self._message_builder.build(conversation.get_turns(), request.prompt, request.attachments, system_prompt)

            try:
                built, tools = await asyncio.gather(
                    load_and_build(),
                    self._tool_aggregator.aggregate_async(resolved.model_id, context),
                )
                await persister.open_async(built.user_turn)
            except BaseException:
                await self._release_model_async(resolved)
                raise

            span.set_attribute("chat.conversation_id", persister.conversation_id or "")
            span.set_attribute("chat.tools", len(tools) if tools else 0)

        prompts_submitted.add(1, {"model": resolved.model_id, "has_tools": tools is not None})
        logger.info(f"Prepared prompt for user {user_id} in conversation {persister.conversation_id} (model={resolved.model_id}, tools={len(tools) if tools else 0})")
        return PreparedPrompt(request=request, user_id=user_id, model=resolved, persister=persister, built=built, tools=tools)

    async def stream_async(self, prepared: PreparedPrompt) -> AsyncIterator[dict[str, Any]]:
        """Stream caller frames for a prepared prompt.

        Yields:
            JSON-ready frame dicts, ending with ``{"done": true, "historyId": ...}``
            or, when the transcript cannot be saved, with an ``{"error": ...}`` frame.
        """
        persister = prepared.persister
        engine = StreamingStepEngine(prepared.model.model_id, turn_sink=persister.stage)
        runner = StepRunner(
            prepared.model.provider,
            tools=prepared.tools,
            max_steps=self._max_steps(prepared.tools),
            tool_choice=self._settings.tool_choice,
        )
        started = time.monotonic()
        last_error: str | None = None

        # Not the current span: the generator suspends between frames.
        span = tracer.start_span("chat.stream", attributes={"chat.conversation_id": prepared.conversation_id or ""})
        try:
            try:
                async with aclosing(engine.run(runner.run(prepared.built.messages))) as frames:
                    async for frame in frames:
                        if isinstance(frame, ErrorFrame):
                            last_error = frame.error
                            stream_errors.add(1, {"stage": "generation"})
                        yield frame.to_dict()
            finally:
                commit_error = await self._finalize_transcript_async(engine, persister)

            if commit_error is not None:
                last_error = commit_error
                stream_errors.add(1, {"stage": "persistence"})
                yield ErrorFrame(error=commit_error).to_dict()
            else:
                yield DoneFrame(history_id=persister.conversation_id).to_dict()
        finally:
            elapsed_ms = int((time.monotonic() - started) * 1000)
            span.set_attribute("chat.outcome", engine.state.value)
            span.end()
            stream_duration.record(elapsed_ms, {"model": prepared.model.model_id, "outcome": engine.state.value})
            await self._release_model_async(prepared.model)
            await self._request_logger.log_async(
                model=prepared.model.model_id,
                request_type=RequestType.GENERAL,
                prompt=prepared.request.prompt,
                response=engine.full_response or None,
                response_time_ms=elapsed_ms,
                tokens_used=engine.usage,
                error=last_error,
                user_id=prepared.user_id,
                metadata={
                    "conversation_id": prepared.conversation_id,
                    "attachments": len(prepared.request.attachments),
                    "tools": sorted(prepared.tools) if prepared.tools else [],
                    "outcome": engine.state.value,
                },
            )

    async def demo_stream(self) -> AsyncIterator[dict[str, Any]]:
        """Frames sent when no generation capability is available. Nothing is persisted."""
        demo_responses.add(1)
        yield {"text": self._settings.demo_response}
        yield DoneFrame().to_dict()

    # =========================================================================
    # Single-shot text transforms
    # =========================================================================

    async def remix_async(self, text: str, user_id: str | None = None, api_key: str | None = None) -> str:
        """Reword text while preserving meaning."""
        return await self._complete_async(REMIX_PROMPT, text, RequestType.REMIX, TemperaturePresets.BALANCED, user_id, api_key)

    async def summarize_async(self, text: str, user_id: str | None = None, api_key: str | None = None) -> str:
        """Summarize text in two paragraphs."""
        return await self._complete_async(CONTENT_SUMMARY_PROMPT, text, RequestType.SUMMARIZATION, TemperaturePresets.LOW, user_id, api_key)

    async def translate_async(
        self,
        text: str,
        target_language: str,
        source_language: str = "the detected source language",
        user_id: str | None = None,
        api_key: str | None = None,
    ) -> str:
        """Translate text into ``target_language``."""
        system_prompt = TRANSLATION_PROMPT.format(source_language=source_language, target_language=target_language)
        return await self._complete_async(
            system_prompt,
            text,
            RequestType.TRANSLATION,
            TemperaturePresets.LOW,
            user_id,
            api_key,
            metadata={"target_language": target_language},
        )

    async def _complete_async(
        self,
        system_prompt: str,
        text: str,
        request_type: RequestType,
        temperature: float,
        user_id: str | None,
        api_key: str | None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        if not text or not text.strip():
            raise PromptValidationError("Text is required")

        resolved = self._model_resolver.resolve(api_key)
        if resolved is None:
            demo_responses.add(1, {"request_type": request_type.value})
            return self._settings.demo_response

        started = time.monotonic()
        response = None
        error = None
        usage = None
        try:
            with tracer.start_as_current_span(f"chat.{request_type.value}") as span:
                span.set_attribute("chat.model", resolved.model_id)
                result = await resolved.provider.chat([LlmMessage.system(system_prompt), LlmMessage.user(text)], temperature=temperature)
                response = result.content
                usage = result.usage
            return response
        except Exception as e:
            error = str(e)
            raise
        finally:
            await self._release_model_async(resolved)
            await self._request_logger.log_async(
                model=resolved.model_id,
                request_type=request_type,
                prompt=text,
                response=response,
                response_time_ms=int((time.monotonic() - started) * 1000),
                tokens_used=usage,
                error=error,
                user_id=user_id,
                metadata=metadata,
            )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _max_steps(self, tools: dict[str, ToolDescriptor] | None) -> int:
        if self._settings.max_steps is not None:
            return self._settings.max_steps
        return DEFAULT_MAX_STEPS_WITH_TOOLS if tools else 1

    async def _finalize_transcript_async(self, engine: StreamingStepEngine, persister: TranscriptPersister) -> str | None:
        """Stage the assistant turn and commit once. Returns the error message on failure."""
        if not engine.is_closed:
            logger.info(f"Stream for conversation {persister.conversation_id} closed before completion; saving partial transcript")
            engine.fail("Stream closed before completion")
        if engine.assistant_turn is not None:
            persister.stage(engine.assistant_turn)
        try:
            await persister.commit_async()
        except Exception as e:
            logger.error(f"Failed to save conversation {persister.conversation_id}: {e}", exc_info=True)
            return f"Failed to save conversation: {e}"
        return None

    @staticmethod
    async def _release_model_async(resolved: ResolvedModel) -> None:
        if not resolved.request_scoped:
            return
        try:
            await resolved.provider.close()
        except Exception as e:
            logger.warning(f"Failed to close request-scoped provider: {e}")

    @staticmethod
    def configure(builder: ApplicationBuilderBase) -> None:
        """
        Configure ChatService as a scoped service in the DI container.

        ChatService is scoped because the conversation repository is scoped.
        The generation capabilities, the connection manager and the request
        log repository are optional singletons.

        Args:
            builder: The application builder
        """
        from application.settings import app_settings
        from application.tools import create_request_tool_factory, create_static_tools
        from domain.repositories.request_log_repository import RequestLogRepository
        from infrastructure.llm_provider_factory import LlmProviderFactory
        from infrastructure.mcp.connection_manager import McpConnectionManager

        def create_chat_service(sp) -> ChatService:
            repository = sp.get_required_service(ConversationRepository)
            factory = sp.get_service(LlmProviderFactory)
            manager = sp.get_service(McpConnectionManager)
            builtin = app_settings.builtin_tools_enabled
            return ChatService(
                conversation_repository=repository,
                model_resolver=ModelResolver(
                    default_provider=sp.get_service(LlmProvider),
                    provider_factory=factory.create_for_api_key if factory is not None else None,
                ),
                tool_aggregator=ToolAggregator(
                    static_tools=create_static_tools() if builtin else None,
                    request_tool_factory=create_request_tool_factory(repository) if builtin else None,
                    connection_manager=manager if manager is not None and manager.has_providers else None,
                    tool_incapable_marker=app_settings.tool_incapable_model_marker,
                ),
                request_logger=RequestLogger(sp.get_service(RequestLogRepository), app_settings.request_log_max_text_length),
                settings=app_settings,
            )

        builder.services.add_scoped(ChatService, implementation_factory=create_chat_service)
        logger.info("Configured ChatService as scoped service")
