"""OpenAI LLM Provider implementation.

This module provides the OpenAI implementation of the LlmProvider interface,
for the OpenAI API and compatible chat-completions endpoints.

Features:
- Streaming and non-streaming chat completions
- Multi-part user content (text, image URLs, file references)
- Tool/function calling with a configurable tool_choice
- Generated images reported in streamed deltas (``delta.images``)
- OpenTelemetry tracing
"""

import json
import logging
import re
from typing import TYPE_CHECKING, Any, AsyncIterator
from uuid import uuid4

import httpx
from neuroglia.hosting.abstractions import HostedService
from opentelemetry import trace

from application.agents.llm_provider import (
    LlmConfig,
    LlmContentPart,
    LlmGeneratedFile,
    LlmMessage,
    LlmMessageRole,
    LlmProvider,
    LlmProviderError,
    LlmProviderType,
    LlmResponse,
    LlmStreamChunk,
    LlmToolCall,
    LlmToolDefinition,
)
from domain.models.request_log import TokenUsage

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

_DATA_URL_PATTERN = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+);base64,(?P<data>.+)$", re.DOTALL)


class OpenAiLlmProvider(LlmProvider):
    """OpenAI implementation of the LLM provider interface.

    Usage:
        config = LlmConfig(
            model="gpt-4o-mini",
            base_url="https://api.openai.com/v1",
            api_key="sk-xxx",  # pragma: allowlist secret
        )
        provider = OpenAiLlmProvider(config)
        response = await provider.chat([LlmMessage.user("Hello!")])
    """

    PROVIDER_NAME = "openai"

    def __init__(self, config: LlmConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize the OpenAI provider.

        Args:
            config: LLM configuration
            transport: Optional httpx transport (used to inject a mock transport)
        """
        super().__init__(config)
        self._base_url = (config.base_url or "https://api.openai.com/v1").rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def provider_type(self) -> LlmProviderType:
        """Get the provider type identifier."""
        return LlmProviderType.OPENAI

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._config.timeout,
                transport=self._transport,
            )
        return self._client

    def _get_auth_headers(self) -> dict[str, str]:
        if not self._config.api_key:
            raise LlmProviderError(
                message="API key authentication requires api_key",
                error_code="openai_auth_config_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        return {"Authorization": f"Bearer {self._config.api_key}", "Content-Type": "application/json"}

    @staticmethod
    def _convert_part(part: LlmContentPart) -> dict[str, Any]:
        if part.type == "image":
            return {"type": "image_url", "image_url": {"url": part.url}}
        if part.type == "file":
            name = part.filename or "attachment"
            return {"type": "text", "text": f"[Attached file: {name} ({part.mime_type}) {part.url}]"}
        return {"type": "text", "text": part.text or ""}

    def _convert_messages(self, messages: list[LlmMessage]) -> list[dict[str, Any]]:
        """Convert LlmMessage list to OpenAI format.

        Args:
            messages: List of LlmMessage objects

        Returns:
            List of messages in OpenAI API format
        """
        openai_messages = []
        for msg in messages:
            content: Any
            if isinstance(msg.content, list):
                content = [self._convert_part(part) for part in msg.content]
            else:
                content = msg.content or ""
            openai_msg: dict[str, Any] = {"role": msg.role.value, "content": content}

            if msg.tool_calls:
                openai_msg["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                    }
                    for tc in msg.tool_calls
                ]

            if msg.role == LlmMessageRole.TOOL and msg.tool_call_id:
                openai_msg["tool_call_id"] = msg.tool_call_id
                if msg.name:
                    openai_msg["name"] = msg.name

            openai_messages.append(openai_msg)

        return openai_messages

    def _build_request_body(
        self,
        messages: list[LlmMessage],
        tools: list[LlmToolDefinition] | None,
        stream: bool,
        tool_choice: str | None = None,
        temperature: float | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "temperature": self._config.temperature if temperature is None else temperature,
            "stream": stream,
        }

        if stream:
            body["stream_options"] = {"include_usage": True}

        if self._config.max_tokens:
            body["max_tokens"] = self._config.max_tokens

        if tools:
            body["tools"] = [tool.to_openai_format() for tool in tools]
            body["tool_choice"] = tool_choice or "auto"

        return body

    @staticmethod
    def _parse_usage(usage: dict[str, Any] | None) -> TokenUsage | None:
        if not usage:
            return None
        return TokenUsage(
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            total_tokens=usage.get("total_tokens", 0),
        )

    @staticmethod
    def _parse_generated_images(images: list[dict[str, Any]] | None) -> list[LlmGeneratedFile]:
        """Extract base64 images from ``images`` entries carrying data URLs."""
        files = []
        for image in images or []:
            url = (image.get("image_url") or {}).get("url", "")
            match = _DATA_URL_PATTERN.match(url)
            if match:
                files.append(LlmGeneratedFile(mime_type=match.group("mime"), base64=match.group("data")))
        return files

    async def chat(
        self,
        messages: list[LlmMessage],
        tools: list[LlmToolDefinition] | None = None,
        temperature: float | None = None,
    ) -> LlmResponse:
        """Send a chat completion request to OpenAI.

        Raises:
            LlmProviderError: If API call fails
        """
        client = await self._get_client()

        with tracer.start_as_current_span("openai.chat") as span:
            span.set_attribute("llm.model", self.model)
            span.set_attribute("llm.message_count", len(messages))
            try:
                body = self._build_request_body(messages, tools, stream=False, temperature=temperature)
                response = await client.post("/chat/completions", json=body, headers=self._get_auth_headers())
                if response.status_code != 200:
                    raise self._handle_http_error_from_status(response.status_code, response.text)
                data = response.json()

                choice = (data.get("choices") or [{}])[0]
                message = choice.get("message", {})
                tool_calls = None
                if message.get("tool_calls"):
                    tool_calls = self._parse_tool_calls(message["tool_calls"])

                return LlmResponse(
                    content=message.get("content") or "",
                    tool_calls=tool_calls,
                    finish_reason=choice.get("finish_reason") or "stop",
                    usage=self._parse_usage(data.get("usage")),
                )
            except LlmProviderError:
                span.set_attribute("error", True)
                raise
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                raise self._wrap_transport_error(e)

    async def chat_stream(
        self,
        messages: list[LlmMessage],
        tools: list[LlmToolDefinition] | None = None,
        tool_choice: str | None = None,
    ) -> AsyncIterator[LlmStreamChunk]:
        """Send a streaming chat completion request to OpenAI.

        Yields:
            Streaming chunks; the last one has ``done=True``

        Raises:
            LlmProviderError: If API call fails
        """
        client = await self._get_client()

        with tracer.start_as_current_span("openai.chat_stream") as span:
            span.set_attribute("llm.model", self.model)
            span.set_attribute("llm.message_count", len(messages))
            span.set_attribute("llm.tool_count", len(tools) if tools else 0)

            try:
                headers = self._get_auth_headers()
                headers["Accept"] = "text/event-stream"
                body = self._build_request_body(messages, tools, stream=True, tool_choice=tool_choice)

                logger.info(f"🔧 OpenAI stream request: model={self.model}, messages={len(messages)}, tools={len(tools) if tools else 0}")

                async with client.stream("POST", "/chat/completions", json=body, headers=headers) as response:
                    if response.status_code != 200:
                        error_text = (await response.aread()).decode("utf-8", errors="replace")
                        logger.error(f"OpenAI HTTP error: {response.status_code} - {error_text}")
                        raise self._handle_http_error_from_status(response.status_code, error_text)

                    accumulated_tool_calls: dict[int, dict[str, Any]] = {}
                    finish_reason: str | None = None
                    usage: TokenUsage | None = None

                    async for line in response.aiter_lines():
                        if not line.startswith("data: "):
                            continue

                        data_str = line[6:]
                        if data_str.strip() == "[DONE]":
                            break

                        try:
                            chunk = json.loads(data_str)
                        except json.JSONDecodeError:
                            logger.warning(f"Failed to parse OpenAI chunk: {data_str}")
                            continue

                        if chunk.get("error"):
                            message = self._parse_stream_error(chunk["error"])
                            logger.warning(f"OpenAI reported a mid-stream error: {message}")
                            yield LlmStreamChunk(error=message)
                            continue

                        if chunk.get("usage"):
                            usage = self._parse_usage(chunk["usage"])

                        choices = chunk.get("choices") or []
                        if not choices:
                            continue

                        delta = choices[0].get("delta") or {}
                        content = delta.get("content") or ""
                        files = self._parse_generated_images(delta.get("images"))
                        if content or files:
                            yield LlmStreamChunk(content=content, files=files)

                        for tc_delta in delta.get("tool_calls") or []:
                            self._accumulate_tool_call(accumulated_tool_calls, tc_delta)

                        if choices[0].get("finish_reason"):
                            finish_reason = choices[0]["finish_reason"]

                    tool_calls = self._parse_accumulated_tool_calls(accumulated_tool_calls) if accumulated_tool_calls else None
                    if tool_calls:
                        finish_reason = "tool_calls"
                        logger.info(f"✅ OpenAI returned {len(tool_calls)} tool_calls")
                    span.set_attribute("llm.finish_reason", finish_reason or "stop")
                    yield LlmStreamChunk(done=True, tool_calls=tool_calls, finish_reason=finish_reason or "stop", usage=usage)

            except LlmProviderError:
                span.set_attribute("error", True)
                raise
            except httpx.HTTPError as e:
                span.set_attribute("error", True)
                raise self._wrap_transport_error(e)

    @staticmethod
    def _parse_stream_error(error: Any) -> str:
        if isinstance(error, dict):
            return str(error.get("message") or error.get("code") or "Unknown provider error")
        return str(error)

    @staticmethod
    def _accumulate_tool_call(accumulated: dict[int, dict[str, Any]], tc_delta: dict[str, Any]) -> None:
        """Merge one streamed tool call fragment into the accumulator (keyed by index)."""
        idx = tc_delta.get("index", 0)
        if idx not in accumulated:
            accumulated[idx] = {"id": "", "function": {"name": "", "arguments": ""}}
        if tc_delta.get("id"):
            accumulated[idx]["id"] = tc_delta["id"]
        func_delta = tc_delta.get("function") or {}
        if func_delta.get("name"):
            accumulated[idx]["function"]["name"] += func_delta["name"]
        if func_delta.get("arguments"):
            accumulated[idx]["function"]["arguments"] += func_delta["arguments"]

    def _parse_tool_calls(self, openai_tool_calls: list[dict[str, Any]]) -> list[LlmToolCall]:
        return self._parse_accumulated_tool_calls(dict(enumerate(openai_tool_calls)))

    @staticmethod
    def _parse_accumulated_tool_calls(accumulated: dict[int, dict[str, Any]]) -> list[LlmToolCall]:
        """Parse accumulated tool call chunks into LlmToolCall objects."""
        tool_calls = []
        for idx in sorted(accumulated.keys()):
            tc = accumulated[idx]
            func = tc.get("function", {})
            arguments = func.get("arguments") or "{}"

            if isinstance(arguments, str):
                try:
                    arguments = json.loads(arguments)
                except json.JSONDecodeError:
                    logger.warning(f"Malformed tool call arguments for {func.get('name')}: {arguments}")
                    arguments = {}

            tool_calls.append(
                LlmToolCall(
                    id=tc.get("id") or str(uuid4()),
                    name=func.get("name", ""),
                    arguments=arguments,
                )
            )
        return tool_calls

    def _wrap_transport_error(self, e: httpx.HTTPError) -> LlmProviderError:
        if isinstance(e, httpx.ConnectError):
            logger.error(f"Cannot connect to OpenAI at {self._base_url}: {e}")
            return LlmProviderError(
                message="Cannot connect to OpenAI service",
                error_code="openai_unavailable",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
                details={"url": self._base_url},
            )
        if isinstance(e, httpx.TimeoutException):
            logger.error(f"OpenAI request timed out: {e}")
            return LlmProviderError(
                message="OpenAI request timed out",
                error_code="openai_timeout",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
            )
        logger.error(f"OpenAI request error: {e}")
        return LlmProviderError(
            message=f"Failed to communicate with OpenAI: {e}",
            error_code="openai_request_error",
            provider=self.PROVIDER_NAME,
            is_retryable=True,
        )

    def _handle_http_error_from_status(self, status_code: int, error_text: str) -> LlmProviderError:
        """Handle HTTP errors by status code.

        Args:
            status_code: HTTP status code
            error_text: Error response text

        Returns:
            Appropriate LlmProviderError
        """
        try:
            error_detail = json.loads(error_text).get("error", {}).get("message", error_text[:200])
        except (json.JSONDecodeError, AttributeError):
            error_detail = error_text[:200]

        if status_code == 401:
            return LlmProviderError(
                message="OpenAI authentication failed. Check your API key.",
                error_code="openai_auth_error",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        elif status_code == 403:
            return LlmProviderError(
                message="Access denied to OpenAI API. Check your permissions.",
                error_code="openai_forbidden",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
            )
        elif status_code == 404:
            return LlmProviderError(
                message=f"Model '{self.model}' not found or endpoint not available",
                error_code="openai_model_not_found",
                provider=self.PROVIDER_NAME,
                is_retryable=False,
                details={"model": self.model},
            )
        elif status_code == 429:
            return LlmProviderError(
                message="OpenAI rate limit exceeded. Please try again later.",
                error_code="openai_rate_limit",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
            )
        elif status_code >= 500:
            return LlmProviderError(
                message=f"OpenAI server error: {error_detail}",
                error_code="openai_server_error",
                provider=self.PROVIDER_NAME,
                is_retryable=True,
            )
        return LlmProviderError(
            message=f"OpenAI API error: {error_detail}",
            error_code="openai_api_error",
            provider=self.PROVIDER_NAME,
            is_retryable=False,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "OpenAiLlmProvider | None":
        """Configure the default OpenAiLlmProvider in the service collection.

        Args:
            builder: The application builder

        Returns:
            Configured provider or None if not enabled
        """
        from application.settings import app_settings

        if not app_settings.openai_enabled:
            logger.info("OpenAI provider is disabled (openai_enabled=False)")
            return None

        if not app_settings.openai_api_key:
            logger.warning("OpenAI provider enabled but no API key configured")
            return None

        config = LlmConfig(
            model=app_settings.openai_model,
            temperature=app_settings.openai_temperature,
            max_tokens=app_settings.openai_max_tokens,
            timeout=app_settings.openai_timeout,
            base_url=app_settings.openai_api_endpoint,
            api_key=app_settings.openai_api_key,
        )
        provider = OpenAiLlmProvider(config)
        builder.services.add_singleton(LlmProvider, singleton=provider)
        builder.services.add_singleton(HostedService, singleton=LlmProviderLifecycleService(provider))

        logger.info(f"✅ Configured OpenAiLlmProvider: model={app_settings.openai_model}")
        return provider


class LlmProviderLifecycleService(HostedService):
    """Closes the default provider's HTTP client when the application stops."""

    def __init__(self, provider: LlmProvider) -> None:
        self._provider = provider

    async def start_async(self) -> None:
        pass

    async def stop_async(self) -> None:
        await self._provider.close()
        logger.info("OpenAI provider HTTP client closed")
