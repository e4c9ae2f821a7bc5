"""LLM Provider Factory for request-scoped capabilities.

A caller may send their own API key with a request. The factory turns that
key into a fresh OpenAiLlmProvider that shares the configured endpoint and
model but authenticates with the caller's key. Request-scoped providers are
owned by the request and closed when it ends.

Usage:
    factory = LlmProviderFactory(template_config)
    provider = factory.create_for_api_key("sk-caller-key")
"""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING

import httpx

from application.agents.llm_provider import LlmConfig, LlmProvider
from infrastructure.adapters.openai_llm_provider import OpenAiLlmProvider

if TYPE_CHECKING:
    from neuroglia.hosting.abstractions import ApplicationBuilderBase

logger = logging.getLogger(__name__)


class LlmProviderFactory:
    """Factory for request-scoped generation capabilities."""

    def __init__(self, template: LlmConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Initialize the factory.

        Args:
            template: Configuration copied into every created provider (api_key replaced)
            transport: Optional httpx transport handed to created providers
        """
        self._template = template
        self._transport = transport

    @property
    def model(self) -> str:
        return self._template.model

    def create_for_api_key(self, api_key: str) -> LlmProvider:
        """Create a provider authenticated with a caller-supplied key.

        Args:
            api_key: The caller's API key

        Returns:
            A new provider the caller must close
        """
        logger.debug(f"Creating request-scoped provider for model {self._template.model}")
        return OpenAiLlmProvider(replace(self._template, api_key=api_key), transport=self._transport)

    @staticmethod
    def configure(builder: "ApplicationBuilderBase") -> "LlmProviderFactory | None":
        """Configure LlmProviderFactory in the service collection.

        Args:
            builder: The application builder

        Returns:
            Configured factory, or None when request keys are disabled
        """
        from application.settings import app_settings

        if not app_settings.allow_request_api_keys:
            logger.info("Request-scoped API keys are disabled (allow_request_api_keys=False)")
            return None

        template = LlmConfig(
            model=app_settings.openai_model,
            temperature=app_settings.openai_temperature,
            max_tokens=app_settings.openai_max_tokens,
            timeout=app_settings.openai_timeout,
            base_url=app_settings.openai_api_endpoint,
        )
        factory = LlmProviderFactory(template)
        builder.services.add_singleton(LlmProviderFactory, singleton=factory)
        logger.info(f"✅ Configured LlmProviderFactory for request-scoped keys (model={template.model})")
        return factory

