"""Selects the generation capability for a request."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from application.agents.llm_provider import LlmProvider

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[str], LlmProvider]


@dataclass(frozen=True)
class ResolvedModel:
    """A usable capability and whether the request owns (and must close) it."""

    provider: LlmProvider
    request_scoped: bool = False

    @property
    def model_id(self) -> str:
        return self.provider.model


class ModelResolver:
    """Chooses between a caller-supplied credential and the configured default.

    Priority:
    1. Caller credential, when a provider factory is configured: a fresh request-scoped provider
    2. The configured default provider
    3. None, meaning no model is available (demo mode)
    """

    def __init__(self, default_provider: LlmProvider | None = None, provider_factory: ProviderFactory | None = None) -> None:
        self._default_provider = default_provider
        self._provider_factory = provider_factory

    def resolve(self, api_key: str | None = None) -> ResolvedModel | None:
        if api_key and self._provider_factory is not None:
            logger.debug("Using request-scoped provider from caller credential")
            return ResolvedModel(provider=self._provider_factory(api_key), request_scoped=True)
        if self._default_provider is not None:
            return ResolvedModel(provider=self._default_provider)
        logger.debug("No generation capability available")
        return None
