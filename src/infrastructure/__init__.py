"""Infrastructure layer: generation adapters, tool-provider connections and storage."""

from .adapters import OpenAiLlmProvider
from .file_system_attachment_store import FileSystemAttachmentStore
from .llm_provider_factory import LlmProviderFactory
from .repositories import InMemoryConversationRepository

__all__ = [
    "OpenAiLlmProvider",
    "LlmProviderFactory",
    "FileSystemAttachmentStore",
    "InMemoryConversationRepository",
]
