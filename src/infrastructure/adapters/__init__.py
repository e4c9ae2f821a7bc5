"""Adapters to external generation capabilities."""

from .openai_llm_provider import OpenAiLlmProvider

__all__ = ["OpenAiLlmProvider"]
