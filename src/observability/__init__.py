"""Observability utilities and metrics."""

from .metrics import (
    demo_responses,
    prompts_submitted,
    stream_duration,
    stream_errors,
    tool_calls_executed,
    tool_discovery_failures,
    tool_provider_connections,
    transcript_commits,
)

__all__ = [
    # Prompt metrics
    "prompts_submitted",
    "demo_responses",
    "stream_errors",
    "stream_duration",
    # Tool metrics
    "tool_calls_executed",
    "tool_discovery_failures",
    "tool_provider_connections",
    # Persistence metrics
    "transcript_commits",
]
