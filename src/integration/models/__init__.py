"""Integration layer DTOs package."""

from .conversation_dto import ConversationDto, ConversationSummaryDto

__all__ = [
    "ConversationDto",
    "ConversationSummaryDto",
]
