"""Domain events package.

Contains all domain events for the Conversation aggregate.
"""

from .conversation import (
    ConversationCreatedDomainEvent,
    ConversationDeletedDomainEvent,
    ConversationTitleUpdatedDomainEvent,
    TurnAppendedDomainEvent,
)

__all__ = [
    "ConversationCreatedDomainEvent",
    "ConversationDeletedDomainEvent",
    "ConversationTitleUpdatedDomainEvent",
    "TurnAppendedDomainEvent",
]
