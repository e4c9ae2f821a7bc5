"""Domain exceptions for conversation-host.

Raised by aggregates and domain services when a request cannot be
satisfied against the current domain state.
"""


class DomainError(Exception):
    """Base exception for domain rule violations.

    Attributes:
        message: Human-readable description of the violation.
        code: Optional error code for programmatic handling.
    """

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ConversationNotFoundError(DomainError):
    """Raised when a conversation does not exist or has been deleted."""

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"Conversation not found: {conversation_id}", code="CONVERSATION_NOT_FOUND")
        self.conversation_id = conversation_id


class ConversationAccessDeniedError(DomainError):
    """Raised when a user addresses a conversation they do not own."""

    def __init__(self, conversation_id: str, user_id: str) -> None:
        super().__init__(f"User {user_id} does not own conversation {conversation_id}", code="CONVERSATION_ACCESS_DENIED")
        self.conversation_id = conversation_id
        self.user_id = user_id


class AttachmentRejectedError(DomainError):
    """Raised when an uploaded attachment violates type or size limits."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="ATTACHMENT_REJECTED")
